"""Controller for the dispatch CLI command."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from analysis_dispatch.config import Settings
from analysis_dispatch.dispatch.aggregator import render_summary_lines
from analysis_dispatch.dispatch.backend import CliWorkerBackend, WorkerBackend
from analysis_dispatch.dispatch.dispatcher import BatchDispatcher, PreconditionMissingError
from analysis_dispatch.dispatch.models import RunConfiguration
from analysis_dispatch.dispatch.resolver import TargetResolver
from analysis_dispatch.dispatch.targets import parse_target_records
from analysis_dispatch.dispatch.workdir import TargetWorkdirLayout

_RULE = "=" * 40


@dataclass(slots=True)
class DispatchCommand:
    """CLI input for one batch run."""

    records: tuple[str, ...]
    dry_run: bool = False
    check_only: bool = False
    max_parallel: int | None = None
    max_turns: int | None = None
    root_dir: Path | None = None
    skills_root: Path | None = None
    worker_command: str | None = None


@dataclass(slots=True)
class DispatchCliResult:
    """Run status to turn into an exit code."""

    success: bool
    error: str | None = None


class DispatchCliController:
    """Wires settings, resolver, backend and dispatcher for one CLI invocation."""

    def __init__(self, backend_factory: Callable[[str], WorkerBackend] | None = None) -> None:
        self.backend_factory = backend_factory or CliWorkerBackend

    def run(self, command: DispatchCommand, emit: Callable[[str], None]) -> DispatchCliResult:
        """Run the batch, streaming progress lines through ``emit``.

        Raises:
            MalformedTargetError: a record could not be parsed; nothing was launched.
            ValueError: configuration is invalid.
        """

        targets = parse_target_records(command.records)
        settings = Settings.from_env(root_dir=command.root_dir, skills_root=command.skills_root)
        if command.worker_command is not None:
            settings.worker.command_template = command.worker_command
        if command.max_parallel is not None:
            settings.worker.max_parallel = command.max_parallel
        if command.max_turns is not None:
            settings.worker.max_turns = command.max_turns
        settings.validate()

        config = RunConfiguration(
            dry_run=command.dry_run,
            check_only=command.check_only,
            max_parallel=settings.worker.max_parallel,
            max_turns=settings.worker.max_turns,
        )
        layout = TargetWorkdirLayout(settings.root_dir)
        dispatcher = BatchDispatcher(
            layout=layout,
            resolver=TargetResolver(
                layout,
                git_timeout_seconds=settings.resolver.git_timeout_seconds,
            ),
            backend=self.backend_factory(settings.worker.command_template),
            config=config,
            skills_root=settings.skills_root,
            poll_interval_seconds=settings.worker.poll_interval_seconds,
            command_preview_template=settings.worker.command_template,
            emit=emit,
        )

        emit(_RULE)
        emit(" Analysis Dispatch: Batch Runner")
        emit(_RULE)
        emit(f"Targets:      {len(targets)}")
        emit(f"Max parallel: {config.max_parallel}")
        emit(f"Max turns:    {config.max_turns}")
        emit("")
        emit("Checking repositories...")

        try:
            report = dispatcher.run(targets)
        except PreconditionMissingError as error:
            emit("")
            emit("ERROR: Some repositories are missing. Clone them first.")
            return DispatchCliResult(success=False, error=str(error))

        emit("")
        if config.check_only:
            emit("All repos OK.")
            return DispatchCliResult(success=True)

        emit("")
        emit(_RULE)
        emit(" Results")
        emit(_RULE)
        for line in render_summary_lines(report.results):
            emit(line)
        return DispatchCliResult(success=True)

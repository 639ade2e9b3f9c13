"""Single-threaded controller loop: resolve, build, admit, launch, aggregate."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from analysis_dispatch.dispatch.aggregator import TargetResult, aggregate_results
from analysis_dispatch.dispatch.backend import (
    WorkerBackend,
    WorkerLaunchError,
    WorkerLaunchRequest,
)
from analysis_dispatch.dispatch.backend.cli_backend import render_command_preview
from analysis_dispatch.dispatch.instructions import build_instructions
from analysis_dispatch.dispatch.models import (
    JobHandle,
    LaunchFailure,
    RunConfiguration,
    TargetDescriptor,
)
from analysis_dispatch.dispatch.resolver import PreconditionReport, TargetResolver
from analysis_dispatch.dispatch.throttle import AdmissionPool
from analysis_dispatch.dispatch.workdir import TargetWorkdirLayout

logger = logging.getLogger(__name__)


class PreconditionMissingError(RuntimeError):
    """One or more targets have no provisioned repository; nothing was launched."""

    def __init__(self, missing: Sequence[TargetDescriptor]) -> None:
        names = ", ".join(target.name for target in missing)
        super().__init__(f"Missing repositories for: {names}")
        self.missing = list(missing)


@dataclass(slots=True)
class DispatchReport:
    """What one run did, for CLI rendering and tests."""

    preconditions: PreconditionReport
    launched: list[JobHandle] = field(default_factory=list)
    dry_run_targets: list[TargetDescriptor] = field(default_factory=list)
    launch_failures: list[LaunchFailure] = field(default_factory=list)
    results: list[TargetResult] = field(default_factory=list)


class BatchDispatcher:
    """Launches one worker per target while keeping at most ``max_parallel`` alive."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        layout: TargetWorkdirLayout,
        resolver: TargetResolver,
        backend: WorkerBackend,
        config: RunConfiguration,
        skills_root: Path,
        poll_interval_seconds: float = 5.0,
        command_preview_template: str | None = None,
        sleep: Callable[[float], None] = time.sleep,
        emit: Callable[[str], None] | None = None,
    ) -> None:
        self.layout = layout
        self.resolver = resolver
        self.backend = backend
        self.config = config
        self.skills_root = skills_root
        self.poll_interval_seconds = poll_interval_seconds
        self.command_preview_template = command_preview_template
        self._sleep = sleep
        self._emit = emit or (lambda _line: None)

    def check(self, targets: Sequence[TargetDescriptor]) -> PreconditionReport:
        """Resolve every target and report each one."""

        report = self.resolver.check(targets)
        for check in report.checks:
            if check.ok:
                self._emit(f"  OK  {check.target.name} ({check.commit_count} commits)")
            else:
                self._emit(
                    f"  MISSING  {check.target.name}: expected at {check.expected_location}",
                )
        return report

    def run(self, targets: Sequence[TargetDescriptor]) -> DispatchReport:
        """Run the whole batch.

        Raises:
            PreconditionMissingError: a target did not resolve; no worker was started.
        """

        preconditions = self.check(targets)
        if not preconditions.ok:
            raise PreconditionMissingError(preconditions.missing)

        report = DispatchReport(preconditions=preconditions)
        if self.config.check_only:
            return report

        pool = AdmissionPool(
            backend=self.backend,
            max_parallel=self.config.max_parallel,
            poll_interval_seconds=self.poll_interval_seconds,
            sleep=self._sleep,
        )
        for target in targets:
            self._dispatch_one(
                target=target,
                preconditions=preconditions,
                pool=pool,
                report=report,
            )

        if report.launched:
            self._emit(f"[{_clock()}] All workers launched. Waiting...")
            self._emit(f"  Monitor: tail -f {self.layout.root_dir}/*/agent.log")
            pool.wait_for_all()
            self._emit(f"[{_clock()}] All workers completed.")

        report.results = aggregate_results(targets, self.layout, report.launch_failures)
        return report

    def _dispatch_one(
        self,
        *,
        target: TargetDescriptor,
        preconditions: PreconditionReport,
        pool: AdmissionPool,
        report: DispatchReport,
    ) -> None:
        resolved = preconditions.resolved_for(target.name)
        paths = self.layout.paths_for(target.name)
        instructions = build_instructions(target, resolved, skills_root=self.skills_root)
        self.layout.write_instructions(target.name, instructions)

        if self.config.dry_run:
            self._emit(f"[{_clock()}] Launching worker: {target.name}")
            if self.command_preview_template is not None:
                preview = render_command_preview(
                    self.command_preview_template,
                    prompt_file=paths.instructions_path,
                    max_turns=self.config.max_turns,
                    work_dir=paths.work_dir,
                    name=target.name,
                )
                self._emit(f"  [DRY RUN] {preview}")
            self._emit(f"  Instructions saved: {paths.instructions_path}")
            report.dry_run_targets.append(target)
            return

        pool.wait_for_capacity()
        self._emit(f"[{_clock()}] Launching worker: {target.name}")
        try:
            handle = self.backend.start(
                WorkerLaunchRequest(
                    target=target,
                    work_dir=paths.work_dir,
                    instructions=instructions,
                    instructions_path=paths.instructions_path,
                    log_path=paths.log_path,
                    pid_path=paths.pid_path,
                    max_turns=self.config.max_turns,
                ),
            )
        except WorkerLaunchError as error:
            logger.warning("Worker launch failed: name=%s error=%s", target.name, error)
            report.launch_failures.append(LaunchFailure(target=target, error=str(error)))
            self._emit(f"  Launch failed: {error}")
            return

        pool.admit(handle)
        report.launched.append(handle)
        self._emit(f"  PID={handle.process_id}  Log: {handle.log_path}")


def _clock() -> str:
    return datetime.now().strftime("%H:%M:%S")  # noqa: DTZ005

"""Subprocess-based backend that launches one detached CLI worker per target."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Callable
from pathlib import Path

from analysis_dispatch.dispatch.backend.base import WorkerLaunchRequest
from analysis_dispatch.dispatch.models import JobHandle

logger = logging.getLogger(__name__)

PROMPT_PLACEHOLDERS = ("{prompt}", "{prompt_file}")
# Set by a parent agent session; a nested agent CLI refuses to start while it is present.
_SCRUBBED_ENV_VARS = ("CLAUDECODE",)


class WorkerLaunchError(RuntimeError):
    """The worker process could not be started."""


class CliWorkerBackend:
    """Start workers from a command template and poll the processes it started."""

    def __init__(self, command_template: str) -> None:
        self.command_template = command_template
        self._processes: dict[int, subprocess.Popen[bytes]] = {}

    def start(self, request: WorkerLaunchRequest) -> JobHandle:
        run_args, command_head = _build_run_args(
            command_template=self.command_template,
            prompt=request.instructions,
            prompt_file=request.instructions_path,
            max_turns=request.max_turns,
            work_dir=request.work_dir,
            name=request.target.name,
        )

        env = os.environ.copy()
        for name in _SCRUBBED_ENV_VARS:
            env.pop(name, None)
        env["ANALYSIS_DISPATCH_TARGET"] = request.target.name

        request.log_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with request.log_path.open("w", encoding="utf-8") as log_handle:
                process = subprocess.Popen(  # noqa: S603
                    run_args,
                    cwd=request.work_dir,
                    env=env,
                    stdin=subprocess.DEVNULL,
                    stdout=log_handle,
                    stderr=subprocess.STDOUT,
                    start_new_session=True,
                )
        except FileNotFoundError as error:
            raise WorkerLaunchError(f"Worker command not found: {command_head}") from error
        except OSError as error:
            raise WorkerLaunchError(f"Worker failed to start: {error}") from error

        self._processes[process.pid] = process
        try:
            request.pid_path.write_text(f"{process.pid}\n", "utf-8")
        except OSError as error:
            # The worker is running; it must still be admitted and waited on.
            logger.warning(
                "Worker pid file not written: name=%s pid=%s path=%s error=%s",
                request.target.name,
                process.pid,
                request.pid_path,
                error,
            )
        logger.info(
            "Worker started: name=%s pid=%s log=%s",
            request.target.name,
            process.pid,
            request.log_path,
        )
        return JobHandle(
            target=request.target,
            process_id=process.pid,
            log_path=request.log_path,
            instruction_path=request.instructions_path,
        )

    def is_alive(self, handle: JobHandle) -> bool:
        process = self._processes.get(handle.process_id)
        if process is None:
            return pid_is_alive(handle.process_id)
        returncode = process.poll()
        if returncode is None:
            return True
        del self._processes[handle.process_id]
        logger.info(
            "Worker exited: name=%s pid=%s exit_code=%s",
            handle.target.name,
            handle.process_id,
            returncode,
        )
        return False


def pid_is_alive(pid: int) -> bool:
    """Check a process id with signal 0, without affecting the process."""

    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by another user.
        return True
    return True


def render_command_preview(
    command_template: str,
    *,
    prompt_file: Path,
    max_turns: int,
    work_dir: Path,
    name: str,
) -> str:
    """Render the template for display, with the prompt text elided."""

    return _render_template(
        command_template=command_template.strip(),
        values={
            "prompt": "<prompt>",
            "prompt_file": str(prompt_file),
            "max_turns": str(max_turns),
            "work_dir": str(work_dir),
            "name": name,
        },
        quote=lambda value: value,
    )


def validate_command_template(command_template: str) -> None:
    """Render the template with sample values so bad templates fail before any launch."""

    _build_run_args(
        command_template=command_template,
        prompt="prompt",
        prompt_file=Path("prompt.md"),
        max_turns=0,
        work_dir=Path("."),
        name="target",
    )


def _build_run_args(  # noqa: PLR0913
    *,
    command_template: str,
    prompt: str,
    prompt_file: Path,
    max_turns: int,
    work_dir: Path,
    name: str,
) -> tuple[list[str], str]:
    stripped = command_template.strip()
    if not stripped:
        raise WorkerLaunchError("Worker command template is empty.")
    if not any(placeholder in stripped for placeholder in PROMPT_PLACEHOLDERS):
        raise WorkerLaunchError(
            "Worker command template must include {prompt} or {prompt_file}.",
        )

    rendered = _render_template(
        command_template=stripped,
        values={
            "prompt": prompt,
            "prompt_file": str(prompt_file),
            "max_turns": str(max_turns),
            "work_dir": str(work_dir),
            "name": name,
        },
        quote=shlex.quote,
    )
    try:
        argv = shlex.split(rendered)
    except ValueError as error:
        raise WorkerLaunchError(f"Invalid command template: {error}") from error
    if not argv:
        raise WorkerLaunchError("Worker command template rendered empty command.")
    return argv, argv[0]


def _render_template(
    *,
    command_template: str,
    values: dict[str, str],
    quote: Callable[[str], str],
) -> str:
    try:
        return command_template.format(**{key: quote(value) for key, value in values.items()})
    except KeyError as error:
        raise WorkerLaunchError(
            f"Unsupported command template placeholder: {error}",
        ) from error
    except (IndexError, ValueError) as error:
        raise WorkerLaunchError(f"Invalid command template: {error}") from error

"""Worker backend interface for target dispatch."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from analysis_dispatch.dispatch.models import JobHandle, TargetDescriptor


@dataclass(slots=True)
class WorkerLaunchRequest:
    """Inputs required to start one worker."""

    target: TargetDescriptor
    work_dir: Path
    instructions: str
    instructions_path: Path
    log_path: Path
    pid_path: Path
    max_turns: int


class WorkerBackend(Protocol):
    """Protocol implemented by worker launchers."""

    def start(self, request: WorkerLaunchRequest) -> JobHandle:
        """Start a worker and return a handle for liveness polling."""

    def is_alive(self, handle: JobHandle) -> bool:
        """Return whether the worker behind ``handle`` is still running."""

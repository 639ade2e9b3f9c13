"""Worker backend implementations."""

from analysis_dispatch.dispatch.backend.base import WorkerBackend, WorkerLaunchRequest
from analysis_dispatch.dispatch.backend.cli_backend import CliWorkerBackend, WorkerLaunchError

__all__ = [
    "CliWorkerBackend",
    "WorkerBackend",
    "WorkerLaunchError",
    "WorkerLaunchRequest",
]

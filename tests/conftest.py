"""Shared test fixtures."""

from __future__ import annotations

import shlex
import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from analysis_dispatch.dispatch.backend import WorkerLaunchError, WorkerLaunchRequest
from analysis_dispatch.dispatch.models import JobHandle

ECHO_AGENT_COMMAND_TEMPLATE = (
    f"{shlex.quote(sys.executable)} -m analysis_dispatch.dispatch.backend.echo_agent "
    "--prompt-file {prompt_file} --work-dir {work_dir} --name {name} --max-turns {max_turns}"
)


class FakeWorkerBackend:
    """In-memory workers that stay alive for a fixed number of liveness polls.

    ``events`` records ``("start", name)`` and ``("finish", name)`` in the order
    the dispatcher observed them.
    """

    def __init__(
        self,
        *,
        polls_alive: int | dict[str, int] = 2,
        fail_names: tuple[str, ...] = (),
        on_finish: Callable[[WorkerLaunchRequest], None] | None = None,
    ) -> None:
        self.polls_alive = polls_alive
        self.fail_names = fail_names
        self.on_finish = on_finish
        self.started: list[JobHandle] = []
        self.events: list[tuple[str, str]] = []
        self.max_concurrent = 0
        self._remaining: dict[int, int] = {}
        self._requests: dict[int, WorkerLaunchRequest] = {}
        self._next_pid = 1000

    @property
    def running(self) -> int:
        return sum(1 for remaining in self._remaining.values() if remaining > 0)

    def start(self, request: WorkerLaunchRequest) -> JobHandle:
        if request.target.name in self.fail_names:
            raise WorkerLaunchError(f"cannot start {request.target.name}")
        pid = self._next_pid
        self._next_pid += 1
        polls = (
            self.polls_alive.get(request.target.name, 1)
            if isinstance(self.polls_alive, dict)
            else self.polls_alive
        )
        self._remaining[pid] = max(1, polls)
        self._requests[pid] = request
        handle = JobHandle(
            target=request.target,
            process_id=pid,
            log_path=request.log_path,
            instruction_path=request.instructions_path,
        )
        self.started.append(handle)
        self.events.append(("start", request.target.name))
        self.max_concurrent = max(self.max_concurrent, self.running)
        return handle

    def is_alive(self, handle: JobHandle) -> bool:
        remaining = self._remaining[handle.process_id]
        if remaining <= 0:
            return False
        remaining -= 1
        self._remaining[handle.process_id] = remaining
        if remaining > 0:
            return True
        self.events.append(("finish", handle.target.name))
        if self.on_finish is not None:
            self.on_finish(self._requests[handle.process_id])
        return False


def provision_target(root: Path, name: str, repo: str = "repo") -> Path:
    """Create ``<root>/<name>/artifact/<repo>/.git`` like a prior clone would."""

    repo_dir = root / name / "artifact" / repo
    (repo_dir / ".git").mkdir(parents=True)
    return repo_dir


@pytest.fixture()
def case_root(tmp_path: Path) -> Path:
    root = tmp_path / "case-studies"
    root.mkdir()
    return root


@pytest.fixture()
def fake_backend() -> FakeWorkerBackend:
    return FakeWorkerBackend()


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop dispatcher env overrides that would leak from the caller's shell."""

    for name in (
        "ANALYSIS_DISPATCH_ROOT",
        "ANALYSIS_DISPATCH_SKILLS_ROOT",
        "ANALYSIS_DISPATCH_WORKER_COMMAND",
        "ANALYSIS_DISPATCH_MAX_PARALLEL",
        "ANALYSIS_DISPATCH_MAX_TURNS",
        "ANALYSIS_DISPATCH_POLL_INTERVAL_SECONDS",
        "ANALYSIS_DISPATCH_GIT_TIMEOUT_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)

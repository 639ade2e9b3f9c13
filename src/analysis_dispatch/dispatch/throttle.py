"""Polling admission control that caps concurrently running workers."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from analysis_dispatch.dispatch.backend.base import WorkerBackend
from analysis_dispatch.dispatch.models import JobHandle

logger = logging.getLogger(__name__)


class AdmissionPool:
    """Handles of admitted workers believed to be running.

    Owned by a single controller loop; there is no concurrent writer, so no
    locking. ``len(active) <= max_parallel`` holds at every observation.
    """

    def __init__(
        self,
        *,
        backend: WorkerBackend,
        max_parallel: int,
        poll_interval_seconds: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if max_parallel < 1:
            raise ValueError(f"max_parallel must be >= 1, got {max_parallel}.")
        self.backend = backend
        self.max_parallel = max_parallel
        self.poll_interval_seconds = poll_interval_seconds
        self._sleep = sleep
        self.active: list[JobHandle] = []

    @property
    def at_capacity(self) -> bool:
        return len(self.active) >= self.max_parallel

    def reap(self) -> list[JobHandle]:
        """Drop handles whose worker is no longer alive and return them."""

        finished = [handle for handle in self.active if not self.backend.is_alive(handle)]
        if finished:
            self.active = [handle for handle in self.active if handle not in finished]
            for handle in finished:
                logger.info(
                    "Worker finished: name=%s pid=%s",
                    handle.target.name,
                    handle.process_id,
                )
        return finished

    def wait_for_capacity(self) -> None:
        """Block until at least one slot is free."""

        while self.at_capacity:
            self.reap()
            if self.at_capacity:
                logger.debug(
                    "Admission waiting: active=%d max_parallel=%d",
                    len(self.active),
                    self.max_parallel,
                )
                self._sleep(self.poll_interval_seconds)

    def admit(self, handle: JobHandle) -> None:
        if self.at_capacity:
            raise RuntimeError(
                f"Admission pool is full ({len(self.active)}/{self.max_parallel}); "
                f"cannot admit {handle.target.name!r}.",
            )
        self.active.append(handle)

    def wait_for_all(self) -> None:
        """Block until every admitted worker has been observed finished.

        There is no upper bound: a worker that never exits blocks here.
        """

        while True:
            self.reap()
            if not self.active:
                return
            logger.debug("Waiting for %d running worker(s)", len(self.active))
            self._sleep(self.poll_interval_seconds)

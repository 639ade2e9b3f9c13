"""Domain models for target dispatch and outcome reporting."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class Outcome(str, Enum):
    """Per-target result derived from the working directory contents."""

    COMPLETE = "complete"
    PARTIAL = "partial"
    MISSING = "missing"


@dataclass(frozen=True, slots=True)
class TargetDescriptor:
    """One unit of work parsed from a ``name|sourceRef|language|referenceNote`` record."""

    name: str
    source_ref: str
    language: str
    reference_note: str


@dataclass(frozen=True, slots=True)
class RunConfiguration:
    """Process-wide run parameters, fixed for the lifetime of one run."""

    dry_run: bool = False
    check_only: bool = False
    max_parallel: int = 2
    max_turns: int = 0

    def __post_init__(self) -> None:
        if self.max_parallel < 1:
            raise ValueError(f"max_parallel must be >= 1, got {self.max_parallel}.")
        if self.max_turns < 0:
            raise ValueError(f"max_turns must be >= 0, got {self.max_turns}.")


@dataclass(frozen=True, slots=True)
class JobHandle:
    """Observation record for one launched worker.

    The handle is only used to poll liveness; it carries no authority to
    signal, pause or kill the worker.
    """

    target: TargetDescriptor
    process_id: int
    log_path: Path
    instruction_path: Path


@dataclass(frozen=True, slots=True)
class LaunchFailure:
    """A worker that could not be started."""

    target: TargetDescriptor
    error: str

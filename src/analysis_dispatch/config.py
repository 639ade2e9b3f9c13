"""Runtime configuration for the analysis dispatcher."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from analysis_dispatch.dispatch.backend.cli_backend import (
    WorkerLaunchError,
    validate_command_template,
)

DEFAULT_WORKER_COMMAND = (
    "claude --print --dangerously-skip-permissions --max-turns {max_turns} -p {prompt}"
)


@dataclass(slots=True)
class WorkerSettings:
    """How workers are started and watched."""

    command_template: str = DEFAULT_WORKER_COMMAND
    max_parallel: int = 2
    max_turns: int = 0
    poll_interval_seconds: float = 5.0


@dataclass(slots=True)
class ResolverSettings:
    """Precondition check settings."""

    git_timeout_seconds: int = 10


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    root_dir: Path = Path("case-studies")
    skills_root: Path = Path(".claude/skills")
    worker: WorkerSettings = field(default_factory=WorkerSettings)
    resolver: ResolverSettings = field(default_factory=ResolverSettings)

    @classmethod
    def from_env(
        cls,
        root_dir: Path | None = None,
        skills_root: Path | None = None,
    ) -> Settings:
        """Load settings from environment; explicit arguments win."""

        return cls(
            root_dir=root_dir or Path(os.getenv("ANALYSIS_DISPATCH_ROOT", "case-studies")),
            skills_root=skills_root
            or Path(os.getenv("ANALYSIS_DISPATCH_SKILLS_ROOT", ".claude/skills")),
            worker=WorkerSettings(
                command_template=os.getenv(
                    "ANALYSIS_DISPATCH_WORKER_COMMAND",
                    DEFAULT_WORKER_COMMAND,
                ),
                max_parallel=_env_int("ANALYSIS_DISPATCH_MAX_PARALLEL", 2),
                max_turns=_env_int("ANALYSIS_DISPATCH_MAX_TURNS", 0),
                poll_interval_seconds=_env_float(
                    "ANALYSIS_DISPATCH_POLL_INTERVAL_SECONDS",
                    5.0,
                ),
            ),
            resolver=ResolverSettings(
                git_timeout_seconds=_env_int("ANALYSIS_DISPATCH_GIT_TIMEOUT_SECONDS", 10),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for values the dispatcher cannot run with."""

        if not self.worker.command_template.strip():
            raise ValueError("ANALYSIS_DISPATCH_WORKER_COMMAND must not be empty.")
        try:
            validate_command_template(self.worker.command_template)
        except WorkerLaunchError as error:
            raise ValueError(f"Invalid ANALYSIS_DISPATCH_WORKER_COMMAND: {error}") from error
        if self.worker.max_parallel < 1:
            raise ValueError("ANALYSIS_DISPATCH_MAX_PARALLEL must be >= 1.")
        if self.worker.max_turns < 0:
            raise ValueError("ANALYSIS_DISPATCH_MAX_TURNS must be >= 0.")
        if self.worker.poll_interval_seconds <= 0:
            raise ValueError("ANALYSIS_DISPATCH_POLL_INTERVAL_SECONDS must be > 0.")
        if self.resolver.git_timeout_seconds <= 0:
            raise ValueError("ANALYSIS_DISPATCH_GIT_TIMEOUT_SECONDS must be > 0.")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid number value for {name}: {value!r}") from error

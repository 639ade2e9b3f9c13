"""Read-only lookups that locate each target's pre-provisioned repository."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from analysis_dispatch.dispatch.models import TargetDescriptor
from analysis_dispatch.dispatch.workdir import TargetWorkdirLayout

logger = logging.getLogger(__name__)

UNKNOWN_COMMIT_COUNT = "?"


@dataclass(frozen=True, slots=True)
class ResolvedTarget:
    """A target whose repository was found under its working directory."""

    name: str
    work_dir: Path
    repo_dir: Path


@dataclass(slots=True)
class TargetCheck:
    """Precondition status for one target."""

    target: TargetDescriptor
    resolved: ResolvedTarget | None
    expected_location: Path
    commit_count: str = UNKNOWN_COMMIT_COUNT

    @property
    def ok(self) -> bool:
        return self.resolved is not None


@dataclass(slots=True)
class PreconditionReport:
    """Resolution results for a whole batch, in input order."""

    checks: list[TargetCheck] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(check.ok for check in self.checks)

    @property
    def missing(self) -> list[TargetDescriptor]:
        return [check.target for check in self.checks if not check.ok]

    def resolved_for(self, name: str) -> ResolvedTarget:
        for check in self.checks:
            if check.target.name == name and check.resolved is not None:
                return check.resolved
        raise KeyError(name)


class TargetResolver:
    """Finds ``<root>/<name>/artifact/<repo>/`` holding a ``.git`` entry.

    Provisioning (cloning) the repository is someone else's job; this class
    never creates anything on disk.
    """

    def __init__(self, layout: TargetWorkdirLayout, *, git_timeout_seconds: int = 10) -> None:
        self.layout = layout
        self.git_timeout_seconds = git_timeout_seconds

    def resolve(self, name: str) -> ResolvedTarget | None:
        paths = self.layout.paths_for(name)
        if not paths.artifact_dir.is_dir():
            return None
        for candidate in sorted(paths.artifact_dir.iterdir()):
            if candidate.is_dir() and (candidate / ".git").exists():
                return ResolvedTarget(name=name, work_dir=paths.work_dir, repo_dir=candidate)
        return None

    def check(self, targets: Sequence[TargetDescriptor]) -> PreconditionReport:
        report = PreconditionReport()
        for target in targets:
            resolved = self.resolve(target.name)
            expected = self.layout.paths_for(target.name).artifact_dir / "<repo>"
            if resolved is None:
                logger.warning(
                    "Target repository missing: name=%s expected=%s",
                    target.name,
                    expected,
                )
                report.checks.append(
                    TargetCheck(target=target, resolved=None, expected_location=expected),
                )
                continue
            report.checks.append(
                TargetCheck(
                    target=target,
                    resolved=resolved,
                    expected_location=expected,
                    commit_count=count_commits(
                        resolved.repo_dir,
                        timeout_seconds=self.git_timeout_seconds,
                    ),
                ),
            )
        return report


def count_commits(repo_dir: Path, *, timeout_seconds: int = 10) -> str:
    """Return ``git rev-list --count HEAD`` output, or ``?`` when git cannot tell."""

    try:
        completed = subprocess.run(  # noqa: S603
            ["git", "-C", str(repo_dir), "rev-list", "--count", "HEAD"],  # noqa: S607
            check=False,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
        )
    except subprocess.TimeoutExpired:
        return UNKNOWN_COMMIT_COUNT
    except OSError:
        return UNKNOWN_COMMIT_COUNT

    count = completed.stdout.strip()
    if completed.returncode != 0 or not count.isdigit():
        return UNKNOWN_COMMIT_COUNT
    return count

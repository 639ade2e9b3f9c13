"""Outcome classification from per-target working directories."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path

from analysis_dispatch.dispatch.models import LaunchFailure, Outcome, TargetDescriptor
from analysis_dispatch.dispatch.workdir import TargetPaths, TargetWorkdirLayout


@dataclass(slots=True)
class TargetResult:
    """Final report row for one target."""

    target: TargetDescriptor
    outcome: Outcome
    artifact_path: Path | None
    line_count: int | None
    launch_error: str | None = None


def classify_outcome(paths: TargetPaths) -> Outcome:
    """Classify from files on disk only, independent of any in-memory run state."""

    if paths.primary_artifact_path.is_file():
        return Outcome.COMPLETE
    if paths.secondary_artifact_path.is_file():
        return Outcome.PARTIAL
    return Outcome.MISSING


def aggregate_results(
    targets: Sequence[TargetDescriptor],
    layout: TargetWorkdirLayout,
    launch_failures: Iterable[LaunchFailure] = (),
) -> list[TargetResult]:
    """Build one result per target; call only after every worker has finished."""

    errors = {failure.target.name: failure.error for failure in launch_failures}
    results: list[TargetResult] = []
    for target in targets:
        paths = layout.paths_for(target.name)
        outcome = classify_outcome(paths)
        artifact_path: Path | None = None
        if outcome is Outcome.COMPLETE:
            artifact_path = paths.primary_artifact_path
        elif outcome is Outcome.PARTIAL:
            artifact_path = paths.secondary_artifact_path
        results.append(
            TargetResult(
                target=target,
                outcome=outcome,
                artifact_path=artifact_path,
                line_count=_count_lines(artifact_path) if artifact_path is not None else None,
                launch_error=errors.get(target.name),
            ),
        )
    return results


def render_summary_lines(results: Sequence[TargetResult]) -> list[str]:
    lines: list[str] = []
    for result in results:
        name = result.target.name
        if result.outcome is Outcome.COMPLETE and result.artifact_path is not None:
            lines.append(
                f"  OK  {name} -> {result.artifact_path.name} ({result.line_count} lines)",
            )
        elif result.outcome is Outcome.PARTIAL and result.artifact_path is not None:
            lines.append(
                f"  ~~  {name} -> {result.artifact_path.name} only "
                f"({result.line_count} lines, no modeling brief)",
            )
        else:
            lines.append(f"  --  {name} (no output)")
        if result.launch_error is not None:
            lines.append(f"      launch failed: {result.launch_error}")
    return lines


def _count_lines(path: Path) -> int:
    with path.open("rb") as handle:
        return sum(1 for _ in handle)

"""Per-target working directory layout."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

INSTRUCTIONS_FILENAME = ".prompt.md"
LOG_FILENAME = "agent.log"
PID_FILENAME = "agent.pid"
PRIMARY_ARTIFACT_FILENAME = "modeling-brief.md"
SECONDARY_ARTIFACT_FILENAME = "analysis-report.md"
ARTIFACT_DIRNAME = "artifact"


@dataclass(frozen=True, slots=True)
class TargetPaths:
    """Resolved file locations for one target."""

    work_dir: Path
    artifact_dir: Path
    instructions_path: Path
    log_path: Path
    pid_path: Path
    primary_artifact_path: Path
    secondary_artifact_path: Path


class TargetWorkdirLayout:
    """Maps target names to the deterministic ``<root>/<name>/`` layout."""

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = root_dir

    def paths_for(self, name: str) -> TargetPaths:
        work_dir = self.root_dir / name
        return TargetPaths(
            work_dir=work_dir,
            artifact_dir=work_dir / ARTIFACT_DIRNAME,
            instructions_path=work_dir / INSTRUCTIONS_FILENAME,
            log_path=work_dir / LOG_FILENAME,
            pid_path=work_dir / PID_FILENAME,
            primary_artifact_path=work_dir / PRIMARY_ARTIFACT_FILENAME,
            secondary_artifact_path=work_dir / SECONDARY_ARTIFACT_FILENAME,
        )

    def write_instructions(self, name: str, instructions: str) -> Path:
        """Persist rendered instructions and return the file path."""

        paths = self.paths_for(name)
        paths.work_dir.mkdir(parents=True, exist_ok=True)
        paths.instructions_path.write_text(instructions, "utf-8")
        return paths.instructions_path

"""Rendering of the task instructions handed to each worker."""

from __future__ import annotations

from pathlib import Path

from analysis_dispatch.dispatch.models import TargetDescriptor
from analysis_dispatch.dispatch.resolver import ResolvedTarget
from analysis_dispatch.dispatch.workdir import (
    PRIMARY_ARTIFACT_FILENAME,
    SECONDARY_ARTIFACT_FILENAME,
)

METHODOLOGY_DIRNAME = "code_analysis"
REFERENCE_DOCUMENTS = (
    "bug-archaeology.md",
    "deep-analysis.md",
    "modeling-brief-format.md",
)
EXAMPLE_DOCUMENT = "hashicorp-raft-modeling-brief.md"

_PHASES = (
    "**Reconnaissance**: build a structural map of the codebase",
    "**Bug Archaeology**: mine git history and issue/PR discussions for bugs",
    "**Deep Analysis**: read the core code systematically to find new issues",
    f"**Modeling Brief**: synthesize the findings into {PRIMARY_ARTIFACT_FILENAME}",
)

_RULES = (
    "Verify before reporting. Re-read the code and look for compensating mechanisms.",
    "Read full issue discussions, not just titles, before citing an issue.",
    "Never guess code logic. Cite file:line for every claim.",
    "Use parallel subagents for issue batches, per-file deep reads, and commit review.",
    "Back every claim with code, commits, issue threads, or code path inconsistencies.",
    "Group findings into bug families by mechanism instead of flat lists.",
    "Classify every finding: model-checkable, test-verifiable, or code-review-only.",
    "Cover all bug-fix commits on core files and report coverage statistics.",
)


def build_instructions(
    target: TargetDescriptor,
    resolved: ResolvedTarget,
    *,
    skills_root: Path,
) -> str:
    """Render the worker payload; the same inputs always yield the same text."""

    methodology_dir = skills_root / METHODOLOGY_DIRNAME
    references = "\n".join(
        f"  {methodology_dir / 'references' / document}" for document in REFERENCE_DOCUMENTS
    )
    phases = "\n".join(f"{index}. {phase}" for index, phase in enumerate(_PHASES, start=1))
    rules = "\n".join(f"{index}. {rule}" for index, rule in enumerate(_RULES, start=1))
    primary = resolved.work_dir / PRIMARY_ARTIFACT_FILENAME
    secondary = resolved.work_dir / SECONDARY_ARTIFACT_FILENAME

    return (
        f"# Code Analysis Task\n"
        f"\n"
        f"You are analyzing the following system:\n"
        f"\n"
        f"- **Name**: {target.name}\n"
        f"- **Source**: {target.source_ref}\n"
        f"- **Language**: {target.language}\n"
        f"- **Reference Algorithm**: {target.reference_note}\n"
        f"- **Repository**: {resolved.repo_dir}\n"
        f"- **Working Directory**: {resolved.work_dir}\n"
        f"\n"
        f"## Instructions\n"
        f"\n"
        f"Follow the code-analysis methodology. Read the guide at:\n"
        f"  {methodology_dir / 'guide.md'}\n"
        f"\n"
        f"Then read the reference documents as needed:\n"
        f"{references}\n"
        f"\n"
        f"And see the example:\n"
        f"  {methodology_dir / 'examples' / EXAMPLE_DOCUMENT}\n"
        f"\n"
        f"## Phases\n"
        f"\n"
        f"Execute all {len(_PHASES)} phases in order:\n"
        f"\n"
        f"{phases}\n"
        f"\n"
        f"## Output\n"
        f"\n"
        f"Write your outputs to:\n"
        f"- `{primary}`: the primary deliverable\n"
        f"- `{secondary}`: detailed audit trail of all findings\n"
        f"\n"
        f"## Critical Rules\n"
        f"\n"
        f"{rules}\n"
    )

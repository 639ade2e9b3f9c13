from __future__ import annotations

from pathlib import Path

import allure

from analysis_dispatch.dispatch.instructions import build_instructions
from analysis_dispatch.dispatch.models import TargetDescriptor
from analysis_dispatch.dispatch.resolver import ResolvedTarget

pytestmark = [
    allure.epic("Dispatch"),
    allure.feature("Worker Instructions"),
]

_TARGET = TargetDescriptor(
    name="braft",
    source_ref="brpc/braft",
    language="C++",
    reference_note="Raft (Ongaro 2014)",
)
_RESOLVED = ResolvedTarget(
    name="braft",
    work_dir=Path("/cases/braft"),
    repo_dir=Path("/cases/braft/artifact/braft"),
)


def test_build_instructions_embeds_target_fields_and_paths() -> None:
    text = build_instructions(_TARGET, _RESOLVED, skills_root=Path("/skills"))

    assert text.startswith("# Code Analysis Task\n")
    assert "- **Name**: braft" in text
    assert "- **Source**: brpc/braft" in text
    assert "- **Language**: C++" in text
    assert "- **Reference Algorithm**: Raft (Ongaro 2014)" in text
    assert "- **Repository**: /cases/braft/artifact/braft" in text
    assert "- **Working Directory**: /cases/braft" in text
    assert "/skills/code_analysis/guide.md" in text
    assert "/skills/code_analysis/references/deep-analysis.md" in text
    assert "`/cases/braft/modeling-brief.md`" in text
    assert "`/cases/braft/analysis-report.md`" in text


def test_build_instructions_lists_phases_in_order() -> None:
    text = build_instructions(_TARGET, _RESOLVED, skills_root=Path("/skills"))

    positions = [
        text.index("1. **Reconnaissance**"),
        text.index("2. **Bug Archaeology**"),
        text.index("3. **Deep Analysis**"),
        text.index("4. **Modeling Brief**"),
    ]
    assert positions == sorted(positions)


def test_build_instructions_is_deterministic() -> None:
    first = build_instructions(_TARGET, _RESOLVED, skills_root=Path("/skills"))
    second = build_instructions(_TARGET, _RESOLVED, skills_root=Path("/skills"))

    assert first == second

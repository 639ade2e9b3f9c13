from __future__ import annotations

import subprocess
from pathlib import Path

import allure
import pytest
from conftest import provision_target

from analysis_dispatch.dispatch import resolver as resolver_module
from analysis_dispatch.dispatch.models import TargetDescriptor
from analysis_dispatch.dispatch.resolver import TargetResolver, count_commits
from analysis_dispatch.dispatch.workdir import TargetWorkdirLayout

pytestmark = [
    allure.epic("Dispatch"),
    allure.feature("Precondition Validation"),
]


def _target(name: str) -> TargetDescriptor:
    return TargetDescriptor(name=name, source_ref=f"org/{name}", language="Go", reference_note="x")


def test_resolve_finds_repository_with_git_entry(case_root: Path) -> None:
    repo_dir = provision_target(case_root, "t1", repo="braft")
    resolver = TargetResolver(TargetWorkdirLayout(case_root))

    resolved = resolver.resolve("t1")

    assert resolved is not None
    assert resolved.repo_dir == repo_dir
    assert resolved.work_dir == case_root / "t1"


def test_resolve_returns_none_without_artifact_dir(case_root: Path) -> None:
    (case_root / "t1").mkdir()
    resolver = TargetResolver(TargetWorkdirLayout(case_root))

    assert resolver.resolve("t1") is None


def test_resolve_ignores_directories_without_git_entry(case_root: Path) -> None:
    (case_root / "t1" / "artifact" / "not-a-clone").mkdir(parents=True)
    resolver = TargetResolver(TargetWorkdirLayout(case_root))

    assert resolver.resolve("t1") is None


def test_resolve_picks_first_clone_by_name(case_root: Path) -> None:
    provision_target(case_root, "t1", repo="zeta")
    alpha = provision_target(case_root, "t1", repo="alpha")
    resolver = TargetResolver(TargetWorkdirLayout(case_root))

    resolved = resolver.resolve("t1")

    assert resolved is not None
    assert resolved.repo_dir == alpha


def test_resolve_never_creates_anything(case_root: Path) -> None:
    resolver = TargetResolver(TargetWorkdirLayout(case_root))

    assert resolver.resolve("ghost") is None
    assert list(case_root.iterdir()) == []


def test_check_reports_every_target_in_order(
    case_root: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    provision_target(case_root, "t1")
    provision_target(case_root, "t3")
    monkeypatch.setattr(resolver_module, "count_commits", lambda *_args, **_kwargs: "7")
    resolver = TargetResolver(TargetWorkdirLayout(case_root))

    report = resolver.check([_target("t1"), _target("t2"), _target("t3")])

    assert [check.target.name for check in report.checks] == ["t1", "t2", "t3"]
    assert [check.ok for check in report.checks] == [True, False, True]
    assert report.checks[0].commit_count == "7"
    assert not report.ok
    assert [target.name for target in report.missing] == ["t2"]
    assert report.resolved_for("t3").name == "t3"
    with pytest.raises(KeyError):
        report.resolved_for("t2")


def test_count_commits_reads_git_output(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def _fake_run(args, **_kwargs):
        return subprocess.CompletedProcess(args=args, returncode=0, stdout="42\n", stderr="")

    monkeypatch.setattr(resolver_module.subprocess, "run", _fake_run)

    assert count_commits(tmp_path) == "42"


def test_count_commits_returns_unknown_when_git_is_unavailable(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    def _missing_git(*_args, **_kwargs):
        raise FileNotFoundError("git")

    monkeypatch.setattr(resolver_module.subprocess, "run", _missing_git)

    assert count_commits(tmp_path) == "?"


def test_count_commits_returns_unknown_when_git_fails(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    def _failing_git(args, **_kwargs):
        return subprocess.CompletedProcess(
            args=args,
            returncode=128,
            stdout="",
            stderr="fatal: not a git repository",
        )

    monkeypatch.setattr(resolver_module.subprocess, "run", _failing_git)

    assert count_commits(tmp_path) == "?"

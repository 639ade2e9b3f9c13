"""Local demo worker for CLI backend integration tests."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

from analysis_dispatch.dispatch.workdir import (
    PRIMARY_ARTIFACT_FILENAME,
    SECONDARY_ARTIFACT_FILENAME,
)


def main(argv: list[str] | None = None) -> int:
    """Echo the instructions and write the requested artifacts."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--prompt-file", required=True)
    parser.add_argument("--work-dir", required=True)
    parser.add_argument("--name", required=True)
    parser.add_argument("--max-turns", default="0")
    parser.add_argument("--sleep-seconds", type=float, default=0.0)
    parser.add_argument("--partial", action="append", default=[])
    parser.add_argument("--missing", action="append", default=[])
    parser.add_argument("--exit-code", type=int, default=0)
    args = parser.parse_args(argv)

    prompt = Path(args.prompt_file).read_text("utf-8")
    first_line = prompt.splitlines()[0] if prompt else ""
    print(f"echo_agent name={args.name} max_turns={args.max_turns} prompt={first_line}")

    if args.sleep_seconds > 0:
        time.sleep(args.sleep_seconds)

    work_dir = Path(args.work_dir)
    if args.name in args.missing:
        return args.exit_code
    report = work_dir / SECONDARY_ARTIFACT_FILENAME
    report.write_text(f"# Analysis report: {args.name}\n\nNo findings.\n", "utf-8")
    if args.name not in args.partial:
        brief = work_dir / PRIMARY_ARTIFACT_FILENAME
        brief.write_text(f"# Modeling brief: {args.name}\n\nEcho output.\n", "utf-8")
    return args.exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

"""CLI entrypoint for analysis-dispatch."""

from pathlib import Path

import rich_click as click

from analysis_dispatch import __version__
from analysis_dispatch.dispatch.controllers import DispatchCliController, DispatchCommand
from analysis_dispatch.dispatch.targets import RECORD_FORMAT

click.rich_click.USE_MARKDOWN = True
DISPATCH_CONTROLLER = DispatchCliController()


class DispatchUsageError(click.UsageError):
    """Usage error reported with exit code 1."""

    exit_code = 1


class DispatchCliCommand(click.RichCommand):
    """Command whose usage errors (unknown flag, bad value) exit with 1."""

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as error:
            error.exit_code = 1
            raise


@click.command(
    cls=DispatchCliCommand,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.version_option(version=__version__, prog_name="analysis-dispatch")
@click.argument("records", nargs=-1, metavar="TARGET...")
@click.option(
    "--dry-run",
    is_flag=True,
    default=False,
    help="Write instructions and print worker commands without launching.",
)
@click.option(
    "--check",
    "check_only",
    is_flag=True,
    default=False,
    help="Only verify that every target repository exists.",
)
@click.option(
    "--max-parallel",
    type=click.IntRange(min=1),
    default=None,
    help="Max concurrent workers. Defaults to ANALYSIS_DISPATCH_MAX_PARALLEL or 2.",
)
@click.option(
    "--max-turns",
    type=click.IntRange(min=0),
    default=None,
    help="Max worker turns, 0 = unlimited. Defaults to ANALYSIS_DISPATCH_MAX_TURNS or 0.",
)
@click.option(
    "--root",
    "root_dir",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Directory holding one working directory per target. "
    "Defaults to ANALYSIS_DISPATCH_ROOT or case-studies.",
)
@click.option(
    "--skills-root",
    type=click.Path(path_type=Path, file_okay=False),
    default=None,
    help="Methodology documents referenced in worker instructions.",
)
@click.option(
    "--worker-command",
    default=None,
    help=(
        "Worker command template. Supports {prompt}, {prompt_file}, {max_turns}, "
        "{work_dir} and {name}. Defaults to ANALYSIS_DISPATCH_WORKER_COMMAND."
    ),
)
def analysis_dispatch(  # noqa: PLR0913
    records: tuple[str, ...],
    dry_run: bool,
    check_only: bool,
    max_parallel: int | None,
    max_turns: int | None,
    root_dir: Path | None,
    skills_root: Path | None,
    worker_command: str | None,
) -> None:
    """Launch one code-analysis worker per target, a few at a time.

    Each TARGET is a record `name|sourceRef|language|referenceNote`, for example
    `"braft|brpc/braft|C++|Raft (Ongaro 2014)"`. Repositories must already be
    cloned at `<root>/<name>/artifact/<repo>/`.
    """

    if not any(record.strip() for record in records):
        raise DispatchUsageError(
            f'At least one target record "{RECORD_FORMAT}" is required.',
            ctx=click.get_current_context(),
        )

    try:
        result = DISPATCH_CONTROLLER.run(
            DispatchCommand(
                records=records,
                dry_run=dry_run,
                check_only=check_only,
                max_parallel=max_parallel,
                max_turns=max_turns,
                root_dir=root_dir,
                skills_root=skills_root,
                worker_command=worker_command,
            ),
            emit=click.echo,
        )
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    if not result.success:
        raise click.ClickException(result.error or "Dispatch failed.")


if __name__ == "__main__":  # pragma: no cover
    analysis_dispatch()

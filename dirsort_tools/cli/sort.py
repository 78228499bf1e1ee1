"""
CLI command for re-sequencing directory entries.

Rewrites the physical entry order of every folder under a root so that
devices reading raw directory order show entries sorted.
"""

import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table

from .. import __version__
from ..core.config import SortSettings
from ..core.errors import RootPathError
from ..core.types import RunResult, SortCriterion
from ..organization import (
    EntryMover,
    ExclusionSet,
    RecoveryReport,
    Resequencer,
    StagingArea,
    TreeWalker,
    recover,
)
from ..shared.logging_utils import LOG_THEME, setup_logging

console = Console(theme=LOG_THEME)


@click.command()
@click.argument("root", type=click.Path(file_okay=False), required=False)
@click.option(
    "--sort-key",
    "-k",
    type=click.Choice([c.value for c in SortCriterion], case_sensitive=False),
    default=None,
    help="Sort criterion (default: Name, or $DIRSORT_SORT_KEY)",
)
@click.option(
    "--dry-run",
    "--simulate",
    "simulate",
    is_flag=True,
    default=False,
    help="Log intended moves without touching the file system",
)
@click.option(
    "--preserve-protected/--skip-protected",
    default=None,
    help="Move ReadOnly/Hidden entries and restore their attributes (default), "
    "or leave them where they are",
)
@click.option(
    "--exclude",
    "-x",
    multiple=True,
    help="Leaf name or full path to leave alone (repeatable)",
)
@click.option(
    "--recover",
    "recover_only",
    is_flag=True,
    default=False,
    help="Move entries out of staging folders left by a failed run, then exit",
)
@click.option(
    "--report",
    type=click.Path(dir_okay=False),
    default=None,
    help="Write a JSON report of the run to this file",
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose output")
@click.option("-q", "--quiet", is_flag=True, default=False, help="Warnings only")
@click.version_option(__version__, prog_name="dirsort")
def sort(
    root: Optional[str],
    sort_key: Optional[str],
    simulate: bool,
    preserve_protected: Optional[bool],
    exclude: Tuple[str, ...],
    recover_only: bool,
    report: Optional[str],
    verbose: bool,
    quiet: bool,
) -> None:
    """
    Re-sequence directory entries under ROOT (default: current directory).

    Each folder's children are moved into a temporary staging folder and
    back again in sorted order, folders first, then files. Devices that list
    entries in raw on-disk order then show them sorted.

    \b
    Examples:
        # Preview what would happen
        dirsort /media/SDCARD --dry-run

        # Sort by modification time
        dirsort /media/SDCARD --sort-key LastWriteTime

        # Clean up after an interrupted run
        dirsort /media/SDCARD --recover

    \b
    Safety:
        • ReadOnly/Hidden entries keep their attributes (or are skipped
          with --skip-protected)
        • A folder whose entries cannot all be moved back keeps its staging
          folder; nothing is deleted. Re-run with --recover.
    """
    settings = SortSettings()
    setup_logging(verbose=verbose or settings.verbose, quiet=quiet, console=console)

    updates = {
        "simulate": settings.simulate or simulate,
        "exclude": list(settings.exclude) + list(exclude),
    }
    if sort_key:
        updates["sort_key"] = SortCriterion(sort_key)
    if preserve_protected is not None:
        updates["preserve_protected"] = preserve_protected
    settings = settings.model_copy(update=updates)

    exclusions = ExclusionSet.default(
        extra=settings.exclude, staging_prefix=settings.staging_prefix
    )
    walker = TreeWalker(exclusions)
    root_path = Path(root) if root else Path.cwd()

    try:
        if recover_only:
            _run_recovery(walker.validate_root(root_path), settings, exclusions)
            return

        console.print("\n[cyan]Re-sequencing Configuration:[/cyan]")
        console.print(f"  Root: {root_path}")
        console.print(f"  Sort key: {settings.sort_key.value}")
        console.print(f"  Dry run: {'YES' if settings.simulate else 'NO'}")
        console.print(
            f"  Protected entries: "
            f"{'move and preserve' if settings.preserve_protected else 'skip'}"
        )
        if settings.exclude:
            console.print(f"  Excluded: {', '.join(settings.exclude)}")
        if settings.simulate:
            console.print(
                "\n[yellow]⚠ DRY RUN MODE - No files will be modified[/yellow]"
            )
        console.print()

        resequencer = Resequencer(settings, exclusions)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeRemainingColumn(),
            console=console,
            disable=quiet,
        ) as progress:
            task = progress.add_task("Reordering folders...", total=None)

            def on_progress(current: int, total: int, description: str) -> None:
                progress.update(task, completed=current, total=total)

            result = walker.run(root_path, resequencer, progress=on_progress)

    except RootPathError as e:
        console.print(f"\n[red]✗ {e}[/red]")
        sys.exit(2)

    _display_result(result)

    if report:
        result.save(Path(report))
        console.print(f"\n[dim]Report written to {report}[/dim]")

    if result.failed_folders:
        sys.exit(1)


def _run_recovery(
    root: Path, settings: SortSettings, exclusions: ExclusionSet
) -> None:
    """Recover staging folders under root and exit non-zero if any remain."""
    staging = StagingArea(simulate=settings.simulate, prefix=settings.staging_prefix)
    # Protected entries were staged under the preserve policy; always bring them back.
    mover = EntryMover(simulate=settings.simulate, preserve_protected=True)

    reports = recover(root, staging, mover, exclusions=exclusions)
    _display_recovery(reports)

    if any(not r.ok for r in reports):
        sys.exit(1)


def _display_result(result: RunResult) -> None:
    """Display run result."""
    failed = result.failed_folders
    if failed:
        console.print("\n[yellow]⚠ Re-sequencing finished with errors[/yellow]\n")
    else:
        console.print("\n[green]✓ Re-sequencing complete![/green]\n")

    table = Table(title="Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")

    table.add_row("Folders", str(result.total_folders))
    table.add_row("Sorted", str(result.sorted_folders))
    table.add_row("Empty", str(result.empty_folders))
    table.add_row("Skipped (ReadOnly)", str(result.skipped_folders))
    table.add_row("Failed", str(len(failed)))
    table.add_row("Entries moved", str(result.moved))
    table.add_row("Entries skipped", str(result.skipped))

    console.print(table)

    if result.dry_run:
        console.print("\n[yellow]This was a DRY RUN - no files were modified[/yellow]")

    if failed:
        console.print("\n[red]Errors:[/red]")
        for folder_report in failed[:10]:
            console.print(
                f"  [red]• {folder_report.folder}: {folder_report.error}[/red]"
            )
        if len(failed) > 10:
            console.print(f"  [dim]... and {len(failed) - 10} more[/dim]")

    left: List[Path] = result.staging_left
    if left:
        console.print(
            "\n[red]Staging folders left behind (entries still inside):[/red]"
        )
        for path in left:
            console.print(f"  [red]• {path}[/red]")
        console.print(
            f"[dim]Move them back with: dirsort {result.root} --recover[/dim]"
        )


def _display_recovery(reports: List[RecoveryReport]) -> None:
    """Display recovery results."""
    if not reports:
        console.print("\n[green]✓ No staging folders found[/green]")
        return

    table = Table(title="Recovery")
    table.add_column("Staging folder", style="cyan")
    table.add_column("Restored", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Removed")

    for report in reports:
        table.add_row(
            str(report.staging),
            str(len(report.restored)),
            str(len(report.failed)),
            "yes" if report.removed else "no",
        )

    console.print(table)


if __name__ == "__main__":
    sort()

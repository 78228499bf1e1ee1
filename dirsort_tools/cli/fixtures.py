"""
CLI command for generating a fixture tree.

Development helper: produces folders and files covering every combination
of Normal, ReadOnly and Hidden so a re-sequencing run can be verified by hand.
"""

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.tree import Tree

from ..shared.fixtures import generate_fixture_tree
from ..shared.fs_utils import format_bytes
from ..shared.logging_utils import LOG_THEME, setup_logging

console = Console(theme=LOG_THEME)


@click.command()
@click.argument("root", type=click.Path(file_okay=False))
@click.option("--depth", type=click.IntRange(min=0), default=2, help="Folder levels")
@click.option(
    "--width", type=click.IntRange(min=0), default=2, help="Subfolders per folder"
)
@click.option("-v", "--verbose", is_flag=True, default=False, help="Verbose output")
def fixtures(root: str, depth: int, width: int, verbose: bool) -> None:
    """Generate a fixture tree under ROOT (must be empty or missing)."""
    setup_logging(verbose=verbose, console=console)

    root_path = Path(root)
    if root_path.exists() and any(root_path.iterdir()):
        console.print(f"[red]✗ {root_path} is not empty[/red]")
        sys.exit(1)

    created = generate_fixture_tree(root_path, depth=depth, width=width)
    total = sum(p.stat().st_size for p in created if p.is_file())

    tree = Tree(f"[bold]{root_path}[/bold]")
    nodes = {root_path: tree}
    for path in sorted(created, key=lambda p: len(p.parts)):
        parent = nodes.get(path.parent, tree)
        label = f"[cyan]{path.name}/[/cyan]" if path.is_dir() else path.name
        nodes[path] = parent.add(label)

    console.print(tree)
    console.print(
        f"\n[green]✓ Created {len(created)} entries ({format_bytes(total)})[/green]"
    )


if __name__ == "__main__":
    fixtures()

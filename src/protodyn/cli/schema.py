"""CLI: protodyn schema"""

from pathlib import Path

import click
from rich.console import Console

from protodyn import samples

console = Console(stderr=True)


@click.command("schema")
@click.option("-p", "--path", "path", required=True, type=click.Path(dir_okay=False, path_type=Path),
              help="File to write the descriptor set to")
def schema_cmd(path: Path):
    """Write the compiled-in sample descriptor set."""
    data = samples.descriptor_set_bytes()
    path.write_bytes(data)
    console.print(f"[green]Wrote descriptor set[/green] to {path} ({len(data)} bytes)")

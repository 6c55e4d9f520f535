"""CLI: protodyn emit"""

from pathlib import Path

import click
from rich.console import Console

from protodyn import pipeline, samples
from protodyn.errors import ProtodynError

console = Console(stderr=True)


def _fail(err: Exception) -> None:
    from protodyn.cli.main import _fail
    _fail(err)


def _settings():
    from protodyn.cli.main import _settings
    return _settings()


@click.command("emit")
@click.option("-t", "--type", "message_type", required=True, type=click.Choice(list(samples.SHAPES)),
              help="Type of the message to emit")
@click.option("-p", "--path", "path", required=True, type=click.Path(dir_okay=False, path_type=Path),
              help="File to write (existing files are overwritten)")
@click.option("-s", "--schema-uri", "schema_uri", required=True,
              help="URI of the descriptor set describing the payload (without the #Type fragment)")
@click.option("-r", "--raw", is_flag=True, help="Write the bare protobuf binary instead of a CloudEvent")
def emit_cmd(message_type: str, path: Path, schema_uri: str, raw: bool):
    """Encode a sample message and write it to a file."""
    settings = _settings()
    try:
        data = pipeline.emit(
            message_type,
            schema_uri,
            wrapped=not raw,
            source=settings.event_source,
            subject=settings.event_subject,
        )
        path.write_bytes(data)
    except (ProtodynError, OSError) as e:
        _fail(e)
    console.print(f"[green]Wrote {message_type}[/green] to {path} ({len(data)} bytes)")

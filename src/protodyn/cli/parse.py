"""CLI: protodyn parse"""

import json
from pathlib import Path
from typing import Optional

import click

from protodyn import pipeline
from protodyn.errors import ProtodynError
from protodyn.resolvers import resolver_for


def _fail(err: Exception) -> None:
    from protodyn.cli.main import _fail
    _fail(err)


def _settings():
    from protodyn.cli.main import _settings
    return _settings()


@click.command("parse")
@click.option("-s", "--source-path", "source_path", required=True,
              type=click.Path(dir_okay=False, path_type=Path), help="File holding the message or CloudEvent")
@click.option("-u", "--schema-uri", "schema_uri", default=None,
              help="Descriptor set URI with #Type fragment (required with --raw)")
@click.option("-r", "--raw", is_flag=True, help="Source is a bare protobuf binary rather than a CloudEvent")
@click.option("-d/-S", "--dynamic/--static", "dynamic", default=True, show_default=True,
              help="Resolve types from the descriptor set or from the compiled-in samples")
@click.option("-t", "--target-path", "target_path", default=None,
              type=click.Path(dir_okay=False, path_type=Path), help="Output file (default: stdout)")
def parse_cmd(source_path: Path, schema_uri: Optional[str], raw: bool, dynamic: bool, target_path: Optional[Path]):
    """Decode a protobuf message (optionally wrapped in a CloudEvent) to JSON."""
    if raw and not schema_uri:
        raise click.UsageError("--schema-uri is required with --raw")
    settings = _settings()
    try:
        source = source_path.read_bytes()
        resolver = resolver_for(dynamic, settings.type_name_format)
        result = pipeline.parse(source, resolver, schema_uri=schema_uri, wrapped=not raw)
        text = json.dumps(result)
        if target_path is not None:
            target_path.write_text(text)
        else:
            click.echo(text)
    except (ProtodynError, OSError) as e:
        _fail(e)

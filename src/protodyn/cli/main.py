"""
protodyn CLI — `protodyn` command.

Commands:
  protodyn emit     Encode a sample message (optionally in a CloudEvent) to a file
  protodyn parse    Decode a message or CloudEvent to JSON
  protodyn schema   Write the compiled-in sample descriptor set
"""

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from protodyn import __version__
from protodyn.config import Settings, load_settings
from protodyn.errors import ProtodynError

console = Console(stderr=True)


def _setup_logging(level: str) -> RichHandler:
    handler = RichHandler(console=console, show_path=False)
    logger = logging.getLogger("protodyn")
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    return handler


def _teardown_logging(handler: RichHandler) -> None:
    logger = logging.getLogger("protodyn")
    logger.removeHandler(handler)
    handler.close()


def _fail(err: Exception) -> None:
    if isinstance(err, ProtodynError):
        stage = f" at {err.stage}" if err.stage else ""
        console.print(f"[red]Error ({err.code}{stage}):[/red] {err}")
    else:
        console.print(f"[red]Error:[/red] {err}")
    raise SystemExit(1)


def _settings() -> Settings:
    """Load settings and install logging the first time a command asks for them."""
    root = click.get_current_context().find_root()
    options = root.obj if isinstance(root.obj, dict) else {}
    if "settings" not in options:
        settings = load_settings(options.get("config_file"))
        if options.get("log_level"):
            settings = settings.model_copy(update={"log_level": options["log_level"].upper()})
        handler = _setup_logging(settings.log_level)
        root.call_on_close(lambda: _teardown_logging(handler))
        options["settings"] = settings
        root.obj = options
    return options["settings"]


@click.group()
@click.version_option(__version__)
@click.option("--config", "config_file", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Settings file (default: $PROTODYN_CONFIG or ~/.protodyn/config.json)")
@click.option("--log-level", default=None, help="Log level",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False))
@click.pass_context
def main(ctx: click.Context, config_file: Optional[Path], log_level: Optional[str]):
    """protodyn — dynamic protobuf (de)serialisation driven by runtime descriptors."""
    ctx.obj = {"config_file": config_file, "log_level": log_level}


# Register subcommands from separate modules
from protodyn.cli.emit import emit_cmd
from protodyn.cli.parse import parse_cmd
from protodyn.cli.schema import schema_cmd

main.add_command(emit_cmd)
main.add_command(parse_cmd)
main.add_command(schema_cmd)


if __name__ == "__main__":
    main()

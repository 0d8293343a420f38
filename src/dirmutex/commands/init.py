"""Init command implementation."""

from pathlib import Path

import typer

from ..config import write_config_template
from ..constants import CONFIG_FILE
from ..output import get_output_context
from .common import EXIT_FAILED


def init(
    path: Path = typer.Option(Path(CONFIG_FILE), "--path", "-p", help="Config file to create"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config"),
) -> None:
    """Write a dirmutex.toml template with the default settings."""
    ctx = get_output_context()

    if path.exists() and not force:
        ctx.error(f"Config already exists: {path}", {"path": str(path)})
        raise typer.Exit(EXIT_FAILED)

    write_config_template(path)
    ctx.success(f"Created config template: {path}", {"path": str(path)})

"""dirmutex CLI: file-based mutual exclusion for shell pipelines."""

from pathlib import Path

import typer

from . import __version__
from .commands import acquire, force_release, init, list_locks, purge, release, run, status, wait
from .commands.common import EXIT_ERROR
from .config import load_config, set_active_config
from .errors import ConfigError
from .logging import configure_logging
from .output import OutputContext, set_output_context


def _version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"dirmutex {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="dirmutex",
    help="Directory-based locks for coordinating independent processes",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase verbosity (-v, -vv)",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Suppress non-error output",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output in JSON format for automation",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable colored output",
    ),
    root: Path | None = typer.Option(
        None,
        "--root",
        "-r",
        help="Lock root directory (overrides config and DIRMUTEX_ROOT)",
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Config file (default: ./dirmutex.toml if present)",
    ),
) -> None:
    """dirmutex - directory-based locks for coordinating processes."""
    console = configure_logging(
        verbosity=verbose,
        quiet=quiet,
        no_color=no_color,
    )
    ctx = OutputContext(console=console, json_mode=json_output)
    set_output_context(ctx)

    try:
        config = load_config(config_path, root=root)
    except ConfigError as e:
        ctx.error(str(e))
        raise typer.Exit(EXIT_ERROR) from None
    set_active_config(config)


app.command()(init)
app.command()(acquire)
app.command()(release)
app.command("force-release")(force_release)
app.command()(status)
app.command()(wait)
app.command("list")(list_locks)
app.command()(purge)
app.command(context_settings={"ignore_unknown_options": True})(run)


if __name__ == "__main__":
    app()

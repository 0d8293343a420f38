"""Logging configuration for the dirmutex CLI."""

import logging
from enum import IntEnum
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler


class LogLevel(IntEnum):
    """Log level enumeration."""

    QUIET = logging.WARNING
    NORMAL = logging.INFO
    VERBOSE = logging.DEBUG


def configure_logging(
    verbosity: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    stream: TextIO | None = None,
    debug: bool = False,
) -> Console:
    """Route dirmutex log records to a Rich handler on stderr.

    Args:
        verbosity: Number of -v flags (0=normal, 1+=retry details)
        quiet: Only show warnings and errors (wins over debug/verbosity)
        no_color: Disable colored output
        stream: Output stream for log records (default: stderr)
        debug: Show timestamps and source locations as well

    Returns:
        Console for command output
    """
    if quiet:
        level = LogLevel.QUIET
    elif debug or verbosity >= 1:
        level = LogLevel.VERBOSE
    else:
        level = LogLevel.NORMAL

    log_console = Console(
        file=stream,
        stderr=stream is None,
        force_terminal=False if no_color else None,
        no_color=no_color,
    )
    handler = RichHandler(
        console=log_console,
        show_time=debug or verbosity >= 2,
        show_path=debug or verbosity >= 2,
    )

    package_logger = logging.getLogger("dirmutex")
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False

    return Console(no_color=no_color, force_terminal=False if no_color else None)

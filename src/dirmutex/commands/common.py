"""Helpers shared by CLI commands."""

from collections.abc import Iterator
from contextlib import contextmanager

import typer

from ..config import get_active_config
from ..core import LockManager
from ..errors import InvalidResourceError, StoreIOError
from ..output import get_output_context

# Exit codes
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ERROR = 2


@contextmanager
def open_manager() -> Iterator[LockManager]:
    """Open a lock manager for the active config and map errors to exit codes."""
    ctx = get_output_context()
    try:
        with LockManager(get_active_config()) as manager:
            yield manager
    except InvalidResourceError as e:
        ctx.error(str(e))
        raise typer.Exit(EXIT_ERROR) from None
    except StoreIOError as e:
        ctx.error(str(e), {"kind": "store_io"})
        raise typer.Exit(EXIT_ERROR) from None

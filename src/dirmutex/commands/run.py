"""Run a command while holding a lock."""

import subprocess

import typer

from ..config import get_active_config
from ..output import get_output_context
from .common import EXIT_FAILED, open_manager

# Shell conventions for commands that cannot be started
EXIT_NOT_EXECUTABLE = 126
EXIT_NOT_FOUND = 127


def run(
    resource: str = typer.Argument(..., help="Resource to lock"),
    command: list[str] = typer.Argument(..., help="Command to run (after --)"),
    timeout: float | None = typer.Option(
        None, "--timeout", "-t", help="Seconds to wait for the lock (default from config)"
    ),
) -> None:
    """Acquire a lock, run a command, and release the lock when it exits.

    The command's exit code is passed through. The lock is also released if
    this process is interrupted or terminated.
    """
    ctx = get_output_context()
    if timeout is None:
        timeout = get_active_config().acquire_timeout

    with open_manager() as manager:
        result = manager.acquire(resource, timeout)
        if not result.acquired:
            ctx.error(
                f"Could not acquire lock '{resource}' after {result.elapsed:.1f}s",
                result.model_dump(mode="json"),
            )
            raise typer.Exit(EXIT_FAILED)

        try:
            completed = subprocess.run(command, check=False)
        except FileNotFoundError:
            ctx.error(f"Command not found: {command[0]}")
            returncode = EXIT_NOT_FOUND
        except PermissionError:
            ctx.error(f"Command not executable: {command[0]}")
            returncode = EXIT_NOT_EXECUTABLE
        else:
            returncode = completed.returncode
            if returncode < 0:
                # Killed by a signal
                returncode = 128 - returncode
        finally:
            manager.release(resource)

    if returncode != 0:
        raise typer.Exit(returncode)

"""Lock commands: acquire, release, force-release, status, wait."""

import typer

from ..config import get_active_config
from ..models import ReleaseStatus, WaitStatus
from ..output import get_output_context
from .common import EXIT_FAILED, open_manager


def acquire(
    resource: str = typer.Argument(..., help="Resource to lock"),
    timeout: float | None = typer.Option(
        None, "--timeout", "-t", help="Seconds to keep retrying (default from config)"
    ),
) -> None:
    """Acquire a lock and leave it held after the command exits."""
    ctx = get_output_context()
    if timeout is None:
        timeout = get_active_config().acquire_timeout

    with open_manager() as manager:
        result = manager.acquire(resource, timeout, persist=True)

    data = result.model_dump(mode="json")
    if not result.acquired:
        ctx.error(
            f"Could not acquire lock '{resource}' after {result.elapsed:.1f}s",
            data,
        )
        raise typer.Exit(EXIT_FAILED)
    ctx.success(f"Lock acquired: {resource}", data)


def release(
    resource: str = typer.Argument(..., help="Resource to unlock"),
    check_owner: bool = typer.Option(
        False, "--check-owner", help="Only release if this process's PID holds the lock"
    ),
) -> None:
    """Release a lock."""
    ctx = get_output_context()

    with open_manager() as manager:
        status = manager.release(resource, check_owner=check_owner)

    data = {"resource": resource, "status": status.value}
    if status == ReleaseStatus.RELEASED:
        ctx.success(f"Lock released: {resource}", data)
        return
    if status == ReleaseStatus.NOT_OWNER:
        ctx.error(f"Lock '{resource}' is held by another process", data)
    else:
        ctx.warning(f"Lock not found: {resource} (already released or never acquired)", data)
    raise typer.Exit(EXIT_FAILED)


def force_release(
    resource: str = typer.Argument(..., help="Resource to unlock"),
) -> None:
    """Remove a lock regardless of its holder (use with caution)."""
    ctx = get_output_context()

    with open_manager() as manager:
        status = manager.force_release(resource)

    data = {"resource": resource, "status": status.value}
    if status == ReleaseStatus.RELEASED:
        ctx.success(f"Force released lock: {resource}", data)
        return
    ctx.warning(f"Lock not found: {resource}", data)
    raise typer.Exit(EXIT_FAILED)


def status(
    resource: str = typer.Argument(..., help="Resource to check"),
) -> None:
    """Exit 0 if the resource is locked, 1 if it is free or stale."""
    ctx = get_output_context()

    with open_manager() as manager:
        locked = manager.is_locked(resource)
        metadata = manager.store.read_metadata(resource) if locked else None

    data = {
        "resource": resource,
        "locked": locked,
        "metadata": metadata.model_dump(mode="json") if metadata else None,
    }
    if locked:
        holder = f" by PID {metadata.pid} on {metadata.hostname}" if metadata else ""
        ctx.result(data, f"[yellow]{resource}[/yellow] is locked{holder}")
        return
    ctx.result(data, f"[green]{resource}[/green] is free")
    raise typer.Exit(EXIT_FAILED)


def wait(
    resource: str = typer.Argument(..., help="Resource to wait for"),
    timeout: float | None = typer.Option(
        None, "--timeout", "-t", help="Seconds to wait (default from config)"
    ),
) -> None:
    """Wait until a lock is released, without acquiring it."""
    ctx = get_output_context()
    if timeout is None:
        timeout = get_active_config().wait_timeout

    with open_manager() as manager:
        outcome = manager.wait_for_release(resource, timeout)

    data = {"resource": resource, "status": outcome.value}
    if outcome == WaitStatus.RELEASED:
        ctx.success(f"Lock released: {resource}", data)
        return
    ctx.error(f"Timeout waiting for lock release: {resource}", data)
    raise typer.Exit(EXIT_FAILED)

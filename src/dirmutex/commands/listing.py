"""Commands that inspect or sweep the whole lock root."""

import typer
from rich.table import Table

from ..output import get_output_context
from .common import open_manager


def _format_age(age: float | None) -> str:
    if age is None:
        return "-"
    if age < 120:
        return f"{age:.0f}s"
    if age < 7200:
        return f"{age / 60:.0f}m"
    return f"{age / 3600:.1f}h"


def list_locks() -> None:
    """List every lock under the root with its holder metadata."""
    ctx = get_output_context()

    with open_manager() as manager:
        locks = manager.list_locks()
        root = manager.root

    if ctx.json_mode:
        ctx.print_json(
            {"root": str(root), "locks": [lock.model_dump(mode="json") for lock in locks]}
        )
        return

    if not locks:
        ctx.print(f"No active locks in {root}")
        return

    table = Table(title=f"Active locks ({root})")
    table.add_column("Resource", style="bold")
    table.add_column("PID")
    table.add_column("Host")
    table.add_column("Acquired")
    table.add_column("Age")
    table.add_column("State")

    for lock in locks:
        meta = lock.metadata
        state = "[red]stale[/red]" if lock.stale else "[green]held[/green]"
        if meta is None:
            table.add_row(lock.resource, "-", "-", "(no metadata)", _format_age(lock.age), state)
        else:
            table.add_row(
                lock.resource,
                str(meta.pid),
                meta.hostname,
                meta.acquired.strftime("%Y-%m-%d %H:%M:%S"),
                _format_age(lock.age),
                state,
            )
    ctx.console.print(table)


def purge(
    all_locks: bool = typer.Option(
        False, "--all", help="Remove every lock, not only stale ones (use with caution)"
    ),
) -> None:
    """Remove stale locks from the root."""
    ctx = get_output_context()

    with open_manager() as manager:
        removed = manager.purge(stale_only=not all_locks)

    kind = "" if all_locks else "stale "
    ctx.result({"removed": removed}, f"Removed {removed} {kind}lock(s)")

"""CLI command implementations for dirmutex.

This package contains the implementation of each CLI command,
separated from the CLI framework setup in cli.py.
"""

from .init import init
from .listing import list_locks, purge
from .lock import acquire, force_release, release, status, wait
from .run import run

__all__ = [
    "acquire",
    "force_release",
    "init",
    "list_locks",
    "purge",
    "release",
    "run",
    "status",
    "wait",
]

"""Core locking logic for dirmutex.

- store: claim directories under the lock root
- staleness: abandoned-lock detection
- registry: per-handle bookkeeping and process exit hooks
- manager: acquisition protocol and the public lock operations
- clock: injectable time source
"""

from .clock import Clock, SystemClock
from .manager import LockManager, backoff_schedule
from .registry import ExitRegistry, drain_registries, install_exit_hooks
from .staleness import StalenessDetector
from .store import LockStore, validate_resource

__all__ = [
    "Clock",
    "ExitRegistry",
    "LockManager",
    "LockStore",
    "StalenessDetector",
    "SystemClock",
    "backoff_schedule",
    "drain_registries",
    "install_exit_hooks",
    "validate_resource",
]

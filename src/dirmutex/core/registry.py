"""Exit registry: release held locks when the process goes away.

Each LockManager owns an ExitRegistry listing the resources it currently
holds. Draining the registry removes those claims. Registries are drained
explicitly (``cleanup()``), when their manager is closed, and by the
process-wide hooks installed here: an ``atexit`` callback and handlers for
SIGTERM, SIGINT and SIGHUP.

Signal handlers chain to whatever was installed before. When the previous
disposition was the default, the signal is re-raised after cleanup so the
process still dies the way the sender intended.
"""

import atexit
import logging
import os
import signal
import threading
from collections.abc import Iterable
from typing import Any

from .store import LockStore

logger = logging.getLogger(__name__)

HANDLED_SIGNALS = tuple(
    sig for sig in (signal.SIGTERM, signal.SIGINT, getattr(signal, "SIGHUP", None)) if sig is not None
)

# Strong references: a manager dropped without close() still gets its locks drained
_live_registries: "set[ExitRegistry]" = set()
_previous_handlers: dict[int, Any] = {}
_hooks_lock = threading.Lock()
_atexit_installed = False


class ExitRegistry:
    """Resources held by one lock manager handle."""

    def __init__(self, store: LockStore) -> None:
        self.store = store
        self._held: set[str] = set()
        # Reentrant: signal handlers drain registries on the main thread,
        # possibly while that thread is inside one of these methods
        self._lock = threading.RLock()

    def __contains__(self, resource: object) -> bool:
        with self._lock:
            return resource in self._held

    def __len__(self) -> int:
        with self._lock:
            return len(self._held)

    @property
    def held(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._held)

    def register(self, resource: str) -> None:
        with self._lock:
            self._held.add(resource)

    def forget(self, resource: str) -> None:
        with self._lock:
            self._held.discard(resource)

    def cleanup(self) -> int:
        """Remove every claim this registry holds.

        Safe to call repeatedly; an empty registry is a no-op.

        Returns:
            Number of claims actually removed
        """
        with self._lock:
            resources = sorted(self._held)
            self._held.clear()

        removed = 0
        for resource in resources:
            try:
                if self.store.remove(resource):
                    removed += 1
            except OSError as e:
                logger.error(f"Failed to clean up lock '{resource}': {e}")
        if removed:
            logger.info(f"Cleaned up {removed} held lock(s) in {self.store.root}")
        return removed


def drain_registries(registries: Iterable[ExitRegistry] | None = None) -> int:
    """Clean up every live registry (or the given ones)."""
    targets = list(_live_registries) if registries is None else list(registries)
    return sum(registry.cleanup() for registry in targets)


def track(registry: ExitRegistry, install_hooks: bool = True) -> None:
    """Add a registry to the set drained on process exit."""
    _live_registries.add(registry)
    if install_hooks:
        install_exit_hooks()


def untrack(registry: ExitRegistry) -> None:
    _live_registries.discard(registry)


def install_exit_hooks() -> None:
    """Install the atexit callback and signal handlers once per process.

    Signal handlers can only be installed from the main thread; elsewhere
    only the atexit callback is registered.
    """
    global _atexit_installed

    with _hooks_lock:
        if not _atexit_installed:
            atexit.register(drain_registries)
            _atexit_installed = True

        if threading.current_thread() is not threading.main_thread():
            return

        for sig in HANDLED_SIGNALS:
            if sig in _previous_handlers:
                continue
            try:
                _previous_handlers[sig] = signal.getsignal(sig)
                signal.signal(sig, _handle_signal)
            except (ValueError, OSError) as e:
                _previous_handlers.pop(sig, None)
                logger.debug(f"Could not install handler for {signal.Signals(sig).name}: {e}")


def _handle_signal(signum: int, frame: Any) -> None:
    logger.debug(f"Received {signal.Signals(signum).name}, releasing held locks")
    drain_registries()

    previous = _previous_handlers.get(signum, signal.SIG_DFL)
    if callable(previous):
        previous(signum, frame)
        return
    if previous == signal.SIG_IGN:
        return

    # Default disposition: restore it and deliver the signal again
    signal.signal(signum, signal.SIG_DFL)
    _previous_handlers.pop(signum, None)
    os.kill(os.getpid(), signum)

"""Lock manager: acquisition, release, waiting, and listing.

The manager is the handle callers hold. It owns an ExitRegistry of the
resources it acquired; closing the manager (or leaving its ``with`` block)
releases whatever is still held, and process exit hooks do the same if the
process terminates first.

Acquisition loop:
    1. Try to claim. On success record metadata and register ownership.
    2. On conflict, reclaim the lock if it is stale and retry at once.
    3. Otherwise sleep with exponential backoff until the timeout runs out.

Elapsed time is measured against a monotonic clock from loop entry, not by
adding up the requested sleeps.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from ..config import MutexConfig
from ..constants import ACQUIRE_TIMEOUT, WAIT_TIMEOUT
from ..errors import LockNotFound
from ..models import (
    AcquireResult,
    AcquireStatus,
    LockInfo,
    LockMetadata,
    ReleaseStatus,
    WaitStatus,
)
from . import registry as exit_hooks
from .clock import Clock, SystemClock
from .registry import ExitRegistry
from .staleness import StalenessDetector
from .store import LockStore

logger = logging.getLogger(__name__)


def backoff_schedule(initial_wait: float, multiplier: float, max_wait: float) -> Iterator[float]:
    """Yield retry waits: initial_wait, then each times multiplier, capped at max_wait."""
    wait = min(initial_wait, max_wait)
    while True:
        yield wait
        wait = min(wait * multiplier, max_wait)


class LockManager:
    """File-based mutex over a lock root directory.

    Args:
        config: Lock settings (root, timeouts, backoff)
        clock: Time source; defaults to the system clock
        install_exit_hooks: Release held locks on interpreter exit and on
            SIGTERM/SIGINT/SIGHUP
    """

    def __init__(
        self,
        config: MutexConfig | None = None,
        *,
        clock: Clock | None = None,
        install_exit_hooks: bool = True,
    ) -> None:
        self.config = config or MutexConfig()
        self.clock = clock or SystemClock()
        self.store = LockStore(self.config.root, clock=self.clock)
        self.staleness = StalenessDetector(self.store, self.config.lock_timeout)
        self.registry = ExitRegistry(self.store)
        exit_hooks.track(self.registry, install_hooks=install_exit_hooks)

    @property
    def root(self) -> Path:
        return self.store.root

    def __enter__(self) -> "LockManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> int:
        """Release everything this handle still holds and stop tracking it."""
        removed = self.cleanup_locks()
        exit_hooks.untrack(self.registry)
        return removed

    def acquire(
        self,
        resource: str,
        timeout: float = ACQUIRE_TIMEOUT,
        *,
        persist: bool = False,
        cancel: threading.Event | None = None,
    ) -> AcquireResult:
        """Acquire a lock, retrying with backoff until ``timeout`` seconds pass.

        Args:
            resource: Name of the resource to lock
            timeout: Seconds to keep trying; 0 makes a single attempt
            persist: Leave the lock in place when this process exits
            cancel: Event that aborts the wait when set

        Returns:
            AcquireResult with status ACQUIRED, TIMED_OUT or CANCELLED

        Raises:
            StoreIOError: If the lock root cannot be written
        """
        logger.debug(f"Acquiring lock: {resource}")
        start = self.clock.monotonic()
        waits = backoff_schedule(
            self.config.initial_wait, self.config.backoff_multiplier, self.config.max_wait
        )
        attempts = 0

        while True:
            attempts += 1
            if self.store.claim(resource):
                self._record(resource, persist=persist)
                elapsed = self.clock.monotonic() - start
                logger.info(f"Lock acquired: {resource} (after {elapsed:.2f}s)")
                return AcquireResult(
                    resource=resource,
                    status=AcquireStatus.ACQUIRED,
                    elapsed=elapsed,
                    attempts=attempts,
                )

            age = self.store.age(resource)
            if age is None:
                # Released between our claim and the age check
                continue
            if self.staleness.is_stale_age(age):
                if self.store.reclaim(resource, self.config.lock_timeout):
                    logger.info(f"Removed stale lock: {resource} (age {age:.0f}s)")
                continue

            elapsed = self.clock.monotonic() - start
            remaining = timeout - elapsed
            if remaining <= 0:
                logger.error(f"Failed to acquire lock: {resource} (timeout after {elapsed:.1f}s)")
                return AcquireResult(
                    resource=resource,
                    status=AcquireStatus.TIMED_OUT,
                    elapsed=elapsed,
                    attempts=attempts,
                )

            wait = next(waits)
            if logger.isEnabledFor(logging.DEBUG):
                holder = self.store.read_metadata(resource)
                holder_pid = holder.pid if holder else "unknown"
                logger.debug(
                    f"Lock {resource} held by PID {holder_pid} "
                    f"(waited {elapsed:.1f}s/{timeout}s, next retry in {wait:.2f}s)"
                )
            if self.clock.sleep(min(wait, remaining), cancel):
                elapsed = self.clock.monotonic() - start
                logger.info(f"Acquisition of {resource} cancelled after {elapsed:.1f}s")
                return AcquireResult(
                    resource=resource,
                    status=AcquireStatus.CANCELLED,
                    elapsed=elapsed,
                    attempts=attempts,
                )

    @contextmanager
    def hold(self, resource: str, timeout: float = ACQUIRE_TIMEOUT) -> Iterator[AcquireResult]:
        """Hold a lock for the duration of a ``with`` block.

        Raises:
            AcquisitionTimeout: If the lock was not acquired in time
        """
        result = self.acquire(resource, timeout)
        result.raise_for_status()
        try:
            yield result
        finally:
            self.release(resource)

    def release(
        self, resource: str, *, check_owner: bool = False, missing_ok: bool = True
    ) -> ReleaseStatus:
        """Release a lock.

        No ownership check is made unless ``check_owner`` is set, in which
        case the lock is only removed if its metadata names this process.

        Raises:
            LockNotFound: If the lock is absent and ``missing_ok`` is False
        """
        if check_owner:
            metadata = self.store.read_metadata(resource)
            if metadata is not None and not metadata.is_current_process():
                logger.warning(f"Not releasing {resource}: held by PID {metadata.pid} on {metadata.hostname}")
                return ReleaseStatus.NOT_OWNER
            if metadata is None and self.store.exists(resource):
                logger.warning(f"Not releasing {resource}: holder unknown (no metadata)")
                return ReleaseStatus.NOT_OWNER

        self.registry.forget(resource)
        if self.store.remove(resource):
            logger.info(f"Lock released: {resource}")
            return ReleaseStatus.RELEASED

        logger.warning(f"Lock not found: {resource} (already released or never acquired)")
        if not missing_ok:
            raise LockNotFound(resource)
        return ReleaseStatus.NOT_FOUND

    def force_release(self, resource: str, *, missing_ok: bool = True) -> ReleaseStatus:
        """Remove a lock regardless of who holds it.

        Administrative escape hatch for stuck locks.
        """
        self.registry.forget(resource)
        if self.store.remove(resource):
            logger.warning(f"Force released lock: {resource}")
            return ReleaseStatus.RELEASED

        logger.info(f"Lock not found: {resource}")
        if not missing_ok:
            raise LockNotFound(resource)
        return ReleaseStatus.NOT_FOUND

    def is_locked(self, resource: str) -> bool:
        """Return True if the resource has a claim that is not stale."""
        age = self.store.age(resource)
        return age is not None and not self.staleness.is_stale_age(age)

    def is_stale(self, resource: str) -> bool:
        return self.staleness.is_stale(resource)

    def wait_for_release(
        self,
        resource: str,
        timeout: float = WAIT_TIMEOUT,
        *,
        cancel: threading.Event | None = None,
    ) -> WaitStatus:
        """Poll until the lock is gone or stale, without claiming it."""
        logger.debug(f"Waiting for lock release: {resource}")
        start = self.clock.monotonic()

        while True:
            if not self.is_locked(resource):
                logger.info(f"Lock released: {resource}")
                return WaitStatus.RELEASED

            remaining = timeout - (self.clock.monotonic() - start)
            if remaining <= 0:
                logger.error(f"Timeout waiting for lock release: {resource}")
                return WaitStatus.TIMED_OUT

            if self.clock.sleep(min(self.config.poll_interval, remaining), cancel):
                return WaitStatus.CANCELLED

    def list_locks(self) -> list[LockInfo]:
        """Describe every lock currently present under the root."""
        locks = []
        for resource in self.store.resources():
            age = self.store.age(resource)
            if age is None:
                continue
            locks.append(
                LockInfo(
                    resource=resource,
                    path=self.store.path_for(resource),
                    metadata=self.store.read_metadata(resource),
                    age=age,
                    stale=self.staleness.is_stale_age(age),
                )
            )
        return locks

    def cleanup_locks(self) -> int:
        """Release every lock this handle holds. Returns the number removed."""
        return self.registry.cleanup()

    def purge(self, stale_only: bool = True) -> int:
        """Sweep the whole root, removing stale locks (or all locks).

        Unlike ``cleanup_locks`` this touches locks held by other processes.
        """
        removed = 0
        for resource in list(self.store.resources()):
            if stale_only:
                if not self.staleness.reclaim_if_stale(resource):
                    continue
            elif not self.store.remove(resource):
                continue
            self.registry.forget(resource)
            removed += 1
        if removed:
            logger.info(f"Purged {removed} {'stale ' if stale_only else ''}lock(s) from {self.root}")
        return removed

    def _record(self, resource: str, persist: bool) -> None:
        metadata = LockMetadata.for_current_process(resource)
        try:
            self.store.write_metadata(resource, metadata)
        except OSError as e:
            # The claim itself succeeded; metadata is only informational
            logger.warning(f"Acquired {resource} but could not write metadata: {e}")
        if not persist:
            self.registry.register(resource)

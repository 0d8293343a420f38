"""Stale lock detection.

A claim is stale once it is older than ``lock_timeout``. Staleness stands in
for "the holder died": there is no lease renewal, so a live holder that runs
longer than the timeout loses its lock to the next contender.
"""

from .store import LockStore


class StalenessDetector:
    """Decides whether an existing claim should be treated as abandoned."""

    def __init__(self, store: LockStore, lock_timeout: float) -> None:
        self.store = store
        self.lock_timeout = lock_timeout

    def is_stale(self, resource: str) -> bool:
        """Return True if the claim exists and is older than the timeout."""
        age = self.store.age(resource)
        return age is not None and self.is_stale_age(age)

    def is_stale_age(self, age: float) -> bool:
        return age > self.lock_timeout

    def reclaim_if_stale(self, resource: str) -> bool:
        """Remove the claim if it is stale.

        Losing a race with the holder's own release, or with another
        contender, is not an error; the caller retries its claim either way.

        Returns:
            True if a stale claim was removed by this call
        """
        if not self.is_stale(resource):
            return False
        return self.store.reclaim(resource, self.lock_timeout)

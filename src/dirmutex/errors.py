"""Exception hierarchy for dirmutex."""


class MutexError(Exception):
    """Base exception for lock manager errors."""


class AcquisitionTimeout(MutexError, TimeoutError):
    """Raised when a lock could not be claimed within the caller's timeout."""

    def __init__(self, resource: str, elapsed: float) -> None:
        self.resource = resource
        self.elapsed = elapsed
        super().__init__(f"Timed out acquiring lock '{resource}' after {elapsed:.1f}s")


class LockNotFound(MutexError, LookupError):
    """Raised when releasing a lock that does not exist (only if asked to)."""

    def __init__(self, resource: str) -> None:
        self.resource = resource
        super().__init__(f"Lock not found: {resource}")


class StoreIOError(MutexError, OSError):
    """Raised when the lock namespace fails for reasons other than contention.

    Permission errors, read-only filesystems and full disks end up here so
    they abort acquisition instead of looking like a busy lock.
    """


class InvalidResourceError(MutexError, ValueError):
    """Raised when a resource name cannot be mapped to a lock path."""


class ConfigError(MutexError, ValueError):
    """Raised when configuration cannot be loaded or validated."""

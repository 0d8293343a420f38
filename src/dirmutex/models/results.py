"""Outcome types returned by lock manager operations."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from ..errors import AcquisitionTimeout
from .metadata import LockMetadata


class AcquireStatus(str, Enum):
    """Terminal outcome of an acquisition attempt."""

    ACQUIRED = "acquired"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class ReleaseStatus(str, Enum):
    """Outcome of release and force-release."""

    RELEASED = "released"
    NOT_FOUND = "not_found"
    NOT_OWNER = "not_owner"


class WaitStatus(str, Enum):
    """Outcome of waiting for another holder to let go."""

    RELEASED = "released"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


class AcquireResult(BaseModel):
    """Result of ``LockManager.acquire``.

    Attributes:
        resource: Resource that was requested.
        status: Terminal status.
        elapsed: Wall-clock seconds spent in the acquisition loop.
        attempts: Number of claim attempts made.
    """

    resource: str
    status: AcquireStatus
    elapsed: float = 0.0
    attempts: int = 0

    @property
    def acquired(self) -> bool:
        return self.status == AcquireStatus.ACQUIRED

    def raise_for_status(self) -> None:
        """Raise AcquisitionTimeout unless the lock was acquired."""
        if not self.acquired:
            raise AcquisitionTimeout(self.resource, self.elapsed)


class LockInfo(BaseModel):
    """Listing entry for a lock present in the namespace."""

    resource: str
    path: Path
    metadata: LockMetadata | None = None
    age: float | None = None
    stale: bool = False

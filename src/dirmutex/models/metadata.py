"""Lock metadata model.

The metadata record is written inside a claimed lock directory for
debugging and listing. It never decides who holds a lock.
"""

import os
import socket
from datetime import UTC, datetime

from pydantic import BaseModel, Field, ValidationError, field_serializer

ACQUIRED_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
FIELD_ORDER = ("pid", "acquired", "resource", "hostname")


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


class LockMetadata(BaseModel):
    """Diagnostic record stored in ``<resource>.lock/metadata``.

    Attributes:
        pid: Process ID of the holder.
        acquired: When the claim succeeded (UTC).
        resource: Resource name the lock protects.
        hostname: Host the holder runs on.
    """

    pid: int = Field(description="Process ID holding the lock")
    acquired: datetime = Field(default_factory=_utcnow, description="UTC acquisition time")
    resource: str = Field(description="Locked resource name")
    hostname: str = Field(default_factory=socket.gethostname, description="Holder hostname")

    @field_serializer("acquired")
    def _serialize_acquired(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC).strftime(ACQUIRED_FORMAT)

    @classmethod
    def for_current_process(cls, resource: str) -> "LockMetadata":
        """Build a record describing the calling process."""
        return cls(pid=os.getpid(), resource=resource)

    def is_current_process(self) -> bool:
        """Return True if this record names the calling process on this host."""
        return self.pid == os.getpid() and self.hostname == socket.gethostname()

    def to_text(self) -> str:
        """Serialize as ``key=value`` lines."""
        data = self.model_dump()
        return "".join(f"{key}={data[key]}\n" for key in FIELD_ORDER)

    @classmethod
    def from_text(cls, text: str) -> "LockMetadata | None":
        """Parse ``key=value`` lines, returning None if the record is unusable."""
        fields: dict[str, str] = {}
        for line in text.splitlines():
            key, sep, value = line.partition("=")
            if sep:
                fields[key.strip()] = value.strip()
        if not set(FIELD_ORDER) <= fields.keys():
            return None
        try:
            return cls.model_validate(fields)
        except ValidationError:
            return None

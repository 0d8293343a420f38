"""Pydantic data models for dirmutex.

- LockMetadata: the diagnostic record written inside each claim
- AcquireResult, LockInfo: structured results of manager operations
- AcquireStatus, ReleaseStatus, WaitStatus: terminal outcomes
"""

from .metadata import LockMetadata
from .results import AcquireResult, AcquireStatus, LockInfo, ReleaseStatus, WaitStatus

__all__ = [
    "AcquireResult",
    "AcquireStatus",
    "LockInfo",
    "LockMetadata",
    "ReleaseStatus",
    "WaitStatus",
]

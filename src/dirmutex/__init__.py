"""dirmutex: directory-based mutual exclusion between processes."""

from .config import MutexConfig, load_config
from .core import LockManager
from .errors import (
    AcquisitionTimeout,
    ConfigError,
    InvalidResourceError,
    LockNotFound,
    MutexError,
    StoreIOError,
)
from .models import AcquireResult, AcquireStatus, LockInfo, LockMetadata, ReleaseStatus, WaitStatus

__version__ = "0.1.0"

__all__ = [
    "AcquireResult",
    "AcquireStatus",
    "AcquisitionTimeout",
    "ConfigError",
    "InvalidResourceError",
    "LockInfo",
    "LockManager",
    "LockMetadata",
    "LockNotFound",
    "MutexConfig",
    "MutexError",
    "ReleaseStatus",
    "StoreIOError",
    "WaitStatus",
    "__version__",
    "load_config",
]

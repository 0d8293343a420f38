"""Directory-backed lock store.

A lock for resource ``name`` is the directory ``<root>/<name>.lock``. Its
existence is the claim: ``os.mkdir`` either creates it or fails with
``FileExistsError``, so of any number of racing processes exactly one
succeeds.

Removal renames the claim to a hidden tombstone first and deletes the
tombstone afterwards, so a claim disappears from its path in one step and
a half-deleted directory is never visible under the lock name.
"""

import contextlib
import logging
import os
import shutil
import uuid
from collections.abc import Iterator
from pathlib import Path

from ..constants import LOCK_SUFFIX, METADATA_FILE, TOMBSTONE_PREFIX
from ..errors import InvalidResourceError, StoreIOError
from ..models import LockMetadata
from .clock import Clock, SystemClock

logger = logging.getLogger(__name__)


def validate_resource(resource: str) -> str:
    """Check that a resource name maps to a single path component.

    Raises:
        InvalidResourceError: If the name is empty, hidden, or contains separators
    """
    if not resource or resource in (".", ".."):
        raise InvalidResourceError(f"Invalid resource name: {resource!r}")
    if resource.startswith("."):
        raise InvalidResourceError(f"Resource name cannot start with '.': {resource!r}")
    if "/" in resource or "\x00" in resource or (os.altsep and os.altsep in resource):
        raise InvalidResourceError(f"Resource name cannot contain path separators: {resource!r}")
    return resource


class LockStore:
    """Maps resource names to claim directories under a root."""

    def __init__(self, root: str | Path, clock: Clock | None = None) -> None:
        self.root = Path(root)
        self.clock = clock or SystemClock()

    def path_for(self, resource: str) -> Path:
        """Get the claim directory for a resource."""
        return self.root / f"{validate_resource(resource)}{LOCK_SUFFIX}"

    def exists(self, resource: str) -> bool:
        return self.path_for(resource).exists()

    def claim(self, resource: str) -> bool:
        """Atomically create the claim directory.

        Returns:
            True if this call created the claim, False if it already existed

        Raises:
            StoreIOError: If the namespace cannot be written for any other reason
        """
        path = self.path_for(resource)
        for _ in range(2):
            try:
                os.mkdir(path)
                return True
            except FileExistsError:
                return False
            except FileNotFoundError:
                # Root is missing; create it and try once more
                self._ensure_root()
            except OSError as e:
                raise StoreIOError(f"Cannot create lock {path}: {e.strerror or e}") from e
        raise StoreIOError(f"Cannot create lock {path}: lock root {self.root} is not usable")

    def remove(self, resource: str) -> bool:
        """Remove a claim. Returns False if it was already gone."""
        tombstone = self._retire(self.path_for(resource))
        if tombstone is None:
            return False
        self._discard(tombstone)
        return True

    def reclaim(self, resource: str, lock_timeout: float) -> bool:
        """Remove a claim only if it is still stale once detached.

        Two contenders can both see the same stale claim. The first one to
        detach it wins; the second may detach the winner's fresh claim
        instead, so the detached directory's age is checked again and a
        fresh claim is put back.

        Returns:
            True if a stale claim was removed
        """
        path = self.path_for(resource)
        tombstone = self._retire(path)
        if tombstone is None:
            return False

        age = self._age_of(tombstone)
        if age is not None and age <= lock_timeout:
            try:
                os.rename(tombstone, path)
            except OSError as e:
                logger.error(f"Detached a live lock for '{resource}' and could not restore it: {e}")
                self._discard(tombstone)
            else:
                logger.debug(f"Lock '{resource}' was reclaimed by another process first")
            return False

        self._discard(tombstone)
        return True

    def age(self, resource: str) -> float | None:
        """Seconds since the claim was created.

        Returns:
            Age in seconds, None if there is no claim. If the timestamp
            cannot be read the claim is reported as brand new (0.0).
        """
        return self._age_of(self.path_for(resource))

    def resources(self) -> Iterator[str]:
        """Yield the resource name of every claim under the root."""
        try:
            entries = sorted(self.root.iterdir())
        except FileNotFoundError:
            return
        except OSError as e:
            raise StoreIOError(f"Cannot read lock root {self.root}: {e.strerror or e}") from e

        for entry in entries:
            name = entry.name
            if name.startswith(".") or not name.endswith(LOCK_SUFFIX):
                continue
            if entry.is_dir():
                yield name[: -len(LOCK_SUFFIX)]

    def write_metadata(self, resource: str, metadata: LockMetadata) -> None:
        """Write the metadata record into a claim.

        Raises:
            OSError: If the record could not be written
        """
        (self.path_for(resource) / METADATA_FILE).write_text(metadata.to_text())

    def read_metadata(self, resource: str) -> LockMetadata | None:
        """Read the metadata record of a claim, or None if missing or corrupt."""
        try:
            text = (self.path_for(resource) / METADATA_FILE).read_text()
        except (OSError, UnicodeDecodeError):
            return None
        return LockMetadata.from_text(text)

    def _ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StoreIOError(f"Cannot create lock root {self.root}: {e.strerror or e}") from e

    def _age_of(self, path: Path) -> float | None:
        try:
            mtime = path.stat().st_mtime
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Cannot read timestamp of {path}, treating lock as fresh: {e}")
            return 0.0
        return max(0.0, self.clock.time() - mtime)

    def _retire(self, path: Path) -> Path | None:
        """Move a claim out of its lock path. Returns the tombstone path."""
        tombstone = self.root / f"{TOMBSTONE_PREFIX}{path.name}-{uuid.uuid4().hex[:12]}"
        try:
            os.rename(path, tombstone)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreIOError(f"Cannot remove lock {path}: {e.strerror or e}") from e
        return tombstone

    @staticmethod
    def _discard(tombstone: Path) -> None:
        if tombstone.is_dir():
            shutil.rmtree(tombstone, ignore_errors=True)
        else:
            with contextlib.suppress(FileNotFoundError):
                tombstone.unlink()

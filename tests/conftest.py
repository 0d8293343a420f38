"""Shared test fixtures for dirmutex tests."""

import os
import threading
import time
from collections.abc import Generator
from pathlib import Path

import pytest
from typer.testing import CliRunner

from dirmutex.config import MutexConfig
from dirmutex.core import LockManager


class FakeClock:
    """Clock that advances only when slept on.

    ``time()`` starts at the real wall clock so file mtimes written during
    the test are comparable with it.
    """

    def __init__(self) -> None:
        self.wall = time.time()
        self.mono = 0.0
        self.sleeps: list[float] = []
        self.on_sleep = None

    def time(self) -> float:
        return self.wall

    def monotonic(self) -> float:
        return self.mono

    def advance(self, seconds: float) -> None:
        self.wall += seconds
        self.mono += seconds

    def sleep(self, seconds: float, cancel: threading.Event | None = None) -> bool:
        self.sleeps.append(seconds)
        self.advance(seconds)
        if self.on_sleep is not None:
            self.on_sleep(self)
        return cancel is not None and cancel.is_set()


def make_stale(path: Path, age: float) -> None:
    """Backdate a claim directory's mtime by ``age`` seconds."""
    past = time.time() - age
    os.utime(path, (past, past))


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture
def lock_root(tmp_path: Path) -> Path:
    """Lock root directory inside the test's temp dir (not created yet)."""
    return tmp_path / ".locks"


@pytest.fixture
def config(lock_root: Path) -> MutexConfig:
    """Config with short timeouts suitable for tests."""
    return MutexConfig(
        root=lock_root,
        lock_timeout=60,
        initial_wait=0.1,
        max_wait=1.0,
        backoff_multiplier=1.5,
        poll_interval=0.5,
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(config: MutexConfig, fake_clock: FakeClock) -> Generator[LockManager, None, None]:
    """Lock manager on a fake clock, without process-wide exit hooks."""
    mgr = LockManager(config, clock=fake_clock, install_exit_hooks=False)
    try:
        yield mgr
    finally:
        mgr.close()


@pytest.fixture
def other_manager(config: MutexConfig, fake_clock: FakeClock) -> Generator[LockManager, None, None]:
    """A second handle on the same root, standing in for another process."""
    mgr = LockManager(config, clock=fake_clock, install_exit_hooks=False)
    try:
        yield mgr
    finally:
        mgr.close()


@pytest.fixture
def in_tmp_cwd(tmp_path: Path) -> Generator[Path, None, None]:
    """Change cwd to the temp dir for the duration of the test."""
    original_cwd = os.getcwd()
    os.chdir(tmp_path)
    try:
        yield tmp_path
    finally:
        os.chdir(original_cwd)


@pytest.fixture(autouse=True)
def reset_package_logger() -> Generator[None, None, None]:
    """Undo CLI logging setup so caplog sees dirmutex records."""
    yield
    import logging

    package_logger = logging.getLogger("dirmutex")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True

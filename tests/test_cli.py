"""CLI integration tests for dirmutex."""

import json
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

from dirmutex import __version__
from dirmutex.cli import app
from dirmutex.config import ENV_FIELDS
from dirmutex.core import LockStore
from dirmutex.models import LockMetadata

from .conftest import make_stale


def invoke(runner: CliRunner, lock_root: Path, *args: str):
    return runner.invoke(app, ["--root", str(lock_root), *args])


@pytest.fixture(autouse=True)
def isolated_cwd(in_tmp_cwd: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every CLI test in a clean directory with no DIRMUTEX_* settings."""
    for name in ENV_FIELDS:
        monkeypatch.delenv(f"DIRMUTEX_{name}", raising=False)
    return in_tmp_cwd


class TestVersionCommand:
    """Tests for --version flag."""

    def test_version_shows_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"dirmutex {__version__}" in result.stdout

    def test_version_short_flag(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["-V"])
        assert result.exit_code == 0
        assert "dirmutex" in result.stdout


class TestHelpCommand:
    """Tests for --help flag."""

    def test_help_shows_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("acquire", "release", "force-release", "status", "wait", "list", "purge", "run"):
            assert command in result.stdout

    def test_no_args_shows_help(self, runner: CliRunner) -> None:
        """Running with no args shows help (exit code 2 for no_args_is_help)."""
        result = runner.invoke(app, [])
        assert result.exit_code == 2
        assert "Usage:" in result.stdout


class TestGlobalOptions:
    """Tests for global CLI options."""

    @pytest.mark.parametrize("flag", ["-v", "-vv", "-q", "--json", "--no-color"])
    def test_flag_accepted(self, runner: CliRunner, lock_root: Path, flag: str) -> None:
        result = runner.invoke(app, [flag, "--root", str(lock_root), "list"])
        assert result.exit_code == 0

    def test_invalid_config_exits_with_error(self, runner: CliRunner, tmp_path: Path) -> None:
        bad = tmp_path / "bad.toml"
        bad.write_text("[mutex]\nlock_timeout = -5\n")
        result = runner.invoke(app, ["--config", str(bad), "list"])
        assert result.exit_code == 2
        assert "Invalid configuration" in result.stdout

    def test_root_from_config_file(
        self, runner: CliRunner, isolated_cwd: Path
    ) -> None:
        (isolated_cwd / "dirmutex.toml").write_text('[mutex]\nroot = "from-config"\n')
        result = runner.invoke(app, ["acquire", "shared"])
        assert result.exit_code == 0
        assert (isolated_cwd / "from-config" / "shared.lock").is_dir()


class TestInitCommand:
    """Tests for dirmutex init."""

    def test_init_writes_template(self, runner: CliRunner, isolated_cwd: Path) -> None:
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert (isolated_cwd / "dirmutex.toml").exists()
        assert "Created config template" in result.stdout

    def test_init_refuses_to_overwrite(self, runner: CliRunner, isolated_cwd: Path) -> None:
        (isolated_cwd / "dirmutex.toml").write_text("[mutex]\n")
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 1
        assert "already exists" in result.stdout

    def test_init_force(self, runner: CliRunner, isolated_cwd: Path) -> None:
        (isolated_cwd / "dirmutex.toml").write_text("[mutex]\n")
        result = runner.invoke(app, ["init", "--force"])
        assert result.exit_code == 0
        assert "lock_timeout" in (isolated_cwd / "dirmutex.toml").read_text()


class TestAcquireCommand:
    """Tests for dirmutex acquire."""

    def test_acquire_leaves_lock_held(self, runner: CliRunner, lock_root: Path) -> None:
        result = invoke(runner, lock_root, "acquire", "shared")
        assert result.exit_code == 0
        assert "Lock acquired: shared" in result.stdout
        assert (lock_root / "shared.lock" / "metadata").exists()

    def test_acquire_busy_times_out(self, runner: CliRunner, lock_root: Path) -> None:
        LockStore(lock_root).claim("busy-res")
        result = invoke(runner, lock_root, "acquire", "busy-res", "--timeout", "0")
        assert result.exit_code == 1
        assert "Could not acquire lock 'busy-res'" in result.stdout

    def test_acquire_json(self, runner: CliRunner, lock_root: Path) -> None:
        result = runner.invoke(app, ["--json", "--root", str(lock_root), "acquire", "shared"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["status"] == "acquired"
        assert data["resource"] == "shared"

    def test_acquire_invalid_name(self, runner: CliRunner, lock_root: Path) -> None:
        result = invoke(runner, lock_root, "acquire", "a/b")
        assert result.exit_code == 2
        assert "path separators" in result.stdout

    def test_acquire_unwritable_root(self, runner: CliRunner, tmp_path: Path) -> None:
        root = tmp_path / "file-not-dir"
        root.write_text("")
        result = invoke(runner, root, "acquire", "shared")
        assert result.exit_code == 2
        assert "Cannot create lock" in result.stdout


class TestReleaseCommands:
    """Tests for dirmutex release and force-release."""

    def test_release_held_lock(self, runner: CliRunner, lock_root: Path) -> None:
        invoke(runner, lock_root, "acquire", "shared")
        result = invoke(runner, lock_root, "release", "shared")
        assert result.exit_code == 0
        assert "Lock released: shared" in result.stdout
        assert not (lock_root / "shared.lock").exists()

    def test_release_missing_lock(self, runner: CliRunner, lock_root: Path) -> None:
        result = invoke(runner, lock_root, "release", "shared")
        assert result.exit_code == 1
        assert "Lock not found" in result.stdout

    def test_release_check_owner_refuses(self, runner: CliRunner, lock_root: Path) -> None:
        store = LockStore(lock_root)
        store.claim("shared")
        store.write_metadata("shared", LockMetadata(pid=1, resource="shared", hostname="other"))
        result = invoke(runner, lock_root, "release", "shared", "--check-owner")
        assert result.exit_code == 1
        assert "held by another process" in result.stdout
        assert (lock_root / "shared.lock").exists()

    def test_force_release(self, runner: CliRunner, lock_root: Path) -> None:
        LockStore(lock_root).claim("stuck")
        result = invoke(runner, lock_root, "force-release", "stuck")
        assert result.exit_code == 0
        assert "Force released lock: stuck" in result.stdout

    def test_force_release_missing(self, runner: CliRunner, lock_root: Path) -> None:
        result = runner.invoke(app, ["--json", "--root", str(lock_root), "force-release", "stuck"])
        assert result.exit_code == 1
        assert json.loads(result.stdout)["status"] == "not_found"


class TestStatusAndWait:
    """Tests for dirmutex status and wait."""

    def test_status_locked(self, runner: CliRunner, lock_root: Path) -> None:
        invoke(runner, lock_root, "acquire", "shared")
        result = invoke(runner, lock_root, "status", "shared")
        assert result.exit_code == 0
        assert "is locked" in result.stdout

    def test_status_free(self, runner: CliRunner, lock_root: Path) -> None:
        result = invoke(runner, lock_root, "status", "shared")
        assert result.exit_code == 1
        assert "is free" in result.stdout

    def test_status_json(self, runner: CliRunner, lock_root: Path) -> None:
        invoke(runner, lock_root, "acquire", "shared")
        result = runner.invoke(app, ["--json", "--root", str(lock_root), "status", "shared"])
        data = json.loads(result.stdout)
        assert data["locked"] is True
        assert data["metadata"]["resource"] == "shared"

    def test_wait_free_lock(self, runner: CliRunner, lock_root: Path) -> None:
        result = invoke(runner, lock_root, "wait", "shared", "--timeout", "1")
        assert result.exit_code == 0

    def test_wait_held_lock_times_out(self, runner: CliRunner, lock_root: Path) -> None:
        LockStore(lock_root).claim("shared")
        result = invoke(runner, lock_root, "wait", "shared", "--timeout", "0")
        assert result.exit_code == 1
        assert "Timeout waiting" in result.stdout


class TestListAndPurge:
    """Tests for dirmutex list and purge."""

    def test_list_empty(self, runner: CliRunner, lock_root: Path) -> None:
        result = invoke(runner, lock_root, "list")
        assert result.exit_code == 0
        assert "No active locks" in result.stdout

    def test_list_table(self, runner: CliRunner, lock_root: Path) -> None:
        invoke(runner, lock_root, "acquire", "alpha")
        LockStore(lock_root).claim("bare")
        result = invoke(runner, lock_root, "list")
        assert result.exit_code == 0
        assert "alpha" in result.stdout
        assert "bare" in result.stdout
        assert "no metadata" in result.stdout

    def test_list_json(self, runner: CliRunner, lock_root: Path) -> None:
        invoke(runner, lock_root, "acquire", "alpha")
        result = runner.invoke(app, ["--json", "--root", str(lock_root), "list"])
        data = json.loads(result.stdout)
        assert [lock["resource"] for lock in data["locks"]] == ["alpha"]
        assert data["locks"][0]["metadata"]["resource"] == "alpha"

    def test_purge_stale(self, runner: CliRunner, lock_root: Path) -> None:
        store = LockStore(lock_root)
        store.claim("old")
        store.claim("fresh")
        make_stale(lock_root / "old.lock", 7200)

        result = invoke(runner, lock_root, "purge")

        assert result.exit_code == 0
        assert "Removed 1 stale lock(s)" in result.stdout
        assert list(store.resources()) == ["fresh"]

    def test_purge_all(self, runner: CliRunner, lock_root: Path) -> None:
        store = LockStore(lock_root)
        store.claim("one")
        store.claim("two")
        result = runner.invoke(app, ["--json", "--root", str(lock_root), "purge", "--all"])
        assert json.loads(result.stdout) == {"removed": 2}
        assert list(store.resources()) == []


class TestRunCommand:
    """Tests for dirmutex run."""

    def test_run_holds_lock_during_command(self, runner: CliRunner, lock_root: Path) -> None:
        check = "import pathlib, sys; sys.exit(0 if pathlib.Path(sys.argv[1]).is_dir() else 7)"
        lock_dir = str(lock_root / "shared.lock")
        result = invoke(runner, lock_root, "run", "shared", "--", sys.executable, "-c", check, lock_dir)
        assert result.exit_code == 0
        assert not (lock_root / "shared.lock").exists()

    def test_run_passes_exit_code_and_releases(self, runner: CliRunner, lock_root: Path) -> None:
        result = invoke(
            runner, lock_root, "run", "shared", "--", sys.executable, "-c", "raise SystemExit(5)"
        )
        assert result.exit_code == 5
        assert not (lock_root / "shared.lock").exists()

    def test_run_missing_command(self, runner: CliRunner, lock_root: Path) -> None:
        result = invoke(runner, lock_root, "run", "shared", "--", "definitely-not-a-command-xyz")
        assert result.exit_code == 127
        assert not (lock_root / "shared.lock").exists()

    def test_run_busy_lock(self, runner: CliRunner, lock_root: Path) -> None:
        LockStore(lock_root).claim("shared")
        result = invoke(runner, lock_root, "run", "--timeout", "0", "shared", "--", "true")
        assert result.exit_code == 1
        assert "Could not acquire" in result.stdout

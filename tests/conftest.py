"""Pytest configuration and fixtures for pacsmith tests."""

import sys
import tempfile
from pathlib import Path

import pytest

from pacsmith.backup import BackupLedger
from pacsmith.core.log import ConsoleSink, setup_logger
from pacsmith.core.result import CommandResult
from pacsmith.pacman import InstallMode
from pacsmith.remediation import ConflictResolver, DependencyRepairer
from pacsmith.workflow import InstallContext


@pytest.fixture(autouse=True, scope="session")
def configure_logging():
    """Configure console-only logging at debug level for the test run."""
    test_log_root = Path(tempfile.gettempdir()) / "pacsmith-tests"
    setup_logger(
        log_root=test_log_root,
        run_name="test",
        console=ConsoleSink(level="debug"),
    )


def ok(output: str = "") -> CommandResult:
    return CommandResult(success=True, returncode=0, output=output)


def fail(output: str, returncode: int = 1) -> CommandResult:
    return CommandResult(success=False, returncode=returncode, output=output)


class FakeBackend:
    """In-memory stand-in for PacmanBackend.

    Install results are scripted per package. The last scripted
    result repeats once the script runs out; unscripted packages
    install successfully.
    """

    def __init__(
        self,
        installed=(),
        scripts=None,
        owners=None,
        removable=None,
        repository=(),
        groups=None,
    ):
        self.installed = set(installed)
        self.scripts = {pkg: list(results) for pkg, results in (scripts or {}).items()}
        self.owners = {str(path): owner for path, owner in (owners or {}).items()}
        self.removable = dict(removable or {})
        self.repository = list(repository)
        self.groups = dict(groups or {})
        self.calls = []

    def install(self, package, mode=InstallMode.DEFAULT):
        self.calls.append(("install", package, mode))
        script = self.scripts.get(package)
        if not script:
            result = ok()
        elif len(script) == 1:
            result = script[0]
        else:
            result = script.pop(0)
        if result.success:
            self.installed.add(package)
        return result

    def is_installed(self, package):
        self.calls.append(("query", package))
        return package in self.installed

    def owner_of(self, path):
        self.calls.append(("owner", str(path)))
        return self.owners.get(str(path))

    def remove(self, package):
        self.calls.append(("remove", package))
        if self.removable.get(package, True):
            self.installed.discard(package)
            return ok()
        return fail(f"error: target not found: {package}")

    def list_repository(self, repository):
        return list(self.repository)

    def list_group(self, group):
        return list(self.groups.get(group, []))

    def clean_cache(self):
        self.calls.append(("clean_cache",))
        return ok()

    def installs(self, package=None):
        """Install calls, optionally for one package."""
        return [
            call for call in self.calls
            if call[0] == "install" and (package is None or call[1] == package)
        ]


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def ledger(tmp_path):
    return BackupLedger(tmp_path / "backups")


@pytest.fixture
def make_context(tmp_path, ledger):
    """Factory for an InstallContext around a given backend."""
    def _make(backend, **kwargs):
        kwargs.setdefault("retry_delay", 0)
        kwargs.setdefault("sleep", lambda seconds: None)
        return InstallContext(
            backend=backend,
            conflict_resolver=ConflictResolver(backend, ledger),
            dependency_repairer=DependencyRepairer(backend),
            errors_dir=tmp_path / "errors",
            **kwargs,
        )
    return _make


@pytest.fixture
def load_state(tmp_path, monkeypatch):
    """Load State from the packaged defaults without CLI parsing
    conflicts.

    A project pacsmith.yaml points log_root into tmp_path so the file
    sink never touches /var/log, and the user config dir is redirected
    so a developer's own pacsmith.yaml cannot leak into the tests.
    """
    from pacsmith.core.config import State

    (tmp_path / "pacsmith.yaml").write_text(
        f"config:\n  log_root: {tmp_path / 'log'}\n"
    )
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)

    def _load(*argv):
        monkeypatch.setattr(sys, "argv", ["pacsmith", *argv])
        return State()
    return _load

"""Tests for privilege checks."""

import pytest

from pacsmith.core import system
from pacsmith.core.errors import PrivilegeError


def test_require_root_refuses_normal_user(monkeypatch):
    monkeypatch.setattr(system.os, "geteuid", lambda: 1000)
    with pytest.raises(PrivilegeError) as excinfo:
        system.require_root()
    assert excinfo.value.exit_code == 1


def test_require_root_accepts_root(monkeypatch):
    monkeypatch.setattr(system.os, "geteuid", lambda: 0)
    system.require_root()


def test_originating_user_from_sudo(monkeypatch):
    monkeypatch.setenv("SUDO_USER", "alice")
    assert system.originating_user() == "alice"


def test_configured_user_wins(monkeypatch):
    monkeypatch.setenv("SUDO_USER", "alice")
    assert system.originating_user("builder") == "builder"


@pytest.mark.parametrize("sudo_user", [None, "root"])
def test_originating_user_missing(monkeypatch, sudo_user):
    if sudo_user is None:
        monkeypatch.delenv("SUDO_USER", raising=False)
    else:
        monkeypatch.setenv("SUDO_USER", sudo_user)
    with pytest.raises(PrivilegeError):
        system.originating_user()

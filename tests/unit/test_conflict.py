"""Tests for file-conflict resolution."""

import json

import pytest
from conftest import FakeBackend, fail

from pacsmith.core.errors import RemediationError
from pacsmith.remediation import (
    ConflictAction,
    ConflictResolver,
    OwnerRemovalPolicy,
)
from pacsmith.remediation.conflict import (
    extract_conflict_paths,
    is_removable_owner,
    is_variant,
)


def conflict_output(*paths, package="foo"):
    lines = ["error: failed to commit transaction (conflicting files)"]
    lines += [f"{package}: {path} exists in filesystem" for path in paths]
    return "\n".join(lines) + "\n"


def test_extract_conflict_paths():
    output = (
        "nmap: /usr/bin/nmap exists in filesystem (owned by nmap-git)\n"
        "nmap: /usr/share/nmap/nse_main.lua exists in filesystem\n"
        "nmap: /usr/bin/nmap exists in filesystem\n"
    )
    paths = extract_conflict_paths(output)
    assert [str(p) for p in paths] == [
        "/usr/bin/nmap",
        "/usr/share/nmap/nse_main.lua",
    ]


def test_extract_conflict_path_with_spaces():
    output = (
        "fonts: /usr/share/fonts/My Font.ttf exists in filesystem\n"
        "fonts: /opt/a b/c exists in filesystem (owned by other)\n"
    )
    paths = extract_conflict_paths(output)
    assert [str(p) for p in paths] == [
        "/usr/share/fonts/My Font.ttf",
        "/opt/a b/c",
    ]


@pytest.mark.parametrize("owner, package, expected", [
    ("nmap-git", "nmap", True),
    ("nmap-bin", "nmap", True),
    ("nmap", "nmap", False),
    ("ncrack", "nmap", False),
])
def test_is_variant(owner, package, expected):
    assert is_variant(owner, package) is expected


@pytest.mark.parametrize("policy, owner, expected", [
    (OwnerRemovalPolicy.AGGRESSIVE, "bar", True),
    (OwnerRemovalPolicy.AGGRESSIVE, "foo", False),
    (OwnerRemovalPolicy.AGGRESSIVE, "foo-git", True),
    (OwnerRemovalPolicy.AGGRESSIVE, "foo-utils", False),
    (OwnerRemovalPolicy.AGGRESSIVE, "python-foo", False),
    (OwnerRemovalPolicy.VARIANT_ONLY, "bar", False),
    (OwnerRemovalPolicy.VARIANT_ONLY, "foo-git", True),
    (OwnerRemovalPolicy.NEVER, "foo-git", False),
])
def test_is_removable_owner(policy, owner, expected):
    assert is_removable_owner(owner, "foo", policy) is expected


def test_stale_owner_is_removed(tmp_path, ledger):
    target = tmp_path / "usr/bin/foo"
    target.parent.mkdir(parents=True)
    target.write_text("old")
    backend = FakeBackend(installed={"foo-git"}, owners={target: "foo-git"})

    records = ConflictResolver(backend, ledger).resolve(
        "foo", conflict_output(target)
    )

    assert [r.action for r in records] == [ConflictAction.REMOVED_OWNER]
    assert ("remove", "foo-git") in backend.calls
    # Removing the owner needs no backup
    assert ledger.entries() == []
    assert target.exists()


def test_failed_owner_removal_falls_back_to_backup(tmp_path, ledger):
    """Owner bar cannot be removed: the file is preserved, then moved."""
    target = tmp_path / "usr/bin/foo"
    target.parent.mkdir(parents=True)
    target.write_text("#!/bin/sh\necho bar\n")
    target.chmod(0o755)
    backend = FakeBackend(
        owners={target: "bar"}, removable={"bar": False}
    )

    resolver = ConflictResolver(backend, ledger)
    assert resolver.remediate("foo", conflict_output(target))

    moved = target.with_name("foo.backup")
    assert not target.exists()
    assert moved.read_text() == "#!/bin/sh\necho bar\n"

    [entry] = ledger.entries("foo")
    assert entry.original_path == target
    assert entry.copy_path.read_text() == "#!/bin/sh\necho bar\n"
    metadata = json.loads(entry.metadata_path.read_text())
    assert metadata["mode"] == "0o755"
    assert metadata["type"] == "file"


def test_backup_exists_before_rename(tmp_path, ledger, monkeypatch):
    """The rename never runs before the ledger holds copy and sidecar."""
    target = tmp_path / "etc/foo.conf"
    target.parent.mkdir(parents=True)
    target.write_text("setting=1\n")
    backend = FakeBackend()
    seen = []

    original_replace = type(target).replace

    def checking_replace(self, destination):
        [entry] = ledger.entries()
        seen.append(entry.copy_path.exists() and entry.metadata_path.exists())
        return original_replace(self, destination)

    monkeypatch.setattr(type(target), "replace", checking_replace)
    ConflictResolver(backend, ledger).resolve("foo", conflict_output(target))

    assert seen == [True]


def test_untracked_file_is_backed_up(tmp_path, ledger):
    target = tmp_path / "opt/tool/data.bin"
    target.parent.mkdir(parents=True)
    target.write_bytes(b"\x00\x01")

    [record] = ConflictResolver(FakeBackend(), ledger).resolve(
        "tool", conflict_output(target, package="tool")
    )

    assert record.action == ConflictAction.BACKED_UP_AND_MOVED
    assert record.owner is None
    assert record.backup.copy_path.read_bytes() == b"\x00\x01"


def test_symlink_is_preserved_as_link(tmp_path, ledger):
    target = tmp_path / "usr/lib/libfoo.so"
    target.parent.mkdir(parents=True)
    target.symlink_to("libfoo.so.1")

    [record] = ConflictResolver(FakeBackend(), ledger).resolve(
        "foo", conflict_output(target)
    )

    assert record.action == ConflictAction.BACKED_UP_AND_MOVED
    assert record.backup.copy_path.is_symlink()
    assert record.backup.copy_path.readlink().as_posix() == "libfoo.so.1"
    assert target.with_name("libfoo.so.backup").is_symlink()


def test_never_policy_skips_removal(tmp_path, ledger):
    target = tmp_path / "usr/bin/foo"
    target.parent.mkdir(parents=True)
    target.write_text("x")
    backend = FakeBackend(owners={target: "foo-git"})

    resolver = ConflictResolver(
        backend, ledger, policy=OwnerRemovalPolicy.NEVER
    )
    [record] = resolver.resolve("foo", conflict_output(target))

    assert record.action == ConflictAction.BACKED_UP_AND_MOVED
    assert not any(call[0] == "remove" for call in backend.calls)


def test_vanished_path(tmp_path, ledger):
    target = tmp_path / "usr/bin/gone"
    [record] = ConflictResolver(FakeBackend(), ledger).resolve(
        "foo", conflict_output(target)
    )
    assert record.action == ConflictAction.VANISHED
    assert record.resolved


def test_one_failed_path_does_not_stop_others(tmp_path, ledger, monkeypatch):
    first = tmp_path / "a"
    second = tmp_path / "b"
    first.write_text("a")
    second.write_text("b")

    original_preserve = ledger.preserve

    def flaky_preserve(package, path):
        if path == first:
            raise PermissionError("read-only filesystem")
        return original_preserve(package, path)

    monkeypatch.setattr(ledger, "preserve", flaky_preserve)
    resolver = ConflictResolver(FakeBackend(), ledger)
    records = resolver.resolve("foo", conflict_output(first, second))

    assert [r.action for r in records] == [
        ConflictAction.FAILED,
        ConflictAction.BACKED_UP_AND_MOVED,
    ]
    # The path whose backup failed is never moved
    assert first.exists()
    assert not second.exists()
    assert not resolver.remediate("foo", conflict_output(first))


def test_no_paths_raises():
    resolver = ConflictResolver(FakeBackend(), None)
    with pytest.raises(RemediationError):
        resolver.resolve("foo", "error: failed to commit transaction")


def test_remove_failure_with_empty_output(tmp_path, ledger):
    """A failed removal with no output still falls back to backup."""
    target = tmp_path / "f"
    target.write_text("x")
    backend = FakeBackend(owners={target: "bar"})
    backend.remove = lambda package: fail("", returncode=2)

    [record] = ConflictResolver(backend, ledger).resolve(
        "foo", conflict_output(target)
    )
    assert record.action == ConflictAction.BACKED_UP_AND_MOVED
    assert record.owner == "bar"


def test_path_with_space_is_moved(tmp_path, ledger):
    target = tmp_path / "usr/share/fonts/My Font.ttf"
    target.parent.mkdir(parents=True)
    target.write_text("glyphs")

    [record] = ConflictResolver(FakeBackend(), ledger).resolve(
        "fonts", conflict_output(target, package="fonts")
    )

    assert record.action == ConflictAction.BACKED_UP_AND_MOVED
    assert record.path == target
    assert not target.exists()
    assert target.with_name("My Font.ttf.backup").read_text() == "glyphs"

"""Tests for dependency repair."""

from conftest import FakeBackend, fail, ok

from pacsmith.pacman import InstallMode
from pacsmith.remediation import DependencyRepairer
from pacsmith.remediation.dependency import extract_missing_dependencies

MISSING = (
    "error: failed to prepare transaction (could not satisfy dependencies)\n"
    ":: unable to satisfy dependency 'python-impacket>=0.10' required by tool\n"
    ":: unable to satisfy dependency 'libpcap' required by tool\n"
)


def test_extract_missing_dependencies():
    output = MISSING + "dependency python-impacket is required by tool\n"
    assert extract_missing_dependencies(output) == [
        "python-impacket",
        "libpcap",
    ]


def test_extract_nothing():
    assert extract_missing_dependencies("error: something else") == []


def test_breaking_dependents_are_not_missing():
    output = (
        ":: removing python-foo breaks dependency 'python-foo' "
        "required by bar\n"
        ":: unable to satisfy dependency 'libpcap' required by tool\n"
    )
    assert extract_missing_dependencies(output) == ["libpcap"]


def test_overwrite_first():
    backend = FakeBackend()
    result = DependencyRepairer(backend).repair("tool", MISSING)

    assert result.success
    assert result.step == "overwrite"
    assert backend.installs() == [
        ("install", "tool", InstallMode.OVERWRITE),
    ]


def test_steps_run_in_order():
    """overwrite -> needed -> explicit dependencies then retry."""
    backend = FakeBackend(scripts={
        "tool": [fail(MISSING), fail(MISSING), ok()],
    })
    result = DependencyRepairer(backend).repair("tool", MISSING)

    assert result.success
    assert result.step == "explicit-dependencies"
    assert backend.installs() == [
        ("install", "tool", InstallMode.OVERWRITE),
        ("install", "tool", InstallMode.NEEDED),
        ("install", "python-impacket", InstallMode.NEEDED),
        ("install", "libpcap", InstallMode.NEEDED),
        ("install", "tool", InstallMode.DEFAULT),
    ]


def test_dependency_install_failure_is_not_fatal():
    backend = FakeBackend(scripts={
        "tool": [fail(MISSING), fail(MISSING), ok()],
        "libpcap": [fail("error: target not found: libpcap")],
    })
    result = DependencyRepairer(backend).repair("tool", MISSING)

    assert result.success
    assert ("install", "tool", InstallMode.DEFAULT) in backend.installs()


def test_all_steps_fail():
    backend = FakeBackend(scripts={"tool": [fail(MISSING)]})
    repairer = DependencyRepairer(backend)

    assert repairer.repair("tool", MISSING).success is False
    assert repairer.remediate("tool", MISSING) is False


def test_no_named_dependencies_skips_retry():
    output = "error: failed to prepare transaction (could not satisfy dependencies)"
    backend = FakeBackend(scripts={"tool": [fail(output)]})
    result = DependencyRepairer(backend).repair("tool", output)

    assert not result.success
    assert [call[2] for call in backend.installs()] == [
        InstallMode.OVERWRITE,
        InstallMode.NEEDED,
    ]

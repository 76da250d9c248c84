"""Package selection: which packages a run should install."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from pacsmith.core.errors import PackageSelectionError
from pacsmith.core.log import logger


class PackageSource(Protocol):
    def list_group(self, group: str) -> list[str]: ...

    def list_repository(self, repository: str) -> list[str]: ...


def parse_selection(selection: str) -> tuple[str, str | None]:
    """Split a selection string into (kind, argument).

    Accepted forms are ``all``, ``group:<name>`` and ``file:<path>``.
    """
    selection = selection.strip()
    if selection == "all":
        return "all", None
    kind, sep, argument = selection.partition(":")
    argument = argument.strip()
    if not sep or kind not in ("group", "file") or not argument:
        raise PackageSelectionError(
            f"Invalid package selection '{selection}'; "
            f"expected all, group:<name> or file:<path>"
        )
    return kind, argument


def load_package_file(path: Path) -> list[str]:
    """Read a newline-delimited package list.

    Blank lines and lines starting with # are ignored.
    """
    path = Path(path)
    if not path.is_file():
        raise PackageSelectionError(f"Package list file not found: {path}")
    packages = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        packages.append(line)
    return packages


def resolve_packages(
    selection: str,
    source: PackageSource,
    repository: str,
    sentinel: str | None = None,
) -> list[str]:
    """Resolve a selection into an ordered, duplicate-free package list.

    The sentinel package, when given, is appended if the selection
    did not already include it.

    Raises:
        PackageSelectionError: Malformed selection, missing list file,
            or nothing selected
    """
    kind, argument = parse_selection(selection)

    if kind == "all":
        packages = source.list_repository(repository)
        origin = f"repository {repository}"
    elif kind == "group":
        packages = source.list_group(argument)
        origin = f"group {argument}"
    else:
        packages = load_package_file(Path(argument))
        origin = f"file {argument}"

    if not packages:
        raise PackageSelectionError(f"No packages found in {origin}")

    packages = list(dict.fromkeys(packages))
    if sentinel and sentinel not in packages:
        packages.append(sentinel)

    logger.info(f"Selected {len(packages)} packages from {origin}")
    return packages

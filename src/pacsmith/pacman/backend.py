"""pacman wrapper behind a narrow backend protocol."""

from __future__ import annotations

import shlex
from enum import Enum
from pathlib import Path
from typing import Protocol

from pacsmith.core.log import logger
from pacsmith.core.result import CommandResult
from pacsmith.core.runner import Runner


class InstallMode(str, Enum):
    """Install variants; values name command templates."""

    DEFAULT = "install"
    OVERWRITE = "install_overwrite"
    NEEDED = "install_needed"


class PackageBackend(Protocol):
    """Operations the workflow and remediation need from pacman."""

    def install(
        self, package: str, mode: InstallMode = InstallMode.DEFAULT
    ) -> CommandResult:
        ...

    def is_installed(self, package: str) -> bool:
        ...

    def owner_of(self, path: Path) -> str | None:
        ...

    def remove(self, package: str) -> CommandResult:
        ...


class PacmanBackend:
    """Runs pacman through command templates from config.

    Templates use {package}, {path}, {group} and {repository}
    placeholders; values are shell-quoted before substitution.
    """

    REQUIRED = (
        "install", "install_overwrite", "install_needed", "query",
        "owner", "remove", "group", "repository", "clean_cache",
    )

    def __init__(
        self,
        commands: dict[str, str],
        runner: Runner | None = None,
        timeout: int | None = None,
    ):
        missing = [name for name in self.REQUIRED if name not in commands]
        if missing:
            raise ValueError(
                f"Missing pacman command templates: {', '.join(missing)}"
            )
        self.commands = commands
        self.runner = runner or Runner()
        self.timeout = timeout

    def _run(
        self, template: str, timeout: int | None = None, **values
    ) -> CommandResult:
        quoted = {key: shlex.quote(str(val)) for key, val in values.items()}
        command = self.commands[template].format(**quoted)
        result = self.runner.execute(command, timeout=timeout, check=False)
        return CommandResult.from_invoke(result)

    def install(
        self, package: str, mode: InstallMode = InstallMode.DEFAULT
    ) -> CommandResult:
        logger.debug(f"pacman {mode.value} {package}")
        return self._run(mode.value, timeout=self.timeout, package=package)

    def is_installed(self, package: str) -> bool:
        return self._run("query", package=package).success

    def owner_of(self, path: Path) -> str | None:
        """Name of the package owning path, or None if untracked."""
        result = self._run("owner", path=path)
        if not result.success:
            return None
        owner = result.output.strip().splitlines()
        return owner[0].strip() if owner else None

    def remove(self, package: str) -> CommandResult:
        logger.info(f"Removing package {package}")
        return self._run("remove", package=package)

    def list_group(self, group: str) -> list[str]:
        """Package names in a group; empty when the group is unknown."""
        return self._names(self._run("group", group=group))

    def list_repository(self, repository: str) -> list[str]:
        """Package names available in a sync repository."""
        return self._names(self._run("repository", repository=repository))

    def clean_cache(self) -> CommandResult:
        return self._run("clean_cache")

    @staticmethod
    def _names(result: CommandResult) -> list[str]:
        if not result.success:
            return []
        # `pacman -Sgq` and `-Slq` print one bare name per line
        return [
            line.strip() for line in result.output.splitlines()
            if line.strip()
        ]

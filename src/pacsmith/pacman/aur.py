"""AUR helper run as an unprivileged user."""

from __future__ import annotations

import shlex
import shutil

from pacsmith.core.log import logger
from pacsmith.core.result import CommandResult
from pacsmith.core.runner import Runner


class AurHelper:
    """Installs packages with an AUR helper such as yay or paru.

    The helper refuses to build as root, so every invocation goes
    through the install template, which runs it as `user`.
    """

    def __init__(
        self,
        helper: str,
        user: str,
        template: str,
        runner: Runner | None = None,
    ):
        self.helper = helper
        self.user = user
        self.template = template
        self.runner = runner or Runner()

    def available(self) -> bool:
        return shutil.which(self.helper) is not None

    def install(self, package: str) -> CommandResult:
        command = self.template.format(
            helper=shlex.quote(self.helper),
            user=shlex.quote(self.user),
            package=shlex.quote(package),
        )
        logger.debug(f"{self.helper} install {package} as {self.user}")
        result = self.runner.execute(command, check=False)
        return CommandResult.from_invoke(result)

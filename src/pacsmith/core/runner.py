"""Command execution using the invoke library."""

from invoke import Context, Result
from invoke.exceptions import CommandTimedOut

from pacsmith.core.log import logger


class Runner(Context):
    """invoke.Context with a single execute() entry point.

    pacman and the AUR helper are run through here so that every
    external call captures combined output the same way.
    """

    def execute(
        self,
        command: str,
        timeout: int | None = None,
        check: bool = True,
    ) -> Result:
        """Execute a command.

        Args:
            command: Shell command string
            timeout: Maximum execution time in seconds (None waits
                forever)
            check: If True, raise on non-zero exit code

        Returns:
            invoke.Result with stdout, stderr, exited (return code;
                -1 on timeout)

        Raises:
            invoke.UnexpectedExit: If check=True and the command
                returns non-zero
        """
        kwargs = {
            "hide": True,
            "warn": not check,
            # The installers run non-interactively; never hand them
            # our stdin
            "in_stream": False,
        }
        if timeout:
            kwargs["timeout"] = timeout

        logger.spew("Executing command", command=command)

        try:
            result = self.run(command, **kwargs)
        except CommandTimedOut as e:
            result = e.result
            result.exited = -1

        return result

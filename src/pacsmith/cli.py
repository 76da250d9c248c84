#!/usr/bin/env python3
"""pacsmith CLI - bulk package installation with automatic remediation."""

import asyncio
import sys

from pydantic_settings import CliApp, CliSubCommand, get_subcommand

from pacsmith.command.backups import BackupsCommand
from pacsmith.command.install import EXIT_INTERRUPTED, InstallCommand
from pacsmith.core.config import State
from pacsmith.core.log import logger


class CliState(State):
    """Bulk-install a pacman package set, resolving file conflicts and
    dependency failures automatically.

    Every package gets a bounded number of attempts. Failures are
    classified; conflicting files are backed up before they are moved,
    and dependency problems are repaired before the next attempt.
    Packages that still fail are listed in failed_packages.txt and may
    be retried once with an AUR helper.

    Configuration sources (in priority order):
    1. Command-line arguments (--config.packages.selection group:x)
    2. pacsmith.yaml in the current directory, then the user config dir
    3. .env file
    4. Environment variables
       (PACSMITH_CONFIG__INSTALL__MAX_ATTEMPTS=3)
    """

    install: CliSubCommand[InstallCommand]
    backups: CliSubCommand[BackupsCommand]

    def cli_cmd(self):
        """Dispatch to active subcommand, or show help if none
        provided."""
        subcommand = get_subcommand(self, is_required=False)

        if subcommand is None:
            CliApp.run(CliState, cli_args=['--help'])
            sys.exit(1)

        # Close the logger's file sinks on exit
        with logger:
            try:
                exit_code = asyncio.run(subcommand.run_workflow(self))
            except KeyboardInterrupt:
                logger.warning("Interrupted")
                exit_code = EXIT_INTERRUPTED
            raise SystemExit(exit_code)


def main():
    """Main entry point for CLI."""
    CliApp.run(CliState)


if __name__ == "__main__":
    main()

"""CLI command modules for pacsmith."""

from pacsmith.command.backups import BackupsCommand
from pacsmith.command.install import InstallCommand

__all__ = ["BackupsCommand", "InstallCommand"]

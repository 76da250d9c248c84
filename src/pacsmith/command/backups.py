"""Backups command - inspect and dispose of conflict backups."""

from typing import Literal

from pydantic import BaseModel, Field

from pacsmith.backup import BackupLedger
from pacsmith.core.errors import PacsmithError
from pacsmith.core.log import logger
from pacsmith.core.prompt import confirm


class BackupsCommand(BaseModel):
    """List, archive, delete or restore files backed up during
    conflict resolution.

    Backups live under <log_root>/backups and are never removed
    automatically. archive, delete and restore ask for confirmation
    unless --yes is given.
    """

    action: Literal["list", "archive", "delete", "restore"] = Field(
        default="list",
        description="What to do with the backups",
    )
    package: str | None = Field(
        default=None,
        description="Limit list and restore to one package",
    )
    yes: bool = Field(
        default=False,
        description="Skip the confirmation prompt",
    )

    async def run_workflow(self, state: "State") -> int:
        """Run the requested backup action.

        Returns:
            Exit code (0=success, 1=error or declined)
        """
        config = state.config
        ledger = BackupLedger(config.backups_dir)

        try:
            if self.action == "list":
                return self._list(ledger)

            if not self.yes and not confirm(
                f"{self.action.capitalize()} backups in {ledger.root}?"
            ):
                logger.info(f"Backup {self.action} declined")
                return 1

            if self.action == "archive":
                affected = ledger.archive(
                    config.backup.archive_dir, confirmed=True
                )
            elif self.action == "delete":
                affected = ledger.purge(confirmed=True)
            else:
                affected = ledger.restore(self.package, confirmed=True)
        except (PacsmithError, OSError) as e:
            logger.error(f"Backup {self.action} failed: {e}")
            return 1

        state.runtime.backups.affected = affected
        return 0

    def _list(self, ledger: BackupLedger) -> int:
        entries = ledger.entries(self.package)
        if not entries:
            logger.info(f"No backups recorded in {ledger.root}")
            return 0
        for entry in entries:
            logger.info(
                f"{entry.timestamp:%Y-%m-%d %H:%M:%S} {entry.package}: "
                f"{entry.original_path} -> {entry.copy_path}"
            )
        logger.info(f"{len(entries)} backups, {ledger.file_count()} files")
        return 0

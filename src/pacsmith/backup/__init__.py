"""Backup ledger for files altered during conflict resolution."""

from pacsmith.backup.ledger import BackupEntry, BackupLedger

__all__ = ["BackupEntry", "BackupLedger"]

"""Resolve "exists in filesystem" conflicts reported by pacman."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from pacsmith.backup import BackupEntry, BackupLedger
from pacsmith.core.errors import RemediationError
from pacsmith.core.log import logger
from pacsmith.pacman import PackageBackend

# pacman prints one of these per conflicting file:
#   tool: /usr/bin/foo exists in filesystem
#   tool: /usr/bin/foo exists in filesystem (owned by bar)
# Paths may contain spaces.
CONFLICT_LINE = re.compile(r"^\s*\S+: (/.+?) exists in filesystem")

VARIANT_SUFFIXES = ("git", "svn", "hg", "bzr", "dev", "bin", "nightly")

BACKUP_SUFFIX = ".backup"


class OwnerRemovalPolicy(str, Enum):
    """When the package owning a conflicting file may be removed.

    AGGRESSIVE keeps the historical rule: a variant build of the
    package, or any package whose name does not contain the name being
    installed. That can still remove unrelated packages sharing a path,
    hence the narrower alternatives.
    """

    AGGRESSIVE = "aggressive"
    VARIANT_ONLY = "variant-only"
    NEVER = "never"


class ConflictAction(str, Enum):
    REMOVED_OWNER = "removed-owner"
    BACKED_UP_AND_MOVED = "backed-up-and-moved"
    VANISHED = "vanished"
    FAILED = "failed"


class ConflictRecord(BaseModel):
    """What was done about one conflicting path."""

    package: str
    path: Path
    owner: str | None = None
    action: ConflictAction
    backup: BackupEntry | None = None
    detail: str | None = None

    @property
    def resolved(self) -> bool:
        return self.action != ConflictAction.FAILED


def extract_conflict_paths(output: str) -> list[Path]:
    """Conflicting paths in first-seen order, without duplicates."""
    seen: dict[str, None] = {}
    for line in output.splitlines():
        match = CONFLICT_LINE.search(line)
        if match:
            seen.setdefault(match.group(1), None)
    return [Path(p) for p in seen]


def is_variant(owner: str, package: str) -> bool:
    """True if owner looks like a VCS/dev/binary build of package."""
    prefix = f"{package}-"
    return (
        owner.startswith(prefix)
        and owner[len(prefix):] in VARIANT_SUFFIXES
    )


def is_removable_owner(
    owner: str, package: str, policy: OwnerRemovalPolicy
) -> bool:
    if policy == OwnerRemovalPolicy.NEVER:
        return False
    if policy == OwnerRemovalPolicy.VARIANT_ONLY:
        return is_variant(owner, package)
    return is_variant(owner, package) or package not in owner


class ConflictResolver:
    """Clears conflicting paths so the next attempt can proceed.

    For each path either the stale owning package is removed, or the
    file is preserved in the backup ledger and renamed out of the way
    to <path>.backup. The rename only happens after the ledger holds
    both a metadata sidecar and a content copy.
    """

    def __init__(
        self,
        backend: PackageBackend,
        ledger: BackupLedger,
        policy: OwnerRemovalPolicy = OwnerRemovalPolicy.AGGRESSIVE,
    ):
        self.backend = backend
        self.ledger = ledger
        self.policy = OwnerRemovalPolicy(policy)

    @property
    def name(self) -> str:
        return "conflict"

    def remediate(self, package: str, output: str) -> bool:
        records = self.resolve(package, output)
        return all(record.resolved for record in records)

    def resolve(self, package: str, output: str) -> list[ConflictRecord]:
        """Resolve every conflicting path named in output.

        Best effort: a failure on one path does not stop the others.

        Raises:
            RemediationError: If no conflicting path can be identified
        """
        paths = extract_conflict_paths(output)
        if not paths:
            raise RemediationError(
                f"Could not identify conflicting files for {package}"
            )

        records = []
        for path in paths:
            record = self._resolve_path(package, path)
            records.append(record)
            log = logger.info if record.resolved else logger.error
            log(
                f"Conflict {path}: {record.action.value}",
                package=package,
                owner=record.owner,
            )
        return records

    def _resolve_path(self, package: str, path: Path) -> ConflictRecord:
        owner = self.backend.owner_of(path)

        if owner and is_removable_owner(owner, package, self.policy):
            logger.info(
                f"{path} is owned by {owner}; removing it to make room "
                f"for {package}"
            )
            result = self.backend.remove(owner)
            if result.success:
                return ConflictRecord(
                    package=package,
                    path=path,
                    owner=owner,
                    action=ConflictAction.REMOVED_OWNER,
                )
            logger.warning(
                f"Removing {owner} failed (exit {result.returncode}); "
                f"backing up {path} instead"
            )

        return self._backup_and_move(package, path, owner)

    def _backup_and_move(
        self, package: str, path: Path, owner: str | None
    ) -> ConflictRecord:
        if not (path.exists() or path.is_symlink()):
            return ConflictRecord(
                package=package,
                path=path,
                owner=owner,
                action=ConflictAction.VANISHED,
            )

        try:
            entry = self.ledger.preserve(package, path)
        except OSError as e:
            return ConflictRecord(
                package=package,
                path=path,
                owner=owner,
                action=ConflictAction.FAILED,
                detail=f"backup failed: {e}",
            )

        target = path.with_name(path.name + BACKUP_SUFFIX)
        try:
            path.replace(target)
        except OSError as e:
            return ConflictRecord(
                package=package,
                path=path,
                owner=owner,
                action=ConflictAction.FAILED,
                backup=entry,
                detail=f"rename to {target} failed: {e}",
            )

        return ConflictRecord(
            package=package,
            path=path,
            owner=owner,
            action=ConflictAction.BACKED_UP_AND_MOVED,
            backup=entry,
        )

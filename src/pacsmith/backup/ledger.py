"""Append-only ledger of filesystem objects preserved before mutation.

Layout under the ledger root:

    ledger.jsonl                       one BackupEntry per line
    <package>/<name>.<stamp>           content copy
    <package>/<name>.<stamp>.meta.json metadata sidecar

Nothing here is deleted automatically. archive(), purge() and
restore() are operator actions and refuse to run unless confirmed.
"""

from __future__ import annotations

import grp
import json
import os
import pwd
import shutil
import stat
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, ValidationError

from pacsmith.core.errors import BackupError
from pacsmith.core.log import logger

STAMP_FORMAT = "%Y%m%d-%H%M%S"
LEDGER_FILE = "ledger.jsonl"


class BackupEntry(BaseModel):
    """A preserved filesystem object."""

    package: str
    original_path: Path
    copy_path: Path
    metadata_path: Path
    timestamp: datetime


def _file_type(mode: int) -> str:
    if stat.S_ISLNK(mode):
        return "symlink"
    if stat.S_ISDIR(mode):
        return "directory"
    return "file"


def snapshot_metadata(path: Path) -> dict:
    """Permission, ownership and type information for path (lstat)."""
    st = os.lstat(path)
    try:
        owner = pwd.getpwuid(st.st_uid).pw_name
    except KeyError:
        owner = None
    try:
        group = grp.getgrgid(st.st_gid).gr_name
    except KeyError:
        group = None

    return {
        "path": str(path),
        "type": _file_type(st.st_mode),
        "mode": oct(stat.S_IMODE(st.st_mode)),
        "uid": st.st_uid,
        "gid": st.st_gid,
        "owner": owner,
        "group": group,
        "size": st.st_size,
        "mtime": datetime.fromtimestamp(st.st_mtime).isoformat(),
        "link_target": (
            os.readlink(path) if stat.S_ISLNK(st.st_mode) else None
        ),
    }


def _copy_object(source: Path, target: Path) -> None:
    """Copy a file, symlink or directory tree without following links."""
    if source.is_symlink():
        os.symlink(os.readlink(source), target)
    elif source.is_dir():
        shutil.copytree(source, target, symlinks=True)
    else:
        shutil.copy2(source, target)


def _count_files(path: Path) -> int:
    if path.is_symlink() or path.is_file():
        return 1
    if path.is_dir():
        return sum(
            1 for p in path.rglob("*") if p.is_symlink() or p.is_file()
        )
    return 0


class BackupLedger:
    """Backups of files touched by conflict resolution."""

    def __init__(self, root: Path):
        self.root = Path(root)

    @property
    def ledger_file(self) -> Path:
        return self.root / LEDGER_FILE

    def _unique_base(self, directory: Path, name: str, stamp: str) -> str:
        base = f"{name}.{stamp}"
        candidate = base
        counter = 1
        while (
            (directory / candidate).exists()
            or (directory / candidate).is_symlink()
            or (directory / f"{candidate}.meta.json").exists()
        ):
            candidate = f"{base}.{counter}"
            counter += 1
        return candidate

    def preserve(self, package: str, path: Path) -> BackupEntry:
        """Snapshot metadata and copy content of path.

        Both the sidecar and the copy exist when this returns. The
        original is left untouched; moving it is the caller's job.

        Raises:
            OSError: If path cannot be read or the backup written
        """
        path = Path(path)
        now = datetime.now()
        package_dir = self.root / package
        package_dir.mkdir(parents=True, exist_ok=True)

        base = self._unique_base(
            package_dir, path.name, now.strftime(STAMP_FORMAT)
        )
        copy_path = package_dir / base
        metadata_path = package_dir / f"{base}.meta.json"

        metadata_path.write_text(
            json.dumps(snapshot_metadata(path), indent=2) + "\n"
        )
        _copy_object(path, copy_path)

        entry = BackupEntry(
            package=package,
            original_path=path,
            copy_path=copy_path,
            metadata_path=metadata_path,
            timestamp=now,
        )
        with open(self.ledger_file, "a", encoding="utf-8") as f:
            f.write(entry.model_dump_json() + "\n")

        logger.info(
            f"Backed up {path} to {copy_path}",
            package=package,
        )
        return entry

    def entries(self, package: str | None = None) -> list[BackupEntry]:
        """All recorded entries, optionally for one package."""
        if not self.ledger_file.exists():
            return []

        entries = []
        with open(self.ledger_file, encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    entry = BackupEntry.model_validate_json(line)
                except ValidationError as e:
                    raise BackupError(
                        f"Corrupt ledger entry at {self.ledger_file}:"
                        f"{lineno}: {e}"
                    ) from e
                if package is None or entry.package == package:
                    entries.append(entry)
        return entries

    def file_count(self) -> int:
        """Number of backup files held, ledger itself excluded."""
        if not self.root.exists():
            return 0
        return sum(
            _count_files(child) for child in self.root.iterdir()
            if child.name != LEDGER_FILE
        )

    def _require(self, confirmed: bool, action: str) -> None:
        if not confirmed:
            raise BackupError(
                f"Refusing to {action} backups in {self.root} "
                f"without confirmation"
            )

    def archive(self, destination: Path, confirmed: bool = False) -> int:
        """Move every backup into a timestamped directory under
        destination.

        Returns:
            Number of backup files moved
        """
        self._require(confirmed, "archive")
        count = self.file_count()
        if not self.root.exists() or not any(self.root.iterdir()):
            logger.info("No backups to archive")
            return 0

        target = Path(destination) / (
            f"backups-{datetime.now().strftime(STAMP_FORMAT)}"
        )
        target.mkdir(parents=True, exist_ok=True)
        for child in sorted(self.root.iterdir()):
            shutil.move(str(child), str(target / child.name))

        logger.info(f"Archived {count} backup files to {target}")
        return count

    def purge(self, confirmed: bool = False) -> int:
        """Delete every backup and the ledger.

        Returns:
            Number of backup files deleted
        """
        self._require(confirmed, "delete")
        count = self.file_count()
        if not self.root.exists():
            return 0

        for child in self.root.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()

        logger.info(f"Deleted {count} backup files from {self.root}")
        return count

    def restore(
        self, package: str | None = None, confirmed: bool = False
    ) -> int:
        """Copy backups back to their original paths.

        Whatever currently occupies an original path is replaced.
        Ownership and mode come from the metadata sidecar; failing to
        reapply them is logged and does not undo the restore.

        Returns:
            Number of entries restored
        """
        self._require(confirmed, "restore")
        restored = 0
        for entry in self.entries(package):
            if not (entry.copy_path.exists() or entry.copy_path.is_symlink()):
                logger.warning(
                    f"Backup copy {entry.copy_path} is missing; "
                    f"cannot restore {entry.original_path}"
                )
                continue

            original = entry.original_path
            if original.is_dir() and not original.is_symlink():
                shutil.rmtree(original)
            elif original.exists() or original.is_symlink():
                original.unlink()
            original.parent.mkdir(parents=True, exist_ok=True)
            _copy_object(entry.copy_path, original)
            self._reapply_metadata(entry)

            logger.info(f"Restored {original} from {entry.copy_path}")
            restored += 1
        return restored

    def _reapply_metadata(self, entry: BackupEntry) -> None:
        try:
            metadata = json.loads(entry.metadata_path.read_text())
        except (OSError, ValueError) as e:
            logger.warning(
                f"Unreadable metadata {entry.metadata_path}: {e}"
            )
            return

        path = entry.original_path
        try:
            if metadata.get("type") != "symlink":
                os.chmod(path, int(metadata["mode"], 8))
            os.lchown(path, metadata["uid"], metadata["gid"])
        except PermissionError as e:
            logger.warning(f"Could not reapply ownership on {path}: {e}")

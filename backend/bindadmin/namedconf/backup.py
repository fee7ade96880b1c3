"""
Timestamped snapshots of configuration files with bounded retention
"""

import fnmatch
import glob
import os
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..core.exceptions import BackupMissing, ConfigIOError, SourceMissing
from ..core.logging_config import get_namedconf_logger

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
BACKUP_SUFFIX = ".bak"
DEFAULT_BACKUP_DIR = "./backup"
DEFAULT_MAX_BACKUPS = 10


@dataclass
class BackupRecord:
    """One snapshot file"""
    path: str
    timestamp: datetime
    size: int

    @property
    def backup_id(self) -> str:
        return os.path.basename(self.path)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "backup_id": self.backup_id,
            "path": self.path,
            "timestamp": self.timestamp.isoformat(),
            "size": self.size,
        }


class BackupStore:
    """
    Snapshots live flat in one directory as ``<base>.<YYYYMMDDHHMMSS>.bak``.

    The timestamp is local time so names sort in capture order; records
    report it in UTC. Two snapshots of the same file within one second share
    a name and the later one wins.
    """

    def __init__(
        self,
        backup_dir: Optional[str] = None,
        max_backups: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.logger = get_namedconf_logger()
        self.backup_dir = Path(os.path.abspath(backup_dir or DEFAULT_BACKUP_DIR))
        self.max_backups = max_backups if max_backups and max_backups > 0 else DEFAULT_MAX_BACKUPS
        self.clock = clock or datetime.now

        try:
            self.backup_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
        except OSError as e:
            # The first snapshot reports the concrete failure
            self.logger.error(f"Cannot create backup directory {self.backup_dir}: {e}")

    def snapshot(self, file_path: Union[str, Path]) -> BackupRecord:
        """Copy ``file_path`` into the backup directory and apply retention"""
        source = Path(file_path)
        try:
            source.stat()
        except FileNotFoundError as e:
            raise SourceMissing(
                f"Cannot back up missing file {source}",
                details={"path": str(source)}
            ) from e
        except OSError as e:
            raise ConfigIOError(f"Cannot stat {source}: {e}", details={"path": str(source)}) from e

        taken_at = self.clock()
        backup_path = self.backup_dir / f"{source.name}.{taken_at.strftime(TIMESTAMP_FORMAT)}{BACKUP_SUFFIX}"

        try:
            shutil.copyfile(source, backup_path)
            shutil.copymode(source, backup_path)
            size = backup_path.stat().st_size
        except OSError as e:
            raise ConfigIOError(
                f"Failed to back up {source} to {backup_path}: {e}",
                details={"path": str(source), "backup_path": str(backup_path)}
            ) from e

        self.logger.info(f"Created backup {backup_path}")
        self._cleanup_old_backups(source.name)

        return BackupRecord(path=str(backup_path), timestamp=self._to_utc(taken_at), size=size)

    def list_backups(self, original_path: Union[str, Path]) -> List[BackupRecord]:
        """Snapshots of ``original_path`` (matched by base name), newest first"""
        return self._list_by_base(os.path.basename(str(original_path)))

    def restore(self, backup_path: Union[str, Path], target_path: Union[str, Path]) -> None:
        """Copy a snapshot over ``target_path`` with mode 0644"""
        data = self.read_backup(backup_path)
        target = Path(target_path)
        try:
            target.write_bytes(data)
            os.chmod(target, 0o644)
        except OSError as e:
            raise ConfigIOError(
                f"Failed to restore {backup_path} to {target}: {e}",
                details={"backup_path": str(backup_path), "path": str(target)}
            ) from e
        self.logger.info(f"Restored {target} from {backup_path}")

    def delete_backup(self, backup_id: str) -> None:
        """Delete a snapshot given its bare file name"""
        if (not backup_id or os.sep in backup_id or "/" in backup_id
                or backup_id in (".", "..") or not backup_id.endswith(BACKUP_SUFFIX)):
            raise BackupMissing(f"Invalid backup id: {backup_id}", details={"backup_id": backup_id})

        backup_path = self.backup_dir / backup_id
        try:
            backup_path.unlink()
        except FileNotFoundError as e:
            raise BackupMissing(f"Backup not found: {backup_id}", details={"backup_id": backup_id}) from e
        except OSError as e:
            raise ConfigIOError(f"Failed to delete backup {backup_id}: {e}", details={"backup_id": backup_id}) from e

        self.logger.info(f"Deleted backup {backup_path}")

    def resolve(self, backup_ref: Union[str, Path]) -> Path:
        """
        Map a snapshot file name or absolute path to a path inside the backup
        directory. Anything that points elsewhere or does not exist is
        reported as missing.
        """
        ref = str(backup_ref or "")
        if not ref:
            raise BackupMissing("No backup given")

        candidate = Path(ref) if os.path.isabs(ref) else self.backup_dir / ref
        candidate = Path(os.path.abspath(candidate))

        if candidate.parent != self.backup_dir or not candidate.name.endswith(BACKUP_SUFFIX):
            raise BackupMissing(
                f"Backup {ref} is not inside {self.backup_dir}",
                details={"backup_path": ref}
            )
        if not candidate.is_file():
            raise BackupMissing(f"Backup not found: {ref}", details={"backup_path": ref})
        return candidate

    def read_backup(self, backup_ref: Union[str, Path]) -> bytes:
        path = self.resolve(backup_ref)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise BackupMissing(f"Backup not found: {backup_ref}", details={"backup_path": str(backup_ref)}) from e
        except OSError as e:
            raise ConfigIOError(f"Failed to read backup {path}: {e}", details={"backup_path": str(path)}) from e

    def _list_by_base(self, base_name: str) -> List[BackupRecord]:
        try:
            entries = list(os.scandir(self.backup_dir))
        except OSError as e:
            raise ConfigIOError(
                f"Failed to read backup directory {self.backup_dir}: {e}",
                details={"backup_dir": str(self.backup_dir)}
            ) from e

        pattern = f"{glob.escape(base_name)}.*{BACKUP_SUFFIX}"
        prefix = f"{base_name}."
        records = []

        for entry in entries:
            if not entry.is_file() or not fnmatch.fnmatchcase(entry.name, pattern):
                continue

            stamp = entry.name[len(prefix):-len(BACKUP_SUFFIX)]
            try:
                taken_at = datetime.strptime(stamp, TIMESTAMP_FORMAT)
            except ValueError:
                # e.g. named.conf.local.<ts>.bak when listing named.conf
                continue

            try:
                size = entry.stat().st_size
            except FileNotFoundError:
                continue

            records.append(BackupRecord(
                path=os.path.join(str(self.backup_dir), entry.name),
                timestamp=self._to_utc(taken_at),
                size=size
            ))

        records.sort(key=lambda record: record.timestamp, reverse=True)
        return records

    def _cleanup_old_backups(self, base_name: str) -> int:
        """Delete the oldest snapshots beyond max_backups; failures are only logged"""
        try:
            records = self._list_by_base(base_name)
        except ConfigIOError as e:
            self.logger.error(f"Backup retention skipped for {base_name}: {e.message}")
            return 0

        if len(records) <= self.max_backups:
            return 0

        removed = 0
        for record in records[self.max_backups:]:
            try:
                os.remove(record.path)
                removed += 1
            except OSError as e:
                self.logger.error(f"Failed to remove old backup {record.path}: {e}")

        self.logger.info(f"Removed {removed} old backup(s) of {base_name}")
        return removed

    @staticmethod
    def _to_utc(value: datetime) -> datetime:
        # Naive values are local time
        return value.astimezone(timezone.utc)

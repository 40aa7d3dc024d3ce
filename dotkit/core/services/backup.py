"""
Pre-write backup: snapshot a target before it is overwritten.

All backups of one run land in ``<backup_root>/<YYYYmmdd_HHMMSS>/``,
flattened to one file (or directory) per destination:
``~/.kiro/settings/cli.json`` becomes ``.kiro__settings__cli.json``.

Backups are strictly additive: originals are never touched and old
run directories are never purged.
"""

from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

from dotkit.core.models.report import BackupEntry

logger = logging.getLogger(__name__)

STAMP_FORMAT = "%Y%m%d_%H%M%S"


def new_stamp() -> str:
    """Timestamp used to name a run's backup directory."""
    return time.strftime(STAMP_FORMAT)


def flat_name(path: Path, home: Path) -> str:
    """Flatten ``path`` to a single backup filename.

    Paths under ``home`` are taken relative to it; anything else uses
    the absolute path without its leading separator.
    """
    try:
        rel = path.relative_to(home)
    except ValueError:
        rel = Path(str(path).lstrip("/"))
    return "__".join(rel.parts)


class BackupManager:
    """Per-run backup writer.

    The run directory is created lazily on the first real backup and
    shared by every backup in the run.
    """

    def __init__(
        self,
        backup_root: Path,
        home: Path,
        stamp: str | None = None,
        dry_run: bool = False,
    ):
        self.backup_root = backup_root
        self.home = home
        self.stamp = stamp or new_stamp()
        self.dry_run = dry_run
        self._entries: dict[Path, BackupEntry] = {}

    @property
    def run_dir(self) -> Path:
        return self.backup_root / self.stamp

    @property
    def count(self) -> int:
        """Distinct destinations backed up in this run."""
        return len(self._entries)

    @property
    def entries(self) -> list[BackupEntry]:
        return list(self._entries.values())

    def backup(self, path: Path) -> Path | None:
        """Snapshot ``path`` if it exists.

        Returns:
            The snapshot path, or None when there was nothing to back up
            (or in dry-run mode).
        """
        if not path.exists() and not path.is_symlink():
            return None

        snapshot = self.run_dir / flat_name(path, self.home)

        if self.dry_run:
            logger.info("[plan] Backup %s -> %s", path, snapshot)
            return None

        self.run_dir.mkdir(parents=True, exist_ok=True)

        if path.is_dir() and not path.is_symlink():
            if snapshot.exists():
                shutil.rmtree(snapshot)
            shutil.copytree(path, snapshot, symlinks=True)
        else:
            if snapshot.is_dir():
                shutil.rmtree(snapshot)
            shutil.copy2(path, snapshot, follow_symlinks=False)

        self._entries[path] = BackupEntry(original=path, snapshot=snapshot)
        logger.info("Backed up %s", path)
        return snapshot


@dataclass
class SnapshotInfo:
    """One prior run directory under the backup root."""

    stamp: str
    path: Path
    items: int


def list_snapshots(backup_root: Path) -> list[SnapshotInfo]:
    """Prior run directories, newest first."""
    if not backup_root.is_dir():
        return []
    snapshots = [
        SnapshotInfo(stamp=d.name, path=d, items=sum(1 for _ in d.iterdir()))
        for d in backup_root.iterdir()
        if d.is_dir()
    ]
    return sorted(snapshots, key=lambda s: s.stamp, reverse=True)

"""
Run context: everything one install/update invocation owns.

A ``RunContext`` is created per run and used as a context manager:

    with RunContext(manifest, source_root, home, mode="update") as ctx:
        ...

It owns the Tracker, the BackupManager, the RunReport and the run-log
handler. The handler is attached on enter and released on every exit
path, including exceptions. Nothing in here outlives the run except
the files it writes.

Dry runs never touch disk: no run log, no backups.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from dotkit.core.models.manifest import Manifest, expand_destination
from dotkit.core.models.report import RunReport
from dotkit.core.observability.logging_config import RUN_LOGGER, attach_run_log, detach_run_log
from dotkit.core.services.backup import BackupManager, new_stamp
from dotkit.core.services.managed_files import ResolvedFile, resolve_managed_files
from dotkit.core.services.tracker import Tracker

logger = logging.getLogger(__name__)
run_log = logging.getLogger(RUN_LOGGER)


@dataclass
class RunContext:
    """Per-invocation state for a reconcile run."""

    manifest: Manifest
    source_root: Path
    home: Path
    mode: str = "update"
    dry_run: bool = False
    repo_path: Path | None = None
    stamp: str = field(default_factory=new_stamp)

    tracker: Tracker = field(default_factory=Tracker)
    backups: BackupManager = field(init=False)
    report: RunReport = field(init=False)
    _run_log: logging.Handler | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        self.backups = BackupManager(
            self.backup_root, self.home, stamp=self.stamp, dry_run=self.dry_run
        )
        self.report = RunReport(mode=self.mode, dry_run=self.dry_run)

    # ── Paths ───────────────────────────────────────────────────

    def path(self, value: str) -> Path:
        """Expand a manifest path (``~/``, absolute, or ``{repo}/``)."""
        return expand_destination(value, self.home, self.repo_path)

    @property
    def backup_root(self) -> Path:
        return self.path(self.manifest.settings.backup_root)

    @property
    def state_dir(self) -> Path:
        return self.path(self.manifest.settings.state_dir)

    @property
    def log_file(self) -> Path:
        return self.path(self.manifest.settings.log_file)

    @property
    def summary_file(self) -> Path:
        return self.path(self.manifest.settings.summary_file)

    def managed_files(self) -> list[ResolvedFile]:
        return resolve_managed_files(
            self.manifest, self.source_root, self.home, self.repo_path
        )

    # ── Lifecycle ───────────────────────────────────────────────

    def __enter__(self) -> RunContext:
        if not self.dry_run:
            self._run_log = attach_run_log(self.log_file, truncate=True)
            run_log.info(
                "=== %s started %s ===",
                self.mode.capitalize(),
                datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            )
        logger.debug("Run %s (%s, dry_run=%s)", self.stamp, self.mode, self.dry_run)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._run_log is not None:
            run_log.info("=== %s finished (%s) ===", self.mode.capitalize(), self.report.status)
            detach_run_log(self._run_log)
            self._run_log = None
        return False

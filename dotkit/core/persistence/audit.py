"""
Audit ledger: append-only history of reconcile runs.

Every install/update run writes one entry to an NDJSON (newline-delimited
JSON) file under the state directory, whatever its outcome. Entries are
never modified or deleted.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterator

from pydantic import BaseModel, Field

from dotkit.core.models.report import RunReport

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_FILE = "audit.ndjson"


class AuditEntry(BaseModel):
    """One finished (or aborted) install/update run."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""
    mode: str = ""                 # install, update
    status: str = ""               # ok, partial, failed, aborted
    dry_run: bool = False
    updated: int = 0
    unchanged: int = 0
    failures: int = 0
    backups: int = 0
    backup_dir: str | None = None
    groups_run: list[str] = Field(default_factory=list)
    groups_skipped: list[str] = Field(default_factory=list)
    duration_ms: int = 0
    errors: list[str] = Field(default_factory=list)
    # error_kind and similar extras
    context: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_report(
        cls,
        report: RunReport,
        operation_id: str = "",
        duration_ms: int = 0,
        **kwargs: Any,
    ) -> AuditEntry:
        return cls(
            operation_id=operation_id,
            mode=report.mode,
            status=report.status,
            dry_run=report.dry_run,
            updated=len(report.updated),
            unchanged=len(report.unchanged),
            failures=len(report.failures),
            backups=len(report.backups),
            backup_dir=str(report.backup_dir) if report.backup_dir else None,
            groups_run=list(report.groups_run),
            groups_skipped=list(report.groups_skipped),
            duration_ms=duration_ms,
            errors=[f"{f.action}: {f.message}" for f in report.failures],
            **kwargs,
        )


class AuditWriter:
    """The ``audit.ndjson`` ledger: one JSON object per line, append-only."""

    def __init__(self, path: Path | None = None, state_dir: Path | None = None):
        if path is None:
            path = (state_dir or Path.cwd()) / DEFAULT_AUDIT_FILE
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append ``entry``. A ledger that cannot be written is logged, not raised."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(entry.model_dump_json() + "\n")
        except OSError as e:
            logger.error("Cannot append to audit ledger %s: %s", self._path, e)
            return
        logger.debug("Audit: %s %s -> %s", entry.operation_id, entry.mode, entry.status)

    def read_all(self) -> list[AuditEntry]:
        """Every readable entry, oldest first."""
        entries = []
        for number, line in self._lines():
            try:
                entries.append(AuditEntry.model_validate_json(line))
            except ValueError as e:
                logger.warning("%s:%d: unreadable audit entry skipped (%s)", self._path, number, e)
        return entries

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        return self.read_all()[-n:] if n > 0 else []

    def entry_count(self) -> int:
        return sum(1 for _ in self._lines())

    def _lines(self) -> Iterator[tuple[int, str]]:
        if not self._path.is_file():
            return
        try:
            with self._path.open(encoding="utf-8") as f:
                for number, line in enumerate(f, start=1):
                    if line.strip():
                        yield number, line.strip()
        except OSError as e:
            logger.error("Cannot read audit ledger %s: %s", self._path, e)


def generate_operation_id() -> str:
    """``op-<UTC yyyymmdd-HHMMSS>-<6 hex>``."""
    return f"op-{datetime.now(UTC):%Y%m%d-%H%M%S}-{uuid.uuid4().hex[:6]}"

"""
Run report models: what one reconcile run did.

A ``RunReport`` is built incrementally while groups execute, finalized
exactly once at the end of the run, and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from dotkit.core.models.version import Version


@dataclass(frozen=True)
class VersionRecord:
    """Before/after version of one managed item."""

    name: str
    previous: Version
    current: Version

    @property
    def changed(self) -> bool:
        return not self.current.is_sentinel and self.previous != self.current


@dataclass(frozen=True)
class FailureRecord:
    """A sub-action that failed; the run carried on."""

    action: str
    message: str
    group: str = ""


@dataclass(frozen=True)
class BackupEntry:
    """A destination snapshotted before it was overwritten."""

    original: Path
    snapshot: Path


@dataclass
class RunReport:
    """Aggregated outcome of a run.

    ``updated`` holds ``(name, old, new)`` triples and ``unchanged``
    holds ``(name, current)`` pairs, both ordered by name.
    """

    mode: str = ""
    started_at: datetime = field(default_factory=datetime.now)
    updated: list[tuple[str, str, str]] = field(default_factory=list)
    unchanged: list[tuple[str, str]] = field(default_factory=list)
    failures: list[FailureRecord] = field(default_factory=list)
    backups: list[BackupEntry] = field(default_factory=list)
    groups_run: list[str] = field(default_factory=list)
    groups_skipped: list[str] = field(default_factory=list)
    backup_dir: Path | None = None
    dry_run: bool = False
    _final: bool = field(default=False, repr=False)

    @property
    def finalized(self) -> bool:
        return self._final

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def status(self) -> str:
        if not self.failures:
            return "ok"
        if self.updated or self.unchanged or self.backups:
            return "partial"
        return "failed"

    def _check_open(self) -> None:
        if self._final:
            raise RuntimeError("RunReport is finalized and can no longer change")

    def add_failure(self, action: str, message: str, group: str = "") -> None:
        self._check_open()
        self.failures.append(FailureRecord(action=action, message=message, group=group))

    def add_backup(self, entry: BackupEntry) -> None:
        self._check_open()
        self.backups.append(entry)

    def mark_group(self, name: str, ran: bool) -> None:
        self._check_open()
        (self.groups_run if ran else self.groups_skipped).append(name)

    def finalize(
        self,
        updated: list[tuple[str, str, str]],
        unchanged: list[tuple[str, str]],
    ) -> None:
        """Freeze the report with the tracker's final classification."""
        self._check_open()
        self.updated = list(updated)
        self.unchanged = list(unchanged)
        self._final = True

    def render(self) -> str:
        """Human-readable summary. Finalizes the report if still open."""
        if not self._final:
            self.finalize(self.updated, self.unchanged)

        title = "Install" if self.mode == "install" else "Update"
        lines = [
            f"{title} Summary - {self.started_at:%a %b %d %H:%M:%S %Y}",
            "=" * 42,
            "",
            "UPDATED",
            "-" * 16,
        ]
        if self.updated:
            lines += _columns([("Software", "Previous", "Current"), *self.updated])
        else:
            lines.append("No updates applied.")

        lines += ["", "UNCHANGED", "-" * 16]
        if self.unchanged:
            lines += _columns([("Software", "Current"), *self.unchanged])
        else:
            lines.append("None")

        if self.failures:
            lines += ["", "FAILURES", "-" * 16]
            lines += _columns(
                [("Action", "Error")] + [(f.action, f.message) for f in self.failures]
            )

        if self.backups:
            lines += ["", f"Backups: {len(self.backups)} item(s) in {self.backup_dir}"]

        return "\n".join(lines) + "\n"

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "status": self.status,
            "dry_run": self.dry_run,
            "updated": [
                {"name": n, "previous": old, "current": new} for n, old, new in self.updated
            ],
            "unchanged": [{"name": n, "current": cur} for n, cur in self.unchanged],
            "failures": [
                {"action": f.action, "message": f.message, "group": f.group}
                for f in self.failures
            ],
            "backups": [
                {"original": str(b.original), "snapshot": str(b.snapshot)} for b in self.backups
            ],
            "backup_dir": str(self.backup_dir) if self.backup_dir else None,
            "groups_run": list(self.groups_run),
            "groups_skipped": list(self.groups_skipped),
        }


def _columns(rows: list[tuple[str, ...]]) -> list[str]:
    """Left-align rows into space-separated columns (like ``column -t``)."""
    widths = [max(len(str(row[i])) for row in rows) for i in range(len(rows[0]))]
    out = []
    for row in rows:
        cells = [str(cell).ljust(widths[i]) for i, cell in enumerate(row)]
        out.append("  ".join(cells).rstrip())
    return out

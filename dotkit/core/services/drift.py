"""
Drift detection: compare canonical sources with their deployed copies.

Each managed pair is classified fresh on every invocation:

    MISSING  destination absent
    OK       byte-for-byte identical
    DRIFTED  anything else; a short unified diff identifies the change

Nothing is persisted. A non-zero alert count is the signal automation
gates on.
"""

from __future__ import annotations

import difflib
import filecmp
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path

from dotkit.core.models.manifest import Manifest
from dotkit.core.services.managed_files import ResolvedFile, resolve_managed_files

logger = logging.getLogger(__name__)

DEFAULT_DIFF_LINES = 12
NO_NEWLINE = "\\ No newline at end of file"


class DriftStatus(str, Enum):
    OK = "ok"
    DRIFTED = "drifted"
    MISSING = "missing"


@dataclass
class DriftResult:
    """Classification of one managed pair."""

    label: str
    source: Path
    destination: Path
    status: DriftStatus
    diff: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is DriftStatus.OK

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "source": str(self.source),
            "destination": str(self.destination),
            "status": self.status.value,
            "diff": list(self.diff),
        }


@dataclass
class DriftReport:
    """All pairs checked in one invocation."""

    checked_at: str = field(default_factory=lambda: datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"))
    results: list[DriftResult] = field(default_factory=list)

    @property
    def alerts(self) -> int:
        """Number of non-OK pairs."""
        return sum(1 for r in self.results if not r.ok)

    @property
    def clear(self) -> bool:
        return self.alerts == 0

    def by_status(self, status: DriftStatus) -> list[DriftResult]:
        return [r for r in self.results if r.status is status]

    def to_dict(self) -> dict:
        return {
            "checked_at": self.checked_at,
            "status": "clear" if self.clear else "alert",
            "alerts": self.alerts,
            "results": [r.to_dict() for r in self.results],
        }


def check(
    source: Path,
    destination: Path,
    label: str = "",
    diff_lines: int = DEFAULT_DIFF_LINES,
) -> DriftResult:
    """Classify one source/destination pair."""
    label = label or destination.name

    if not destination.is_file():
        return DriftResult(label, source, destination, DriftStatus.MISSING)

    if source.is_file() and filecmp.cmp(source, destination, shallow=False):
        return DriftResult(label, source, destination, DriftStatus.OK)

    return DriftResult(
        label,
        source,
        destination,
        DriftStatus.DRIFTED,
        diff=bounded_diff(source, destination, label, diff_lines),
    )


def bounded_diff(source: Path, destination: Path, label: str, limit: int) -> list[str]:
    """First ``limit`` lines of a unified diff, headed with the pair label.

    Line endings take part in the comparison, so a pair that differs
    only in a missing final newline or CRLF endings still shows
    evidence: a carriage return renders as ``^M`` and a last line
    without a newline is followed by the ``diff -u`` marker.
    """
    diff = difflib.unified_diff(
        _read_lines(source),
        _read_lines(destination),
        fromfile=f"{label} (source)",
        tofile=f"{label} (deployed)",
    )
    lines: list[str] = []
    for line in diff:
        lines.extend(_render(line))
        if len(lines) >= limit:
            break
    return lines[:limit]


def expand_pairs(
    manifest: Manifest,
    source_root: Path,
    home: Path,
    repo_path: Path | None = None,
) -> list[ResolvedFile]:
    """Static managed pairs plus glob-expanded families."""
    return resolve_managed_files(manifest, source_root, home, repo_path)


def check_all(files: list[ResolvedFile], diff_lines: int = DEFAULT_DIFF_LINES) -> DriftReport:
    """Check every pair; the report's ``alerts`` counts the non-OK ones.

    A seeded pair only has to exist: its deployed copy is user-owned.
    """
    report = DriftReport()
    for item in files:
        if item.seed and item.destination.is_file():
            result = DriftResult(item.label, item.source, item.destination, DriftStatus.OK)
        else:
            result = check(item.source, item.destination, item.label, diff_lines)
        logger.debug("%s: %s", item.label, result.status.value)
        report.results.append(result)
    return report


def _read_lines(path: Path) -> list[str]:
    """Lines split on LF only, each keeping its ending."""
    if not path.is_file():
        return []
    text = path.read_bytes().decode("utf-8", errors="replace")
    lines = [line + "\n" for line in text.split("\n")]
    lines[-1] = lines[-1][:-1]
    if not lines[-1]:
        lines.pop()
    return lines


def _render(line: str) -> list[str]:
    if line.endswith("\n"):
        return [line[:-1].replace("\r", "^M")]
    return [line.replace("\r", "^M"), NO_NEWLINE]

"""
Tracker: classify before/after versions into updated and unchanged.

An item is *changed* only when the new version is a real value and
differs from the old one. A sentinel ``new`` (absent/unknown) is always
unchanged: a failed lookup must never be reported as an update.
"""

from __future__ import annotations

import logging

from dotkit.core.models.report import VersionRecord
from dotkit.core.models.version import Version

logger = logging.getLogger(__name__)


class Tracker:
    """Per-run collection of VersionRecords, keyed by item name."""

    def __init__(self) -> None:
        self._records: dict[str, VersionRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def record(self, name: str, old: Version, new: Version) -> bool:
        """Record one item. Returns True if it counts as updated.

        A name already classified as updated in this run is not demoted
        by a later unchanged record (e.g. brew's outdated pass followed
        by the baseline pass over the same formula).
        """
        rec = VersionRecord(name=name, previous=old, current=new)
        existing = self._records.get(name)

        if rec.changed:
            if existing is not None and existing.changed:
                rec = VersionRecord(name=name, previous=existing.previous, current=new)
            self._records[name] = rec
            logger.info("%s updated (%s -> %s)", name, rec.previous, new)
            return True

        if existing is None or not existing.changed:
            self._records[name] = rec
        logger.info("%s unchanged (%s)", name, new)
        return False

    @property
    def records(self) -> list[VersionRecord]:
        return [self._records[k] for k in sorted(self._records)]

    def updated(self) -> list[tuple[str, str, str]]:
        """``(name, old, new)`` for every changed item, ordered by name."""
        return [
            (r.name, str(r.previous), str(r.current)) for r in self.records if r.changed
        ]

    def unchanged(self) -> list[tuple[str, str]]:
        """``(name, current)`` for every unchanged item, ordered by name."""
        return [(r.name, str(r.current)) for r in self.records if not r.changed]

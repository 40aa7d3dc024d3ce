"""
Version: explicit result type for an installed-version lookup.

Replaces the "Not Installed" / "Unknown" string sentinels: a probe
returns one of three shapes and callers branch on ``kind`` instead of
comparing strings. ``str()`` still renders the familiar labels for
reports.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ABSENT_LABEL = "Not Installed"
UNKNOWN_LABEL = "Unknown"


@dataclass(frozen=True)
class Version:
    """Installed version of a tool: absent, unknown, or a concrete value."""

    kind: Literal["absent", "unknown", "value"]
    value: str = ""

    @classmethod
    def absent(cls) -> Version:
        """Confirmed not installed."""
        return cls("absent")

    @classmethod
    def unknown(cls) -> Version:
        """Present (or undeterminable) but the version could not be read."""
        return cls("unknown")

    @classmethod
    def of(cls, value: str | None) -> Version:
        """Wrap a version string; blank input becomes ``unknown``."""
        value = (value or "").strip()
        if not value:
            return cls.unknown()
        return cls("value", value)

    @classmethod
    def parse(cls, text: str | None) -> Version:
        """Inverse of ``str()``, used when reading labels back from reports."""
        text = (text or "").strip()
        if text == ABSENT_LABEL:
            return cls.absent()
        if text in ("", UNKNOWN_LABEL):
            return cls.unknown()
        return cls("value", text)

    @property
    def is_sentinel(self) -> bool:
        return self.kind != "value"

    @property
    def is_absent(self) -> bool:
        return self.kind == "absent"

    def __str__(self) -> str:
        if self.kind == "absent":
            return ABSENT_LABEL
        if self.kind == "unknown":
            return UNKNOWN_LABEL
        return self.value

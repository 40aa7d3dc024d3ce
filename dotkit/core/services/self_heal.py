"""
Self-heal: verify a dependent tool's storage backend, migrate once.

Protocol (bounded to exactly one remediation):

    diagnose → healthy? done
             → remediate (once) → diagnose → healthy? done
                                            → VerificationError

"Healthy" means the backend field reports the desired backend and no
known regression signature appears anywhere in the diagnostic output.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from dotkit.core.errors import VerificationError
from dotkit.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Keys tried, in order, when a structured check carries its value.
_VALUE_KEYS = ("value", "message", "detail", "status")


@dataclass
class Diagnosis:
    """Parsed output of one diagnostic run."""

    raw: str
    checks: dict[str, str] = field(default_factory=dict)
    backend: str | None = None
    regressions: list[str] = field(default_factory=list)

    def healthy(self, desired_backend: str) -> bool:
        return self.backend == desired_backend and not self.regressions


def parse_checks(output: str) -> dict[str, str]:
    """Key/value checks from diagnostic output.

    JSON is preferred: top-level scalars, plus a ``checks`` list of
    ``{"name": ..., "value"/"message"/"status": ...}`` objects. Anything
    that is not JSON falls back to ``key: value`` / ``key=value`` lines.
    Keys are lower-cased.
    """
    try:
        data = json.loads(output)
    except (json.JSONDecodeError, TypeError):
        return _parse_lines(output)

    checks: dict[str, str] = {}
    if isinstance(data, dict):
        for key, value in data.items():
            if isinstance(value, (str, int, float, bool)):
                checks[str(key).lower()] = str(value)
        items = data.get("checks", [])
    elif isinstance(data, list):
        items = data
    else:
        items = []

    for item in items if isinstance(items, list) else []:
        if not isinstance(item, dict) or "name" not in item:
            continue
        checks[str(item["name"]).lower()] = _check_value(item)
    return checks


def _check_value(item: dict[str, Any]) -> str:
    for key in _VALUE_KEYS:
        if key in item and item[key] is not None:
            return str(item[key])
    return ""


def _parse_lines(output: str) -> dict[str, str]:
    checks: dict[str, str] = {}
    for line in output.splitlines():
        for sep in (":", "="):
            if sep in line:
                key, _, value = line.partition(sep)
                key = key.strip().lower()
                if key:
                    checks[key] = value.strip()
                break
    return checks


class SelfHeal:
    """One dependent tool's backend check with a single remediation.

    Args:
        name: Human-readable tool name used in messages.
        diagnose: Returns the raw diagnostic output.
        remediate: Runs the migration; returns its Receipt.
        backend_field: Check name carrying the backend.
        desired_backend: Value the backend must report.
        regression_signatures: Substrings that mark a known-bad build.
    """

    def __init__(
        self,
        name: str,
        diagnose: Callable[[], str],
        remediate: Callable[[], Receipt],
        backend_field: str,
        desired_backend: str,
        regression_signatures: list[str] | None = None,
    ):
        self.name = name
        self._diagnose = diagnose
        self._remediate = remediate
        self.backend_field = backend_field.lower()
        self.desired_backend = desired_backend
        self.regression_signatures = list(regression_signatures or [])
        self.remediation_attempts = 0

    def diagnose(self) -> Diagnosis:
        raw = self._diagnose()
        checks = parse_checks(raw)
        backend = checks.get(self.backend_field)
        regressions = [sig for sig in self.regression_signatures if sig in raw]
        return Diagnosis(raw=raw, checks=checks, backend=backend, regressions=regressions)

    def run(self) -> Diagnosis:
        """Run the protocol. Returns the final healthy diagnosis.

        Raises:
            VerificationError: Still unhealthy after the one remediation.
        """
        first = self.diagnose()
        if first.healthy(self.desired_backend):
            logger.info("%s backend OK (%s)", self.name, first.backend)
            return first

        logger.warning(
            "%s backend is %s (want %s)%s; migrating",
            self.name,
            first.backend or "unknown",
            self.desired_backend,
            f", regression: {', '.join(first.regressions)}" if first.regressions else "",
        )
        self.remediation_attempts += 1
        receipt = self._remediate()
        if receipt.failed:
            logger.warning("%s migration failed: %s", self.name, receipt.error)

        second = self.diagnose()
        if second.regressions:
            raise VerificationError(
                f"{self.name}: known regression detected after migration "
                f"({', '.join(second.regressions)})",
                evidence=second.raw,
            )
        if second.backend != self.desired_backend:
            detail = f"; migration error: {receipt.error}" if receipt.failed else ""
            raise VerificationError(
                f"{self.name}: backend is {second.backend or 'unknown'} after migration, "
                f"expected {self.desired_backend}{detail}",
                evidence=second.raw,
            )

        logger.info("%s backend migrated to %s", self.name, second.backend)
        return second

"""
Drift use case: compare every managed pair with its deployed copy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from dotkit.core.config.loader import ConfigError, find_manifest_file, load_manifest, source_root
from dotkit.core.services.drift import DriftReport, check_all, expand_pairs

logger = logging.getLogger(__name__)


@dataclass
class DriftRunResult:
    """Result of a drift check."""

    report: DriftReport | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return self.report.to_dict() if self.report else {}


def run_drift(
    config_path: Path | None = None,
    diff_lines: int | None = None,
    home: Path | None = None,
    repo_path: Path | None = None,
) -> DriftRunResult:
    """Check all managed pairs. ``diff_lines`` defaults to the manifest setting."""
    result = DriftRunResult()

    try:
        if config_path is None:
            config_path = find_manifest_file()
        manifest = load_manifest(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    assert config_path is not None
    pairs = expand_pairs(manifest, source_root(config_path), home or Path.home(), repo_path)
    limit = diff_lines if diff_lines is not None else manifest.settings.diff_lines

    result.report = check_all(pairs, diff_lines=limit)
    logger.info("Checked %d pair(s), %d alert(s)", len(pairs), result.report.alerts)
    return result

"""
Summary file: the rendered RunReport of the most recent run.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dotkit.core.models.report import RunReport

logger = logging.getLogger(__name__)


def write_summary(report: RunReport, path: Path) -> Path | None:
    """Render ``report`` and overwrite ``path`` with it.

    Returns the path written, or None if the write failed (the run
    outcome does not depend on it).
    """
    text = report.render()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        logger.error("Failed to write summary %s: %s", path, e)
        return None
    logger.info("Summary written to %s", path)
    return path

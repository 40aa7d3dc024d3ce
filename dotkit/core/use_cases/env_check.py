"""
Environment check use case: report what a fresh install will run into.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from dotkit.core.config.loader import ConfigError, load_manifest
from dotkit.core.services.env_check import EnvReport, check_environment

logger = logging.getLogger(__name__)


@dataclass
class EnvCheckResult:
    report: EnvReport | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return self.report.to_dict() if self.report else {}


def run_env_check(
    config_path: Path | None = None,
    home: Path | None = None,
    which: Callable[[str], str | None] = shutil.which,
    login_shell: str | None = None,
) -> EnvCheckResult:
    """Check the machine against the manifest's ``environment`` section."""
    result = EnvCheckResult()
    try:
        manifest = load_manifest(config_path)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.report = check_environment(
        manifest.environment, home or Path.home(), which=which, login_shell=login_shell
    )
    logger.info("Environment check: %d problem(s)", result.report.problems)
    return result

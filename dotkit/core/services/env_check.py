"""
Environment check: a read-only look at the machine before an install.

Answers the questions a fresh bootstrap runs into first: is the package
manager there, is the login shell the expected one, how many baseline
tools are still missing from PATH, and are the files the shell setup
relies on in place. Nothing is changed.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from dotkit.core.models.manifest import EnvironmentChecks, expand_destination

logger = logging.getLogger(__name__)


@dataclass
class EnvCheck:
    """One line of the environment report."""

    name: str
    ok: bool
    detail: str = ""

    def to_dict(self) -> dict:
        return {"name": self.name, "ok": self.ok, "detail": self.detail}


@dataclass
class EnvReport:
    checks: list[EnvCheck] = field(default_factory=list)
    missing_tools: list[str] = field(default_factory=list)

    @property
    def problems(self) -> int:
        return sum(1 for c in self.checks if not c.ok)

    @property
    def ok(self) -> bool:
        return self.problems == 0

    def to_dict(self) -> dict:
        return {
            "status": "ready" if self.ok else "incomplete",
            "problems": self.problems,
            "missing_tools": list(self.missing_tools),
            "checks": [c.to_dict() for c in self.checks],
        }


def check_environment(
    checks: EnvironmentChecks,
    home: Path,
    which: Callable[[str], str | None] = shutil.which,
    login_shell: str | None = None,
) -> EnvReport:
    """Run every configured check.

    Args:
        checks: The manifest's ``environment`` section.
        home: Home directory for ``~/`` paths.
        which: PATH lookup.
        login_shell: Login shell path (default: ``$SHELL``).
    """
    report = EnvReport()

    if checks.manager:
        found = which(checks.manager)
        report.checks.append(
            EnvCheck(f"{checks.manager} installed", bool(found), found or "not on PATH")
        )

    if checks.shell:
        shell = os.environ.get("SHELL", "") if login_shell is None else login_shell
        report.checks.append(
            EnvCheck(
                f"default shell is {checks.shell}",
                Path(shell).name == checks.shell,
                shell or "$SHELL not set",
            )
        )

    if checks.tools:
        report.missing_tools = [tool for tool in checks.tools if not which(tool)]
        missing = len(report.missing_tools)
        detail = ", ".join(report.missing_tools) if missing else f"all {len(checks.tools)} present"
        report.checks.append(
            EnvCheck(f"{missing} of {len(checks.tools)} baseline tools missing", missing == 0, detail)
        )

    for raw in checks.files:
        path = expand_destination(raw, home)
        report.checks.append(EnvCheck(f"{raw} exists", path.exists(), "" if path.exists() else "absent"))

    logger.debug("Environment check: %d problem(s)", report.problems)
    return report

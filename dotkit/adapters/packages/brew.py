"""
Homebrew adapter: formula and cask operations.

Wraps the ``brew`` CLI. ``cask: True`` in the action params switches any
package operation to its ``--cask`` form.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from dotkit.adapters.base import CommandAdapter

logger = logging.getLogger(__name__)

# Read-only query; run directly by the engine, never dispatched.
OUTDATED_COMMAND = ["brew", "outdated", "--json=v2"]


class BrewAdapter(CommandAdapter):
    """Homebrew operations.

    Action params:
        operation (str): One of 'install', 'upgrade', 'reinstall',
                         'update', 'cleanup'.
        package (str): Formula or cask name. Optional for 'upgrade',
                       which then upgrades every outdated formula.
        cask (bool): Treat ``package`` as a cask.
    """

    OPERATIONS = frozenset({"install", "upgrade", "reinstall", "update", "cleanup"})
    REQUIRED_PARAMS = {
        "install": ("package",),
        "reinstall": ("package",),
    }

    @property
    def name(self) -> str:
        return "brew"

    def build_command(self, operation: str, params: dict[str, Any]) -> list[str]:
        if operation in ("update", "cleanup"):
            return ["brew", operation]

        package = params.get("package")
        if operation == "upgrade" and not package:
            return ["brew", "upgrade", "--formula"]

        cmd = ["brew", operation]
        if params.get("cask"):
            cmd.append("--cask")
        cmd.append(package)
        return cmd


def parse_outdated(output: str) -> tuple[list[tuple[str, str, str]], list[tuple[str, str, str]]]:
    """Parse ``brew outdated --json=v2`` output.

    Returns:
        ``(formulae, casks)``, each a list of ``(name, installed, available)``.
        Malformed output yields two empty lists.
    """
    try:
        data = json.loads(output or "{}")
    except (json.JSONDecodeError, ValueError):
        logger.debug("Unparseable brew outdated output")
        return [], []
    if not isinstance(data, dict):
        return [], []
    return _rows(data.get("formulae")), _rows(data.get("casks"))


def _rows(entries: Any) -> list[tuple[str, str, str]]:
    rows: list[tuple[str, str, str]] = []
    for entry in entries if isinstance(entries, list) else []:
        name = entry.get("name", "") if isinstance(entry, dict) else ""
        if not name:
            continue
        installed = entry.get("installed_versions") or []
        if isinstance(installed, str):
            installed = [installed]
        old = installed[-1] if installed else ""
        rows.append((name, old, entry.get("current_version", "")))
    return rows

"""
npm adapter: global package installs.
"""

from __future__ import annotations

import logging
from typing import Any

from dotkit.adapters.base import CommandAdapter

logger = logging.getLogger(__name__)


class NpmAdapter(CommandAdapter):
    """Global npm operations.

    Action params:
        operation (str): One of 'install', 'upgrade'.
        package (str): Package name.

    Upgrades install ``<pkg>@latest``; installs take whatever npm
    resolves by default.
    """

    OPERATIONS = frozenset({"install", "upgrade"})
    REQUIRED_PARAMS = {"install": ("package",), "upgrade": ("package",)}

    @property
    def name(self) -> str:
        return "npm"

    def build_command(self, operation: str, params: dict[str, Any]) -> list[str]:
        package = params["package"]
        if operation == "upgrade":
            package = f"{package}@latest"
        return ["npm", "install", "-g", package]

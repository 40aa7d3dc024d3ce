"""
Git adapter: keep plugin and framework checkouts current.

Provides the two git operations reconciliation needs (clone a missing
checkout, fast-forward an existing one) through the adapter protocol.
Uses the git CLI, never a library binding.
"""

from __future__ import annotations

import logging
from typing import Any

from dotkit.adapters.base import CommandAdapter

logger = logging.getLogger(__name__)


class GitAdapter(CommandAdapter):
    """Git checkout operations.

    Action params:
        operation (str): One of 'pull', 'clone'.
        path (str): Checkout directory.
        url (str): Remote URL (for 'clone').
    """

    OPERATIONS = frozenset({"pull", "clone"})
    REQUIRED_PARAMS = {"pull": ("path",), "clone": ("path", "url")}

    @property
    def name(self) -> str:
        return "git"

    def build_command(self, operation: str, params: dict[str, Any]) -> list[str]:
        path = str(params["path"])
        if operation == "pull":
            return ["git", "-C", path, "pull", "--ff-only", "--quiet"]
        return ["git", "clone", "--depth", "1", params["url"], path]

"""
Shell command adapter: run an arbitrary external command.

Used for one-off collaborators that have no dedicated adapter, such
as a shell framework's own upgrade script or ``uv tool install``.
"""

from __future__ import annotations

import logging
from typing import Any

from dotkit.adapters.base import CommandAdapter, ExecutionContext

logger = logging.getLogger(__name__)


class ShellCommandAdapter(CommandAdapter):
    """Execute an argv list and capture output.

    Action params:
        operation (str): Always ``"run"``.
        argv (list[str]): The command to execute.
    """

    OPERATIONS = frozenset({"run"})
    REQUIRED_PARAMS = {"run": ("argv",)}

    @property
    def name(self) -> str:
        return "shell"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        ok, error = super().validate(context)
        if not ok:
            return ok, error
        argv = context.action.params["argv"]
        if not isinstance(argv, list) or not all(isinstance(a, str) for a in argv):
            return False, "'argv' must be a list of strings"
        return True, ""

    def build_command(self, operation: str, params: dict[str, Any]) -> list[str]:
        return list(params["argv"])

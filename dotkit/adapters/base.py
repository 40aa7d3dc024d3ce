"""
Adapter base: how step executors reach brew, npm, git, the shell and
the filesystem.

Step executors never shell out for a mutating operation themselves.
They build an Action, the registry picks the adapter, and the adapter
returns a Receipt.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from dotkit.core.models.action import Action, Receipt
from dotkit.core.services.subprocess_runner import ProgressCallback, Runner, run_command


class ExecutionContext(BaseModel):
    """An Action plus where and how to run it."""

    action: Action
    cwd: str | None = None
    dry_run: bool = False
    params: dict[str, Any] = Field(default_factory=dict)


class Adapter(ABC):
    """One external tool.

    ``execute`` reports every failure through the returned Receipt;
    a subclass that raises is treated as a bug and converted to a
    failure by the registry.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key, matched against ``Action.adapter``."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check the action's params. Returns ``(valid, problem)``."""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Perform the action."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class CommandAdapter(Adapter):
    """Base for adapters that drive a CLI through the shared runner.

    Subclasses declare ``OPERATIONS`` and build the argv for each one
    in ``build_command``.
    """

    OPERATIONS: frozenset[str] = frozenset()
    REQUIRED_PARAMS: dict[str, tuple[str, ...]] = {}

    def __init__(
        self,
        runner: Runner = run_command,
        progress: ProgressCallback | None = None,
    ):
        self._run = runner
        self._progress = progress

    @abstractmethod
    def build_command(self, operation: str, params: dict[str, Any]) -> list[str]:
        """Argv for ``operation``."""

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.action.params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"
        if operation not in self.OPERATIONS:
            valid = ", ".join(sorted(self.OPERATIONS))
            return False, f"Unknown operation '{operation}'. Valid: {valid}"
        for param in self.REQUIRED_PARAMS.get(operation, ()):
            if not context.action.params.get(param):
                return False, f"Missing required param: '{param}' for {operation}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        try:
            cmd = self.build_command(params["operation"], params)
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Cannot build command: {e}",
            )

        result = self._run(cmd, cwd=context.cwd, progress=self._progress)

        if result.get("ok"):
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=(result.get("stdout") or "").strip(),
                duration_ms=result.get("elapsed_ms", 0),
                metadata={"command": cmd, "return_code": result.get("returncode", 0)},
            )

        stderr = (result.get("stderr") or "").strip()
        error = result.get("error", "Command failed")
        if stderr:
            error = f"{error}: {stderr.splitlines()[-1]}"
        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=error,
            duration_ms=result.get("elapsed_ms", 0),
            metadata={
                "command": cmd,
                "return_code": result.get("returncode"),
                "stdout": (result.get("stdout") or "").strip(),
                "stderr": stderr,
            },
        )

"""
Action and Receipt models: what the engine asks an adapter to do, and
what came back.

A failed ``brew install`` or ``git pull`` is a Receipt with
``status="failed"``, never an exception; the engine turns it into a
failure line in the run report and moves on.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ReceiptStatus = Literal["ok", "skipped", "failed"]


class Action(BaseModel):
    """One adapter operation, e.g. ``brew upgrade jq``.

    ``id`` is ``<group>:<seq>`` within a run. ``name`` is the label shown
    in plans and failure lines.
    """

    id: str
    adapter: str
    name: str = ""
    group: str = ""
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def label(self) -> str:
        return self.name or self.id


class Receipt(BaseModel):
    """Outcome of one Action."""

    adapter: str
    action_id: str
    status: ReceiptStatus = "ok"
    output: str = ""
    error: str | None = None
    duration_ms: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **kwargs: Any) -> Receipt:
        """Not attempted. ``reason`` lands in ``output``."""
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **kwargs)

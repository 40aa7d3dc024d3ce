"""
Adapter registry: dispatch point between the engine and the adapters.

Step executors build an ``Action`` and hand it here; the registry finds
the adapter named by ``action.adapter``, validates the parameters and
either runs it or, in dry-run, reports what it would have run. The
result is always a ``Receipt``.
"""

from __future__ import annotations

import logging
import time

from dotkit.adapters.base import Adapter, ExecutionContext
from dotkit.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Adapters keyed by name (``brew``, ``npm``, ``git``, ``shell``, ``filesystem``)."""

    def __init__(self, adapters: list[Adapter] | None = None):
        self._adapters: dict[str, Adapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._adapters:
            logger.warning("Replacing adapter: %s", adapter.name)
        self._adapters[adapter.name] = adapter

    def get(self, name: str) -> Adapter | None:
        return self._adapters.get(name)

    def list_adapters(self) -> list[str]:
        return sorted(self._adapters)

    def execute_action(
        self,
        action: Action,
        cwd: str | None = None,
        dry_run: bool = False,
    ) -> Receipt:
        """Run one action. Never raises.

        An unknown adapter, invalid parameters and an adapter that
        raises anyway all come back as failure receipts. In dry-run the
        action is validated, logged as ``[plan]`` and skipped.
        """
        adapter = self._adapters.get(action.adapter)
        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        context = ExecutionContext(action=action, cwd=cwd, dry_run=dry_run, params=action.params)

        valid, problem = adapter.validate(context)
        if not valid:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation failed: {problem}",
            )

        if dry_run:
            logger.info("[plan] %s", action.label)
            return Receipt.skip(
                adapter=action.adapter,
                action_id=action.id,
                reason=f"[dry-run] Would run {action.label}",
                metadata={"dry_run": True},
            )

        started = time.monotonic()
        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised on %s: %s", action.adapter, action.label, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )
        receipt.duration_ms = int((time.monotonic() - started) * 1000)
        return receipt

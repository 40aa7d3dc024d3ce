"""
Filesystem adapter: deploy and remove managed files.

Provides a receipt-returning interface for the filesystem writes the
engine performs, so they can be dry-run and reported like any other
external action. Backups are taken by the engine before dispatch.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from dotkit.adapters.base import Adapter, ExecutionContext
from dotkit.core.models.action import Receipt

logger = logging.getLogger(__name__)

# Never carried into a bundle copy
_BUNDLE_EXCLUDES = (".git",)


class FilesystemAdapter(Adapter):
    """File and directory operations with receipts.

    Action params:
        operation (str): One of 'copy', 'sync_tree', 'delete'.
        source (str): Source path (for 'copy' and 'sync_tree').
        path (str): Target path (absolute).
        mode (int): Permission bits applied after 'copy'.
    """

    VALID_OPS = {"copy", "sync_tree", "delete"}

    @property
    def name(self) -> str:
        return "filesystem"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        operation = params.get("operation", "")
        if not operation:
            return False, "Missing required param: 'operation'"

        if operation not in self.VALID_OPS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(self.VALID_OPS))}"

        path = params.get("path", "")
        if not path:
            return False, "Missing required param: 'path'"
        if not Path(path).is_absolute():
            return False, f"Target path must be absolute: {path}"

        if operation == "copy":
            source = params.get("source", "")
            if not source or not Path(source).is_file():
                return False, f"Missing source: {source}"
        if operation == "sync_tree":
            source = params.get("source", "")
            if not source or not Path(source).is_dir():
                return False, f"Missing source directory: {source}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        operation = params["operation"]
        target = Path(params["path"])

        try:
            if operation == "copy":
                return self._copy(context, Path(params["source"]), target, params.get("mode"))
            elif operation == "sync_tree":
                return self._sync_tree(context, Path(params["source"]), target)
            elif operation == "delete":
                return self._delete(context, target)
            else:
                return Receipt.failure(
                    adapter=self.name,
                    action_id=context.action.id,
                    error=f"Unknown operation: {operation}",
                )
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Filesystem error: {e}",
            )

    # ── Operations ──────────────────────────────────────────────

    def _copy(
        self, ctx: ExecutionContext, source: Path, target: Path, mode: int | None
    ) -> Receipt:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
        if mode is not None:
            os.chmod(target, mode)
        logger.info("Installed %s", target)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Installed {target}",
            metadata={"source": str(source), "path": str(target), "mode": mode},
        )

    def _sync_tree(self, ctx: ExecutionContext, source: Path, target: Path) -> Receipt:
        """Mirror ``source`` into ``target`` (stale files removed)."""
        if target.exists():
            shutil.rmtree(target)
        shutil.copytree(
            source,
            target,
            symlinks=True,
            ignore=shutil.ignore_patterns(*_BUNDLE_EXCLUDES),
        )
        logger.info("Installed tree %s", target)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Installed {target}",
            metadata={"source": str(source), "path": str(target)},
        )

    def _delete(self, ctx: ExecutionContext, target: Path) -> Receipt:
        if not target.exists() and not target.is_symlink():
            return Receipt.skip(
                adapter=self.name,
                action_id=ctx.action.id,
                reason=f"Already absent: {target}",
            )
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink()
        logger.info("Deleted stale %s", target)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=f"Deleted {target}",
            metadata={"path": str(target)},
        )

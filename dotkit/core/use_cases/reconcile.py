"""
Reconcile use case: run install or update end to end.

This is the top-level orchestrator: it loads the manifest, builds the
adapter registry, opens a RunContext, runs the engine and persists the
outcome (summary file and audit entry). The full vertical slice from
user intent to audited execution.
"""

from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from dotkit.adapters.registry import AdapterRegistry
from dotkit.core.config.loader import ConfigError, find_manifest_file, load_manifest, source_root
from dotkit.core.context import RunContext
from dotkit.core.engine.reconcile import Confirm, ReconcileEngine
from dotkit.core.errors import MissingPrerequisiteError, VerificationError
from dotkit.core.models.report import RunReport
from dotkit.core.persistence.audit import AuditEntry, AuditWriter, generate_operation_id
from dotkit.core.persistence.summary import write_summary
from dotkit.core.services.subprocess_runner import ProgressCallback, Runner, run_command
from dotkit.core.services.version_probe import VersionProbe

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Result of an install or update run."""

    mode: str = ""
    report: RunReport | None = None
    operation_id: str = ""
    summary_path: Path | None = None
    error: str | None = None
    error_kind: str | None = None   # config, prerequisite, verification
    evidence: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        result: dict = {"mode": self.mode, "operation_id": self.operation_id}
        if self.error:
            result["error"] = self.error
            result["error_kind"] = self.error_kind
            if self.evidence:
                result["evidence"] = self.evidence
        if self.report:
            result["report"] = self.report.to_dict()
        if self.summary_path:
            result["summary_path"] = str(self.summary_path)
        return result


def build_registry(
    runner: Runner = run_command,
    progress: ProgressCallback | None = None,
) -> AdapterRegistry:
    """Registry with every adapter the step executors dispatch to."""
    from dotkit.adapters.packages.brew import BrewAdapter
    from dotkit.adapters.packages.npm import NpmAdapter
    from dotkit.adapters.shell.command import ShellCommandAdapter
    from dotkit.adapters.shell.filesystem import FilesystemAdapter
    from dotkit.adapters.vcs.git import GitAdapter

    return AdapterRegistry([
        BrewAdapter(runner=runner, progress=progress),
        NpmAdapter(runner=runner, progress=progress),
        GitAdapter(runner=runner, progress=progress),
        ShellCommandAdapter(runner=runner, progress=progress),
        FilesystemAdapter(),
    ])


def run_reconcile(
    mode: str,
    config_path: Path | None = None,
    confirm: Confirm | None = None,
    dry_run: bool = False,
    repo_path: Path | None = None,
    home: Path | None = None,
    runner: Runner = run_command,
    which: Callable[[str], str | None] = shutil.which,
    progress: ProgressCallback | None = None,
    registry: AdapterRegistry | None = None,
) -> ReconcileResult:
    """Run the ``mode`` groups of the manifest.

    Args:
        mode: ``install`` or ``update``.
        config_path: Explicit dotkit.yml path (default: search upward).
        confirm: Interactive decision hook; None applies group defaults.
        dry_run: Plan only. Nothing is written.
        repo_path: Target repository for ``{repo}`` destinations and bundles.
        home: Home directory (default: the user's).
        runner: Command runner shared by adapters and probes.
        which: PATH lookup.
        progress: Optional progress callback for external commands.
        registry: Optional pre-configured adapter registry.

    Returns:
        ReconcileResult. Fatal conditions are reported in ``error`` and
        ``error_kind``, never raised.
    """
    result = ReconcileResult(mode=mode, operation_id=generate_operation_id())

    # ── Load manifest ───────────────────────────────────────────
    try:
        if config_path is None:
            config_path = find_manifest_file()
        manifest = load_manifest(config_path)
        groups = manifest.groups_for(mode)
    except (ConfigError, ValueError) as e:
        result.error = str(e)
        result.error_kind = "config"
        return result

    assert config_path is not None
    if registry is None:
        registry = build_registry(runner=runner, progress=progress)

    ctx = RunContext(
        manifest=manifest,
        source_root=source_root(config_path),
        home=home or Path.home(),
        mode=mode,
        dry_run=dry_run,
        repo_path=repo_path,
    )

    # ── Run ─────────────────────────────────────────────────────
    start = time.monotonic()
    with ctx:
        engine = ReconcileEngine(
            ctx,
            registry,
            probe=VersionProbe(runner=runner, which=which),
            runner=runner,
            confirm=confirm,
            which=which,
        )
        try:
            result.report = engine.run(groups)
        except MissingPrerequisiteError as e:
            logger.error("%s", e)
            result.error = str(e)
            result.error_kind = "prerequisite"
        except VerificationError as e:
            logger.error("%s", e)
            result.error = str(e)
            result.error_kind = "verification"
            result.evidence = e.evidence
            result.report = engine.finish()

    duration_ms = int((time.monotonic() - start) * 1000)

    # ── Persist ─────────────────────────────────────────────────
    if dry_run:
        return result

    if result.report is not None:
        result.summary_path = write_summary(result.report, ctx.summary_file)

    _audit(result, ctx, duration_ms)
    return result


def _audit(result: ReconcileResult, ctx: RunContext, duration_ms: int) -> None:
    writer = AuditWriter(state_dir=ctx.state_dir)
    if result.report is not None:
        entry = AuditEntry.from_report(
            result.report,
            operation_id=result.operation_id,
            duration_ms=duration_ms,
        )
    else:
        entry = AuditEntry(operation_id=result.operation_id, mode=result.mode, duration_ms=duration_ms)

    if result.error:
        entry.status = "aborted"
        entry.errors.append(result.error)
        entry.context["error_kind"] = result.error_kind
    writer.write(entry)

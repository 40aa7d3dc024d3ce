"""
Reconcile engine: the central orchestration loop.

Takes the ordered groups of a mode (install or update), decides each
one (interactive confirm, or its default), runs its steps through the
step executor and finalizes the RunReport exactly once.

Flow:
    prerequisites → for each group: decide → requires → steps → finalize

Sub-action failures never stop the loop; a step that raises anything
other than a DotkitError is recorded as a failure. Two things do stop it:
``MissingPrerequisiteError`` (before any group runs) and
``VerificationError`` (from a self-heal step).
"""

from __future__ import annotations

import logging
import shutil
from typing import Callable, Iterable

from dotkit.adapters.registry import AdapterRegistry
from dotkit.core.context import RunContext
from dotkit.core.engine.steps import StepExecutor
from dotkit.core.errors import DotkitError, MissingPrerequisiteError
from dotkit.core.models.manifest import Group
from dotkit.core.models.report import RunReport
from dotkit.core.services.subprocess_runner import Runner, run_command
from dotkit.core.services.version_probe import VersionProbe

logger = logging.getLogger(__name__)

# Interactive decision hook: return True to run the group.
Confirm = Callable[[Group], bool]


def check_prerequisites(
    required: Iterable[str],
    which: Callable[[str], str | None] = shutil.which,
) -> None:
    """Fail fast when any required tool is missing.

    Raises:
        MissingPrerequisiteError: Lists every missing tool.
    """
    missing = [tool for tool in required if not which(tool)]
    if missing:
        raise MissingPrerequisiteError(missing)


class ReconcileEngine:
    """Walks groups in order against one RunContext.

    Args:
        ctx: The run's context (tracker, backups, report).
        registry: Adapter registry for every side effect.
        probe: Version probe (defaults to one over ``runner``).
        runner: Command runner for read-only queries.
        confirm: Interactive decision hook. None applies each group's
            default without asking.
        which: PATH lookup.
    """

    def __init__(
        self,
        ctx: RunContext,
        registry: AdapterRegistry,
        probe: VersionProbe | None = None,
        runner: Runner = run_command,
        confirm: Confirm | None = None,
        which: Callable[[str], str | None] = shutil.which,
    ):
        self.ctx = ctx
        self.registry = registry
        self.confirm = confirm
        self._which = which
        self.steps = StepExecutor(
            ctx,
            registry,
            probe or VersionProbe(runner=runner, which=which),
            runner=runner,
            which=which,
        )

    def run(self, groups: list[Group]) -> RunReport:
        """Run every group and return the finalized report.

        Raises:
            MissingPrerequisiteError: A manifest-level required tool is absent.
            VerificationError: A self-heal step could not be verified.
        """
        check_prerequisites(self.ctx.manifest.requires, self._which)

        for group in groups:
            self.run_group(group)

        return self.finish()

    def run_group(self, group: Group) -> bool:
        """Decide and run one group. Returns whether it ran."""
        report = self.ctx.report

        if not self._decide(group):
            logger.info("Skipping %s", group.name)
            report.mark_group(group.name, ran=False)
            return False

        missing = [tool for tool in group.requires if not self._which(tool)]
        if missing:
            logger.warning("Skipping %s: missing %s", group.name, ", ".join(missing))
            report.mark_group(group.name, ran=False)
            return False

        logger.info("▶ %s", group.name)
        report.mark_group(group.name, ran=True)
        for step in group.steps:
            try:
                self.steps.run(step, group)
            except DotkitError:
                raise
            except Exception as e:
                logger.warning("%s/%s failed: %s", group.name, step.kind, e)
                report.add_failure(f"{group.name}: {step.kind}", str(e), group.name)
        return True

    def finish(self) -> RunReport:
        """Finalize the report from the tracker and backups (idempotent)."""
        report = self.ctx.report
        if report.finalized:
            return report

        for entry in self.ctx.backups.entries:
            report.add_backup(entry)
        if self.ctx.backups.count:
            report.backup_dir = self.ctx.backups.run_dir
            logger.info(
                "Backup snapshot: %s (%d item(s))",
                report.backup_dir,
                self.ctx.backups.count,
            )

        report.finalize(self.ctx.tracker.updated(), self.ctx.tracker.unchanged())
        return report

    def _decide(self, group: Group) -> bool:
        if self.confirm is None:
            return group.default
        return bool(self.confirm(group))

"""
Step executors: one method per manifest step kind.

Every external side effect goes through the adapter registry as an
``Action``; read-only queries (version probes, ``brew outdated``,
self-heal diagnostics) go straight to the runner so they still work
in dry-run mode.

A failed sub-action is recorded in the RunReport and the step moves
on to the next item. Only ``VerificationError`` from a self-heal step
escapes.
"""

from __future__ import annotations

import filecmp
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Callable

from dotkit.adapters.packages.brew import OUTDATED_COMMAND, parse_outdated
from dotkit.adapters.registry import AdapterRegistry
from dotkit.core.context import RunContext
from dotkit.core.models.action import Action, Receipt
from dotkit.core.models.manifest import (
    BrewRefreshStep,
    BundleStep,
    CommandStep,
    FilesStep,
    GitStep,
    Group,
    PackagesStep,
    PruneStep,
    SelfHealStep,
)
from dotkit.core.models.version import Version
from dotkit.core.services.managed_files import ResolvedFile, select
from dotkit.core.services.self_heal import SelfHeal
from dotkit.core.services.subprocess_runner import Runner, run_command
from dotkit.core.services.version_probe import VersionProbe

logger = logging.getLogger(__name__)


class StepExecutor:
    """Runs manifest steps against one RunContext."""

    def __init__(
        self,
        ctx: RunContext,
        registry: AdapterRegistry,
        probe: VersionProbe,
        runner: Runner = run_command,
        which: Callable[[str], str | None] = shutil.which,
    ):
        self.ctx = ctx
        self.registry = registry
        self.probe = probe
        self._run = runner
        self._which = which
        self._seq = 0

    def run(self, step: Any, group: Group) -> None:
        handler = getattr(self, "_" + step.kind.replace("-", "_"), None)
        if handler is None:
            raise ValueError(f"No executor for step kind '{step.kind}'")
        handler(step, group)

    # ── Plumbing ────────────────────────────────────────────────

    def _dispatch(
        self,
        group: Group,
        adapter: str,
        name: str,
        record: bool = True,
        cwd: str | None = None,
        **params: Any,
    ) -> Receipt:
        """Execute one action; record a failure unless ``record`` is False."""
        self._seq += 1
        action = Action(
            id=f"{group.name}:{self._seq}",
            name=name,
            adapter=adapter,
            group=group.name,
            params=params,
        )
        receipt = self.registry.execute_action(action, cwd=cwd, dry_run=self.ctx.dry_run)
        if receipt.failed:
            logger.warning("✗ %s: %s", name, receipt.error)
            if record:
                self.ctx.report.add_failure(name, receipt.error or "failed", group.name)
        else:
            logger.debug("%s %s", "✓" if receipt.ok else "⊘", name)
        return receipt

    def _backup(self, path: Path, group: Group) -> bool:
        """Snapshot ``path`` before a write. False if the snapshot failed."""
        try:
            self.ctx.backups.backup(path)
        except OSError as e:
            self.ctx.report.add_failure(f"backup {path}", str(e), group.name)
            return False
        return True

    def _track(self, name: str, old: Version, new: Version) -> None:
        self.ctx.tracker.record(name, old, new)

    # ── packages ────────────────────────────────────────────────

    def _packages(self, step: PackagesStep, group: Group) -> None:
        adapter = "npm" if step.manager == "npm" else "brew"
        cask = step.manager == "cask"

        for name in step.names:
            old = self.probe.probe(name, step.manager)
            if old.is_absent:
                operation = "install"
            elif step.upgrade:
                operation = "upgrade"
            else:
                self._track(name, old, old)
                continue

            label = f"{adapter} {operation}{' --cask' if cask else ''} {name}"
            fallback = step.reinstall_on_failure and operation == "upgrade"
            receipt = self._dispatch(
                group, adapter, label, record=not fallback,
                operation=operation, package=name, cask=cask,
            )
            if receipt.failed and fallback:
                self._dispatch(
                    group, adapter, label.replace("upgrade", "reinstall", 1),
                    operation="reinstall", package=name, cask=cask,
                )

            if self.ctx.dry_run:
                self._track(name, old, old)
                continue
            self._track(name, old, self.probe.probe(name, step.manager))

    # ── brew-refresh ────────────────────────────────────────────

    def _brew_refresh(self, step: BrewRefreshStep, group: Group) -> None:
        if not self._which("brew"):
            self.ctx.report.add_failure("brew update", "brew not found", group.name)
            return

        self._dispatch(group, "brew", "brew update", operation="update")

        result = self._run(list(OUTDATED_COMMAND))
        formulae, casks = parse_outdated(result.get("stdout", ""))
        for name, old, new in casks:
            logger.info("Outdated cask: %s (%s -> %s)", name, old or "?", new or "?")

        if formulae:
            receipt = self._dispatch(
                group, "brew", "brew upgrade --formula", operation="upgrade"
            )
            for name, old, available in formulae:
                if self.ctx.dry_run or receipt.failed:
                    self._track(name, Version.of(old), Version.of(old))
                else:
                    self._track(name, Version.of(old), self.probe.probe(name, "brew"))
        else:
            logger.info("All formulae up to date")

        if step.cleanup:
            self._dispatch(group, "brew", "brew cleanup", operation="cleanup")

    # ── files ───────────────────────────────────────────────────

    def _files(self, step: FilesStep, group: Group) -> None:
        for item in select(self.ctx.managed_files(), step.include):
            self._install_file(item, group)

    def _install_file(self, item: ResolvedFile, group: Group) -> None:
        name = f"install {item.label}"
        if not item.source.is_file():
            self.ctx.report.add_failure(name, f"source missing: {item.source}", group.name)
            return

        dest = item.destination
        if item.seed and (dest.exists() or dest.is_symlink()):
            logger.debug("%s already seeded", item.label)
            return
        if dest.is_file() and filecmp.cmp(item.source, dest, shallow=False):
            if item.mode is None or (os.stat(dest).st_mode & 0o777) == item.mode:
                logger.debug("%s up to date", item.label)
                return

        if not self._backup(dest, group):
            return
        self._dispatch(
            group, "filesystem", name,
            operation="copy", source=str(item.source), path=str(dest), mode=item.mode,
        )

    # ── git ─────────────────────────────────────────────────────

    def _git(self, step: GitStep, group: Group) -> None:
        for repo in step.repos:
            try:
                path = self.ctx.path(repo.path)
            except ValueError as e:
                self.ctx.report.add_failure(f"git {repo.name}", str(e), group.name)
                continue
            if not (path / ".git").exists():
                if not repo.url:
                    logger.warning("%s: %s is not a git checkout, skipping", repo.name, path)
                    continue
                self._dispatch(
                    group, "git", f"git clone {repo.name}",
                    operation="clone", path=str(path), url=repo.url,
                )
                new = Version.absent() if self.ctx.dry_run else self.probe.probe(str(path), "git")
                self._track(repo.name, Version.absent(), new)
                continue

            old = self.probe.probe(str(path), "git")
            self._dispatch(group, "git", f"git pull {repo.name}", operation="pull", path=str(path))
            new = old if self.ctx.dry_run else self.probe.probe(str(path), "git")
            self._track(repo.name, old, new)

    # ── command ─────────────────────────────────────────────────

    def _command(self, step: CommandStep, group: Group) -> None:
        if step.requires and not self._which(step.requires):
            logger.warning("%s: %s not found, skipping", step.name, step.requires)
            return

        old = self.probe.probe(step.track, step.track_manager) if step.track else None
        self._dispatch(group, "shell", step.name, operation="run", argv=list(step.argv))

        if step.track and old is not None:
            new = old if self.ctx.dry_run else self.probe.probe(step.track, step.track_manager)
            self._track(step.track, old, new)

    # ── prune ───────────────────────────────────────────────────

    def _prune(self, step: PruneStep, group: Group) -> None:
        for raw in step.paths:
            try:
                path = self.ctx.path(raw)
            except ValueError as e:
                logger.warning("Cannot prune %s: %s", raw, e)
                continue
            if not path.exists() and not path.is_symlink():
                continue
            if not self._backup(path, group):
                continue
            self._dispatch(group, "filesystem", f"remove stale {path}", operation="delete", path=str(path))

    # ── bundle ──────────────────────────────────────────────────

    def _bundle(self, step: BundleStep, group: Group) -> None:
        repo = self.ctx.repo_path
        if repo is None:
            logger.warning("No repo path set, skipping bundle")
            return
        if not repo.is_dir():
            logger.warning("Repo path does not exist: %s, skipping bundle", repo)
            return

        target = repo / step.subdir
        source = self.ctx.source_root
        if target.resolve().is_relative_to(source.resolve()):
            self.ctx.report.add_failure(
                f"bundle into {target}", "target lies inside the source tree", group.name
            )
            return

        if not self._backup(target, group):
            return
        self._dispatch(
            group, "filesystem", f"bundle into {target}",
            operation="sync_tree", source=str(source), path=str(target),
        )

    # ── self-heal ───────────────────────────────────────────────

    def _self_heal(self, step: SelfHealStep, group: Group) -> None:
        if not self._which(step.diagnose[0]):
            logger.warning("%s: %s not found, skipping backend check", step.name, step.diagnose[0])
            self.ctx.report.add_failure(
                f"{step.name} backend check", f"{step.diagnose[0]} not found", group.name
            )
            return

        def diagnose() -> str:
            result = self._run(list(step.diagnose))
            return result.get("stdout") or result.get("stderr") or ""

        def remediate() -> Receipt:
            return self._dispatch(
                group, "shell", f"{step.name} migrate",
                record=False, operation="run", argv=list(step.remediate),
            )

        heal = SelfHeal(
            name=step.name,
            diagnose=diagnose,
            remediate=remediate,
            backend_field=step.backend_field,
            desired_backend=step.desired_backend,
            regression_signatures=step.regression_signatures,
        )

        if self.ctx.dry_run:
            first = heal.diagnose()
            if not first.healthy(step.desired_backend):
                logger.info("[plan] %s: migrate backend to %s", step.name, step.desired_backend)
            return

        heal.run()

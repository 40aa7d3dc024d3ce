"""
dotkit: CLI entrypoint.

Usage:
    dotkit --help
    dotkit install --yes
    dotkit update -i
    dotkit drift
    dotkit env-check
    dotkit history -n 5
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from dotkit import __version__
from dotkit.core.observability.logging_config import setup_logging

_STATUS_COLORS = {"ok": "green", "partial": "yellow", "failed": "red", "aborted": "red"}


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="dotkit")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to dotkit.yml (default: auto-detect).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """dotkit: install and keep your dotfiles and tool baseline in sync."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("DOTKIT_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("DOTKIT_LOG_FILE"),
        log_file_level=os.environ.get("DOTKIT_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


# ── install / update ────────────────────────────────────────────


def _reconcile_options(fn):
    fn = click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")(fn)
    fn = click.option("--dry-run", is_flag=True, help="Show what would happen; change nothing.")(fn)
    fn = click.option("--yes", "-y", is_flag=True, help="Apply each group's default without asking.")(fn)
    fn = click.option("--interactive", "-i", is_flag=True, help="Ask before each group (default).")(fn)
    return fn


@cli.command()
@_reconcile_options
@click.option(
    "--repo-path",
    type=click.Path(file_okay=False),
    default=None,
    help="Target repository for repo-scoped files and the bundle.",
)
@click.pass_context
def install(
    ctx: click.Context,
    interactive: bool,
    yes: bool,
    dry_run: bool,
    as_json: bool,
    repo_path: str | None,
) -> None:
    """Bootstrap this machine from the manifest."""
    _reconcile(ctx, "install", interactive, yes, dry_run, as_json, repo_path)


@cli.command()
@_reconcile_options
@click.pass_context
def update(
    ctx: click.Context,
    interactive: bool,
    yes: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Update packages, plugins and managed files."""
    _reconcile(ctx, "update", interactive, yes, dry_run, as_json, None)


def _reconcile(
    ctx: click.Context,
    mode: str,
    interactive: bool,
    yes: bool,
    dry_run: bool,
    as_json: bool,
    repo_path: str | None,
) -> None:
    from dotkit.core.use_cases.reconcile import run_reconcile

    quiet = ctx.obj.get("quiet", False)

    # --yes wins when both are given; asking is the default otherwise
    confirm = None
    if not yes and not as_json:
        confirm = lambda group: click.confirm(group.prompt, default=group.default)  # noqa: E731

    def progress(phase: str, label: str) -> None:
        if phase == "start":
            click.secho(f"   → {label}", dim=True, err=True)

    if mode == "install" and not as_json and not quiet:
        from dotkit.core.use_cases.env_check import run_env_check

        env = run_env_check(config_path=ctx.obj.get("config_path"))
        if env.report is not None:
            _print_environment(env.report)

    result = run_reconcile(
        mode,
        config_path=ctx.obj.get("config_path"),
        confirm=confirm,
        dry_run=dry_run,
        repo_path=Path(repo_path).expanduser().resolve() if repo_path else None,
        progress=None if quiet or as_json else progress,
    )

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error:
            sys.exit(1)
        return

    if result.report is not None:
        click.echo()
        click.echo(result.report.render(), nl=False)
        if not quiet:
            color = _STATUS_COLORS.get(result.report.status, "white")
            suffix = " (dry run)" if dry_run else ""
            click.secho(f"\n{mode.capitalize()} {result.report.status}{suffix}", fg=color, bold=True)
            if result.summary_path:
                click.echo(f"   Summary: {result.summary_path}")

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        if result.evidence:
            click.secho("Diagnostic output:", fg="yellow", err=True)
            click.echo(result.evidence.rstrip(), err=True)
        sys.exit(1)


# ── drift ───────────────────────────────────────────────────────


@cli.command()
@click.option("--diff-lines", type=click.IntRange(min=0), default=None, help="Diff lines per drifted file.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def drift(ctx: click.Context, diff_lines: int | None, as_json: bool) -> None:
    """Compare deployed files with their sources. Exit 1 on any alert."""
    from dotkit.core.services.drift import DriftStatus
    from dotkit.core.use_cases.drift import run_drift

    result = run_drift(config_path=ctx.obj.get("config_path"), diff_lines=diff_lines)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error or not result.report.clear:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    report = result.report
    assert report is not None  # guaranteed after error check above

    for item in report.results:
        if item.status is DriftStatus.OK:
            click.secho(f"[OK] {item.label}", fg="green")
        elif item.status is DriftStatus.MISSING:
            click.secho(f"[MISSING] {item.label} ({item.destination})", fg="red")
        else:
            click.secho(f"[DRIFT] {item.label}", fg="yellow")
            for line in item.diff:
                click.echo(f"    {line}")

    click.echo()
    if report.clear:
        click.secho("Drift Status: clear", fg="green", bold=True)
        return
    click.secho(f"Drift Status: alert ({report.alerts} files)", fg="red", bold=True)
    sys.exit(1)


# ── env-check ───────────────────────────────────────────────────


def _print_environment(report) -> None:
    click.secho("[ENVIRONMENT]", fg="cyan", bold=True)
    for item in report.checks:
        mark, color = ("✓", "green") if item.ok else ("✗", "red")
        click.secho(f"   {mark} {item.name}", fg=color, nl=False)
        click.echo(f"  {item.detail}" if item.detail else "")
    click.echo()


@cli.command("env-check")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def env_check(ctx: click.Context, as_json: bool) -> None:
    """Check this machine before an install. Exit 1 if anything is missing."""
    from dotkit.core.use_cases.env_check import run_env_check

    result = run_env_check(config_path=ctx.obj.get("config_path"))

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        if result.error or not result.report.ok:
            sys.exit(1)
        return

    if result.error:
        click.secho(f"❌ {result.error}", fg="red", err=True)
        sys.exit(1)

    report = result.report
    assert report is not None  # guaranteed after error check above

    _print_environment(report)
    if not report.ok:
        click.secho(f"Environment: {report.problems} problem(s)", fg="red", bold=True)
        sys.exit(1)
    click.secho("Environment: ready", fg="green", bold=True)


# ── backups / history ───────────────────────────────────────────


def _settings(ctx: click.Context):
    """Manifest settings, or the defaults when no dotkit.yml is found."""
    from dotkit.core.config.loader import ConfigError, find_manifest_file, load_manifest
    from dotkit.core.models.manifest import Settings

    config_path = ctx.obj.get("config_path") or find_manifest_file()
    if config_path is None:
        return Settings()
    try:
        return load_manifest(config_path).settings
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def backups(ctx: click.Context, as_json: bool) -> None:
    """List backup snapshots, newest first."""
    from dotkit.core.models.manifest import expand_destination
    from dotkit.core.services.backup import list_snapshots

    root = expand_destination(_settings(ctx).backup_root, Path.home())
    snapshots = list_snapshots(root)

    if as_json:
        click.echo(json.dumps(
            {
                "backup_root": str(root),
                "snapshots": [
                    {"stamp": s.stamp, "path": str(s.path), "items": s.items} for s in snapshots
                ],
            },
            indent=2,
        ))
        return

    if not snapshots:
        click.secho(f"No backups found in {root}", fg="yellow")
        return

    click.secho(f"📦 Backups in {root} ({len(snapshots)}):", fg="cyan", bold=True)
    for snap in snapshots:
        click.echo(f"   {snap.stamp}  ({snap.items} item(s))")


@cli.command()
@click.option("-n", "--limit", type=click.IntRange(min=1), default=10, show_default=True,
              help="Number of runs to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, limit: int, as_json: bool) -> None:
    """Show recent install/update runs from the audit ledger."""
    from dotkit.core.models.manifest import expand_destination
    from dotkit.core.persistence.audit import AuditWriter

    ledger = AuditWriter(state_dir=expand_destination(_settings(ctx).state_dir, Path.home()))
    entries = list(reversed(ledger.read_recent(limit)))

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.secho(f"No runs recorded in {ledger.path}", fg="yellow")
        return

    for entry in entries:
        color = _STATUS_COLORS.get(entry.status, "white")
        click.secho(f"{entry.timestamp[:19]}  {entry.mode:<7} {entry.status}", fg=color, nl=False)
        click.echo(
            f"  updated={entry.updated} unchanged={entry.unchanged}"
            f" failures={entry.failures} backups={entry.backups}"
        )
        for error in entry.errors:
            click.echo(f"      ✗ {error}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()

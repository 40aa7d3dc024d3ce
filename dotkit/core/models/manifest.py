"""
Manifest model: the desired state, loaded from dotkit.yml.

This is the canonical truth about what the kit manages: which files
are deployed where, which packages form the baseline, and which
groups the installer and updater walk through (in order).
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, field_validator

REPO_PLACEHOLDER = "{repo}"


def _check_destination(value: str) -> str:
    if not value.startswith(("~/", "/", REPO_PLACEHOLDER)):
        raise ValueError(
            f"destination must be absolute, start with '~/' or '{REPO_PLACEHOLDER}': {value!r}"
        )
    return value


def _check_local_path(value: str) -> str:
    if not value.startswith(("~/", "/")):
        raise ValueError(f"path must be absolute or start with '~/': {value!r}")
    return value


def expand_destination(value: str, home: Path, repo_path: Path | None = None) -> Path:
    """Resolve a manifest destination to an absolute path.

    Raises:
        ValueError: If the destination needs a repo path and none is set.
    """
    if value.startswith(REPO_PLACEHOLDER):
        if repo_path is None:
            raise ValueError(f"destination {value!r} needs a repo path")
        return repo_path / value[len(REPO_PLACEHOLDER):].lstrip("/")
    if value.startswith("~/"):
        return home / value[2:]
    return Path(value)


def parse_mode(mode: str | None) -> int | None:
    """Octal permission string (``"755"``) to an int, or None."""
    if mode is None or mode == "":
        return None
    return int(str(mode), 8)


# ── Settings ────────────────────────────────────────────────────


class Settings(BaseModel):
    """Where run artifacts live. Paths may start with ``~/``."""

    backup_root: str = "~/.dotfiles-backups"
    state_dir: str = "~/.dotkit"
    log_file: str = "~/.dotkit/update_log.txt"
    summary_file: str = "~/.dotkit/update_summary.txt"
    diff_lines: int = 12

    @field_validator("backup_root", "state_dir", "log_file", "summary_file")
    @classmethod
    def check_path(cls, value: str) -> str:
        return _check_local_path(value)


# ── Managed files ───────────────────────────────────────────────


class ManagedFile(BaseModel):
    """A canonical source file and its deployed copy.

    A ``seed`` file is copied only while the destination is absent and is
    never compared afterwards: the deployed copy belongs to the user
    (e.g. a secrets file created from a template).
    """

    source: str                     # relative to the manifest directory
    destination: str                # ~/..., /abs/..., or {repo}/...
    label: str = ""
    mode: str | None = None         # octal, e.g. "755"
    seed: bool = False

    @field_validator("destination")
    @classmethod
    def check_destination(cls, value: str) -> str:
        return _check_destination(value)

    @property
    def display_label(self) -> str:
        return self.label or Path(self.destination).name


class FileFamily(BaseModel):
    """A source directory glob deployed file-by-file into one directory."""

    source_glob: str                # e.g. configs/zsh/aliases/*.zsh
    destination_dir: str            # e.g. ~/.zsh/aliases
    label_prefix: str = ""          # e.g. aliases/
    mode: str | None = None

    @field_validator("destination_dir")
    @classmethod
    def check_destination_dir(cls, value: str) -> str:
        return _check_destination(value)


class RepoSpec(BaseModel):
    """A git checkout kept current with pull."""

    name: str
    path: str
    url: str = ""

    @field_validator("path")
    @classmethod
    def check_path(cls, value: str) -> str:
        return _check_destination(value)


# ── Steps ───────────────────────────────────────────────────────


class PackagesStep(BaseModel):
    """Ensure packages are installed (and optionally upgraded)."""

    kind: Literal["packages"] = "packages"
    manager: Literal["brew", "cask", "npm"] = "brew"
    names: list[str] = Field(default_factory=list)
    upgrade: bool = False
    reinstall_on_failure: bool = False


class BrewRefreshStep(BaseModel):
    """brew update + upgrade of every outdated formula."""

    kind: Literal["brew-refresh"] = "brew-refresh"
    cleanup: bool = True


class FilesStep(BaseModel):
    """Deploy managed files. ``include`` filters by label (fnmatch)."""

    kind: Literal["files"] = "files"
    include: list[str] = Field(default_factory=list)


class GitStep(BaseModel):
    kind: Literal["git"] = "git"
    repos: list[RepoSpec] = Field(default_factory=list)


class CommandStep(BaseModel):
    """Run an external command, optionally tracking a version around it."""

    kind: Literal["command"] = "command"
    name: str
    argv: list[str]
    requires: str | None = None     # skip with a warning when absent
    track: str | None = None        # item whose version is probed before/after
    track_manager: Literal["brew", "cask", "npm", "custom", "git"] = "custom"


class PruneStep(BaseModel):
    """Delete stale files left by older layouts (backed up first)."""

    kind: Literal["prune"] = "prune"
    paths: list[str] = Field(default_factory=list)

    @field_validator("paths")
    @classmethod
    def check_paths(cls, value: list[str]) -> list[str]:
        return [_check_destination(p) for p in value]


class BundleStep(BaseModel):
    """Copy the whole source tree into ``<repo>/<subdir>``."""

    kind: Literal["bundle"] = "bundle"
    subdir: str = "scripts/setup/dotfiles"


class SelfHealStep(BaseModel):
    """Verify a dependent tool's backend; migrate once if wrong."""

    kind: Literal["self-heal"] = "self-heal"
    name: str
    diagnose: list[str]
    remediate: list[str]
    backend_field: str = "backend"
    desired_backend: str
    regression_signatures: list[str] = Field(default_factory=list)


Step = Annotated[
    Union[
        PackagesStep,
        BrewRefreshStep,
        FilesStep,
        GitStep,
        CommandStep,
        PruneStep,
        BundleStep,
        SelfHealStep,
    ],
    Field(discriminator="kind"),
]


# ── Environment ─────────────────────────────────────────────────


class EnvironmentChecks(BaseModel):
    """What the pre-run environment check looks for."""

    manager: str = "brew"                               # package manager; "" to skip
    tools: list[str] = Field(default_factory=list)     # baseline tools expected on PATH
    shell: str = ""                                     # expected login shell, e.g. zsh
    files: list[str] = Field(default_factory=list)     # e.g. ~/.p10k.zsh

    @field_validator("files")
    @classmethod
    def check_files(cls, value: list[str]) -> list[str]:
        return [_check_local_path(p) for p in value]


# ── Groups ──────────────────────────────────────────────────────


class Group(BaseModel):
    """A named, optional unit of work, gated by a yes/no question."""

    name: str
    question: str = ""
    default: bool = False
    requires: list[str] = Field(default_factory=list)
    steps: list[Step] = Field(default_factory=list)

    @property
    def prompt(self) -> str:
        return self.question or f"Run '{self.name}'?"


class Manifest(BaseModel):
    """Root manifest, loaded from dotkit.yml."""

    version: int = 1
    name: str = "dotfiles"
    settings: Settings = Field(default_factory=Settings)
    requires: list[str] = Field(default_factory=list)
    environment: EnvironmentChecks = Field(default_factory=EnvironmentChecks)
    managed: list[ManagedFile] = Field(default_factory=list)
    families: list[FileFamily] = Field(default_factory=list)
    install: list[Group] = Field(default_factory=list)
    update: list[Group] = Field(default_factory=list)

    def groups_for(self, mode: str) -> list[Group]:
        """Ordered groups for ``install`` or ``update``."""
        if mode == "install":
            return self.install
        if mode == "update":
            return self.update
        raise ValueError(f"Unknown mode: {mode}")

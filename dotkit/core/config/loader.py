"""
Manifest loading: dotkit.yml on disk to a validated ``Manifest``.

Every problem with the file (absent, unreadable, bad YAML, a value the
schema rejects) surfaces as a single ``ConfigError`` so the CLI can
print one line and exit 1.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from dotkit.core.errors import DotkitError
from dotkit.core.models.manifest import Manifest

logger = logging.getLogger(__name__)

MANIFEST_FILE = "dotkit.yml"
_MAX_PARENTS = 20


class ConfigError(DotkitError):
    """dotkit.yml is missing or does not describe a valid kit."""


def find_manifest_file(start_dir: Path | None = None) -> Path | None:
    """Nearest dotkit.yml at or above ``start_dir`` (default: cwd), or None."""
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(_MAX_PARENTS):
        candidate = current / MANIFEST_FILE
        if candidate.is_file():
            return candidate
        if current.parent == current:
            break
        current = current.parent

    return None


def load_manifest(path: Path | None = None) -> Manifest:
    """Read and validate a kit manifest.

    With no ``path`` the manifest is looked up from the working
    directory, so commands work from anywhere inside the dotfiles
    checkout. An empty file is a valid, empty kit.

    Raises:
        ConfigError: The file is missing, unreadable or invalid.
    """
    if path is None:
        path = find_manifest_file()
    if path is None:
        raise ConfigError(
            f"No {MANIFEST_FILE} found. Run from your dotfiles checkout, or specify --config."
        )
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    logger.debug("Loading manifest from %s", path)

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        manifest = Manifest.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid manifest {path}: {e}") from e

    logger.info(
        "Loaded manifest '%s': %d managed file(s), %d install / %d update group(s)",
        manifest.name,
        len(manifest.managed),
        len(manifest.install),
        len(manifest.update),
    )
    return manifest


def source_root(manifest_path: Path) -> Path:
    """The dotfiles source tree: the directory holding the manifest."""
    return manifest_path.parent.resolve()

"""
Managed file resolution: manifest declarations to concrete path pairs.

The pair list is partly static (``managed``) and partly derived: each
``families`` entry expands a source glob and maps every match to
``destination_dir/<basename>``. The installer and the drift checker
both read from here, so they always agree on what is managed.
"""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass
from pathlib import Path

from dotkit.core.models.manifest import Manifest, expand_destination, parse_mode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedFile:
    """A managed source/destination pair with absolute paths.

    ``seed`` pairs are deployed once and then left to the user.
    """

    label: str
    source: Path
    destination: Path
    mode: int | None = None
    seed: bool = False


def resolve_managed_files(
    manifest: Manifest,
    source_root: Path,
    home: Path,
    repo_path: Path | None = None,
) -> list[ResolvedFile]:
    """Static pairs followed by glob-expanded families, in declaration order.

    Pairs that target ``{repo}`` are dropped when no repo path is set.
    """
    resolved: list[ResolvedFile] = []

    for item in manifest.managed:
        try:
            dest = expand_destination(item.destination, home, repo_path)
        except ValueError:
            logger.debug("Skipping %s: no repo path", item.display_label)
            continue
        resolved.append(
            ResolvedFile(
                label=item.display_label,
                source=source_root / item.source,
                destination=dest,
                mode=parse_mode(item.mode),
                seed=item.seed,
            )
        )

    for family in manifest.families:
        try:
            dest_dir = expand_destination(family.destination_dir, home, repo_path)
        except ValueError:
            logger.debug("Skipping family %s: no repo path", family.source_glob)
            continue
        for src in sorted(source_root.glob(family.source_glob)):
            if not src.is_file():
                continue
            resolved.append(
                ResolvedFile(
                    label=f"{family.label_prefix}{src.name}",
                    source=src,
                    destination=dest_dir / src.name,
                    mode=parse_mode(family.mode),
                )
            )

    return resolved


def select(files: list[ResolvedFile], include: list[str]) -> list[ResolvedFile]:
    """Filter by label patterns (fnmatch). Empty ``include`` keeps all."""
    if not include:
        return list(files)
    return [f for f in files if any(fnmatch.fnmatch(f.label, pat) for pat in include)]

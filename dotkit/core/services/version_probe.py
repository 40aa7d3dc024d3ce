"""
Version probe: what version of a tool is installed right now.

Read-only probes. Structured output is preferred wherever the tool
offers it (``brew info --json=v2``, ``npm list --json``); a small,
named exception list covers tools that only print a ``version`` line.

A probe never raises: every failure maps to ``Version.absent()``
(confirmed not installed) or ``Version.unknown()`` (could not tell).
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Callable

from dotkit.core.models.version import Version
from dotkit.core.services.subprocess_runner import Runner, run_command

logger = logging.getLogger(__name__)

# Tools whose version only comes from their own CLI.
# name -> (command, whitespace-delimited field index on the first line)
CUSTOM_VERSION_COMMANDS: dict[str, tuple[list[str], int]] = {
    "bd": (["bd", "version"], 2),
}

_BREW_MISSING_MARKERS = ("No available formula", "No available cask", "No cask with this name")


class VersionProbe:
    """Look up installed versions through the package manager or the tool itself.

    Args:
        runner: Command runner (``run_command`` signature). Injected in tests.
        which: PATH lookup, ``shutil.which`` by default.
    """

    def __init__(
        self,
        runner: Runner = run_command,
        which: Callable[[str], str | None] = shutil.which,
    ):
        self._run = runner
        self._which = which

    def probe(self, name: str, manager: str = "brew") -> Version:
        """Installed version of ``name`` as seen by ``manager``.

        ``manager`` is one of ``brew``, ``cask``, ``npm``, ``git`` (``name``
        is then a checkout path) or ``custom``.
        """
        try:
            if manager == "brew":
                return self._brew(name, cask=False)
            if manager == "cask":
                return self._brew(name, cask=True)
            if manager == "npm":
                return self._npm(name)
            if manager == "git":
                return self._git_head(Path(name))
            if manager == "custom":
                return self._custom(name)
        except Exception as e:
            logger.debug("Version probe for %s (%s) failed: %s", name, manager, e)
            return Version.unknown()

        logger.warning("Unknown version manager %r for %s", manager, name)
        return Version.unknown()

    # ── Package managers ────────────────────────────────────────

    def _brew(self, name: str, cask: bool) -> Version:
        if not self._which("brew"):
            return Version.absent()

        cmd = ["brew", "info", "--json=v2"]
        if cask:
            cmd.append("--cask")
        cmd.append(name)
        result = self._run(cmd)

        if not result.get("ok"):
            stderr = result.get("stderr", "") or result.get("error", "")
            if any(marker in stderr for marker in _BREW_MISSING_MARKERS):
                return Version.absent()
            return Version.unknown()

        data = _load_json(result.get("stdout", ""))
        if data is None:
            return Version.unknown()

        if cask:
            casks = data.get("casks") or []
            if not casks:
                return Version.absent()
            installed = casks[0].get("installed")
            return Version.of(installed) if installed else Version.absent()

        formulae = data.get("formulae") or []
        if not formulae:
            return Version.absent()
        installed = formulae[0].get("installed") or []
        if not installed:
            return Version.absent()
        return Version.of(installed[-1].get("version"))

    def _npm(self, name: str) -> Version:
        if not self._which("npm"):
            return Version.absent()

        # npm exits non-zero when the package is missing but still prints JSON
        result = self._run(["npm", "list", "-g", "--depth=0", "--json", name])
        data = _load_json(result.get("stdout", ""))
        if data is None:
            return Version.unknown()

        entry = (data.get("dependencies") or {}).get(name)
        if not entry:
            return Version.absent()
        return Version.of(entry.get("version"))

    # ── Git checkouts ───────────────────────────────────────────

    def _git_head(self, path: Path) -> Version:
        if not (path / ".git").exists():
            return Version.absent()
        result = self._run(["git", "-C", str(path), "rev-parse", "--short", "HEAD"])
        if not result.get("ok"):
            return Version.unknown()
        return Version.of(result.get("stdout", ""))

    # ── Named exceptions ────────────────────────────────────────

    def _custom(self, name: str) -> Version:
        entry = CUSTOM_VERSION_COMMANDS.get(name)
        if entry is None:
            logger.warning("No custom version command registered for %s", name)
            return Version.unknown()

        cmd, field_index = entry
        if not self._which(cmd[0]):
            return Version.absent()

        result = self._run(cmd)
        if not result.get("ok"):
            return Version.unknown()
        return Version.of(parse_version_field(result.get("stdout", ""), field_index))


def parse_version_field(output: str, field_index: int) -> str | None:
    """Return whitespace field ``field_index`` of the first non-blank line."""
    for line in output.splitlines():
        if not line.strip():
            continue
        fields = line.split()
        if field_index < len(fields):
            return fields[field_index]
        return None
    return None


def _load_json(text: str) -> dict[str, Any] | None:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None
    return data if isinstance(data, dict) else None

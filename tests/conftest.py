"""
Shared test fixtures and configuration.

No test ever runs a real package manager: every external command goes
through ``FakeRunner``, which answers from a table keyed by argv.
"""

from __future__ import annotations

import json
import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest


def ok(stdout: str = "", stderr: str = "") -> dict[str, Any]:
    """A successful runner result."""
    return {"ok": True, "stdout": stdout, "stderr": stderr, "returncode": 0, "elapsed_ms": 1}


def fail(stderr: str = "", returncode: int = 1, stdout: str = "") -> dict[str, Any]:
    """A failed runner result."""
    return {
        "ok": False,
        "error": f"Command failed (exit {returncode})",
        "stdout": stdout,
        "stderr": stderr,
        "returncode": returncode,
        "elapsed_ms": 1,
    }


def brew_info(version: str | None, cask: bool = False) -> dict[str, Any]:
    """``brew info --json=v2`` output for one formula or cask."""
    if cask:
        return ok(json.dumps({"formulae": [], "casks": [{"token": "x", "installed": version}]}))
    installed = [{"version": version}] if version else []
    return ok(json.dumps({"formulae": [{"name": "x", "installed": installed}], "casks": []}))


class FakeRunner:
    """Stand-in for ``run_command``.

    Responses are registered per exact argv. When several are queued
    for one argv they are consumed in order and the last one repeats.
    Unregistered commands succeed with empty output.
    """

    def __init__(self, default: dict[str, Any] | None = None):
        self.calls: list[list[str]] = []
        self.default = default or ok()
        self._responses: dict[tuple[str, ...], list[Any]] = {}

    def on(self, cmd: list[str], *results: Any) -> FakeRunner:
        self._responses.setdefault(tuple(cmd), []).extend(results)
        return self

    def __call__(self, cmd: list[str], **kwargs: Any) -> dict[str, Any]:
        self.calls.append(list(cmd))
        queue = self._responses.get(tuple(cmd))
        if not queue:
            return dict(self.default)
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(result):
            result = result(cmd)
        return dict(result)

    def ran(self, *prefix: str) -> bool:
        """Whether any call started with ``prefix``."""
        return any(call[: len(prefix)] == list(prefix) for call in self.calls)

    def count(self, *prefix: str) -> int:
        return sum(1 for call in self.calls if call[: len(prefix)] == list(prefix))


def which_all(tool: str) -> str | None:
    """PATH lookup that finds every tool."""
    return f"/usr/bin/{tool}"


def which_none(tool: str) -> str | None:
    return None


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """An empty home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def make_kit(tmp_path: Path) -> Callable[..., Path]:
    """Build a dotfiles source tree. Returns the manifest path.

    Usage: ``make_kit(manifest_yaml, {"configs/a.zsh": "alias a=b\\n"})``
    """

    def _make(manifest: str, files: dict[str, str] | None = None) -> Path:
        root = tmp_path / "dotfiles"
        root.mkdir(exist_ok=True)
        for rel, content in (files or {}).items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        config = root / "dotkit.yml"
        config.write_text(textwrap.dedent(manifest))
        return config

    return _make


# Manifest shared by engine, use-case and CLI tests: two static files,
# one alias family, one install group and one update group.
FILES_MANIFEST = """\
    name: test-kit
    managed:
      - source: configs/zshrc
        destination: ~/.zshrc
        label: zshrc
      - source: configs/tmux.conf
        destination: ~/.tmux.conf
    families:
      - source_glob: configs/aliases/*.zsh
        destination_dir: ~/.zsh/aliases
        label_prefix: aliases/
    install:
      - name: dotfiles
        question: Install dotfiles?
        default: true
        steps:
          - kind: files
    update:
      - name: dotfiles
        default: true
        steps:
          - kind: files
"""

FILES = {
    "configs/zshrc": "export EDITOR=vim\n",
    "configs/tmux.conf": "set -g mouse on\n",
    "configs/aliases/general.zsh": "alias ll='ls -la'\n",
    "configs/aliases/git.zsh": "alias gs='git status'\n",
}


@pytest.fixture
def files_kit(make_kit: Callable[..., Path]) -> Path:
    return make_kit(FILES_MANIFEST, FILES)

"""
Core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called. Every adapter and
probe goes through ``run_command`` so that logging, the raw run log and
the progress callback are handled in one spot.

There is deliberately no default timeout: package manager operations
and clones run until they finish or the tool itself fails.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from typing import Any, Callable

from dotkit.core.observability.logging_config import RUN_LOGGER

logger = logging.getLogger(__name__)
run_log = logging.getLogger(RUN_LOGGER)

# Signature shared by ``run_command`` and test doubles.
Runner = Callable[..., dict[str, Any]]

# Called as progress("start", label) and progress("done", label).
ProgressCallback = Callable[[str, str], None]

# Output kept in result dicts (tail)
_MAX_OUTPUT = 20000


def run_command(
    cmd: list[str],
    *,
    cwd: str | None = None,
    env_overrides: dict[str, str] | None = None,
    timeout: int | None = None,
    progress: ProgressCallback | None = None,
) -> dict[str, Any]:
    """Run a command and capture its output.

    Args:
        cmd: Command list for ``subprocess.run()``.
        cwd: Working directory for the command.
        env_overrides: Extra env vars merged over ``os.environ``.
        timeout: Seconds before giving up. ``None`` waits indefinitely.
        progress: Optional presentational callback.

    Returns:
        ``{"ok": True, "stdout": "...", "stderr": "...", "returncode": 0,
        "elapsed_ms": N}`` on success, ``{"ok": False, "error": "...", ...}``
        on failure. Never raises.
    """
    env = os.environ.copy()
    if env_overrides:
        for key, value in env_overrides.items():
            env[key] = os.path.expandvars(value)

    label = " ".join(cmd)
    run_log.info("$ %s", label)
    if progress:
        progress("start", label)

    start = time.monotonic()
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except FileNotFoundError:
        run_log.info("  command not found: %s", cmd[0])
        return {"ok": False, "returncode": 127, "error": f"Command not found: {cmd[0]}"}
    except subprocess.TimeoutExpired:
        run_log.info("  timed out after %ss", timeout)
        return {"ok": False, "error": f"Command timed out ({timeout}s)"}
    except Exception as e:
        logger.exception("Subprocess error: %s", cmd)
        return {"ok": False, "error": str(e)}
    finally:
        if progress:
            progress("done", label)

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = (result.stdout or "")[-_MAX_OUTPUT:]
    stderr = (result.stderr or "")[-_MAX_OUTPUT:]

    for line in (stdout + stderr).splitlines():
        run_log.info("  %s", line)
    run_log.info("  exit %d (%dms)", result.returncode, elapsed_ms)

    if result.returncode == 0:
        return {
            "ok": True,
            "stdout": stdout,
            "stderr": stderr,
            "returncode": 0,
            "elapsed_ms": elapsed_ms,
        }

    return {
        "ok": False,
        "error": f"Command failed (exit {result.returncode})",
        "stdout": stdout,
        "stderr": stderr,
        "returncode": result.returncode,
        "elapsed_ms": elapsed_ms,
    }

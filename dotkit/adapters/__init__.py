"""Adapters: tool bindings for brew, npm, git, shell and the filesystem.

Public re-exports for convenient access.
"""

from dotkit.adapters.base import Adapter, CommandAdapter, ExecutionContext
from dotkit.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "CommandAdapter",
    "ExecutionContext",
]

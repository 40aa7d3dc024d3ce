"""
Domain models for dotkit.

All models are re-exported here for convenient access:

    from dotkit.core.models import Manifest, Action, Receipt, Version, RunReport
"""

from dotkit.core.models.action import Action, Receipt
from dotkit.core.models.manifest import (
    FileFamily,
    Group,
    ManagedFile,
    Manifest,
    RepoSpec,
    Settings,
)
from dotkit.core.models.report import BackupEntry, FailureRecord, RunReport, VersionRecord
from dotkit.core.models.version import Version

__all__ = [
    # action.py
    "Action",
    # report.py
    "BackupEntry",
    "FailureRecord",
    # manifest.py
    "FileFamily",
    "Group",
    "ManagedFile",
    "Manifest",
    "Receipt",
    "RepoSpec",
    "RunReport",
    "Settings",
    # version.py
    "Version",
    "VersionRecord",
]

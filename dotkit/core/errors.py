"""
Error taxonomy: the fatal failure kinds of a run.

Sub-action failures are NOT exceptions: adapters capture them in a
Receipt and the engine records them in the RunReport. Only the kinds
below abort a run.
"""

from __future__ import annotations


class DotkitError(Exception):
    """Base class for fatal dotkit errors."""


class MissingPrerequisiteError(DotkitError):
    """A required external tool is absent. Raised before any group runs."""

    def __init__(self, tools: list[str]):
        self.tools = list(tools)
        super().__init__(f"Missing required tool(s): {', '.join(self.tools)}")


class VerificationError(DotkitError):
    """Post-action state still wrong after the single remediation attempt.

    ``evidence`` carries the raw diagnostic output so the invoker can
    show exactly what was observed.
    """

    def __init__(self, message: str, evidence: str = ""):
        self.evidence = evidence
        super().__init__(message)

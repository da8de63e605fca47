"""Exception types raised by apibridge.

Nothing here terminates the process; callers translate these into
structured failure reports or exit codes.
"""

from __future__ import annotations


class ApiBridgeError(Exception):
    """Base class for all apibridge errors."""


class SpecError(ApiBridgeError):
    """The API document is missing, unparsable, or has no path table."""


class ConfigError(ApiBridgeError):
    """Settings failed validation."""


class UnknownWorkflowError(ApiBridgeError, LookupError):
    """A workflow name was requested that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown workflow: {name}")
        self.name = name


class ToolCallError(ApiBridgeError):
    """A single tool call (one workflow step) failed."""

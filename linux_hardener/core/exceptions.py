"""
Exception hierarchy for the hardening engine.

Each error also derives from the closest builtin so callers that only know
about ``PermissionError`` or ``FileNotFoundError`` keep working.
"""

from typing import List, Optional


class HardenerError(Exception):
    """Base class for all engine errors."""


class PolicyValidationError(HardenerError, ValueError):
    """Policy violates one of its invariants."""

    NAME_REQUIRED = "name_required"
    INVALID_PROFILE = "invalid_profile"
    INVALID_SSH_PORT = "invalid_ssh_port"
    MALFORMED = "malformed"

    def __init__(self, code: str, message: str):
        super().__init__(message)
        self.code = code


class PrivilegeError(HardenerError, PermissionError):
    """Apply attempted without root privileges."""

    def __init__(self, message: str = "requires root privileges"):
        super().__init__(message)


class ExternalToolError(HardenerError, RuntimeError):
    """External command failed or could not be started."""

    def __init__(self, command: List[str], exit_code: Optional[int] = None, output: str = "",
                 reason: Optional[str] = None):
        self.command = list(command)
        self.exit_code = exit_code
        self.output = output
        self.reason = reason
        if reason:
            detail = reason
        elif exit_code is not None:
            detail = f"exit code {exit_code}"
        else:
            detail = "could not be started"
        message = f"{' '.join(self.command)}: {detail}"
        if output:
            message = f"{message}: {output.strip()}"
        super().__init__(message)


class SnapshotNotFoundError(HardenerError, FileNotFoundError):
    """No snapshot exists, or the expected backup entry is missing."""


class OperationCancelledError(HardenerError):
    """The run context was cancelled or timed out."""

"""Run commands on another host through the system ssh client."""

from typing import Optional, Sequence

from ..core.context import RunContext
from ..core.models import CommandResult
from .commands import run_command


def run_remote(ctx: RunContext, user_host: str, command: Sequence[str],
               timeout: Optional[float] = 60) -> CommandResult:
    """
    Execute ``command`` on ``user_host`` (``user@host``) via ``ssh``.

    Raises:
        ExternalToolError: ssh or the remote command failed
        OperationCancelledError: Context cancelled while waiting
    """
    return run_command(ctx, ["ssh", user_host, "--", *command], timeout=timeout)

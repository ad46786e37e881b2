"""
External command execution bound to a cancellable run context.
"""

import logging
import shutil
import subprocess
from datetime import datetime
from typing import List, Optional, Sequence

from ..core.context import RunContext
from ..core.exceptions import ExternalToolError, OperationCancelledError
from ..core.models import CommandResult

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


def which(binary: str) -> Optional[str]:
    """Return the full path of ``binary`` if it is on PATH."""
    return shutil.which(binary)


def run_command(ctx: RunContext, command: Sequence[str], timeout: Optional[float] = 30,
                check: bool = True) -> CommandResult:
    """
    Execute a system command, killing it if the context is cancelled.

    Args:
        ctx: Run context polled while the command runs
        command: Argument vector (no shell)
        timeout: Seconds before the command is killed; None waits forever
        check: Raise ExternalToolError on a non-zero exit code

    Returns:
        CommandResult: Captured output and exit code

    Raises:
        OperationCancelledError: Context cancelled before or during the run
        ExternalToolError: Binary missing, timeout, or non-zero exit with check
    """
    args: List[str] = list(command)
    ctx.check()

    start_time = datetime.now()
    logger.debug("Running %s", " ".join(args))
    try:
        proc = subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as e:
        raise ExternalToolError(args, output=str(e)) from e

    elapsed = 0.0
    while True:
        try:
            stdout, stderr = proc.communicate(timeout=POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            elapsed += POLL_INTERVAL
            if ctx.cancelled:
                _terminate(proc)
                raise OperationCancelledError(f"{' '.join(args)}: {ctx.reason}")
            if timeout is not None and elapsed >= timeout:
                _terminate(proc)
                raise ExternalToolError(args, reason=f"timed out after {timeout} seconds")

    end_time = datetime.now()
    result = CommandResult(
        command=args,
        stdout=stdout or "",
        stderr=stderr or "",
        exit_code=proc.returncode,
        execution_time_ms=int((end_time - start_time).total_seconds() * 1000),
    )

    if check and not result.success:
        raise ExternalToolError(args, result.exit_code, result.stderr or result.stdout)
    return result


def _terminate(proc: subprocess.Popen) -> None:
    """Kill a running process and reap it."""
    proc.kill()
    proc.communicate()

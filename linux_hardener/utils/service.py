"""
Best-effort service reloads after a configuration change.
"""

import logging

from ..core.context import RunContext
from ..core.exceptions import ExternalToolError
from .commands import run_command

logger = logging.getLogger(__name__)


def reload_services(ctx: RunContext, *names: str, timeout: float = 30) -> None:
    """
    Ask the service manager to reload each named service.

    Both ``systemctl reload`` and ``service <name> reload`` are attempted
    since unit names differ between distributions (sshd vs ssh). Failures are
    logged and ignored; cancellation still propagates.
    """
    for name in names:
        for command in (["systemctl", "reload", name], ["service", name, "reload"]):
            try:
                run_command(ctx, command, timeout=timeout)
                logger.info("Reloaded %s via %s", name, command[0])
            except ExternalToolError as e:
                logger.debug("Reload skipped: %s", e)

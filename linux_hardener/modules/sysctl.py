"""Kernel parameter module writing a sysctl.d drop-in."""

import logging
from pathlib import Path

from ..core.context import RunContext
from ..core.exceptions import ExternalToolError
from ..utils.commands import run_command, which
from .base import ConfigFileModule

logger = logging.getLogger(__name__)


class SysctlModule(ConfigFileModule):
    """Renders ``key = value`` lines sorted by key."""

    @property
    def name(self) -> str:
        return "Sysctl"

    @property
    def target_path(self) -> Path:
        return Path(self.settings.sysctl_path)

    def render(self) -> str:
        params = self.policy.sysctl.params
        return "".join(f"{key} = {params[key]}\n" for key in sorted(params))

    def after_install(self, ctx: RunContext) -> None:
        sysctl = which("sysctl")
        if not sysctl:
            return
        try:
            run_command(ctx, [sysctl, "--system"], timeout=self.settings.command_timeout)
        except ExternalToolError as e:
            logger.warning("Reloading kernel parameters failed: %s", e)

"""
SSH daemon hardening module.

Owns the whole sshd_config: the rendered file contains only the settings the
policy controls, in a fixed order, so repeated runs produce identical bytes.
"""

import logging
from pathlib import Path

from ..core.context import RunContext
from ..utils.commands import run_command, which
from ..utils.service import reload_services
from .base import ConfigFileModule

logger = logging.getLogger(__name__)

DEFAULT_PERMIT_ROOT_LOGIN = "prohibit-password"


class SSHModule(ConfigFileModule):
    """Renders and installs sshd_config from the policy's ssh section."""

    default_mode = 0o600

    @property
    def name(self) -> str:
        return "SSH"

    @property
    def target_path(self) -> Path:
        return Path(self.settings.sshd_config_path)

    def render(self) -> str:
        ssh = self.policy.ssh
        lines = []
        if ssh.port > 0:
            lines.append(f"Port {ssh.port}")
        lines.append(f"PasswordAuthentication {'yes' if ssh.password_auth else 'no'}")
        lines.append(f"PermitRootLogin {ssh.permit_root_login.lower() or DEFAULT_PERMIT_ROOT_LOGIN}")
        return "\n".join(lines) + "\n"

    def validate_candidate(self, ctx: RunContext, candidate: Path) -> None:
        """Run ``sshd -t`` against the staged file; a failure blocks the write."""
        sshd = which("sshd")
        if not sshd:
            logger.warning("sshd not found on PATH; skipping syntax check of %s", candidate)
            return
        run_command(ctx, [sshd, "-t", "-f", str(candidate)], timeout=self.settings.command_timeout)

    def after_install(self, ctx: RunContext) -> None:
        reload_services(ctx, "sshd", "ssh", timeout=self.settings.command_timeout)

"""
Host firewall module.

The backend follows the package manager family: Debian-style hosts use ufw,
everything else firewalld. Firewall changes are made through the backend's
own commands rather than files, so no snapshot is taken; undo capability is
therefore backend specific and exposed as ``supports_rollback``.
"""

import logging
import re
from enum import Enum
from typing import List, Optional

from ..backup.snapshots import SnapshotStore
from ..core.config import HardenerSettings
from ..core.context import RunContext
from ..core.exceptions import ExternalToolError
from ..core.models import DistroInfo, DryRunResult, FileDiff, PackageManagerFamily, Policy
from ..utils.commands import run_command
from .base import HardeningModule

logger = logging.getLogger(__name__)

PORT_TOKEN = re.compile(r'^\d{1,5}(/tcp|/udp)?$')

DISABLED_WARNING = "Firewall disabled in policy"


class RuleKind(str, Enum):
    """How an allow token is passed to the backend."""
    PORT = "port"
    SERVICE = "service"


def classify_token(token: str) -> RuleKind:
    """A bare or /tcp, /udp suffixed number is a port; anything else a service."""
    return RuleKind.PORT if PORT_TOKEN.match(token) else RuleKind.SERVICE


class UfwBackend:
    """ufw: enable, then one allow per token. ufw has no atomic undo."""

    name = "ufw"
    supports_rollback = False

    def apply_commands(self, allow: List[str]) -> List[List[str]]:
        commands = [["ufw", "--force", "enable"]]
        commands.extend(["ufw", "allow", token] for token in allow)
        return commands

    def rollback_commands(self) -> List[List[str]]:
        return []


class FirewalldBackend:
    """firewalld: permanent additions, then reload; rollback reloads permanent config."""

    name = "firewalld"
    supports_rollback = True

    def apply_commands(self, allow: List[str]) -> List[List[str]]:
        commands = []
        for token in allow:
            option = "--add-port" if classify_token(token) == RuleKind.PORT else "--add-service"
            commands.append(["firewall-cmd", "--permanent", f"{option}={token}"])
        commands.append(["firewall-cmd", "--reload"])
        return commands

    def rollback_commands(self) -> List[List[str]]:
        return [["firewall-cmd", "--reload"]]


def backend_for(family: PackageManagerFamily):
    """Pick the firewall backend for a package manager family."""
    if family == PackageManagerFamily.APT:
        return UfwBackend()
    return FirewalldBackend()


class FirewallModule(HardeningModule):
    """Enables the host firewall and opens the policy's allow list."""

    def __init__(self, policy: Policy, distro: DistroInfo,
                 settings: Optional[HardenerSettings] = None,
                 snapshots: Optional[SnapshotStore] = None):
        super().__init__(policy, distro, settings, snapshots)
        self.backend = backend_for(distro.package_manager)

    @property
    def name(self) -> str:
        return "Firewall"

    @property
    def supports_rollback(self) -> bool:
        return self.backend.supports_rollback

    def planned_commands(self) -> List[List[str]]:
        if not self.policy.firewall.enabled:
            return []
        return self.backend.apply_commands(list(self.policy.firewall.allow))

    def dry_run(self, ctx: RunContext) -> DryRunResult:
        if not self.policy.firewall.enabled:
            return DryRunResult(warnings=[DISABLED_WARNING])
        plan = "".join(" ".join(cmd) + "\n" for cmd in self.planned_commands())
        return DryRunResult(diffs=[FileDiff(path="firewall", old="", new=plan)])

    def apply(self, ctx: RunContext) -> bool:
        commands = self.planned_commands()
        if not commands:
            return False

        self.require_privilege()
        for command in commands:
            self._run_best_effort(ctx, command)
        return True

    def rollback(self, ctx: RunContext) -> None:
        if not self.backend.supports_rollback:
            logger.warning("%s backend has no rollback; leaving firewall rules unchanged", self.backend.name)
            return
        for command in self.backend.rollback_commands():
            self._run_best_effort(ctx, command)

    def _run_best_effort(self, ctx: RunContext, command: List[str]) -> None:
        try:
            run_command(ctx, command, timeout=self.settings.command_timeout)
        except ExternalToolError as e:
            logger.warning("Firewall command failed: %s", e)

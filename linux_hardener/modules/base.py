"""
Base module interface for hardening operations.

Defines the contract every configuration domain (SSH, sysctl, firewall and
plugins) implements, plus a file-backed base class that provides the
compare / snapshot / atomic-write / restore cycle.
"""

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..backup.snapshots import SnapshotStore
from ..core.config import HardenerSettings
from ..core.context import RunContext
from ..core.exceptions import PrivilegeError, SnapshotNotFoundError
from ..core.models import DistroInfo, DryRunResult, FileDiff, Policy
from ..utils.os_detection import is_admin

logger = logging.getLogger(__name__)


class HardeningModule(ABC):
    """
    Abstract base class for a configuration domain.

    A module holds the policy and distribution identity for one run and must
    be safe to call repeatedly with the same inputs: when ``dry_run`` reports
    no diff, ``apply`` changes nothing.
    """

    #: Whether ``rollback`` can actually undo ``apply``.
    supports_rollback = True

    def __init__(self, policy: Policy, distro: DistroInfo,
                 settings: Optional[HardenerSettings] = None,
                 snapshots: Optional[SnapshotStore] = None):
        """
        Initialize module.

        Args:
            policy: Validated policy for this run
            distro: Distribution identity of the host
            settings: Paths and timeouts (defaults when None)
            snapshots: Snapshot store (built from settings when None)
        """
        self.policy = policy
        self.distro = distro
        self.settings = settings or HardenerSettings()
        self.snapshots = snapshots or SnapshotStore(self.settings.snapshot_root)

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier shown in reports."""

    @abstractmethod
    def dry_run(self, ctx: RunContext) -> DryRunResult:
        """
        Compute the changes ``apply`` would make, without making them.

        Args:
            ctx: Run context

        Returns:
            DryRunResult: Empty diff list when the host already matches
        """

    @abstractmethod
    def apply(self, ctx: RunContext) -> bool:
        """
        Bring the host in line with the policy.

        Args:
            ctx: Run context

        Returns:
            bool: True if anything was changed

        Raises:
            PrivilegeError: If a change is needed and the process is not root
        """

    @abstractmethod
    def rollback(self, ctx: RunContext) -> None:
        """
        Undo the most recent ``apply``.

        Raises:
            SnapshotNotFoundError: If there is nothing to restore
        """

    def require_privilege(self) -> None:
        """Raise PrivilegeError unless running as root."""
        if not is_admin():
            raise PrivilegeError(f"{self.name}: applying changes requires root privileges")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class ConfigFileModule(HardeningModule):
    """
    Module whose whole desired state is the content of one file.

    Subclasses provide ``target_path`` and ``render()``; they may hook
    ``validate_candidate`` (syntax check of the new file before it is
    installed) and ``after_install`` (reload the consumer of the file).
    """

    #: Permissions for a newly created target file.
    default_mode = 0o644

    @property
    @abstractmethod
    def target_path(self) -> Path:
        """File this module owns."""

    @abstractmethod
    def render(self) -> str:
        """Desired file content derived from the policy."""

    def validate_candidate(self, ctx: RunContext, candidate: Path) -> None:
        """Check the staged file before install; raise to block the write."""

    def after_install(self, ctx: RunContext) -> None:
        """Called after the target has been replaced or restored."""

    def read_current(self) -> str:
        """
        Read the persisted content of the target.

        A missing file reads as empty; any other read error propagates.
        """
        try:
            return self.target_path.read_text()
        except FileNotFoundError:
            return ""

    def dry_run(self, ctx: RunContext) -> DryRunResult:
        old = self.read_current()
        new = self.render()
        if old == new:
            return DryRunResult()
        return DryRunResult(diffs=[FileDiff(path=str(self.target_path), old=old, new=new)])

    def apply(self, ctx: RunContext) -> bool:
        old = self.read_current()
        new = self.render()
        if old == new:
            logger.debug("%s: %s already up to date", self.name, self.target_path)
            return False

        self.require_privilege()
        ctx.check()

        snapshot = self.snapshots.new_snapshot_dir()
        if self.target_path.exists():
            self.snapshots.backup_file(snapshot, self.target_path)
        else:
            logger.info("%s: %s does not exist yet, nothing to back up", self.name, self.target_path)

        self.write_atomic(ctx, new)
        logger.info("%s: wrote %s", self.name, self.target_path)
        self.after_install(ctx)
        return True

    def rollback(self, ctx: RunContext) -> None:
        snapshot = self.snapshots.latest_snapshot()
        backup = self.snapshots.backup_path(snapshot, self.target_path)
        if not backup.is_file():
            raise SnapshotNotFoundError(f"{self.name}: no backup of {self.target_path.name} in {snapshot}")
        self.snapshots.restore_file(backup, self.target_path)
        self.after_install(ctx)

    def write_atomic(self, ctx: RunContext, content: str) -> None:
        """
        Stage ``content`` next to the target, validate it, then rename over.

        The staging file lives in the target's directory so the final
        ``os.replace`` never crosses filesystems.
        """
        target = self.target_path
        target.parent.mkdir(parents=True, exist_ok=True)
        mode = target.stat().st_mode & 0o777 if target.exists() else self.default_mode

        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.", suffix=".new")
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, 'w') as f:
                f.write(content)
            tmp.chmod(mode)
            self.validate_candidate(ctx, tmp)
            os.replace(tmp, target)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

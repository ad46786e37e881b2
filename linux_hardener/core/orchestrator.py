"""
Core orchestrator for the hardening engine.

The HardeningEngine validates the policy, builds the module list once for
the run and drives dry-run, apply and rollback across it in registration
order.
"""

import logging
from typing import List, Optional

from ..core.config import HardenerSettings
from ..core.context import RunContext
from ..core.exceptions import SnapshotNotFoundError
from ..core.models import ApplyOutcome, DistroInfo, DryRunResult, EngineReport, Policy
from ..modules.base import HardeningModule
from ..modules.registry import ModuleRegistry
from ..policy.schema import validate_policy

logger = logging.getLogger(__name__)


class HardeningEngine:
    """
    Main orchestrator class for one hardening run.

    Modules run strictly one after another. There is no cross-module
    transaction: if a module fails, the modules before it keep their changes
    and each can be rolled back on its own.
    """

    def __init__(self, policy: Policy, distro: DistroInfo,
                 registry: Optional[ModuleRegistry] = None,
                 settings: Optional[HardenerSettings] = None):
        """
        Initialize the engine.

        Args:
            policy: Policy to enforce
            distro: Host distribution identity
            registry: Module registry (built-ins only when None)
            settings: Engine settings, used when no registry is given

        Raises:
            PolicyValidationError: If the policy violates an invariant
        """
        validate_policy(policy)
        self.policy = policy
        self.distro = distro
        self.registry = registry or ModuleRegistry(settings)
        self._modules: Optional[List[HardeningModule]] = None

    @property
    def modules(self) -> List[HardeningModule]:
        """Modules for this run, built on first access."""
        if self._modules is None:
            self._modules = self.registry.build(self.policy, self.distro)
            logger.debug("Built modules: %s", ", ".join(m.name for m in self._modules))
        return self._modules

    def get_module(self, name: str) -> HardeningModule:
        """
        Look up a module by name.

        Raises:
            KeyError: If no module has that name
        """
        for module in self.modules:
            if module.name == name:
                return module
        raise KeyError(f"Unknown module: {name}")

    def dry_run_all(self, ctx: Optional[RunContext] = None) -> DryRunResult:
        """
        Collect the diffs and warnings of every module.

        The first module error aborts the whole preview.

        Returns:
            DryRunResult: Concatenated diffs and warnings, in module order
        """
        ctx = ctx or RunContext.background()
        aggregate = DryRunResult()
        for module in self.modules:
            ctx.check()
            aggregate.extend(module.dry_run(ctx))
        return aggregate

    def apply_all(self, ctx: Optional[RunContext] = None) -> EngineReport:
        """
        Apply every module, stopping at the first failure.

        Returns:
            EngineReport: Which modules changed the host
        """
        ctx = ctx or RunContext.background()
        report = EngineReport(operation="apply")
        for module in self.modules:
            ctx.check()
            changed = module.apply(ctx)
            logger.info("%s: %s", module.name, "applied" if changed else "no changes")
            report.modules.append(ApplyOutcome(module=module.name, changed=changed))
        return report

    def rollback_all(self, ctx: Optional[RunContext] = None) -> EngineReport:
        """
        Roll back every module that can undo its changes.

        Modules without rollback support, and modules with no backup in
        the latest snapshot (they did not change anything in the last run),
        are listed with a message and skipped. Any other failure aborts the
        pass.

        Returns:
            EngineReport: Which modules were restored
        """
        ctx = ctx or RunContext.background()
        report = EngineReport(operation="rollback")
        for module in self.modules:
            ctx.check()
            if not module.supports_rollback:
                report.modules.append(ApplyOutcome(module=module.name, changed=False,
                                                   message="rollback not supported"))
                continue
            try:
                module.rollback(ctx)
            except SnapshotNotFoundError as e:
                logger.info("%s: nothing to restore (%s)", module.name, e)
                report.modules.append(ApplyOutcome(module=module.name, changed=False,
                                                   message="nothing to restore"))
                continue
            logger.info("%s: rolled back", module.name)
            report.modules.append(ApplyOutcome(module=module.name, changed=True))
        return report

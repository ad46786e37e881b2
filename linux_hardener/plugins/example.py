"""
Example plugin showing the minimum a third-party module has to provide.

Register it on the registry before running the engine::

    registry.register(example.factory)
"""

from ..core.context import RunContext
from ..core.models import DistroInfo, DryRunResult, Policy
from ..modules.base import HardeningModule


class ExamplePlugin(HardeningModule):
    """Reports a warning and never changes anything."""

    @property
    def name(self) -> str:
        return "ExamplePlugin"

    def dry_run(self, ctx: RunContext) -> DryRunResult:
        return DryRunResult(warnings=["example plugin: no changes"])

    def apply(self, ctx: RunContext) -> bool:
        return False

    def rollback(self, ctx: RunContext) -> None:
        pass


def factory(policy: Policy, distro: DistroInfo) -> HardeningModule:
    return ExamplePlugin(policy, distro)

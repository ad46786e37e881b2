"""
Module registry for composing built-in and plugin hardening modules.

The registry is an ordinary object owned by whoever wires the run together
(the CLI or a test); there is no process-wide list of plugins.
"""

import logging
from typing import Callable, List, Optional

from ..backup.snapshots import SnapshotStore
from ..core.config import HardenerSettings
from ..core.models import DistroInfo, Policy
from .base import HardeningModule
from .firewall import FirewallModule
from .ssh import SSHModule
from .sysctl import SysctlModule

logger = logging.getLogger(__name__)

ModuleFactory = Callable[[Policy, DistroInfo], HardeningModule]


class ModuleRegistry:
    """
    Ordered list of module factories.

    Built-ins always come first, in the order SSH, Firewall, Sysctl; plugin
    factories follow in registration order. Once ``build`` has been called
    the registry is sealed and further registration is refused.
    """

    builtin_modules = (SSHModule, FirewallModule, SysctlModule)

    def __init__(self, settings: Optional[HardenerSettings] = None):
        """
        Initialize registry.

        Args:
            settings: Paths and timeouts handed to the built-in modules
        """
        self.settings = settings or HardenerSettings()
        self._factories: List[ModuleFactory] = []
        self._sealed = False

    @property
    def factories(self) -> List[ModuleFactory]:
        """Registered plugin factories, in order."""
        return list(self._factories)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def register(self, factory: ModuleFactory) -> None:
        """
        Register a plugin factory.

        Args:
            factory: Callable taking (policy, distro) and returning a module

        Raises:
            RuntimeError: If modules have already been built from this registry
        """
        if self._sealed:
            raise RuntimeError("Cannot register plugins after modules have been built")
        self._factories.append(factory)
        logger.debug("Registered plugin factory %r", factory)

    def build(self, policy: Policy, distro: DistroInfo) -> List[HardeningModule]:
        """
        Instantiate every module for one run.

        Args:
            policy: Validated policy
            distro: Host distribution identity

        Returns:
            List[HardeningModule]: Built-ins followed by plugins
        """
        self._sealed = True
        snapshots = SnapshotStore(self.settings.snapshot_root, per_run=True)
        modules: List[HardeningModule] = [
            module_class(policy, distro, self.settings, snapshots)
            for module_class in self.builtin_modules
        ]
        modules.extend(factory(policy, distro) for factory in self._factories)
        return modules

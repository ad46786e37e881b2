"""
linux-hardener

Policy-driven host hardening engine: turns a declarative security policy
into SSH, sysctl and firewall configuration with dry-run preview,
idempotent apply and snapshot-based rollback.
"""

__version__ = "1.0.0"

from .core.orchestrator import HardeningEngine
from .core.models import DryRunResult, FileDiff, Policy

__all__ = ["HardeningEngine", "DryRunResult", "FileDiff", "Policy"]

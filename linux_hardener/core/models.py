"""
Data models for the hardening engine using Pydantic for validation.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _scalar_to_str(value):
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (int, float)):
        return str(value)
    return value


class Profile(str, Enum):
    """Deployment contexts a policy can target."""
    PROD = "prod"
    DEV = "dev"
    LAPTOP = "laptop"


class PackageManagerFamily(str, Enum):
    """Package manager families; APT doubles as the generic fallback."""
    APT = "apt"
    DNF = "dnf"
    YUM = "yum"
    PACMAN = "pacman"


class DistroInfo(BaseModel):
    """Operating system identity read from os-release."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    version: str = ""
    package_manager: PackageManagerFamily = PackageManagerFamily.APT


class SSHPolicy(BaseModel):
    """Desired sshd settings."""
    model_config = ConfigDict(frozen=True)

    permit_root_login: str = Field("", description="yes, no, prohibit-password, ...")
    password_auth: bool = False
    port: int = 22

    @field_validator("permit_root_login", mode="before")
    @classmethod
    def coerce_yaml_boolean(cls, v):
        """YAML 1.1 reads a bare no/yes as a boolean."""
        if isinstance(v, bool):
            return "yes" if v else "no"
        return v


class SysctlPolicy(BaseModel):
    """Kernel parameters written to the sysctl drop-in."""
    model_config = ConfigDict(frozen=True)

    params: Dict[str, str] = Field(default_factory=dict)

    @field_validator("params", mode="before")
    @classmethod
    def stringify_values(cls, v):
        """Numeric values in YAML arrive as int; sysctl treats all values as text."""
        if isinstance(v, dict):
            return {str(k): _scalar_to_str(val) for k, val in v.items()}
        return v


class FirewallPolicy(BaseModel):
    """Host firewall state and allowed ports/services."""
    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    allow: List[str] = Field(default_factory=list, description="Port (22/tcp) or service (ssh) tokens")

    @field_validator("allow", mode="before")
    @classmethod
    def stringify_tokens(cls, v):
        """A bare port such as 8080 is parsed by YAML as an int."""
        if isinstance(v, list):
            return [str(token) if isinstance(token, int) and not isinstance(token, bool) else token
                    for token in v]
        return v


class Policy(BaseModel):
    """
    Declarative description of the desired security configuration.

    Profile is a plain string and the port an unbounded int; the invariants
    are checked by ``validate_policy``, which reports the first violated rule
    with its own error code.
    """
    model_config = ConfigDict(frozen=True)

    name: str = ""
    profile: str = ""
    ssh: SSHPolicy = Field(default_factory=SSHPolicy)
    sysctl: SysctlPolicy = Field(default_factory=SysctlPolicy)
    firewall: FirewallPolicy = Field(default_factory=FirewallPolicy)
    meta: Dict[str, str] = Field(default_factory=dict)

    @field_validator("meta", mode="before")
    @classmethod
    def stringify_meta(cls, v):
        if isinstance(v, dict):
            return {str(k): _scalar_to_str(val) for k, val in v.items()}
        return v


class FileDiff(BaseModel):
    """Difference between persisted and desired content of one target."""
    path: str
    old: str
    new: str


class DryRunResult(BaseModel):
    """Diffs and warnings produced by a dry run."""
    diffs: List[FileDiff] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """Whether applying would change anything."""
        return bool(self.diffs)

    def extend(self, other: "DryRunResult") -> None:
        """Append another result's diffs and warnings, preserving order."""
        self.diffs.extend(other.diffs)
        self.warnings.extend(other.warnings)


class CommandResult(BaseModel):
    """Outcome of an external command."""
    command: List[str]
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    execution_time_ms: int = 0

    @property
    def success(self) -> bool:
        return self.exit_code == 0


class ApplyOutcome(BaseModel):
    """Per-module result of an apply or rollback pass."""
    module: str
    changed: bool = False
    message: Optional[str] = None


class EngineReport(BaseModel):
    """Summary of an orchestrated apply or rollback pass."""
    operation: str
    modules: List[ApplyOutcome] = Field(default_factory=list)

    @property
    def changed_modules(self) -> List[str]:
        """Names of modules that changed host state."""
        return [m.module for m in self.modules if m.changed]

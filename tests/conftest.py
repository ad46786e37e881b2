"""
Test fixtures and utilities for the linux-hardener test suite.

Every fixture points the engine at a temporary directory tree so no test
touches the real /etc or needs root.
"""

import pytest
from unittest.mock import Mock, patch

from linux_hardener.core.config import HardenerSettings
from linux_hardener.core.context import RunContext
from linux_hardener.core.models import (
    DistroInfo, FirewallPolicy, PackageManagerFamily, Policy, SSHPolicy, SysctlPolicy
)


@pytest.fixture
def settings(tmp_path):
    """Settings whose every path lives under tmp_path."""
    return HardenerSettings(
        sshd_config_path=tmp_path / "etc" / "ssh" / "sshd_config",
        sysctl_path=tmp_path / "etc" / "sysctl.d" / "60-linux-hardener.conf",
        snapshot_root=tmp_path / "backups",
        os_release_path=tmp_path / "os-release",
        command_timeout=5,
    )


@pytest.fixture
def ctx():
    """Fresh, uncancelled run context."""
    return RunContext()


@pytest.fixture
def ubuntu_distro():
    """Debian-family host (ufw backend)."""
    return DistroInfo(id="ubuntu", name="Ubuntu", version="24.04",
                      package_manager=PackageManagerFamily.APT)


@pytest.fixture
def fedora_distro():
    """Fedora host (firewalld backend)."""
    return DistroInfo(id="fedora", name="Fedora Linux", version="40",
                      package_manager=PackageManagerFamily.DNF)


@pytest.fixture
def sample_policy():
    """Valid production policy touching every module."""
    return Policy(
        name="baseline",
        profile="prod",
        ssh=SSHPolicy(permit_root_login="no", password_auth=False, port=2222),
        sysctl=SysctlPolicy(params={
            "net.ipv4.ip_forward": "0",
            "kernel.kptr_restrict": "2",
        }),
        firewall=FirewallPolicy(enabled=True, allow=["22/tcp", "http"]),
        meta={"owner": "platform-team"},
    )


@pytest.fixture
def as_root():
    """Pretend the process runs as root."""
    with patch('linux_hardener.modules.base.is_admin', return_value=True) as mock_admin:
        yield mock_admin


@pytest.fixture
def as_user():
    """Pretend the process runs unprivileged."""
    with patch('linux_hardener.modules.base.is_admin', return_value=False) as mock_admin:
        yield mock_admin


@pytest.fixture
def no_external_commands():
    """Replace every external process the modules would start."""
    firewall_run = Mock()
    with patch('linux_hardener.modules.ssh.which', return_value=None), \
         patch('linux_hardener.modules.ssh.reload_services') as ssh_reload, \
         patch('linux_hardener.modules.sysctl.which', return_value=None), \
         patch('linux_hardener.modules.firewall.run_command', firewall_run):
        yield {
            "ssh_reload": ssh_reload,
            "firewall_run": firewall_run,
        }


def write_file(path, content: str):
    """Create parent directories and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


SAMPLE_SSH_CONFIG = """\
# Stock configuration
Port 22
PermitRootLogin yes
PasswordAuthentication yes
"""

EXPECTED_SSH_CONFIG = "Port 2222\nPasswordAuthentication no\nPermitRootLogin no\n"

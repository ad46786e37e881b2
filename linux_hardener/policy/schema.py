"""
Policy invariants and per-profile starting templates.
"""

from ..core.exceptions import PolicyValidationError
from ..core.models import FirewallPolicy, Policy, Profile, SSHPolicy, SysctlPolicy

VALID_PROFILES = {p.value for p in Profile}


def validate_policy(policy: Policy) -> None:
    """
    Check policy invariants, stopping at the first violation.

    Args:
        policy: Policy to check

    Raises:
        PolicyValidationError: name_required, invalid_profile or
        invalid_ssh_port, in that order of precedence
    """
    if not policy.name:
        raise PolicyValidationError(PolicyValidationError.NAME_REQUIRED, "name required")
    if policy.profile not in VALID_PROFILES:
        raise PolicyValidationError(PolicyValidationError.INVALID_PROFILE,
                                    f"invalid profile: {policy.profile}")
    if policy.ssh.port <= 0 or policy.ssh.port > 65535:
        raise PolicyValidationError(PolicyValidationError.INVALID_SSH_PORT,
                                    f"ssh.port invalid: {policy.ssh.port}")


_BASELINE_SYSCTL = {
    "kernel.kptr_restrict": "2",
    "net.ipv4.conf.all.accept_redirects": "0",
    "net.ipv4.conf.all.send_redirects": "0",
    "net.ipv4.tcp_syncookies": "1",
}


def default_policy(profile: Profile, name: str = "default") -> Policy:
    """
    Build a starting policy for a deployment profile.

    prod locks down root login and passwords and enables the firewall; dev
    keeps password logins; laptop keeps the firewall but only allows ssh.
    """
    profile = Profile(profile)
    if profile == Profile.PROD:
        ssh = SSHPolicy(permit_root_login="no", password_auth=False, port=22)
        firewall = FirewallPolicy(enabled=True, allow=["22/tcp", "443/tcp"])
        params = {**_BASELINE_SYSCTL, "kernel.dmesg_restrict": "1", "net.ipv4.ip_forward": "0"}
    elif profile == Profile.DEV:
        ssh = SSHPolicy(permit_root_login="prohibit-password", password_auth=True, port=22)
        firewall = FirewallPolicy(enabled=False, allow=["ssh"])
        params = dict(_BASELINE_SYSCTL)
    else:
        ssh = SSHPolicy(permit_root_login="no", password_auth=False, port=22)
        firewall = FirewallPolicy(enabled=True, allow=["ssh"])
        params = dict(_BASELINE_SYSCTL)

    return Policy(
        name=name,
        profile=profile.value,
        ssh=ssh,
        sysctl=SysctlPolicy(params=params),
        firewall=firewall,
        meta={},
    )

"""
Operating System detection utilities.

Reads the distribution identity from os-release and resolves the package
manager family that decides, among other things, the firewall backend.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Union

from ..core.models import DistroInfo, PackageManagerFamily

logger = logging.getLogger(__name__)

DEFAULT_OS_RELEASE = Path("/etc/os-release")

_FAMILY_BY_ID = {
    "ubuntu": PackageManagerFamily.APT,
    "debian": PackageManagerFamily.APT,
    "fedora": PackageManagerFamily.DNF,
    "centos": PackageManagerFamily.YUM,
    "rhel": PackageManagerFamily.YUM,
    "arch": PackageManagerFamily.PACMAN,
}


def detect_distro(os_release_path: Union[str, Path] = DEFAULT_OS_RELEASE) -> DistroInfo:
    """
    Detect the Linux distribution and its package manager family.

    Args:
        os_release_path: os-release file to parse

    Returns:
        DistroInfo: Distribution identity; a generic APT-family identity
        when the file cannot be read
    """
    try:
        os_info = _parse_os_release(Path(os_release_path))
    except OSError as e:
        logger.warning("Cannot read %s (%s); assuming generic Linux", os_release_path, e)
        return DistroInfo(id="unknown", name="Linux", version="",
                          package_manager=PackageManagerFamily.APT)

    return DistroInfo(
        id=os_info.get("ID", ""),
        name=os_info.get("NAME", ""),
        version=os_info.get("VERSION_ID", ""),
        package_manager=package_manager_for(os_info.get("ID", ""), os_info.get("ID_LIKE", "")),
    )


def _parse_os_release(os_release_path: Path) -> Dict[str, str]:
    """Parse an os-release file into a dictionary."""
    os_info = {}

    with open(os_release_path, 'r') as f:
        for line in f:
            line = line.strip()
            if '=' in line and not line.startswith('#'):
                key, value = line.split('=', 1)
                # Remove quotes from value
                os_info[key] = value.strip('"\'')

    return os_info


def package_manager_for(distro_id: str, id_like: str = "") -> PackageManagerFamily:
    """Resolve the package manager family from ID, then ID_LIKE."""
    distro_id = distro_id.lower()
    if distro_id in _FAMILY_BY_ID:
        return _FAMILY_BY_ID[distro_id]

    # Derivatives name their parent in ID_LIKE
    like = id_like.lower().split()
    if "debian" in like or "ubuntu" in like:
        return PackageManagerFamily.APT
    if any(parent in like for parent in ("rhel", "fedora", "centos")):
        return PackageManagerFamily.DNF
    if "arch" in like:
        return PackageManagerFamily.PACMAN

    return PackageManagerFamily.APT


def is_admin() -> bool:
    """
    Check if the current process has root privileges.

    Returns:
        bool: True if the effective user id is 0
    """
    return os.geteuid() == 0

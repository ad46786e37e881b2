"""
Engine configuration: filesystem locations and command timeouts.

Defaults target a stock Linux host; a YAML file can override any of them,
which is also how the test-suite points the engine at a temporary directory.
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LINUX_HARDENER_CONFIG"


class HardenerSettings(BaseModel):
    """Paths and limits used by the modules."""
    sshd_config_path: Path = Path("/etc/ssh/sshd_config")
    sysctl_path: Path = Path("/etc/sysctl.d/60-linux-hardener.conf")
    snapshot_root: Path = Path("/var/backups/linux-hardener")
    os_release_path: Path = Path("/etc/os-release")
    command_timeout: float = 30.0


def load_config(config_path: Optional[str] = None) -> HardenerSettings:
    """
    Load settings from a YAML file, falling back to defaults.

    Args:
        config_path: Path to the configuration file. When None, the
            LINUX_HARDENER_CONFIG environment variable is consulted.

    Returns:
        HardenerSettings: Defaults merged with the file's values
    """
    config_path = config_path or os.environ.get(CONFIG_ENV_VAR)
    if not config_path or not Path(config_path).exists():
        return HardenerSettings()

    try:
        with open(config_path, 'r') as f:
            user_config = yaml.safe_load(f) or {}
        # Accept either a top-level "hardener" section or a flat mapping
        if isinstance(user_config, dict) and isinstance(user_config.get("hardener"), dict):
            user_config = user_config["hardener"]
        if not isinstance(user_config, dict):
            raise ValueError("configuration must be a mapping")
        return HardenerSettings(**user_config)
    except (OSError, yaml.YAMLError, ValueError, ValidationError) as e:
        logger.warning("Ignoring configuration %s: %s", config_path, e)
        return HardenerSettings()

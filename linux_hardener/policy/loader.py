"""
Policy document loader.

Reads and writes the YAML policy document. Loading only parses; invariants
are checked separately by ``validate_policy`` so callers can inspect a policy
that does not validate yet.
"""

import logging
from pathlib import Path
from typing import IO, Union

import yaml
from pydantic import ValidationError

from ..core.exceptions import PolicyValidationError
from ..core.models import Policy

logger = logging.getLogger(__name__)


def load_policy(path: Union[str, Path]) -> Policy:
    """
    Load a policy from a YAML file.

    Args:
        path: Policy document path

    Returns:
        Policy: Parsed (not yet validated) policy

    Raises:
        FileNotFoundError: If the file does not exist
        PolicyValidationError: If the document is not valid YAML or has
            fields of the wrong type
    """
    with open(path, 'r') as f:
        return parse_policy(f.read(), source=str(path))


def parse_policy(text: str, source: str = "<string>") -> Policy:
    """Parse policy YAML text."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise PolicyValidationError(PolicyValidationError.MALFORMED,
                                    f"{source}: YAML parsing error: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise PolicyValidationError(PolicyValidationError.MALFORMED,
                                    f"{source}: policy must be a mapping")

    try:
        policy = Policy(**data)
    except ValidationError as e:
        raise PolicyValidationError(PolicyValidationError.MALFORMED,
                                    f"{source}: {e}") from e

    logger.debug("Loaded policy %r from %s", policy.name, source)
    return policy


def save_policy(policy: Policy, stream: IO[str]) -> None:
    """Write ``policy`` as YAML with two-space indentation."""
    yaml.safe_dump(policy.model_dump(mode="json"), stream,
                   default_flow_style=False, indent=2, sort_keys=False)


def dump_policy(policy: Policy) -> str:
    """Render ``policy`` as a YAML string."""
    return yaml.safe_dump(policy.model_dump(mode="json"),
                          default_flow_style=False, indent=2, sort_keys=False)

"""
Report helpers for dry-run results.

Renders a single diff as text and builds the JSON document consumed by
dashboards and report renderers.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Union

from ..core.models import DistroInfo, DryRunResult, FileDiff, Policy


def render_side_by_side(diff: FileDiff) -> str:
    """Old and new content of one target, one block after the other."""
    return f"=== {diff.path} ===\n--- OLD ---\n{diff.old}\n--- NEW ---\n{diff.new}\n"


def build_report(host: str, policy: Policy, distro: DistroInfo,
                 result: DryRunResult) -> Dict[str, Any]:
    """
    Assemble the dry-run report document.

    Args:
        host: Hostname the preview was computed on
        policy: Policy that was previewed
        distro: Host distribution identity
        result: Aggregated dry-run result

    Returns:
        Dict[str, Any]: JSON-serialisable report
    """
    return {
        "timestamp": datetime.now().astimezone().isoformat(timespec="seconds"),
        "host": host,
        "distro": distro.model_dump(mode="json"),
        "policy": {"name": policy.name, "profile": policy.profile},
        "diffs": [d.model_dump() for d in result.diffs],
        "warnings": list(result.warnings),
        "meta": dict(policy.meta),
    }


def save_json(report: Dict[str, Any], output_path: Union[str, Path]) -> str:
    """
    Write the report as indented JSON, creating parent directories.

    Returns:
        str: Path to the written file
    """
    output_file = Path(output_path)
    output_file.parent.mkdir(parents=True, exist_ok=True)

    with open(output_file, 'w') as f:
        json.dump(report, f, indent=2)

    return str(output_file)

"""Workspace-level detectors that look across all flows."""

import logging
from collections import defaultdict

from copilot.models.finding import Finding, Severity
from copilot.models.flow import Flow

logger = logging.getLogger(__name__)

MAX_FLOWS = 10


def check_flow_count(flows: list[Flow]) -> list[Finding]:
    if len(flows) <= MAX_FLOWS:
        return []
    return [
        Finding(
            type="too-many-flows",
            severity=Severity.warning,
            title="Many flows",
            message=f"{len(flows)} flows may be hard to manage",
            action="Consider grouping related logic",
        )
    ]


def flow_signature(flow: Flow) -> str:
    """Structural signature: the sorted node types joined by commas."""
    return ",".join(sorted(node.type for node in flow.nodes))


def find_duplicate_groups(flows: list[Flow]) -> list[list[str]]:
    """Group flow ids by signature and keep groups with two or more members.

    Flows without nodes share the empty signature and group together too.
    """
    groups: dict[str, list[str]] = defaultdict(list)
    for flow in flows:
        groups[flow_signature(flow)].append(flow.id)
    return [flow_ids for flow_ids in groups.values() if len(flow_ids) > 1]


def check_duplicate_logic(flows: list[Flow]) -> list[Finding]:
    duplicates = find_duplicate_groups(flows)
    if not duplicates:
        return []
    listed = "; ".join(", ".join(group) for group in duplicates)
    return [
        Finding(
            type="duplicate-logic",
            severity=Severity.info,
            title="Duplicated logic",
            message=f"Similar patterns found in {len(duplicates)} flow groups: {listed}",
            action="Create a subflow to reuse the logic",
        )
    ]


WORKSPACE_DETECTORS = (check_flow_count, check_duplicate_logic)


def find_global_issues(flows: list[Flow]) -> list[Finding]:
    """Run every workspace detector, skipping any that raise."""
    issues: list[Finding] = []
    for detector in WORKSPACE_DETECTORS:
        try:
            issues.extend(detector(flows))
        except Exception:
            logger.warning("workspace detector %s failed, skipping", detector.__name__, exc_info=True)
    return issues

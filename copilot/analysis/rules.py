"""Rule engine: independent detectors over a flow's nodes.

Every detector is a pure function ``(nodes) -> list[Finding]``. Detectors do
not depend on each other; ``run_detectors`` calls each one in isolation so a
faulty rule is logged and skipped instead of aborting the pass.
"""

import logging
import re
from collections.abc import Callable, Iterable

from copilot.analysis.graph_metrics import count_connections
from copilot.models.finding import Finding, Severity
from copilot.models.flow import FlowNode

logger = logging.getLogger(__name__)

Detector = Callable[[list[FlowNode]], list[Finding]]

# types that carry no message path and are never reported as disconnected
STRUCTURAL_TYPES = {"comment", "tab", "group"}
# types that legitimately have no input
SOURCE_LIKE_TYPES = {"inject"}
# types that legitimately have no output
SINK_LIKE_TYPES = {"debug", "http response"}

# types that can raise at runtime and want a catch node somewhere in the flow
RISKY_TYPES = {"function", "http request", "exec", "file", "tcp"}

MAX_HTTP_REQUESTS = 5

# heuristics for slow code inside function nodes
HEAVY_PATTERNS = [
    re.compile(r"for\s*\([^)]*;\s*[^<]*<\s*\d{3,}"),  # for loops with large bounds
    re.compile(r"while\s*\([^)]*\d{3,}"),  # while loops with large numbers
    re.compile(r"\.map\s*\([^)]*\)\.map"),  # chained map calls
    re.compile(r"JSON\.parse\s*\([^)]*\.length\s*>\s*\d{4}"),  # parsing large JSON
]

AUTH_MARKERS = ("auth", "login", "token")


def find_disconnected_nodes(nodes: list[FlowNode]) -> list[Finding]:
    """Report nodes that take no part in any message path."""
    has_output: set[str] = set()
    has_input: set[str] = set()

    for node in nodes:
        if node.type in STRUCTURAL_TYPES:
            continue
        if any(port for port in node.wires):
            has_output.add(node.id)
            has_input.update(node.targets())

    disconnected = []
    for node in nodes:
        if node.type in STRUCTURAL_TYPES:
            continue
        if node.type in SOURCE_LIKE_TYPES:
            missing = node.id not in has_output
        elif node.type in SINK_LIKE_TYPES:
            missing = node.id not in has_input
        else:
            missing = node.id not in has_input and node.id not in has_output
        if missing:
            disconnected.append(node.id)

    if not disconnected:
        return []
    return [
        Finding(
            type="disconnected",
            severity=Severity.warning,
            title="Disconnected nodes",
            message=f"{len(disconnected)} nodes are not connected",
            node_ids=disconnected,
            action="Connect or remove unused nodes",
        )
    ]


def check_error_handling(nodes: list[FlowNode]) -> list[Finding]:
    """Flag flows with error-prone nodes but no catch node."""
    risky = [node.id for node in nodes if node.type in RISKY_TYPES]
    has_catch = any(node.type == "catch" for node in nodes)

    if not risky or has_catch:
        return []
    return [
        Finding(
            type="no-error-handling",
            severity=Severity.high,
            title="No error handling",
            message=f"{len(risky)} nodes can raise errors",
            node_ids=risky,
            action="Add catch nodes to handle errors",
        )
    ]


def has_heavy_operations(code: str) -> bool:
    """Whether function source matches any slow-code heuristic."""
    return any(pattern.search(code) for pattern in HEAVY_PATTERNS)


def find_performance_issues(nodes: list[FlowNode]) -> list[Finding]:
    """Too many outbound HTTP requests and heavy function nodes."""
    issues = []

    http_nodes = [node.id for node in nodes if node.type == "http request"]
    if len(http_nodes) > MAX_HTTP_REQUESTS:
        issues.append(
            Finding(
                type="too-many-http",
                severity=Severity.warning,
                title="Many HTTP requests",
                message=f"{len(http_nodes)} HTTP requests may overload the server",
                node_ids=http_nodes,
                action="Add delay nodes or batch the requests",
            )
        )

    heavy = []
    for node in nodes:
        code = node.get("func")
        if node.type == "function" and isinstance(code, str) and code:
            if has_heavy_operations(code):
                heavy.append(node.id)

    if heavy:
        issues.append(
            Finding(
                type="heavy-function",
                severity=Severity.warning,
                title="Heavy operations in function nodes",
                message=f"{len(heavy)} function nodes contain potentially slow code",
                node_ids=heavy,
                action="Optimise the loops or move the logic into a separate module",
            )
        )

    return issues


def find_security_issues(nodes: list[FlowNode]) -> list[Finding]:
    """HTTP endpoints that accept writes without any sign of authentication."""
    unsecured = []
    for node in nodes:
        if node.type != "http in":
            continue
        url = node.get("url") or ""
        method = node.get("method")
        has_auth = isinstance(url, str) and any(marker in url for marker in AUTH_MARKERS)
        if not has_auth and method != "get":
            unsecured.append(node.id)

    if not unsecured:
        return []
    return [
        Finding(
            type="unsecure-http",
            severity=Severity.high,
            title="Unauthenticated HTTP endpoints",
            message=f"{len(unsecured)} endpoints may be vulnerable",
            node_ids=unsecured,
            action="Add token checks or basic authentication",
        )
    ]


def check_flow_size(nodes: list[FlowNode]) -> list[Finding]:
    """Large flows are hard to follow; suggest splitting them."""
    if len(nodes) <= 20:
        return []
    return [
        Finding(
            type="complexity",
            severity=Severity.info,
            title="High complexity",
            message=f"Flow contains {len(nodes)} nodes and {count_connections(nodes)} wires",
            action="Consider splitting the flow into subflows",
        )
    ]


FLOW_DETECTORS: tuple[Detector, ...] = (
    find_disconnected_nodes,
    check_error_handling,
    find_performance_issues,
    find_security_issues,
)


def run_detectors(
    nodes: list[FlowNode],
    detectors: Iterable[Detector] = FLOW_DETECTORS,
) -> list[Finding]:
    """Run each detector, skipping (and logging) any that raise.

    Args:
        nodes: nodes of a single flow
        detectors: detectors to run, in reporting order

    Returns:
        findings of all detectors that completed, in detector order
    """
    findings: list[Finding] = []
    for detector in detectors:
        try:
            findings.extend(detector(nodes))
        except Exception:
            name = getattr(detector, "__name__", repr(detector))
            logger.warning("detector %s failed, skipping", name, exc_info=True)
    return findings

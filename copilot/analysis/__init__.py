"""Flow analysis: graph metrics, rules, patterns, caching and aggregation."""

from copilot.analysis.aggregator import Aggregator, generate_summary, top_recommendations
from copilot.analysis.cache import AnalysisCache, fingerprint, hash_code
from copilot.analysis.graph_metrics import (
    calculate_complexity,
    calculate_depth,
    calculate_metrics,
    count_branches,
    count_connections,
    detect_cycles,
)
from copilot.analysis.patterns import detect_patterns
from copilot.analysis.refresh import AutoRefresher
from copilot.analysis.rules import (
    check_error_handling,
    find_disconnected_nodes,
    find_performance_issues,
    find_security_issues,
    run_detectors,
)
from copilot.analysis.workspace_rules import find_duplicate_groups, find_global_issues

__all__ = [
    # graph_metrics exports
    "calculate_complexity",
    "calculate_depth",
    "calculate_metrics",
    "count_branches",
    "count_connections",
    "detect_cycles",
    # rule engine exports
    "check_error_handling",
    "detect_patterns",
    "find_disconnected_nodes",
    "find_duplicate_groups",
    "find_global_issues",
    "find_performance_issues",
    "find_security_issues",
    "run_detectors",
    # cache exports
    "AnalysisCache",
    "fingerprint",
    "hash_code",
    # aggregation exports
    "Aggregator",
    "AutoRefresher",
    "generate_summary",
    "top_recommendations",
]

#!/usr/bin/env python3
"""CLI script to analyze an editor flow export.

Usage:
    flow-copilot flows.json

    # or with JSON output
    flow-copilot flows.json --json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from copilot.analysis.aggregator import Aggregator
from copilot.models.analysis import GlobalAnalysis
from copilot.models.flow import Flow, group_flat_flows


def load_flows(flows_file: Path) -> list[Flow]:
    """Load and group flows from an export file.

    Args:
        flows_file: path to the flows.json export

    Returns:
        list of Flow objects in tab order
    """
    with open(flows_file) as f:
        data = json.load(f)
    return group_flat_flows(data)


def format_analysis(analysis: GlobalAnalysis) -> str:
    """Format a workspace analysis for human-readable output."""
    summary = analysis.summary
    lines = []
    lines.append("=" * 60)
    lines.append("FLOW ANALYSIS")
    lines.append("=" * 60)
    lines.append("")

    lines.append(f"Status:             {summary.status.value}")
    lines.append(f"Flows:              {analysis.total_flows}")
    lines.append(f"Nodes:              {analysis.total_nodes}")
    lines.append(f"Issues:             {summary.total_issues} ({summary.high_severity_issues} high)")
    lines.append(f"Patterns:           {summary.patterns_detected}")
    lines.append(f"Average complexity: {summary.average_complexity}")
    lines.append("")

    for flow in analysis.flow_analyses:
        lines.append("-" * 40)
        lines.append(f"{flow.label} ({flow.node_count} nodes, {flow.complexity.level.value})")
        lines.append("-" * 40)
        metrics = flow.metrics
        lines.append(
            f"  wires: {metrics.connections}  depth: {metrics.depth}  "
            f"branches: {metrics.branches}  cycles: {metrics.cycles}"
        )
        for issue in flow.issues:
            lines.append(f"  [{issue.severity.value}] {issue.title}: {issue.message}")
            if issue.node_ids:
                lines.append(f"    Nodes: {', '.join(issue.node_ids)}")
            if issue.action:
                lines.append(f"    Fix: {issue.action}")
        for pattern in flow.patterns:
            lines.append(f"  {pattern.icon} {pattern.name} ({pattern.confidence}%)")
        if not flow.issues:
            lines.append("  ✓ No issues detected")
        lines.append("")

    if analysis.global_issues:
        lines.append("-" * 40)
        lines.append("WORKSPACE")
        lines.append("-" * 40)
        for issue in analysis.global_issues:
            lines.append(f"  [{issue.severity.value}] {issue.title}: {issue.message}")
        lines.append("")

    if summary.recommendations:
        lines.append("-" * 40)
        lines.append("RECOMMENDATIONS")
        lines.append("-" * 40)
        for recommendation in summary.recommendations:
            lines.append(f"  • {recommendation}")
        lines.append("")

    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(
        description="Analyze a flow export and report issues, patterns and complexity."
    )
    parser.add_argument(
        "flows_file",
        type=Path,
        help="path to the flows.json export",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="output analysis as JSON instead of human-readable format",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="log detector and cache activity to stderr",
    )

    args = parser.parse_args()
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.flows_file.exists():
        print(f"Error: flows file not found: {args.flows_file}", file=sys.stderr)
        sys.exit(1)

    try:
        flows = load_flows(args.flows_file)
    except ValueError as exc:
        print(f"Error: could not parse {args.flows_file}: {exc}", file=sys.stderr)
        sys.exit(1)

    analysis = asyncio.run(Aggregator().analyze_workspace(flows))

    if args.json:
        print(analysis.model_dump_json(indent=2))
    else:
        print(format_analysis(analysis))


if __name__ == "__main__":
    main()

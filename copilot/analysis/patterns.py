"""Recognition of common flow archetypes from node-type composition.

Checks run in table order and are independent: every matching archetype is
reported. Confidence values are fixed per archetype.
"""

from collections.abc import Callable

from copilot.models.finding import Pattern
from copilot.models.flow import FlowNode

PATTERN_TABLE: list[tuple[Callable[[set[str]], bool], Pattern]] = [
    (
        lambda types: "http in" in types and "http response" in types,
        Pattern(
            name="HTTP API",
            confidence=90,
            icon="🌐",
            description="REST API endpoints",
            recommendations=[
                "Add rate limiting",
                "Validate incoming data",
                "Log requests",
            ],
        ),
    ),
    (
        lambda types: "mqtt in" in types and ("function" in types or "switch" in types),
        Pattern(
            name="IoT Sensor",
            confidence=85,
            icon="📡",
            description="Sensor data processing",
            recommendations=[
                "Filter out anomalous readings",
                "Check signal quality",
            ],
        ),
    ),
    (
        lambda types: any(t.startswith("ui_") for t in types),
        Pattern(
            name="Dashboard",
            confidence=95,
            icon="📊",
            description="Monitoring dashboard",
            recommendations=[
                "Limit the update rate",
                "Group related widgets",
            ],
        ),
    ),
    (
        lambda types: "inject" in types
        and "switch" in types
        and ("change" in types or "function" in types),
        Pattern(
            name="Automation",
            confidence=80,
            icon="🤖",
            description="Process automation",
            recommendations=[
                "Log automated actions",
                "Provide a manual override",
            ],
        ),
    ),
]


def detect_patterns(nodes: list[FlowNode]) -> list[Pattern]:
    """Return every archetype whose predicate holds for the flow's node types."""
    types = {node.type for node in nodes}
    return [pattern for matches, pattern in PATTERN_TABLE if matches(types)]

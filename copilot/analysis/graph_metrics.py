"""Structural metrics over a flow's node and wire graph.

All functions are pure and take the node list of a single flow. Wire
targets that do not name a node of the same flow are treated as missing
edges. Traversals use explicit stacks so long chains cannot exhaust the
interpreter's recursion limit.
"""

from copilot.models.analysis import Complexity, ComplexityLevel, FlowMetrics
from copilot.models.flow import FlowNode

# node types that start a message path
SOURCE_TYPES = {"inject", "http in", "mqtt in", "websocket in"}

COMPLEX_THRESHOLD = 50
MEDIUM_THRESHOLD = 20


def _index(nodes: list[FlowNode]) -> dict[str, FlowNode]:
    return {node.id: node for node in nodes}


def count_connections(nodes: list[FlowNode]) -> int:
    """Total number of wire targets across all nodes and output ports."""
    return sum(len(port) for node in nodes for port in node.wires)


def _walk_depth(start: FlowNode, index: dict[str, FlowNode]) -> int:
    """Depth reached from one source node.

    The visited set is shared by the whole walk, so every node is expanded
    at most once even when it is reachable along several paths.
    """
    visited = {start.id}
    # frame: [targets, position, depth of this node, deepest depth seen below it]
    stack = [[start.targets(), 0, 0, 0]]

    while True:
        frame = stack[-1]
        targets, position, depth, _ = frame
        if position < len(targets):
            frame[1] += 1
            target = targets[position]
            if target not in index:
                continue
            if target in visited:
                frame[3] = max(frame[3], depth + 1)
                continue
            visited.add(target)
            child_depth = depth + 1
            stack.append([index[target].targets(), 0, child_depth, child_depth])
            continue

        stack.pop()
        reached = max(depth, frame[3])
        if not stack:
            return reached
        stack[-1][3] = max(stack[-1][3], reached)


def calculate_depth(nodes: list[FlowNode]) -> int:
    """Longest chain reachable from any source node; 0 without sources."""
    index = _index(nodes)
    max_depth = 0
    for node in nodes:
        if node.type in SOURCE_TYPES:
            max_depth = max(max_depth, _walk_depth(node, index))
    return max_depth


def count_branches(nodes: list[FlowNode]) -> int:
    """Each node fanning out to n > 1 targets contributes n - 1."""
    branches = 0
    for node in nodes:
        fan_out = len(node.targets())
        if fan_out > 1:
            branches += fan_out - 1
    return branches


def detect_cycles(nodes: list[FlowNode]) -> int:
    """Count back edges found by depth-first search.

    Uses a global visited set and a per-path recursion stack. Every edge into
    a node that is still on the active path counts once, so the result is the
    number of back edges rather than the number of distinct cycles. A node
    wired to itself counts as a cycle.
    """
    index = _index(nodes)
    visited: set[str] = set()
    on_path: set[str] = set()
    cycles = 0

    for root in nodes:
        if root.id in visited:
            continue
        visited.add(root.id)
        on_path.add(root.id)
        stack = [(root.id, iter(root.targets()))]

        while stack:
            node_id, targets = stack[-1]
            target = next(targets, None)
            if target is None:
                stack.pop()
                on_path.discard(node_id)
                continue
            if target in on_path:
                cycles += 1
            elif target not in visited and target in index:
                visited.add(target)
                on_path.add(target)
                stack.append((target, iter(index[target].targets())))

    return cycles


def calculate_metrics(nodes: list[FlowNode]) -> FlowMetrics:
    return FlowMetrics(
        connections=count_connections(nodes),
        depth=calculate_depth(nodes),
        branches=count_branches(nodes),
        cycles=detect_cycles(nodes),
    )


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def calculate_complexity(nodes: list[FlowNode]) -> Complexity:
    """Composite complexity score and level for one flow.

    score = nodes + 0.5 * connections + 2 * depth + 1.5 * branches; the level
    is taken from the unrounded score.
    """
    node_count = len(nodes)
    connections = count_connections(nodes)
    depth = calculate_depth(nodes)
    branches = count_branches(nodes)

    score = node_count + connections * 0.5 + depth * 2 + branches * 1.5

    level = ComplexityLevel.simple
    if score > COMPLEX_THRESHOLD:
        level = ComplexityLevel.complex
    elif score > MEDIUM_THRESHOLD:
        level = ComplexityLevel.medium

    return Complexity(
        level=level,
        score=_round_half_up(score),
        node_count=node_count,
        connections=connections,
        depth=depth,
        branches=branches,
    )

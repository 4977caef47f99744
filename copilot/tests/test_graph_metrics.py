"""Tests for structural flow metrics."""

from copilot.analysis.graph_metrics import (
    calculate_complexity,
    calculate_depth,
    calculate_metrics,
    count_branches,
    count_connections,
    detect_cycles,
)
from copilot.models.analysis import ComplexityLevel
from copilot.models.flow import FlowNode


def node(node_id: str, node_type: str = "function", *targets: str, ports=None) -> FlowNode:
    wires = ports if ports is not None else ([list(targets)] if targets else [])
    return FlowNode(id=node_id, type=node_type, wires=wires)


class TestConnectionsAndBranches:
    """Wire counting across output ports."""

    def test_counts_every_wire_target(self):
        nodes = [
            node("a", "inject", ports=[["b", "c"], ["d"]]),
            node("b", "debug"),
            node("c", "debug"),
            node("d", "debug"),
        ]
        assert count_connections(nodes) == 3

    def test_branches_add_fan_out_minus_one(self):
        """A node wired to three targets contributes two branches."""
        nodes = [node("a", "switch", "b", "c", "d"), node("b"), node("c"), node("d")]
        assert count_branches(nodes) == 2

    def test_fan_out_spans_ports(self):
        nodes = [node("a", "switch", ports=[["b"], ["c"]]), node("b"), node("c")]
        assert count_branches(nodes) == 1

    def test_empty_flow(self):
        metrics = calculate_metrics([])
        assert metrics.connections == 0
        assert metrics.depth == 0
        assert metrics.branches == 0
        assert metrics.cycles == 0


class TestDepth:
    """Longest chain from source nodes."""

    def test_no_sources_means_zero_depth(self):
        """Without inject/http in/mqtt in/websocket in nodes, depth is 0."""
        nodes = [node("a", "function", "b"), node("b", "function", "c"), node("c", "debug")]
        assert calculate_depth(nodes) == 0

    def test_linear_chain(self):
        nodes = [node("a", "inject", "b"), node("b", "function", "c"), node("c", "debug")]
        assert calculate_depth(nodes) == 2

    def test_longest_branch_wins(self):
        nodes = [
            node("src", "http in", "short", "long1"),
            node("short", "http response"),
            node("long1", "function", "long2"),
            node("long2", "function", "long3"),
            node("long3", "http response"),
        ]
        assert calculate_depth(nodes) == 3

    def test_dangling_wire_is_ignored(self):
        nodes = [node("a", "inject", "missing", "b"), node("b", "debug")]
        assert calculate_depth(nodes) == 1

    def test_loop_terminates(self):
        nodes = [node("a", "inject", "b"), node("b", "function", "c"), node("c", "function", "b")]
        assert calculate_depth(nodes) >= 2

    def test_long_chain_does_not_recurse(self):
        """Walks use an explicit stack, so very long chains are fine."""
        count = 5000
        nodes = [node("n0", "inject", "n1")]
        nodes += [node(f"n{i}", "function", f"n{i + 1}") for i in range(1, count)]
        nodes.append(node(f"n{count}", "debug"))
        assert calculate_depth(nodes) == count


class TestCycles:
    """Back-edge counting."""

    def test_acyclic_flow(self):
        nodes = [node("a", "inject", "b", "c"), node("b", "function", "c"), node("c", "debug")]
        assert detect_cycles(nodes) == 0

    def test_self_loop_counts(self):
        nodes = [node("a", "function", "a")]
        assert detect_cycles(nodes) >= 1

    def test_two_node_loop(self):
        nodes = [node("a", "function", "b"), node("b", "function", "a")]
        assert detect_cycles(nodes) == 1

    def test_dangling_target_is_not_a_cycle(self):
        nodes = [node("a", "function", "ghost")]
        assert detect_cycles(nodes) == 0


class TestComplexity:
    """Composite score and level."""

    def test_simple_flow(self):
        nodes = [node("a", "inject", "b"), node("b", "debug")]
        complexity = calculate_complexity(nodes)
        # 2 nodes + 0.5 * 1 wire + 2 * depth 1 = 4.5
        assert complexity.score == 5
        assert complexity.level == ComplexityLevel.simple
        assert complexity.node_count == 2
        assert complexity.connections == 1
        assert complexity.depth == 1
        assert complexity.branches == 0

    def test_medium_flow(self):
        nodes = [node(f"n{i}") for i in range(21)]
        complexity = calculate_complexity(nodes)
        assert complexity.score == 21
        assert complexity.level == ComplexityLevel.medium

    def test_complex_flow(self):
        nodes = [node(f"n{i}") for i in range(51)]
        assert calculate_complexity(nodes).level == ComplexityLevel.complex

    def test_threshold_is_exclusive(self):
        nodes = [node(f"n{i}") for i in range(20)]
        assert calculate_complexity(nodes).level == ComplexityLevel.simple

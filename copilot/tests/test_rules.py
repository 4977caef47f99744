"""Tests for flow detectors and pattern recognition."""

import logging

from copilot.analysis.patterns import detect_patterns
from copilot.analysis.rules import (
    FLOW_DETECTORS,
    check_error_handling,
    check_flow_size,
    find_disconnected_nodes,
    find_performance_issues,
    find_security_issues,
    run_detectors,
)
from copilot.models.finding import Severity
from copilot.models.flow import FlowNode


def node(node_id: str, node_type: str, *targets: str, **config) -> FlowNode:
    return FlowNode(id=node_id, type=node_type, wires=[list(targets)] if targets else [], **config)


class TestDisconnectedNodes:
    """Nodes outside every message path."""

    def test_unwired_source_and_sink_are_reported(self):
        """An unwired inject and an unwired debug are both disconnected."""
        findings = find_disconnected_nodes([node("i", "inject"), node("d", "debug")])
        assert len(findings) == 1
        assert findings[0].type == "disconnected"
        assert findings[0].severity == Severity.warning
        assert findings[0].node_ids == ["i", "d"]

    def test_wired_flow_is_clean(self):
        nodes = [node("i", "inject", "f"), node("f", "function", "d"), node("d", "debug")]
        assert find_disconnected_nodes(nodes) == []

    def test_comments_are_ignored(self):
        assert find_disconnected_nodes([node("c", "comment")]) == []

    def test_sink_with_only_output_is_disconnected(self):
        """A debug node must receive messages to count as connected."""
        nodes = [node("d", "debug", "x"), node("x", "function")]
        findings = find_disconnected_nodes(nodes)
        assert findings[0].node_ids == ["d"]


class TestErrorHandling:
    """Risky nodes without a catch node."""

    def test_risky_nodes_without_catch(self):
        nodes = [node("f", "function"), node("h", "http request"), node("d", "debug")]
        findings = check_error_handling(nodes)
        assert len(findings) == 1
        assert findings[0].type == "no-error-handling"
        assert findings[0].severity == Severity.high
        assert findings[0].node_ids == ["f", "h"]

    def test_catch_node_clears_the_finding(self):
        assert check_error_handling([node("f", "function"), node("c", "catch")]) == []

    def test_no_risky_nodes(self):
        assert check_error_handling([node("i", "inject"), node("d", "debug")]) == []


class TestPerformance:
    """HTTP request volume and slow function code."""

    def test_too_many_http_requests(self):
        nodes = [node(f"h{i}", "http request") for i in range(6)]
        findings = find_performance_issues(nodes)
        assert [f.type for f in findings] == ["too-many-http"]
        assert len(findings[0].node_ids) == 6

    def test_five_http_requests_are_fine(self):
        nodes = [node(f"h{i}", "http request") for i in range(5)]
        assert find_performance_issues(nodes) == []

    def test_large_loop_is_heavy(self):
        code = "for (let i = 0; i < 10000; i++) { msg.payload += i; }"
        findings = find_performance_issues([node("f", "function", func=code)])
        assert [f.type for f in findings] == ["heavy-function"]
        assert findings[0].node_ids == ["f"]

    def test_chained_map_is_heavy(self):
        code = "return data.map(x => x * 2).map(x => x + 1);"
        findings = find_performance_issues([node("f", "function", func=code)])
        assert findings[0].type == "heavy-function"

    def test_large_while_loop_is_heavy(self):
        code = "let i = 0; while (i < 100000) { i++; } return msg;"
        findings = find_performance_issues([node("f", "function", func=code)])
        assert [f.type for f in findings] == ["heavy-function"]

    def test_large_json_parse_is_heavy(self):
        code = "const data = JSON.parse(x.length > 10000 ? x : \"{}\"); return msg;"
        findings = find_performance_issues([node("f", "function", func=code)])
        assert [f.type for f in findings] == ["heavy-function"]

    def test_small_while_loop_is_fine(self):
        code = "while (i < 10) { i++; }"
        assert find_performance_issues([node("f", "function", func=code)]) == []

    def test_small_loop_is_fine(self):
        code = "for (let i = 0; i < 10; i++) {}"
        assert find_performance_issues([node("f", "function", func=code)]) == []

    def test_function_without_code(self):
        assert find_performance_issues([node("f", "function")]) == []


class TestSecurity:
    """Write endpoints without authentication markers."""

    def test_unauthenticated_post(self):
        findings = find_security_issues([node("h", "http in", method="post", url="/data")])
        assert len(findings) == 1
        assert findings[0].type == "unsecure-http"
        assert findings[0].severity == Severity.high

    def test_get_endpoint_is_fine(self):
        assert find_security_issues([node("h", "http in", method="get", url="/data")]) == []

    def test_method_comparison_is_exact(self):
        """Only a lowercase "get" counts as read-only."""
        assert len(find_security_issues([node("h", "http in", method="GET", url="/data")])) == 1
        assert len(find_security_issues([node("h", "http in", url="/data")])) == 1

    def test_auth_in_url(self):
        assert find_security_issues([node("h", "http in", method="post", url="/auth/data")]) == []
        assert find_security_issues([node("h", "http in", method="put", url="/api?token=1")]) == []


class TestFlowSize:
    """Large-flow hint used by the builtin analyzer."""

    def test_small_flow(self):
        assert check_flow_size([node(f"n{i}", "function") for i in range(20)]) == []

    def test_large_flow(self):
        findings = check_flow_size([node(f"n{i}", "function") for i in range(21)])
        assert findings[0].type == "complexity"
        assert findings[0].severity == Severity.info


class TestRunDetectors:
    """Detector isolation."""

    def test_failing_detector_is_skipped(self, caplog):
        def broken(nodes):
            raise RuntimeError("boom")

        nodes = [node("f", "function")]
        with caplog.at_level(logging.WARNING):
            findings = run_detectors(nodes, (broken, check_error_handling))

        assert [f.type for f in findings] == ["no-error-handling"]
        assert "broken" in caplog.text

    def test_findings_follow_detector_order(self):
        nodes = [node("h", "http in", method="post", url="/x"), node("f", "function")]
        findings = run_detectors(nodes, FLOW_DETECTORS)
        assert [f.type for f in findings] == ["disconnected", "no-error-handling", "unsecure-http"]


class TestPatterns:
    """Archetype recognition."""

    def test_http_api(self):
        patterns = detect_patterns([node("i", "http in"), node("o", "http response")])
        assert [p.name for p in patterns] == ["HTTP API"]
        assert patterns[0].confidence == 90

    def test_iot_sensor(self):
        patterns = detect_patterns([node("m", "mqtt in"), node("s", "switch")])
        assert [p.name for p in patterns] == ["IoT Sensor"]

    def test_dashboard(self):
        patterns = detect_patterns([node("g", "ui_gauge")])
        assert [p.name for p in patterns] == ["Dashboard"]
        assert patterns[0].confidence == 95

    def test_multiple_patterns(self):
        nodes = [node("i", "inject"), node("s", "switch"), node("c", "change"), node("u", "ui_chart")]
        assert [p.name for p in detect_patterns(nodes)] == ["Dashboard", "Automation"]

    def test_no_pattern(self):
        assert detect_patterns([node("d", "debug")]) == []

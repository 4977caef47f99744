"""Tests for workspace analysis."""

import asyncio
import json

import httpx

from copilot.analysis import aggregator as aggregator_module
from copilot.analysis import workspace_rules
from copilot.analysis.aggregator import Aggregator, generate_summary, top_recommendations
from copilot.analysis.cache import AnalysisCache
from copilot.analysis.refresh import AutoRefresher
from copilot.backends.dispatcher import BackendDispatcher
from copilot.backends.registry import ModelRegistry
from copilot.models.analysis import AnalysisStatus, FlowAnalysis
from copilot.models.finding import Finding, Pattern, Severity
from copilot.models.flow import Flow, FlowNode


HEAVY_CODE = "for (let i = 0; i < 10000; i++) { msg.payload.push(i); } return msg;"


def simple_flow(flow_id: str) -> Flow:
    return Flow(
        id=flow_id,
        nodes=[
            FlowNode(id=f"{flow_id}-i", type="inject", wires=[[f"{flow_id}-d"]]),
            FlowNode(id=f"{flow_id}-d", type="debug"),
        ],
    )


def api_flow() -> Flow:
    return Flow(
        id="api",
        label="API",
        nodes=[
            FlowNode(id="in", type="http in", method="get", url="/items", wires=[["fn"]]),
            FlowNode(id="fn", type="function", func=HEAVY_CODE, wires=[["out"]]),
            FlowNode(id="out", type="http response"),
            FlowNode(id="catch", type="catch", wires=[["out"]]),
        ],
    )


class TestAnalyzeWorkspace:
    """End-to-end workspace passes with local analysis."""

    def test_empty_workspace(self):
        analysis = asyncio.run(Aggregator().analyze_workspace([]))
        assert analysis.total_flows == 0
        assert analysis.total_nodes == 0
        assert analysis.summary.status == AnalysisStatus.excellent
        assert analysis.summary.average_complexity == 0

    def test_none_workspace(self):
        assert asyncio.run(Aggregator().analyze_workspace(None)).total_flows == 0

    def test_http_api_flow(self):
        analysis = asyncio.run(Aggregator().analyze_workspace([api_flow()]))
        flow = analysis.flow_analyses[0]

        assert flow.label == "API"
        assert [p.name for p in flow.patterns] == ["HTTP API"]
        assert flow.patterns[0].confidence == 90
        assert [i.type for i in flow.issues] == ["heavy-function"]
        assert flow.issues[0].node_ids == ["fn"]
        assert flow.metrics.depth == 2
        assert analysis.summary.status == AnalysisStatus.good
        assert analysis.summary.recommendations == [
            "Add rate limiting",
            "Validate incoming data",
            "Log requests",
        ]

    def test_http_api_with_heavy_loop(self):
        """http in, a 10,000-iteration function and http response."""
        flow = Flow(
            id="loop",
            nodes=[
                FlowNode(id="in", type="http in", wires=[["fn"]]),
                FlowNode(id="fn", type="function", func=HEAVY_CODE, wires=[["out"]]),
                FlowNode(id="out", type="http response"),
            ],
        )
        analysis = asyncio.run(Aggregator().analyze_workspace([flow])).flow_analyses[0]

        assert ("HTTP API", 90) in [(p.name, p.confidence) for p in analysis.patterns]
        assert "heavy-function" in [i.type for i in analysis.issues]

    def test_many_flows(self):
        """Eleven identical flows trigger both workspace findings."""
        flows = [simple_flow(f"f{i}") for i in range(11)]
        analysis = asyncio.run(Aggregator().analyze_workspace(flows))

        types = [issue.type for issue in analysis.global_issues]
        assert types == ["too-many-flows", "duplicate-logic"]
        assert analysis.global_issues[0].severity == Severity.warning
        assert analysis.total_flows == 11
        assert analysis.total_nodes == 22
        assert analysis.summary.status == AnalysisStatus.good
        assert analysis.summary.recommendations[0] == "Consider grouping related logic"

    def test_empty_flows_are_counted_but_not_analyzed(self):
        flows = [simple_flow("a"), Flow(id="empty")]
        analysis = asyncio.run(Aggregator().analyze_workspace(flows))
        assert analysis.total_flows == 2
        assert [f.id for f in analysis.flow_analyses] == ["a"]

    def test_high_severity_needs_attention(self):
        flow = Flow(id="x", nodes=[FlowNode(id="h", type="http request")])
        analysis = asyncio.run(Aggregator().analyze_workspace([flow]))
        assert analysis.summary.status == AnalysisStatus.needs_attention
        assert analysis.summary.high_severity_issues == 1

    def test_flow_order_is_preserved(self):
        flows = [simple_flow("c"), simple_flow("a"), api_flow()]
        analysis = asyncio.run(Aggregator().analyze_workspace(flows))
        assert [f.id for f in analysis.flow_analyses] == ["c", "a", "api"]


class TestFaultIsolation:
    """A raising check never aborts the pass."""

    def test_raising_workspace_detector_is_skipped(self, monkeypatch):
        def broken(flows):
            raise RuntimeError("boom")

        monkeypatch.setattr(
            workspace_rules, "WORKSPACE_DETECTORS", (broken, workspace_rules.check_flow_count)
        )
        flows = [simple_flow(f"f{i}") for i in range(11)]
        analysis = asyncio.run(Aggregator().analyze_workspace(flows))

        assert [issue.type for issue in analysis.global_issues] == ["too-many-flows"]

    def test_raising_pattern_detection_is_skipped(self, monkeypatch):
        def broken(nodes):
            raise RuntimeError("boom")

        monkeypatch.setattr(aggregator_module, "detect_patterns", broken)
        analysis = asyncio.run(Aggregator().analyze_workspace([api_flow()]))
        flow = analysis.flow_analyses[0]

        assert flow.patterns == []
        assert [i.type for i in flow.issues] == ["heavy-function"]
        assert flow.complexity.node_count == 4

    def test_raising_complexity_is_skipped(self, monkeypatch):
        def broken(nodes):
            raise RuntimeError("boom")

        monkeypatch.setattr(aggregator_module, "calculate_complexity", broken)
        analysis = asyncio.run(Aggregator().analyze_workspace([api_flow()]))
        flow = analysis.flow_analyses[0]

        assert flow.complexity.node_count == 4
        assert flow.complexity.score == 0
        assert [p.name for p in flow.patterns] == ["HTTP API"]
        assert flow.metrics.depth == 2


class TestHistory:
    """Bounded pass history."""

    def test_history_is_newest_first_and_bounded(self):
        aggregator = Aggregator(history_size=2)
        for count in (1, 2, 3):
            asyncio.run(aggregator.analyze_workspace([simple_flow(f"f{i}") for i in range(count)]))

        history = aggregator.get_history()
        assert [a.total_flows for a in history] == [3, 2]

        aggregator.clear_history()
        assert aggregator.get_history() == []


class TestCaching:
    """Per-flow memoization."""

    def test_unchanged_flow_is_served_from_cache(self):
        cache = AnalysisCache()
        aggregator = Aggregator(cache=cache)
        first = aggregator.analyze_flow(api_flow())
        second = aggregator.analyze_flow(api_flow())
        assert second is first
        assert len(cache) == 1

    def test_changed_flow_is_reanalyzed(self):
        aggregator = Aggregator(cache=AnalysisCache())
        first = aggregator.analyze_flow(simple_flow("a"))
        changed = simple_flow("a")
        changed.nodes.append(FlowNode(id="extra", type="function"))
        assert aggregator.analyze_flow(changed) is not first


class TestAIAnalysis:
    """Workspace passes through the analysis backends."""

    def test_builtin_backend(self):
        registry = ModelRegistry(environ={})
        aggregator = Aggregator(dispatcher=BackendDispatcher(registry), cache=AnalysisCache())

        analysis = asyncio.run(aggregator.analyze_workspace([api_flow()], ai=True))
        flow = analysis.flow_analyses[0]

        assert analysis.ai_enhanced is True
        assert flow.source == "builtin-analyzer"
        assert [i.type for i in flow.issues] == ["heavy-function"]
        assert len(aggregator.cache) == 0

    def test_remote_backend_result_is_cached(self):
        calls = []
        answer = {"issues": [], "patterns": [], "recommendations": ["Split the function node"]}

        def handler(request):
            if request.url.path == "/api/tags":
                return httpx.Response(200, json={"models": []})
            calls.append(request)
            return httpx.Response(200, json={"response": json.dumps(answer), "eval_count": 7})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        registry = ModelRegistry(http_client=client, environ={})
        registry.set_current_model("ollama-llama2")
        dispatcher = BackendDispatcher(registry, http_client=client)
        aggregator = Aggregator(dispatcher=dispatcher, cache=AnalysisCache())

        first = asyncio.run(aggregator.analyze_flow_with_ai(api_flow()))
        second = asyncio.run(aggregator.analyze_flow_with_ai(api_flow()))

        assert first.source == "ollama-llama2"
        assert first.recommendations == ["Split the function node"]
        assert first.tokens_used == 7
        assert first.complexity.node_count == 4
        assert second is first
        assert len(calls) == 1

    def test_no_dispatcher_runs_locally(self):
        flow = asyncio.run(Aggregator().analyze_flow_with_ai(api_flow()))
        assert flow.source == "local"


class TestSummary:
    """Summary helpers."""

    def _analysis(self, score: int, patterns=()) -> FlowAnalysis:
        analysis = FlowAnalysis(id="f", label="f", patterns=list(patterns))
        analysis.complexity.score = score
        return analysis

    def test_average_complexity_rounds_half_up(self):
        summary = generate_summary([self._analysis(3), self._analysis(4)], [])
        assert summary.average_complexity == 4

    def test_recommendations_are_distinct_and_limited(self):
        pattern = Pattern(name="p", confidence=50, recommendations=["b", "c", "d"])
        issue = Finding(type="t", severity=Severity.info, title="t", message="m", action="a")
        duplicate = Finding(type="u", severity=Severity.info, title="u", message="m", action="a")
        recommendations = top_recommendations([issue, duplicate], [self._analysis(1, [pattern])])
        assert recommendations == ["a", "b", "c"]


class TestAutoRefresher:
    """Overlapping refresh ticks are skipped."""

    def test_tick_during_pass_is_skipped(self):
        async def scenario():
            release = asyncio.Event()
            runs = []

            async def run():
                runs.append(1)
                await release.wait()

            refresher = AutoRefresher(run, interval=60)
            first = asyncio.create_task(refresher.trigger())
            await asyncio.sleep(0)
            assert refresher.in_flight
            skipped = await refresher.trigger()
            release.set()
            ran = await first
            return skipped, ran, len(runs), refresher.in_flight

        skipped, ran, runs, in_flight = asyncio.run(scenario())
        assert skipped is False
        assert ran is True
        assert runs == 1
        assert in_flight is False

    def test_failing_pass_is_contained(self):
        async def run():
            raise RuntimeError("boom")

        refresher = AutoRefresher(run)
        assert asyncio.run(refresher.trigger()) is True
        assert not refresher.in_flight

    def test_start_and_stop(self):
        async def scenario():
            refresher = AutoRefresher(lambda: asyncio.sleep(0), interval=0.01)
            refresher.start()
            running = refresher.running
            await asyncio.sleep(0.05)
            await refresher.stop()
            return running, refresher.running

        assert asyncio.run(scenario()) == (True, False)

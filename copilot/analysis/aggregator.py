"""Workspace analysis: runs the per-flow analysis across all flows and summarizes.

Per-flow analyses share no mutable state, so they are fanned out with
``asyncio.gather`` and joined before the workspace summary is built. Local
per-flow results are memoized in an AnalysisCache keyed by the flow's
fingerprint. Each completed pass is kept in a bounded history, newest first.
"""

import asyncio
import logging
import time
from collections import deque
from collections.abc import Callable
from typing import Any

from copilot.analysis.cache import AnalysisCache, fingerprint
from copilot.analysis.graph_metrics import calculate_complexity, calculate_metrics
from copilot.analysis.patterns import detect_patterns
from copilot.analysis.rules import run_detectors
from copilot.analysis.workspace_rules import find_global_issues
from copilot.backends.dispatcher import BackendDispatcher
from copilot.backends.prompting import parse_analysis_response
from copilot.models.analysis import (
    AnalysisStatus,
    Complexity,
    FlowAnalysis,
    FlowMetrics,
    GlobalAnalysis,
    Summary,
)
from copilot.models.finding import Finding, Severity
from copilot.models.flow import Flow
from copilot.utils.timing import elapsed_ms, utc_timestamp

logger = logging.getLogger(__name__)

TOP_RECOMMENDATIONS = 3


def _guarded(func: Callable, default: Any, *args) -> Any:
    """Call func, logging and substituting default if it raises."""
    try:
        return func(*args)
    except Exception:
        logger.warning("%s failed, skipping", getattr(func, "__name__", func), exc_info=True)
        return default


def top_recommendations(
    global_issues: list[Finding],
    flow_analyses: list[FlowAnalysis],
    limit: int = TOP_RECOMMENDATIONS,
) -> list[str]:
    """Workspace finding actions first, then pattern advice; distinct, in order."""
    candidates = [issue.action for issue in global_issues if issue.action]
    for analysis in flow_analyses:
        for pattern in analysis.patterns:
            candidates.extend(pattern.recommendations)
    return list(dict.fromkeys(candidates))[:limit]


def generate_summary(flow_analyses: list[FlowAnalysis], global_issues: list[Finding]) -> Summary:
    all_issues = list(global_issues) + [
        issue for analysis in flow_analyses for issue in analysis.issues
    ]
    high = sum(1 for issue in all_issues if issue.severity == Severity.high)

    if not all_issues:
        status = AnalysisStatus.excellent
    elif high == 0:
        status = AnalysisStatus.good
    else:
        status = AnalysisStatus.needs_attention

    average = 0
    if flow_analyses:
        total = sum(analysis.complexity.score for analysis in flow_analyses)
        average = int(total / len(flow_analyses) + 0.5)

    return Summary(
        status=status,
        total_issues=len(all_issues),
        high_severity_issues=high,
        patterns_detected=sum(len(analysis.patterns) for analysis in flow_analyses),
        average_complexity=average,
        recommendations=top_recommendations(global_issues, flow_analyses),
    )


class Aggregator:
    """Orchestrates graph metrics, rules, cache and backends over a workspace."""

    def __init__(
        self,
        dispatcher: BackendDispatcher | None = None,
        cache: AnalysisCache | None = None,
        history_size: int = 50,
    ) -> None:
        """
        Args:
            dispatcher: backend dispatcher used for AI-enhanced passes
            cache: memo for per-flow results; caching is off when omitted
            history_size: number of past workspace passes to keep
        """
        self.dispatcher = dispatcher
        self.cache = cache
        self._history: deque[GlobalAnalysis] = deque(maxlen=history_size)

    # --- Single flows ---

    def analyze_flow(self, flow: Flow) -> FlowAnalysis:
        """Local rule-based analysis of one flow."""
        key = None
        if self.cache is not None:
            key = fingerprint(flow)
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        nodes = flow.nodes
        analysis = FlowAnalysis(
            id=flow.id,
            label=flow.display_label,
            type=flow.type,
            node_count=len(nodes),
            issues=run_detectors(nodes),
            patterns=_guarded(detect_patterns, [], nodes),
            complexity=_guarded(calculate_complexity, Complexity(node_count=len(nodes)), nodes),
            metrics=_guarded(calculate_metrics, FlowMetrics(), nodes),
        )

        if key is not None:
            self.cache.put(key, analysis)
        return analysis

    async def analyze_flow_with_ai(self, flow: Flow) -> FlowAnalysis:
        """Analysis through the selected backend; local analysis if anything goes wrong."""
        if self.dispatcher is None:
            logger.warning("no analysis backend configured, analyzing %s locally", flow.id)
            return self.analyze_flow(flow)

        key = None
        if self.cache is not None:
            key = f"ai:{self.dispatcher.registry.current_model_id}:{fingerprint(flow)}"
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        try:
            response = await self.dispatcher.analyze_with_ai(flow)
            parsed = parse_analysis_response(response.content)
            nodes = flow.nodes
            analysis = FlowAnalysis(
                id=flow.id,
                label=flow.display_label,
                type=flow.type,
                node_count=len(nodes),
                issues=parsed.issues,
                patterns=parsed.patterns,
                recommendations=parsed.recommendations,
                complexity=calculate_complexity(nodes),
                metrics=calculate_metrics(nodes),
                source=response.model_id if response.source == "remote" else response.model or "local",
                ai_model=response.model,
                tokens_used=response.tokens_used,
            )
        except Exception:
            logger.warning("AI analysis of flow %s failed, using local analysis", flow.id, exc_info=True)
            return self.analyze_flow(flow)

        if key is not None and response.source == "remote":
            self.cache.put(key, analysis)
        return analysis

    # --- Workspaces ---

    async def _analyze_one(self, flow: Flow, ai: bool) -> FlowAnalysis:
        if ai:
            return await self.analyze_flow_with_ai(flow)
        return self.analyze_flow(flow)

    async def analyze_workspace(self, flows: list[Flow] | None, ai: bool = False) -> GlobalAnalysis:
        """Analyze every non-empty flow, add workspace findings and summarize.

        Args:
            flows: the workspace; None or empty yields a zeroed analysis
            ai: send each flow through the selected analysis backend

        Returns:
            GlobalAnalysis, also appended to the history
        """
        start_time = time.perf_counter()
        flows = flows or []
        active = [flow for flow in flows if flow.nodes]

        flow_analyses = list(await asyncio.gather(*(self._analyze_one(flow, ai) for flow in active)))
        global_issues = find_global_issues(flows)

        analysis = GlobalAnalysis(
            timestamp=utc_timestamp(),
            total_flows=len(flows),
            total_nodes=sum(a.node_count for a in flow_analyses),
            flow_analyses=flow_analyses,
            global_issues=global_issues,
            summary=generate_summary(flow_analyses, global_issues),
            ai_enhanced=ai,
            duration_ms=elapsed_ms(start_time),
        )
        self._history.appendleft(analysis)

        logger.info(
            "analyzed %d flows in %.1fms: %d issues, status %s",
            len(flow_analyses),
            analysis.duration_ms,
            analysis.summary.total_issues,
            analysis.summary.status.value,
        )
        return analysis

    def get_history(self) -> list[GlobalAnalysis]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

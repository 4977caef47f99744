"""Wires the copilot components together for one running analyzer."""

import logging
from dataclasses import dataclass, field

import httpx

from copilot.analysis.aggregator import Aggregator
from copilot.analysis.cache import AnalysisCache
from copilot.analysis.refresh import AutoRefresher
from copilot.backends.dispatcher import BackendDispatcher
from copilot.backends.registry import ModelRegistry
from copilot.models.analysis import FlowAnalysis, GlobalAnalysis
from copilot.settings import Settings
from copilot.sources import FileFlowSource, FlowSource
from copilot.utils.config_store import ConfigStore

logger = logging.getLogger(__name__)


@dataclass
class Copilot:
    """One analyzer instance: registry, dispatcher, aggregator and flow source.

    Usage:
        copilot = Copilot.from_settings(Settings.from_env())
        analysis = await copilot.analyze(ai=True)
    """

    registry: ModelRegistry
    dispatcher: BackendDispatcher
    aggregator: Aggregator
    source: FlowSource
    settings: Settings = field(default_factory=Settings)
    refresher: AutoRefresher | None = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        source: FlowSource | None = None,
        store: ConfigStore | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> "Copilot":
        """Build an analyzer and restore the persisted model configuration."""
        registry = ModelRegistry(
            store=store or ConfigStore(settings.config_path),
            probe_timeout=settings.probe_timeout,
            http_client=http_client,
        )
        registry.load_config()

        dispatcher = BackendDispatcher(
            registry,
            request_timeout=settings.request_timeout,
            history_size=settings.usage_history_size,
            http_client=http_client,
        )
        aggregator = Aggregator(
            dispatcher=dispatcher,
            cache=AnalysisCache(refresh_interval=settings.refresh_interval),
            history_size=settings.history_size,
        )
        copilot = cls(
            registry=registry,
            dispatcher=dispatcher,
            aggregator=aggregator,
            source=source or FileFlowSource(settings.flows_file),
            settings=settings,
        )
        copilot.refresher = AutoRefresher(copilot.analyze, interval=settings.refresh_interval)
        logger.info("copilot ready, current model %s", registry.current_model_id)
        return copilot

    async def analyze(self, ai: bool = False) -> GlobalAnalysis:
        return await self.aggregator.analyze_workspace(self.source.get_flows(), ai=ai)

    def analyze_flow(self, flow_id: str) -> FlowAnalysis | None:
        """Local analysis of one flow, or None when the id is unknown."""
        flow = self.source.get_flow(flow_id)
        if flow is None:
            return None
        return self.aggregator.analyze_flow(flow)

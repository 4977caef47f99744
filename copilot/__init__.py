"""Flow Copilot - structural, security and performance analysis of editor flows."""

from copilot.analysis.aggregator import Aggregator
from copilot.analysis.cache import AnalysisCache
from copilot.backends.dispatcher import BackendDispatcher
from copilot.backends.registry import ModelRegistry
from copilot.models.analysis import FlowAnalysis, GlobalAnalysis
from copilot.models.finding import Finding, Pattern, Severity
from copilot.models.flow import Flow, FlowNode, group_flat_flows
from copilot.service import Copilot
from copilot.settings import Settings

__all__ = [
    # Flows
    "Flow",
    "FlowNode",
    "group_flat_flows",
    # Results
    "Finding",
    "FlowAnalysis",
    "GlobalAnalysis",
    "Pattern",
    "Severity",
    # High-level APIs
    "Aggregator",
    "AnalysisCache",
    "BackendDispatcher",
    "Copilot",
    "ModelRegistry",
    "Settings",
]

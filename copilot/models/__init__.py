"""Core data models for the flow copilot."""

from copilot.models.analysis import (
    AnalysisStatus,
    Complexity,
    ComplexityLevel,
    FlowAnalysis,
    FlowMetrics,
    GlobalAnalysis,
    Summary,
)
from copilot.models.backend import (
    BackendDescriptor,
    BackendResponse,
    Provider,
    RegistryState,
    UsageRecord,
    UsageStats,
)
from copilot.models.finding import Finding, Pattern, Severity
from copilot.models.flow import Flow, FlowNode, group_flat_flows

__all__ = [
    # Flows
    "Flow",
    "FlowNode",
    "group_flat_flows",
    # Findings
    "Finding",
    "Pattern",
    "Severity",
    # Analysis results
    "AnalysisStatus",
    "Complexity",
    "ComplexityLevel",
    "FlowAnalysis",
    "FlowMetrics",
    "GlobalAnalysis",
    "Summary",
    # Backends
    "BackendDescriptor",
    "BackendResponse",
    "Provider",
    "RegistryState",
    "UsageRecord",
    "UsageStats",
]

"""Analysis results for single flows and whole workspaces.

A FlowAnalysis is created fresh on every pass and never updated; the next
pass supersedes it. GlobalAnalysis bundles the per-flow results with the
workspace-level findings and a summary.
"""

from enum import Enum

from pydantic import BaseModel, Field

from copilot.models.finding import Finding, Pattern


class ComplexityLevel(str, Enum):
    simple = "simple"
    medium = "medium"
    complex = "complex"


class AnalysisStatus(str, Enum):
    """Overall verdict for a workspace pass."""

    excellent = "excellent"
    good = "good"
    needs_attention = "needs-attention"


class FlowMetrics(BaseModel):
    """Raw structural metrics of one flow graph."""

    connections: int = 0
    depth: int = 0
    branches: int = 0
    cycles: int = 0


class Complexity(BaseModel):
    level: ComplexityLevel = ComplexityLevel.simple
    score: int = 0
    node_count: int = 0
    connections: int = 0
    depth: int = 0
    branches: int = 0


class FlowAnalysis(BaseModel):
    """Result of analyzing one flow."""

    id: str
    label: str
    type: str = "tab"
    node_count: int = 0
    issues: list[Finding] = Field(default_factory=list)
    patterns: list[Pattern] = Field(default_factory=list)
    complexity: Complexity = Field(default_factory=Complexity)
    metrics: FlowMetrics = Field(default_factory=FlowMetrics)

    # filled in when the flow went through an analysis backend
    recommendations: list[str] = Field(default_factory=list)
    source: str = "local"  # "local", "builtin-analyzer" or a backend model id
    ai_model: str | None = None
    tokens_used: int | None = None


class Summary(BaseModel):
    status: AnalysisStatus = AnalysisStatus.excellent
    total_issues: int = 0
    high_severity_issues: int = 0
    patterns_detected: int = 0
    average_complexity: int = 0
    recommendations: list[str] = Field(default_factory=list)


class GlobalAnalysis(BaseModel):
    """Result of one workspace pass."""

    timestamp: str
    total_flows: int = 0
    total_nodes: int = 0
    flow_analyses: list[FlowAnalysis] = Field(default_factory=list)
    global_issues: list[Finding] = Field(default_factory=list)
    summary: Summary = Field(default_factory=Summary)
    ai_enhanced: bool = False
    duration_ms: float | None = None

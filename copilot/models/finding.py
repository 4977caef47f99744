"""Findings and patterns produced by the rule engine.

Both are immutable once produced; passes only aggregate them.
"""

from enum import Enum

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """How urgently a finding should be addressed."""

    high = "high"
    warning = "warning"
    info = "info"


class Finding(BaseModel):
    """A single structured problem report."""

    model_config = {"frozen": True}

    type: str  # e.g. "disconnected", "no-error-handling", "too-many-flows"
    severity: Severity
    title: str
    message: str
    node_ids: list[str] = Field(default_factory=list)
    action: str | None = None


class Pattern(BaseModel):
    """A recognised flow archetype inferred from node-type composition."""

    model_config = {"frozen": True}

    name: str
    confidence: int = Field(ge=0, le=100)
    icon: str = ""
    description: str = ""
    recommendations: list[str] = Field(default_factory=list)

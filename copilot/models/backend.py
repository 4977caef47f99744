"""Data models for analysis backends.

A backend descriptor is a static catalog entry describing how to reach one
text-generation model. Registry state is the small mutable part persisted
between sessions: the selected model, credentials and endpoint overrides.
"""

from enum import Enum

from pydantic import BaseModel, Field


class Provider(str, Enum):
    """Backend families, each served by its own protocol adapter."""

    openai = "openai"
    anthropic = "anthropic"
    ollama = "ollama"
    lmstudio = "lmstudio"
    builtin = "builtin"


# providers that run as daemons on the local machine and need a reachability probe
LOCAL_PROVIDERS = {Provider.ollama, Provider.lmstudio}


class BackendDescriptor(BaseModel):
    """catalog entry for one analysis backend."""

    # protected_namespaces() lifts pydantic's reservation of the "model_" prefix
    model_config = {"extra": "forbid", "protected_namespaces": ()}

    id: str
    name: str
    provider: Provider
    endpoint: str | None = None
    model_name: str | None = None  # e.g. "gpt-4", "claude-3-haiku-20240307"
    max_tokens: int | None = None
    temperature: float | None = None
    requires_credential: bool = False
    capabilities: list[str] = Field(default_factory=list)

    icon: str = ""
    description: str | None = None


class RegistryState(BaseModel):
    """Persisted, session-scoped registry configuration."""

    current_model_id: str = "builtin-analyzer"
    credentials: dict[str, str] = Field(default_factory=dict)  # provider -> secret
    custom_endpoints: dict[str, str] = Field(default_factory=dict)  # model id -> url
    custom_models: list[BackendDescriptor] = Field(default_factory=list)


class UsageRecord(BaseModel):
    """Outcome of one backend request."""

    model_config = {"protected_namespaces": ()}

    timestamp: str
    model_id: str
    analysis_type: str
    success: bool
    response_time_ms: float | None = None
    tokens_used: int | None = None
    error: str | None = None


class UsageStats(BaseModel):
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time: int = 0
    total_tokens_used: int = 0


class BackendResponse(BaseModel):
    """Raw text answer of a backend, plus where it came from."""

    model_config = {"protected_namespaces": ()}

    content: str
    model_id: str
    model: str | None = None
    tokens_used: int = 0
    response_time_ms: float | None = None
    source: str = "remote"  # "remote" or "local"
    fallback: bool = False  # True when a remote attempt was replaced by local analysis

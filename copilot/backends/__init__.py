"""Analysis backends: catalog, registry, protocol adapters and dispatch."""

from copilot.backends.adapters import (
    BackendAdapter,
    BackendError,
    BackendTimeoutError,
    MissingCredentialError,
    UnsupportedProviderError,
    builtin_analysis,
)
from copilot.backends.catalog import BUILTIN_MODELS, DEFAULT_MODEL_ID, get_prompt
from copilot.backends.dispatcher import BackendDispatcher
from copilot.backends.prompting import (
    ParsedAnalysis,
    parse_analysis_response,
    prepare_flow_data,
)
from copilot.backends.registry import ModelConfigError, ModelRegistry

__all__ = [
    # Catalog
    "BUILTIN_MODELS",
    "DEFAULT_MODEL_ID",
    "get_prompt",
    # Registry
    "ModelConfigError",
    "ModelRegistry",
    # Adapters
    "BackendAdapter",
    "BackendError",
    "BackendTimeoutError",
    "MissingCredentialError",
    "UnsupportedProviderError",
    "builtin_analysis",
    # Dispatch
    "BackendDispatcher",
    "ParsedAnalysis",
    "parse_analysis_response",
    "prepare_flow_data",
]

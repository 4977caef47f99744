"""API routes for analysis backends.

Covers the model catalog and selection, credentials, connectivity tests,
usage statistics and user-defined models.
"""

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from copilot.backends.registry import ModelConfigError
from copilot.models.backend import BackendDescriptor, Provider, UsageStats
from server.analysis_routes import get_copilot

router = APIRouter()


class ModelsResponse(BaseModel):
    models: list[BackendDescriptor]
    current_model: BackendDescriptor | None
    stats: UsageStats


class SelectModelRequest(BaseModel):
    """request body for switching the current model."""

    model_config = {"protected_namespaces": ()}

    model_id: str


class ApiKeyRequest(BaseModel):
    provider: str
    api_key: str


class CustomModelRequest(BaseModel):
    """request body for registering a user-defined model."""

    model_config = {"protected_namespaces": ()}

    id: str
    name: str
    provider: Provider
    endpoint: str | None = None
    model_name: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    requires_credential: bool = False
    capabilities: list[str] | None = None
    icon: str | None = None
    description: str | None = None


@router.get("/models")
def list_models(request: Request) -> ModelsResponse:
    """Model catalog, current selection and usage statistics."""
    copilot = get_copilot(request)
    return ModelsResponse(
        models=copilot.registry.get_all_models(),
        current_model=copilot.registry.get_current_model(),
        stats=copilot.dispatcher.get_usage_stats(),
    )


@router.post("/models/current")
def select_model(request: Request, body: SelectModelRequest) -> dict:
    """Switch the current model."""
    registry = get_copilot(request).registry
    if not registry.set_current_model(body.model_id):
        raise HTTPException(status_code=400, detail=f"Model not found: {body.model_id}")
    return {"success": True, "current_model": registry.get_current_model()}


@router.post("/models/api-key")
def set_api_key(request: Request, body: ApiKeyRequest) -> dict:
    """Store a credential for a provider."""
    get_copilot(request).registry.set_api_key(body.provider, body.api_key)
    return {"success": True}


@router.delete("/models/api-key/{provider}")
def remove_api_key(request: Request, provider: str) -> dict:
    """Forget the stored credential of a provider."""
    get_copilot(request).registry.remove_api_key(provider)
    return {"success": True}


@router.post("/models/test")
async def test_model(request: Request, body: SelectModelRequest) -> dict:
    """Probe a backend and report success and latency."""
    return await get_copilot(request).dispatcher.test_connection(body.model_id)


@router.get("/models/stats")
def model_stats(request: Request) -> dict:
    """Usage statistics and request history."""
    return get_copilot(request).dispatcher.export_stats()


@router.post("/models/custom")
def add_custom_model(request: Request, body: CustomModelRequest) -> BackendDescriptor:
    """Register a user-defined model."""
    try:
        return get_copilot(request).registry.add_custom_model(body.model_dump(exclude_none=True))
    except ModelConfigError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@router.delete("/models/custom/{model_id}")
def remove_custom_model(request: Request, model_id: str) -> dict:
    """Remove a user-defined model; built-in models cannot be removed."""
    registry = get_copilot(request).registry
    if not registry.remove_custom_model(model_id):
        raise HTTPException(status_code=400, detail=f"Cannot remove model: {model_id}")
    return {"deleted": model_id, "current_model": registry.current_model_id}

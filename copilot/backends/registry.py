"""Registry of analysis backends, the current selection and credentials.

One registry instance is created per running analyzer and passed to the
dispatcher explicitly. Its mutable state (selected model, credentials,
endpoint overrides, custom models) is persisted through a ConfigStore under
a fixed namespaced key; loading is best-effort and falls back to defaults.
"""

import logging
import os
from collections.abc import Mapping

import httpx
from pydantic import ValidationError

from copilot.backends.catalog import (
    BUILTIN_MODEL_IDS,
    BUILTIN_MODELS,
    DEFAULT_MODEL_ID,
    HEALTH_PATHS,
)
from copilot.models.backend import LOCAL_PROVIDERS, BackendDescriptor, Provider, RegistryState
from copilot.utils.config_store import ConfigStore

logger = logging.getLogger(__name__)

CONFIG_KEY = "flow-copilot:models-config"

REQUIRED_FIELDS = ("id", "name", "provider")


class ModelConfigError(ValueError):
    """Raised when a model configuration is rejected."""


def health_url(provider: Provider, endpoint: str) -> str:
    """Derive the reachability probe URL of a local daemon endpoint."""
    paths = HEALTH_PATHS.get(provider)
    if paths is None:
        return endpoint
    api_path, probe_path = paths
    return endpoint.replace(api_path, probe_path)


class ModelRegistry:
    """Catalog of backend descriptors plus the selected backend."""

    def __init__(
        self,
        store: ConfigStore | None = None,
        probe_timeout: float = 5.0,
        http_client: httpx.AsyncClient | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """
        Args:
            store: persistence for registry state; in-memory when omitted
            probe_timeout: seconds to wait for a local daemon health check
            http_client: client used for health checks (tests inject a mock transport)
            environ: environment consulted for credential fallbacks
        """
        self.store = store or ConfigStore()
        self.probe_timeout = probe_timeout
        self.http_client = http_client
        self.environ = environ if environ is not None else os.environ

        self._models: dict[str, BackendDescriptor] = {m.id: m for m in BUILTIN_MODELS}
        self.state = RegistryState(current_model_id=DEFAULT_MODEL_ID)

    # --- Catalog ---

    def get_all_models(self) -> list[BackendDescriptor]:
        return list(self._models.values())

    def get_model(self, model_id: str) -> BackendDescriptor | None:
        return self._models.get(model_id)

    def get_models_by_provider(self, provider: Provider | str) -> list[BackendDescriptor]:
        return [m for m in self._models.values() if m.provider == provider]

    def is_builtin_model(self, model_id: str) -> bool:
        return model_id in BUILTIN_MODEL_IDS

    # --- Selection ---

    @property
    def current_model_id(self) -> str:
        return self.state.current_model_id

    def get_current_model(self) -> BackendDescriptor | None:
        return self.get_model(self.state.current_model_id)

    def set_current_model(self, model_id: str) -> bool:
        """Select a model; returns False and keeps the selection for unknown ids."""
        if model_id not in self._models:
            return False
        self.state.current_model_id = model_id
        logger.info("selected analysis backend %s", model_id)
        self.save_config()
        return True

    # --- Credentials ---

    def set_api_key(self, provider: str, api_key: str) -> None:
        self.state.credentials[provider] = api_key
        self.save_config()

    def get_api_key(self, provider: Provider | str) -> str | None:
        """Stored credential first, then the ``<PROVIDER>_API_KEY`` environment variable."""
        name = provider.value if isinstance(provider, Provider) else provider
        stored = self.state.credentials.get(name)
        if stored:
            return stored
        return self.environ.get(f"{name.upper()}_API_KEY") or None

    def remove_api_key(self, provider: str) -> None:
        self.state.credentials.pop(provider, None)
        self.save_config()

    # --- Endpoints ---

    def set_custom_endpoint(self, model_id: str, endpoint: str) -> None:
        self.state.custom_endpoints[model_id] = endpoint
        self.save_config()

    def get_endpoint(self, model_id: str) -> str | None:
        model = self.get_model(model_id)
        if model is None:
            return None
        return self.state.custom_endpoints.get(model_id) or model.endpoint

    # --- Availability ---

    async def is_model_available(self, model_id: str) -> bool:
        """Whether the backend can be called right now.

        The builtin analyzer is always available. Credential-requiring
        backends need a stored or environment credential, and local daemons
        must answer a short health check.
        """
        model = self.get_model(model_id)
        if model is None:
            return False
        if model.provider == Provider.builtin:
            return True
        if model.requires_credential and not self.get_api_key(model.provider):
            return False
        if model.provider in LOCAL_PROVIDERS:
            endpoint = self.get_endpoint(model_id)
            if not endpoint:
                return False
            return await self.check_local_endpoint(model.provider, endpoint)
        return True

    async def check_local_endpoint(self, provider: Provider, endpoint: str) -> bool:
        url = health_url(provider, endpoint)
        try:
            if self.http_client is not None:
                response = await self.http_client.get(url, timeout=self.probe_timeout)
            else:
                async with httpx.AsyncClient(timeout=self.probe_timeout) as client:
                    response = await client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("health check of %s failed: %s", url, exc)
            return False
        return response.is_success

    # --- Custom models ---

    def add_custom_model(self, config: Mapping | BackendDescriptor) -> BackendDescriptor:
        """Register a user-defined backend.

        Raises:
            ModelConfigError: when id, name or provider is missing, the provider
                is unknown, or the id belongs to a built-in model
        """
        if isinstance(config, BackendDescriptor):
            config = config.model_dump()
        missing = [field for field in REQUIRED_FIELDS if not config.get(field)]
        if missing:
            raise ModelConfigError(f"Invalid model configuration, missing: {', '.join(missing)}")
        if self.is_builtin_model(config["id"]):
            raise ModelConfigError(f"Cannot replace built-in model: {config['id']}")

        data = dict(config)
        data["icon"] = data.get("icon") or "🔧"
        data["capabilities"] = data.get("capabilities") or ["code-analysis"]
        try:
            descriptor = BackendDescriptor.model_validate(data)
        except ValidationError as exc:
            raise ModelConfigError(f"Invalid model configuration: {exc}") from exc

        self._models[descriptor.id] = descriptor
        self.state.custom_models = [
            m for m in self.state.custom_models if m.id != descriptor.id
        ] + [descriptor]
        self.save_config()
        return descriptor

    def remove_custom_model(self, model_id: str) -> bool:
        """Remove a custom model; built-in models are protected.

        Removing the selected model resets the selection to the builtin analyzer.
        """
        if model_id not in self._models or self.is_builtin_model(model_id):
            return False

        del self._models[model_id]
        self.state.custom_models = [m for m in self.state.custom_models if m.id != model_id]
        self.state.custom_endpoints.pop(model_id, None)
        if self.state.current_model_id == model_id:
            self.state.current_model_id = DEFAULT_MODEL_ID
        self.save_config()
        return True

    # --- Persistence ---

    def save_config(self) -> None:
        self.store.set(CONFIG_KEY, self.state.model_dump_json())

    def load_config(self) -> None:
        """Restore persisted state; corrupt or missing data keeps the defaults."""
        raw = self.store.get(CONFIG_KEY)
        if not raw:
            return
        try:
            state = RegistryState.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("could not load model configuration, using defaults: %s", exc)
            return

        for descriptor in state.custom_models:
            if not self.is_builtin_model(descriptor.id):
                self._models[descriptor.id] = descriptor
        if state.current_model_id not in self._models:
            logger.warning(
                "persisted model %s is unknown, selecting %s",
                state.current_model_id,
                DEFAULT_MODEL_ID,
            )
            state.current_model_id = DEFAULT_MODEL_ID
        self.state = state

    def export_config(self) -> dict:
        """Snapshot of the selection for stats export (no credentials)."""
        return {
            "current_model": self.state.current_model_id,
            "available_models": len(self._models),
        }

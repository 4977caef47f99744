"""Routes analysis requests to the selected backend.

Per request: pick the current model; the builtin analyzer answers locally;
any other backend is checked for availability, called once under a hard
timeout, and replaced by local analysis on any failure. Every remote
outcome lands in a bounded usage history. The dispatcher never raises to
its caller for backend faults.
"""

import asyncio
import logging
import time
from collections import deque

import httpx

from copilot.backends.adapters import (
    BackendAdapter,
    BackendError,
    BackendRequest,
    BackendTimeoutError,
    UnsupportedProviderError,
    build_adapters,
    builtin_analysis,
)
from copilot.backends.catalog import DEFAULT_ANALYSIS_TYPE, DEFAULT_MODEL_ID
from copilot.backends.prompting import build_prompt
from copilot.backends.registry import ModelRegistry
from copilot.models.backend import (
    BackendDescriptor,
    BackendResponse,
    Provider,
    UsageRecord,
    UsageStats,
)
from copilot.models.flow import Flow
from copilot.utils.timing import elapsed_ms, utc_timestamp

logger = logging.getLogger(__name__)


class BackendDispatcher:
    """Sends flows to analysis backends with timeout and local fallback."""

    def __init__(
        self,
        registry: ModelRegistry,
        request_timeout: float = 30.0,
        history_size: int = 100,
        adapters: dict[Provider, BackendAdapter] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            registry: model registry consulted for the selection and credentials
            request_timeout: hard deadline in seconds for one remote call
            history_size: capacity of the usage history ring
            adapters: adapter per provider; defaults to the standard set
            http_client: shared client handed to the default adapters
        """
        self.registry = registry
        self.request_timeout = request_timeout
        self.adapters = adapters if adapters is not None else build_adapters(http_client)
        self._history: deque[UsageRecord] = deque(maxlen=history_size)

    async def analyze_with_ai(
        self,
        flow: Flow,
        analysis_type: str = DEFAULT_ANALYSIS_TYPE,
    ) -> BackendResponse:
        """Analyze a flow with the selected backend, degrading to local analysis.

        Never raises for backend problems: an unknown selection, an
        unavailable backend, a timeout or any request failure all produce a
        local result tagged ``source="local"``.
        """
        descriptor = self.registry.get_current_model()
        if descriptor is None:
            logger.warning(
                "selected model %s is unknown, using builtin analysis",
                self.registry.current_model_id,
            )
            return self._local(flow, fallback=True)

        if descriptor.provider == Provider.builtin:
            return self._local(flow, model_id=descriptor.id)

        try:
            available = await self.registry.is_model_available(descriptor.id)
        except Exception:
            logger.warning("availability check of %s failed", descriptor.name, exc_info=True)
            available = False
        if not available:
            logger.warning("model %s is unavailable, using builtin analysis", descriptor.name)
            self._record(descriptor.id, analysis_type, success=False, error="model unavailable")
            return self._local(flow, fallback=True)

        start_time = time.perf_counter()
        try:
            response = await self.call_model(descriptor, flow, analysis_type)
        except BackendError as exc:
            logger.warning("analysis with %s failed, using builtin analysis: %s", descriptor.name, exc)
            self._record(descriptor.id, analysis_type, success=False, error=str(exc))
            return self._local(flow, fallback=True)

        response.response_time_ms = elapsed_ms(start_time)
        self._record(
            descriptor.id,
            analysis_type,
            success=True,
            response_time_ms=response.response_time_ms,
            tokens_used=response.tokens_used,
        )
        return response

    async def call_model(
        self,
        descriptor: BackendDescriptor,
        flow: Flow,
        analysis_type: str = DEFAULT_ANALYSIS_TYPE,
    ) -> BackendResponse:
        """Make exactly one request to a backend.

        Raises:
            BackendTimeoutError: the request did not finish within the timeout
            BackendError: any other failure, including unexpected adapter errors
        """
        adapter = self.adapters.get(descriptor.provider)
        if adapter is None:
            raise UnsupportedProviderError(
                f"Unsupported provider: {descriptor.provider.value}", descriptor.provider
            )

        request = BackendRequest(
            descriptor=descriptor,
            prompt=build_prompt(flow, analysis_type),
            flow=flow,
            analysis_type=analysis_type,
            endpoint=self.registry.get_endpoint(descriptor.id),
            credential=self.registry.get_api_key(descriptor.provider),
            timeout=self.request_timeout,
        )
        try:
            return await asyncio.wait_for(adapter.call(request), timeout=self.request_timeout)
        except asyncio.TimeoutError as exc:
            raise BackendTimeoutError(
                f"request to {descriptor.id} timed out after {self.request_timeout:g}s",
                descriptor.provider,
            ) from exc
        except BackendError:
            raise
        except Exception as exc:
            raise BackendError(
                f"{descriptor.provider.value} backend failed: {exc}", descriptor.provider
            ) from exc

    async def test_connection(self, model_id: str) -> dict:
        """Probe a backend with an empty flow; reports success and latency."""
        descriptor = self.registry.get_model(model_id)
        if descriptor is None:
            return {"success": False, "error": f"Model not found: {model_id}"}
        if descriptor.provider == Provider.builtin:
            return {"success": True, "message": "The builtin analyzer is always available"}

        start_time = time.perf_counter()
        try:
            response = await self.call_model(descriptor, Flow(id="connection-test"))
        except BackendError as exc:
            return {"success": False, "error": str(exc)}
        return {
            "success": True,
            "message": "Connection successful",
            "response_time_ms": round(elapsed_ms(start_time)),
            "model": response.model,
        }

    def _local(
        self,
        flow: Flow,
        model_id: str = DEFAULT_MODEL_ID,
        fallback: bool = False,
    ) -> BackendResponse:
        response = builtin_analysis(flow, model_id=model_id)
        response.fallback = fallback
        return response

    # --- Usage accounting ---

    def _record(self, model_id: str, analysis_type: str, success: bool, **details) -> None:
        # newest first
        self._history.appendleft(
            UsageRecord(
                timestamp=utc_timestamp(),
                model_id=model_id,
                analysis_type=analysis_type,
                success=success,
                **details,
            )
        )

    def get_history(self) -> list[UsageRecord]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history.clear()

    def get_usage_stats(self) -> UsageStats:
        history = self._history
        successful = sum(1 for r in history if r.success)
        timed = [r.response_time_ms for r in history if r.response_time_ms]
        average = sum(timed) / len(timed) if timed else 0
        return UsageStats(
            total_requests=len(history),
            successful_requests=successful,
            failed_requests=len(history) - successful,
            average_response_time=round(average),
            total_tokens_used=sum(r.tokens_used or 0 for r in history),
        )

    def export_stats(self) -> dict:
        return {
            "config": self.registry.export_config(),
            "usage": self.get_usage_stats().model_dump(),
            "history": [record.model_dump() for record in self._history],
        }

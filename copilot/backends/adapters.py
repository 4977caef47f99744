"""Protocol adapters, one per backend provider.

Each adapter turns a prompt into one request against its provider and
returns the raw text answer. Adapters make exactly one attempt and map every
provider failure onto the BackendError hierarchy; retries and fallback are
the dispatcher's business.

OpenAI and LM Studio (which speaks the OpenAI protocol) go through the
``openai`` SDK, Claude through the ``anthropic`` SDK, and Ollama through a
plain ``httpx`` request. The builtin adapter runs the local rule engine.
"""

import json
from dataclasses import dataclass

import anthropic
import httpx
import openai

from copilot.analysis.patterns import detect_patterns
from copilot.analysis.rules import check_flow_size, run_detectors
from copilot.backends.catalog import SYSTEM_PROMPT
from copilot.models.backend import BackendDescriptor, BackendResponse, Provider
from copilot.models.flow import Flow

BUILTIN_SOURCE = "builtin-analyzer"

# generic advice attached to every builtin result
BASELINE_RECOMMENDATIONS = [
    "Add error handling with catch nodes",
    "Use comment nodes to document the logic",
    "Group related nodes for readability",
]


class BackendError(Exception):
    """A backend request failed."""

    def __init__(self, message: str, provider: Provider | str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class BackendTimeoutError(BackendError):
    """A backend request exceeded its deadline."""


class MissingCredentialError(BackendError):
    """A backend that needs a credential has none configured."""


class UnsupportedProviderError(BackendError):
    """No adapter exists for the provider."""


@dataclass
class BackendRequest:
    """Everything an adapter needs for a single call."""

    descriptor: BackendDescriptor
    prompt: str
    flow: Flow
    analysis_type: str
    endpoint: str | None
    credential: str | None
    timeout: float


def _strip_suffix(endpoint: str, suffix: str) -> str:
    """Turn a full request URL into the SDK base URL."""
    endpoint = endpoint.rstrip("/")
    if endpoint.endswith(suffix):
        return endpoint[: -len(suffix)]
    return endpoint


class BackendAdapter:
    """Protocol for one backend family."""

    provider: Provider

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        """
        Args:
            http_client: shared client for outgoing requests; tests pass one
                built on ``httpx.MockTransport``. Adapters open (and close)
                their own client when omitted.
        """
        self.http_client = http_client

    async def call(self, request: BackendRequest) -> BackendResponse:
        raise NotImplementedError


class OpenAIAdapter(BackendAdapter):
    """Chat completions through the OpenAI SDK."""

    provider = Provider.openai
    use_system_prompt = True

    def _api_key(self, request: BackendRequest) -> str:
        if not request.credential:
            raise MissingCredentialError("OpenAI API key is not configured", self.provider)
        return request.credential

    def _messages(self, request: BackendRequest) -> list[dict]:
        messages = [{"role": "user", "content": request.prompt}]
        if self.use_system_prompt:
            messages.insert(0, {"role": "system", "content": SYSTEM_PROMPT})
        return messages

    async def call(self, request: BackendRequest) -> BackendResponse:
        descriptor = request.descriptor
        if not request.endpoint:
            raise BackendError(f"No endpoint configured for {descriptor.id}", self.provider)

        client = openai.AsyncOpenAI(
            api_key=self._api_key(request),
            base_url=_strip_suffix(request.endpoint, "/chat/completions"),
            timeout=request.timeout,
            max_retries=0,
            http_client=self.http_client,
        )
        try:
            params = {
                "model": descriptor.model_name,
                "messages": self._messages(request),
            }
            if descriptor.max_tokens:
                params["max_tokens"] = descriptor.max_tokens
            if descriptor.temperature is not None:
                params["temperature"] = descriptor.temperature

            response = await client.chat.completions.create(**params)
        except openai.APITimeoutError as exc:
            raise BackendTimeoutError(f"{self.provider.value} request timed out", self.provider) from exc
        except openai.APIError as exc:
            raise BackendError(f"{self.provider.value} API error: {exc}", self.provider) from exc
        finally:
            if self.http_client is None:
                await client.close()

        if not response.choices or response.choices[0].message.content is None:
            raise BackendError(f"{self.provider.value} returned an empty response", self.provider)

        usage = response.usage
        return BackendResponse(
            content=response.choices[0].message.content,
            model_id=descriptor.id,
            model=descriptor.model_name,
            tokens_used=usage.total_tokens if usage else 0,
        )


class LMStudioAdapter(OpenAIAdapter):
    """LM Studio serves the OpenAI protocol locally and needs no key."""

    provider = Provider.lmstudio
    use_system_prompt = False

    def _api_key(self, request: BackendRequest) -> str:
        # the SDK insists on a key; LM Studio ignores it
        return request.credential or "lm-studio"


class ClaudeAdapter(BackendAdapter):
    """Messages API through the Anthropic SDK."""

    provider = Provider.anthropic

    async def call(self, request: BackendRequest) -> BackendResponse:
        descriptor = request.descriptor
        if not request.credential:
            raise MissingCredentialError("Anthropic API key is not configured", self.provider)
        if not request.endpoint:
            raise BackendError(f"No endpoint configured for {descriptor.id}", self.provider)

        client = anthropic.AsyncAnthropic(
            api_key=request.credential,
            base_url=_strip_suffix(request.endpoint, "/v1/messages"),
            timeout=request.timeout,
            max_retries=0,
            http_client=self.http_client,
        )
        try:
            params = {
                "model": descriptor.model_name,
                # anthropic requires max_tokens
                "max_tokens": descriptor.max_tokens or 4096,
                "messages": [{"role": "user", "content": request.prompt}],
            }
            if descriptor.temperature is not None:
                params["temperature"] = descriptor.temperature

            response = await client.messages.create(**params)
        except anthropic.APITimeoutError as exc:
            raise BackendTimeoutError("anthropic request timed out", self.provider) from exc
        except anthropic.APIError as exc:
            raise BackendError(f"anthropic API error: {exc}", self.provider) from exc
        finally:
            if self.http_client is None:
                await client.close()

        content = "".join(
            block.text for block in response.content or []
            if hasattr(block, "text")
        )
        if not content:
            raise BackendError("anthropic returned an empty response", self.provider)

        usage = response.usage
        return BackendResponse(
            content=content,
            model_id=descriptor.id,
            model=descriptor.model_name,
            tokens_used=(usage.input_tokens + usage.output_tokens) if usage else 0,
        )


class OllamaAdapter(BackendAdapter):
    """Ollama's generate endpoint over plain HTTP."""

    provider = Provider.ollama

    async def _post(self, client: httpx.AsyncClient, request: BackendRequest) -> httpx.Response:
        descriptor = request.descriptor
        payload = {
            "model": descriptor.model_name,
            "prompt": request.prompt,
            "stream": False,
            "options": {
                "temperature": descriptor.temperature,
                "num_predict": descriptor.max_tokens,
            },
        }
        return await client.post(request.endpoint, json=payload, timeout=request.timeout)

    async def call(self, request: BackendRequest) -> BackendResponse:
        descriptor = request.descriptor
        if not request.endpoint:
            raise BackendError(f"No endpoint configured for {descriptor.id}", self.provider)

        try:
            if self.http_client is not None:
                response = await self._post(self.http_client, request)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._post(client, request)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as exc:
            raise BackendTimeoutError("ollama request timed out", self.provider) from exc
        except httpx.HTTPStatusError as exc:
            raise BackendError(f"ollama HTTP {exc.response.status_code}", self.provider) from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"ollama request failed: {exc}", self.provider) from exc
        except ValueError as exc:
            raise BackendError("ollama returned malformed JSON", self.provider) from exc

        if not isinstance(data, dict):
            raise BackendError("ollama returned malformed JSON", self.provider)
        if data.get("error"):
            raise BackendError(f"ollama error: {data['error']}", self.provider)
        if not isinstance(data.get("response"), str):
            raise BackendError("ollama response has no text", self.provider)

        tokens = (data.get("prompt_eval_count") or 0) + (data.get("eval_count") or 0)
        return BackendResponse(
            content=data["response"],
            model_id=descriptor.id,
            model=descriptor.model_name,
            tokens_used=tokens,
        )


class BuiltinAdapter(BackendAdapter):
    """Deterministic local analysis with the rule engine; never touches the network."""

    provider = Provider.builtin

    async def call(self, request: BackendRequest) -> BackendResponse:
        return builtin_analysis(request.flow, model_id=request.descriptor.id)


def builtin_analysis(flow: Flow, model_id: str = BUILTIN_SOURCE) -> BackendResponse:
    """Run the rule engine and encode the result the way remote backends answer."""
    nodes = flow.nodes
    issues = run_detectors(nodes) + run_detectors(nodes, (check_flow_size,))
    result = {
        "issues": [issue.model_dump(mode="json") for issue in issues],
        "patterns": [pattern.model_dump(mode="json") for pattern in detect_patterns(nodes)],
        "recommendations": list(BASELINE_RECOMMENDATIONS),
        "source": BUILTIN_SOURCE,
    }
    return BackendResponse(
        content=json.dumps(result),
        model_id=model_id,
        model=BUILTIN_SOURCE,
        tokens_used=0,
        source="local",
    )


ADAPTERS: dict[Provider, type[BackendAdapter]] = {
    Provider.openai: OpenAIAdapter,
    Provider.anthropic: ClaudeAdapter,
    Provider.ollama: OllamaAdapter,
    Provider.lmstudio: LMStudioAdapter,
    Provider.builtin: BuiltinAdapter,
}


def build_adapters(http_client: httpx.AsyncClient | None = None) -> dict[Provider, BackendAdapter]:
    """One adapter instance per provider, sharing an optional HTTP client."""
    return {provider: cls(http_client) for provider, cls in ADAPTERS.items()}

"""Ollama LLM provider for local log analysis."""

import time
from typing import Any, Optional

import httpx
import structlog

from logwatch_ai.core.exceptions import (
    ConfigurationError,
    EmptyResponseError,
    IncompleteResponseError,
    ProviderConnectionError,
)
from logwatch_ai.core.redaction import redact_error
from logwatch_ai.services.llm_providers.base import (
    LOCAL_CONTEXT_LIMIT,
    Analysis,
    BaseLLMProvider,
    ModelInfo,
    ProviderConfig,
    Stats,
)
from logwatch_ai.services.llm_providers.response_parser import parse_provider_response
from logwatch_ai.services.llm_providers.retry import DEFAULT_MAX_ATTEMPTS, retry_with_backoff
from logwatch_ai.services.llm_providers.transport import post_json, usage_count

logger = structlog.get_logger()

DEFAULT_OLLAMA_URL = "http://localhost:11434"


class OllamaLLMProvider(BaseLLMProvider):
    """LLM provider using the native chat API of a local Ollama server."""

    def __init__(
        self,
        model: str,
        url: Optional[str] = None,
        timeout_seconds: int = 0,
        max_tokens: int = 0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the Ollama provider.

        Args:
            model: Model to use (e.g., "llama3.3:latest").
            url: Ollama server URL.
            timeout_seconds: Request timeout, 300s when not positive.
            max_tokens: Max tokens to generate, 8000 when not positive.
            http_client: Shared client; one is created when omitted.
        """
        if not model:
            raise ConfigurationError("ollama model is required")

        self._config = ProviderConfig(
            model=model,
            base_url=url or DEFAULT_OLLAMA_URL,
            timeout_seconds=timeout_seconds,
            max_tokens=max_tokens,
        )
        if http_client is None:
            http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds, connect=10.0)
            )
            self._owned_http_client = http_client
        self._client = http_client

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def provider_name(self) -> str:
        return "Ollama"

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(
            model=self._config.model,
            provider=self.provider_name,
            max_tokens=self._config.max_tokens,
            context_limit=LOCAL_CONTEXT_LIMIT,
            base_url=self._config.base_url,
        )

    def _build_request(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        return {
            "model": self._config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "stream": False,
            "format": "json",
            "options": {
                "num_predict": self._config.max_tokens,
                "temperature": 0.1,  # Low temperature for consistent output
                "top_p": 0.9,
            },
        }

    async def _call_api(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        data = await post_json(
            self._client,
            f"{self._config.base_url}/api/chat",
            self._build_request(system_prompt, user_prompt),
        )
        if not data.get("done"):
            raise IncompleteResponseError("incomplete response from Ollama")
        return data

    async def analyze(self, system_prompt: str, user_prompt: str) -> tuple[Analysis, Stats]:
        """Analyze logs using Ollama."""
        start_time = time.monotonic()

        data = await retry_with_backoff(
            lambda: self._call_api(system_prompt, user_prompt),
            max_attempts=DEFAULT_MAX_ATTEMPTS,
            operation_name="ollama_chat",
        )

        message = data.get("message") or {}
        response_text = message.get("content", "") if isinstance(message, dict) else ""
        if not response_text:
            raise EmptyResponseError("empty response from Ollama")
        if not isinstance(response_text, str):
            raise EmptyResponseError(
                f"unexpected content type in Ollama response: {type(response_text).__name__}"
            )

        analysis = parse_provider_response(response_text, self.provider_name)

        # Local inference has no monetary cost; tokens are kept for comparison
        stats = Stats(
            provider=self.provider_name,
            model=self._config.model,
            input_tokens=usage_count(data.get("prompt_eval_count")),
            output_tokens=usage_count(data.get("eval_count")),
            cost_usd=0.0,
            duration_seconds=time.monotonic() - start_time,
        )

        logger.debug(
            "ollama_analysis_complete",
            model=self._config.model,
            input_tokens=stats.input_tokens,
            output_tokens=stats.output_tokens,
            eval_duration_ms=usage_count(data.get("eval_duration")) / 1_000_000,
            status=analysis.system_status.value,
        )

        return analysis, stats

    async def list_models(self) -> list[str]:
        """List models installed on the Ollama server.

        Raises:
            ProviderConnectionError: If the server cannot be queried.
        """
        url = f"{self._config.base_url}/api/tags"
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise ProviderConnectionError(
                f"ollama is not running at {self._config.base_url}: {redact_error(e)}"
            ) from e

        if response.status_code != 200:
            raise ProviderConnectionError(f"ollama returned status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderConnectionError(f"failed to parse response: {e}") from e

        models = data.get("models") if isinstance(data, dict) else None
        return [m.get("name", "") for m in models or [] if isinstance(m, dict)]

    def _model_matches(self, name: str) -> bool:
        # "llama3.3" matches "llama3.3:latest"
        base_name = self._config.model.split(":")[0]
        return name == self._config.model or name.startswith(base_name)

    async def check_connection(self) -> None:
        """Verify that Ollama is running and the configured model is installed.

        Raises:
            ProviderConnectionError: With the installed models listed when the
                configured one is missing.
        """
        available = await self.list_models()

        if not any(self._model_matches(name) for name in available):
            raise ProviderConnectionError(
                f"model '{self._config.model}' not found in Ollama. "
                f"Available models: {available}. "
                f"Run 'ollama pull {self._config.model}' to download it",
                {"available_models": available},
            )

        logger.info("ollama_connection_ok", url=self._config.base_url, model=self._config.model)

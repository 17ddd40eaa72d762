"""LM Studio LLM provider (OpenAI-compatible API) for local log analysis."""

import time
from typing import Any, Optional

import httpx
import structlog

from logwatch_ai.core.exceptions import EmptyResponseError, ProviderConnectionError
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

DEFAULT_LMSTUDIO_URL = "http://localhost:1234"

# LM Studio answers with whatever model is currently loaded
GENERIC_MODEL_ID = "local-model"


class LMStudioLLMProvider(BaseLLMProvider):
    """LLM provider using LM Studio's OpenAI-compatible chat completions."""

    def __init__(
        self,
        model: Optional[str] = None,
        url: Optional[str] = None,
        timeout_seconds: int = 0,
        max_tokens: int = 0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the LM Studio provider.

        Args:
            model: Model id, "local-model" uses the loaded model.
            url: LM Studio server URL.
            timeout_seconds: Request timeout, 300s when not positive.
            max_tokens: Max tokens to generate, 8000 when not positive.
            http_client: Shared client; one is created when omitted.
        """
        self._config = ProviderConfig(
            model=model or GENERIC_MODEL_ID,
            base_url=url or DEFAULT_LMSTUDIO_URL,
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
        return "LMStudio"

    def get_model_info(self) -> ModelInfo:
        return ModelInfo(
            model=self._config.model,
            provider=self.provider_name,
            max_tokens=self._config.max_tokens,
            context_limit=LOCAL_CONTEXT_LIMIT,
            base_url=self._config.base_url,
        )

    def _build_request(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        # No response_format: LM Studio rejects "json_object", the system
        # prompt asks for JSON instead
        return {
            "model": self._config.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": self._config.max_tokens,
            "temperature": 0.1,
            "top_p": 0.9,
            "stream": False,
        }

    async def _call_api(self, system_prompt: str, user_prompt: str) -> dict[str, Any]:
        return await post_json(
            self._client,
            f"{self._config.base_url}/v1/chat/completions",
            self._build_request(system_prompt, user_prompt),
        )

    async def analyze(self, system_prompt: str, user_prompt: str) -> tuple[Analysis, Stats]:
        """Analyze logs using LM Studio."""
        start_time = time.monotonic()

        data = await retry_with_backoff(
            lambda: self._call_api(system_prompt, user_prompt),
            max_attempts=DEFAULT_MAX_ATTEMPTS,
            operation_name="lmstudio_chat_completions",
        )

        choices = data.get("choices")
        if not isinstance(choices, list) or not choices:
            raise EmptyResponseError("empty response from LM Studio (no choices)")

        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        response_text = message.get("content") if isinstance(message, dict) else None
        if not response_text:
            raise EmptyResponseError("empty response from LM Studio")
        if not isinstance(response_text, str):
            raise EmptyResponseError(
                f"unexpected content type in LM Studio response: {type(response_text).__name__}"
            )

        analysis = parse_provider_response(response_text, self.provider_name)

        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        stats = Stats(
            provider=self.provider_name,
            model=self._config.model,
            input_tokens=usage_count(usage.get("prompt_tokens")),
            output_tokens=usage_count(usage.get("completion_tokens")),
            cost_usd=0.0,  # Local inference is free
            duration_seconds=time.monotonic() - start_time,
        )

        logger.debug(
            "lmstudio_analysis_complete",
            model=self._config.model,
            input_tokens=stats.input_tokens,
            output_tokens=stats.output_tokens,
            status=analysis.system_status.value,
        )

        return analysis, stats

    async def list_models(self) -> list[str]:
        """List model ids currently loaded in LM Studio.

        Raises:
            ProviderConnectionError: If the server cannot be queried.
        """
        url = f"{self._config.base_url}/v1/models"
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise ProviderConnectionError(
                f"LM Studio is not running at {self._config.base_url}: {redact_error(e)}"
            ) from e

        if response.status_code != 200:
            raise ProviderConnectionError(f"LM Studio returned status {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderConnectionError(f"failed to parse response: {e}") from e

        entries = data.get("data") if isinstance(data, dict) else None
        return [m.get("id", "") for m in entries or [] if isinstance(m, dict)]

    async def check_connection(self) -> None:
        """Verify that LM Studio is running and a suitable model is loaded.

        Raises:
            ProviderConnectionError: If nothing is loaded, or the configured
                model is not among the loaded ones.
        """
        available = await self.list_models()

        if not available:
            raise ProviderConnectionError(
                "no models loaded in LM Studio. Please load a model in LM Studio first"
            )

        model = self._config.model
        if model != GENERIC_MODEL_ID and not any(
            model_id == model or model in model_id for model_id in available
        ):
            raise ProviderConnectionError(
                f"model '{model}' not found in LM Studio. Available models: {available}. "
                f"You can use '{GENERIC_MODEL_ID}' to use the currently loaded model",
                {"available_models": available},
            )

        logger.info("lmstudio_connection_ok", url=self._config.base_url, model=model)

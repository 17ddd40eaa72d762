"""Tests for the LM Studio provider."""

import httpx
import pytest

from logwatch_ai.core.exceptions import (
    EmptyResponseError,
    ProviderConnectionError,
    ProviderHTTPError,
    RetryExhaustedError,
)
from logwatch_ai.services.llm_providers.base import SystemStatus
from logwatch_ai.services.llm_providers.lmstudio_provider import (
    DEFAULT_LMSTUDIO_URL,
    GENERIC_MODEL_ID,
    LMStudioLLMProvider,
)


def _completion(content, prompt_tokens=900, completion_tokens=210):
    return httpx.Response(
        200,
        json={
            "id": "chatcmpl-1",
            "object": "chat.completion",
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": content},
                    "finish_reason": "stop",
                }
            ],
            "usage": {
                "prompt_tokens": prompt_tokens,
                "completion_tokens": completion_tokens,
                "total_tokens": prompt_tokens + completion_tokens,
            },
        },
    )


def _models_response(*ids):
    return httpx.Response(
        200, json={"object": "list", "data": [{"id": i, "object": "model"} for i in ids]}
    )


class TestLMStudioProviderInit:
    """Tests for provider construction."""

    def test_defaults(self):
        """Model and URL fall back to the loaded-model defaults."""
        provider = LMStudioLLMProvider()

        assert provider.config.model == GENERIC_MODEL_ID
        assert provider.config.base_url == DEFAULT_LMSTUDIO_URL
        assert provider.config.timeout_seconds == 300
        assert provider.provider_name == "LMStudio"

    def test_model_info(self):
        provider = LMStudioLLMProvider(model="qwen2.5-7b-instruct", url="http://ws:1234/")
        info = provider.get_model_info()

        assert info.model == "qwen2.5-7b-instruct"
        assert info.provider == "LMStudio"
        assert info.base_url == "http://ws:1234"

    @pytest.mark.asyncio
    async def test_context_manager_closes_own_client(self):
        """A client the provider built is closed on exit."""
        async with LMStudioLLMProvider() as provider:
            client = provider._client

        assert client.is_closed


class TestLMStudioAnalyze:
    """Tests for LMStudioLLMProvider.analyze."""

    @pytest.mark.asyncio
    async def test_successful_analysis(self, make_http_client, valid_analysis_json):
        """A completion yields an analysis with zero cost."""
        client, _ = make_http_client(_completion(valid_analysis_json))
        provider = LMStudioLLMProvider(http_client=client)

        analysis, stats = await provider.analyze("system", "user")

        assert analysis.system_status == SystemStatus.GOOD
        assert stats.provider == "LMStudio"
        assert stats.model == GENERIC_MODEL_ID
        assert stats.input_tokens == 900
        assert stats.output_tokens == 210
        assert stats.cost_usd == 0.0

    @pytest.mark.asyncio
    async def test_request_wire_format(self, make_http_client, valid_analysis_json):
        """The OpenAI-compatible endpoint gets no response_format."""
        client, handler = make_http_client(_completion(valid_analysis_json))
        provider = LMStudioLLMProvider(
            model="qwen2.5-7b-instruct", max_tokens=2048, http_client=client
        )

        await provider.analyze("be an analyst", "logs here")

        assert str(handler.requests[0].url) == "http://localhost:1234/v1/chat/completions"
        assert handler.last_json == {
            "model": "qwen2.5-7b-instruct",
            "messages": [
                {"role": "system", "content": "be an analyst"},
                {"role": "user", "content": "logs here"},
            ],
            "max_tokens": 2048,
            "temperature": 0.1,
            "top_p": 0.9,
            "stream": False,
        }

    @pytest.mark.asyncio
    async def test_prose_wrapped_answer(self, make_http_client):
        """Local models that chat around the JSON still parse."""
        content = 'Sure, here you go:\n{"systemStatus":"Satisfactory","summary":"swap high"}\n'
        client, _ = make_http_client(_completion(content))
        provider = LMStudioLLMProvider(http_client=client)

        analysis, _ = await provider.analyze("s", "u")

        assert analysis.system_status == SystemStatus.SATISFACTORY
        assert analysis.system_status.triggers_alert

    @pytest.mark.asyncio
    async def test_no_choices(self, make_http_client):
        client, _ = make_http_client(httpx.Response(200, json={"choices": []}))
        provider = LMStudioLLMProvider(http_client=client)

        with pytest.raises(EmptyResponseError, match="no choices"):
            await provider.analyze("s", "u")

    @pytest.mark.asyncio
    async def test_empty_content(self, make_http_client):
        client, _ = make_http_client(_completion(""))
        provider = LMStudioLLMProvider(http_client=client)

        with pytest.raises(EmptyResponseError, match="empty response from LM Studio"):
            await provider.analyze("s", "u")

    @pytest.mark.asyncio
    async def test_missing_usage(self, make_http_client, valid_analysis_json):
        """Servers that omit usage report zero tokens."""
        response = httpx.Response(
            200, json={"choices": [{"message": {"content": valid_analysis_json}}]}
        )
        client, _ = make_http_client(response)
        provider = LMStudioLLMProvider(http_client=client)

        _, stats = await provider.analyze("s", "u")

        assert stats.input_tokens == 0
        assert stats.output_tokens == 0

    @pytest.mark.asyncio
    async def test_content_parts_list_rejected(self, make_http_client, valid_analysis_json):
        """List-of-parts content is reported as an empty response."""
        client, handler = make_http_client(
            _completion([{"type": "text", "text": valid_analysis_json}])
        )
        provider = LMStudioLLMProvider(http_client=client)

        with pytest.raises(EmptyResponseError, match="unexpected content type"):
            await provider.analyze("s", "u")

        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_choices_not_a_list(self, make_http_client):
        client, _ = make_http_client(httpx.Response(200, json={"choices": {"0": {}}}))
        provider = LMStudioLLMProvider(http_client=client)

        with pytest.raises(EmptyResponseError, match="no choices"):
            await provider.analyze("s", "u")

    @pytest.mark.asyncio
    async def test_malformed_usage_ignored(self, make_http_client, valid_analysis_json):
        """A usage field that is not an object counts as zero tokens."""
        response = httpx.Response(
            200,
            json={"choices": [{"message": {"content": valid_analysis_json}}], "usage": [1]},
        )
        client, _ = make_http_client(response)
        provider = LMStudioLLMProvider(http_client=client)

        analysis, stats = await provider.analyze("s", "u")

        assert analysis.system_status == SystemStatus.GOOD
        assert stats.input_tokens == 0
        assert stats.output_tokens == 0

    @pytest.mark.asyncio
    async def test_rate_limited_then_success(
        self, make_http_client, valid_analysis_json, no_sleep
    ):
        client, handler = make_http_client(
            httpx.Response(429, text="busy"), _completion(valid_analysis_json)
        )
        provider = LMStudioLLMProvider(http_client=client)

        await provider.analyze("s", "u")

        assert len(handler.requests) == 2
        no_sleep.assert_awaited_once_with(60.0)

    @pytest.mark.asyncio
    async def test_error_body_redacted_and_truncated(self, make_http_client, no_sleep):
        """Echoed credentials never reach the error message."""
        body = "bad request: Authorization: Bearer abc.def.ghi " + "x" * 1000
        client, _ = make_http_client(*[httpx.Response(400, text=body) for _ in range(3)])
        provider = LMStudioLLMProvider(http_client=client)

        with pytest.raises(RetryExhaustedError) as exc_info:
            await provider.analyze("s", "u")

        last_error = exc_info.value.last_error
        assert isinstance(last_error, ProviderHTTPError)
        assert "abc.def.ghi" not in last_error.body
        assert len(last_error.body) <= 500


class TestLMStudioConnection:
    """Tests for model listing and connection checks."""

    @pytest.mark.asyncio
    async def test_list_models(self, make_http_client):
        client, handler = make_http_client(_models_response("qwen2.5-7b-instruct"))
        provider = LMStudioLLMProvider(http_client=client)

        assert await provider.list_models() == ["qwen2.5-7b-instruct"]
        assert handler.requests[0].url.path == "/v1/models"

    @pytest.mark.asyncio
    async def test_generic_model_accepts_anything_loaded(self, make_http_client):
        client, _ = make_http_client(_models_response("whatever-is-loaded"))
        provider = LMStudioLLMProvider(http_client=client)

        await provider.check_connection()

    @pytest.mark.asyncio
    async def test_nothing_loaded(self, make_http_client):
        client, _ = make_http_client(_models_response())
        provider = LMStudioLLMProvider(http_client=client)

        with pytest.raises(ProviderConnectionError, match="no models loaded"):
            await provider.check_connection()

    @pytest.mark.asyncio
    async def test_substring_match(self, make_http_client):
        """A configured id contained in a loaded id matches."""
        client, _ = make_http_client(_models_response("lmstudio-community/qwen2.5-7b-instruct-GGUF"))
        provider = LMStudioLLMProvider(model="qwen2.5-7b-instruct", http_client=client)

        await provider.check_connection()

    @pytest.mark.asyncio
    async def test_configured_model_not_loaded(self, make_http_client):
        client, _ = make_http_client(_models_response("mistral-7b"))
        provider = LMStudioLLMProvider(model="qwen2.5-7b-instruct", http_client=client)

        with pytest.raises(ProviderConnectionError) as exc_info:
            await provider.check_connection()

        assert "model 'qwen2.5-7b-instruct' not found in LM Studio" in str(exc_info.value)
        assert "mistral-7b" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_server_down(self, make_http_client):
        client, _ = make_http_client(httpx.ConnectError("connection refused"))
        provider = LMStudioLLMProvider(http_client=client)

        with pytest.raises(ProviderConnectionError, match="not running"):
            await provider.check_connection()

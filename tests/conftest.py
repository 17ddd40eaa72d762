"""Pytest configuration and shared fixtures."""

import json
from typing import Any, Callable, Dict, List
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from logwatch_ai.config import Settings


# ============================================================================
# Model output fixtures
# ============================================================================


VALID_ANALYSIS: Dict[str, Any] = {
    "systemStatus": "Good",
    "summary": "System is healthy with minor SSH noise.",
    "criticalIssues": [],
    "warnings": ["12 failed SSH logins from 203.0.113.7"],
    "recommendations": ["Enable fail2ban for sshd"],
    "metrics": {"failedLogins": 12, "diskUsage": "41% on /"},
}


@pytest.fixture
def valid_analysis_json() -> str:
    """A well-formed analysis as the model would return it."""
    return json.dumps(VALID_ANALYSIS)


# ============================================================================
# Settings Fixtures
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        anthropic_api_key="sk-ant-REDACTED",
        llm_provider="anthropic",
        http_proxy="",
        https_proxy="",
    )


# ============================================================================
# HTTP Fixtures
# ============================================================================


class RecordingHandler:
    """httpx.MockTransport handler replaying queued responses.

    Each queued item is either an ``httpx.Response``, an exception to raise,
    or a callable producing one of those from the request.
    """

    def __init__(self, *responses: Any):
        self.responses: List[Any] = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"unexpected request: {request.method} {request.url}")
        item = self.responses.pop(0)
        if callable(item) and not isinstance(item, httpx.Response):
            item = item(request)
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def last_json(self) -> Dict[str, Any]:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def make_http_client() -> Callable[..., tuple[httpx.AsyncClient, RecordingHandler]]:
    """Build an AsyncClient backed by a RecordingHandler."""

    def _make(*responses: Any) -> tuple[httpx.AsyncClient, RecordingHandler]:
        handler = RecordingHandler(*responses)
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return client, handler

    return _make


@pytest.fixture
def no_sleep():
    """Patch out backoff sleeps and expose the mock for assertions."""
    with patch(
        "logwatch_ai.services.llm_providers.retry.asyncio.sleep",
        new_callable=AsyncMock,
    ) as mock_sleep:
        yield mock_sleep

"""JSON-over-HTTP helpers shared by the local LLM providers."""

from typing import Any

import httpx

from logwatch_ai.core.exceptions import EmptyResponseError, ProviderError, ProviderHTTPError
from logwatch_ai.core.redaction import redact_error, redact_secrets

# Error messages quote at most this much of a response body
MAX_ERROR_BODY_CHARS = 500


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    payload: dict[str, Any],
) -> dict[str, Any]:
    """POST ``payload`` as JSON and return the decoded JSON object.

    Raises:
        ProviderError: Transport failure or undecodable body (retryable).
        ProviderHTTPError: Non-200 status (retryable, classified by status).
        EmptyResponseError: The backend answered 200 with an empty body.
    """
    try:
        response = await client.post(url, json=payload)
    except httpx.HTTPError as e:
        raise ProviderError(
            f"API call failed: {type(e).__name__}: {redact_error(e)}",
            {"url": url},
        ) from e

    if response.status_code != 200:
        raise ProviderHTTPError(
            response.status_code,
            redact_secrets(response.text[:MAX_ERROR_BODY_CHARS]),
            {"url": url},
        )

    if not response.content.strip():
        raise EmptyResponseError("empty response body", {"url": url})

    try:
        data = response.json()
    except ValueError as e:
        raise ProviderError(f"failed to unmarshal response: {e}", {"url": url}) from e

    if not isinstance(data, dict):
        raise ProviderError("failed to unmarshal response: expected a JSON object", {"url": url})

    return data


def usage_count(value: Any) -> int:
    """Coerce a reported token count to a non-negative int."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return max(int(value), 0)

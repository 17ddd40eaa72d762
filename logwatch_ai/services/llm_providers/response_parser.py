"""Extraction and validation of the JSON analysis in free-form model output.

Models wrap their answer in prose, emit invalid escapes such as ``\\.`` and
occasionally drop fields. The pipeline is:

    extract_json -> size check -> repair_json_escapes -> json.loads -> validate_analysis

Only the first balanced top-level object is used; anything after it,
including a second JSON object, is treated as commentary and ignored.
"""

import json
from typing import Any

import structlog

from logwatch_ai.core.exceptions import (
    AnalysisValidationError,
    JSONExtractionError,
    MalformedJSONError,
    ResponseParseError,
    ResponseTooLargeError,
)
from logwatch_ai.services.llm_providers.base import Analysis, SystemStatus

logger = structlog.get_logger()

# Maximum extracted JSON size (1 MiB), checked before decoding
MAX_JSON_RESPONSE_SIZE = 1024 * 1024

# JSON only allows: \" \\ \/ \b \f \n \r \t \uXXXX
VALID_JSON_ESCAPES = frozenset('"\\/bfnrtu')

VALID_STATUSES = frozenset(status.value for status in SystemStatus)


def extract_json(response: str) -> str:
    """Return the first balanced JSON object in ``response``, or ``""``."""
    start = response.find("{")
    if start == -1:
        return ""

    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(response)):
        char = response[i]

        if escaped:
            escaped = False
            continue

        if char == "\\" and in_string:
            escaped = True
            continue

        if char == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return response[start : i + 1]

    return ""


def repair_json_escapes(text: str) -> str:
    """Drop the backslash of every escape sequence JSON does not allow."""
    result: list[str] = []
    i = 0
    length = len(text)

    while i < length:
        char = text[i]
        if char == "\\" and i + 1 < length:
            following = text[i + 1]
            if following in VALID_JSON_ESCAPES:
                result.append(char)
            result.append(following)
            i += 2
            continue
        result.append(char)
        i += 1

    return "".join(result)


def _string_list(data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise AnalysisValidationError(f"{key} must be a list of strings")
    return list(value)


def validate_analysis(data: Any) -> Analysis:
    """Validate decoded JSON and build an :class:`Analysis`.

    Required fields are checked first; missing or null collections are
    defaulted to empty only once those checks pass.

    Raises:
        AnalysisValidationError: If the data does not match the schema.
    """
    if not isinstance(data, dict):
        raise AnalysisValidationError("analysis must be a JSON object")

    status = data.get("systemStatus")
    if not status:
        raise AnalysisValidationError("systemStatus is required")
    if not isinstance(status, str) or status not in VALID_STATUSES:
        raise AnalysisValidationError(
            f"invalid systemStatus: {status}",
            {"valid": sorted(VALID_STATUSES)},
        )

    summary = data.get("summary")
    if not summary or not isinstance(summary, str):
        raise AnalysisValidationError("summary is required")

    metrics = data.get("metrics")
    if metrics is None:
        metrics = {}
    elif not isinstance(metrics, dict):
        raise AnalysisValidationError("metrics must be a JSON object")

    return Analysis(
        system_status=SystemStatus(status),
        summary=summary,
        critical_issues=_string_list(data, "criticalIssues"),
        warnings=_string_list(data, "warnings"),
        recommendations=_string_list(data, "recommendations"),
        metrics=dict(metrics),
    )


def parse_analysis(response: str) -> Analysis:
    """Extract, repair, decode and validate the analysis in model output.

    Raises:
        JSONExtractionError: No balanced JSON object in the response.
        ResponseTooLargeError: The extracted object exceeds 1 MiB.
        MalformedJSONError: The object does not decode after escape repair.
        AnalysisValidationError: The decoded object fails validation.
    """
    json_text = extract_json(response)
    if not json_text:
        raise JSONExtractionError()

    size = len(json_text.encode("utf-8"))
    if size > MAX_JSON_RESPONSE_SIZE:
        raise ResponseTooLargeError(size, MAX_JSON_RESPONSE_SIZE)

    try:
        data = json.loads(repair_json_escapes(json_text))
    except json.JSONDecodeError as e:
        raise MalformedJSONError(f"failed to parse JSON response: {e}") from e

    return validate_analysis(data)


def parse_provider_response(response_text: str, provider_name: str) -> Analysis:
    """Run :func:`parse_analysis`, logging content failures for ``provider_name``."""
    try:
        return parse_analysis(response_text)
    except ResponseParseError as e:
        logger.warning(
            "llm_response_parse_failed",
            provider=provider_name,
            error_type=type(e).__name__,
            error=e.message,
        )
        raise

"""Prompt-injection sanitizer for untrusted log content.

Log excerpts are attacker-influenced: a failed login with the username
"ignore previous instructions" ends up verbatim in the prompt. Known
override phrasings and fake role markers are replaced before embedding.
"""

import re

FILTERED_TOKEN = "[FILTERED]"

# Characters kept even though str.isprintable() rejects them
_ALLOWED_CONTROL_CHARS = frozenset("\n\t\r")

INJECTION_PATTERNS = [
    # Instruction override
    re.compile(r"ignore\s+(all\s+)?(previous|prior|above)\s+(instructions?|prompts?|rules?)", re.IGNORECASE),
    re.compile(r"disregard\s+(all\s+)?(previous|prior|above)\s+(instructions?|prompts?|rules?)", re.IGNORECASE),
    re.compile(r"forget\s+(all\s+)?(previous|prior|above)\s+(instructions?|prompts?|rules?)", re.IGNORECASE),
    # Role reassignment
    re.compile(r"you\s+are\s+now\s+a", re.IGNORECASE),
    re.compile(r"new\s+instructions?:", re.IGNORECASE),
    re.compile(r"system\s*prompt\s*:", re.IGNORECASE),
    # Fake conversation turns
    re.compile(r"\bASSISTANT\s*:", re.IGNORECASE),
    re.compile(r"\bHUMAN\s*:", re.IGNORECASE),
    re.compile(r"\bUSER\s*:", re.IGNORECASE),
    re.compile(r"\bSYSTEM\s*:", re.IGNORECASE),
]

_EXCESSIVE_NEWLINES = re.compile(r"\n{4,}")


def strip_non_printable(content: str) -> str:
    """Drop every non-printable character except newline, tab and CR."""
    return "".join(
        ch for ch in content if ch.isprintable() or ch in _ALLOWED_CONTROL_CHARS
    )


def sanitize_log_content(content: str) -> str:
    """Neutralize prompt-injection attempts in untrusted text.

    Args:
        content: Raw log text of any length.

    Returns:
        The text with control characters removed, injection phrasings
        replaced by ``[FILTERED]`` and runs of 4+ newlines collapsed to 3.
    """
    if not content:
        return ""

    result = strip_non_printable(content)

    for pattern in INJECTION_PATTERNS:
        result = pattern.sub(FILTERED_TOKEN, result)

    return _EXCESSIVE_NEWLINES.sub("\n\n\n", result)

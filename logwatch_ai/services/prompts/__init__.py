"""Prompt builders for the supported log types."""

from logwatch_ai.services.prompts.logwatch import LOGWATCH_SYSTEM_PROMPT, LogwatchPromptBuilder

__all__ = ["LOGWATCH_SYSTEM_PROMPT", "LogwatchPromptBuilder"]

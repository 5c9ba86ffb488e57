"""
System prompts and instructions for the streaming agent.
Centralizes all prompt engineering for the model backend and tools.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

#: Placeholder replaced with today's ISO date by build_prompt.
TOKEN_TODAY = "%%TODAY%%"

# Agent System Instructions
SYSTEM_INSTRUCTIONS = f"""You are a helpful AI assistant with access to a weather lookup tool.

Today's date is {TOKEN_TODAY}.

## Formatting

- Answer in **Markdown**: short paragraphs, bullet lists, and tables where they help
- Never show tool names, function-call syntax, or raw JSON to the user

## Weather Questions

- Call `get_weather_data` with the city name and a date in YYYY-MM-DD format
- Resolve relative dates ("today", "tomorrow") against today's date before calling
- If the tool reports a problem, explain it plainly and suggest a fix (e.g. a different city spelling)
- The tool returns current conditions only; say so when asked about another date
"""

#: User message wrapper around the raw query.
USER_PROMPT_TEMPLATE = "You are a helpful AI assistant. Please respond to: {query}"


@dataclass(frozen=True, slots=True)
class Prompt:
    """System instructions plus the user turn for one stream session."""

    system: str
    user: str


def build_prompt(query: str, today: date | None = None) -> Prompt:
    """Build the prompt for one query.

    Args:
        query: Validated user query
        today: Date to present as "today" (defaults to the local date)

    Returns:
        Prompt with the date substituted into the system instructions
    """
    today = today or date.today()
    return Prompt(
        system=SYSTEM_INSTRUCTIONS.replace(TOKEN_TODAY, today.isoformat()),
        user=USER_PROMPT_TEMPLATE.format(query=query),
    )


__all__ = ["SYSTEM_INSTRUCTIONS", "USER_PROMPT_TEMPLATE", "Prompt", "build_prompt"]

"""
Pull a meal-plan JSON object out of free-form assistant text.

This is a heuristic, not a parser: the candidate is everything from the first
"{" to the last "}" in the reply. Consequences worth knowing:

- prose braces around the plan ("use {salt} ... {plan}") widen the span and the
  JSON no longer parses, so no plan is returned;
- two JSON objects in one reply are tried as a single span and usually fail;
- a fenced ```json block works because the span ignores the fence characters.
"""

import json
import re
from typing import Any

from app.logging import get_logger

logger = get_logger(__name__)

_FENCED_JSON_RE = re.compile(r"```json\s*[\s\S]*?```")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def greedy_brace_span(text: str) -> str | None:
    start = text.find("{")
    if start == -1:
        return None
    end = text.rfind("}")
    if end < start:
        return None
    return text[start : end + 1]


def extract_meal_plan(text: str) -> dict[str, Any] | None:
    """Return the plan object when the span parses to a dict with a `recipes` list."""
    if not isinstance(text, str):
        return None
    span = greedy_brace_span(text)
    if span is None:
        return None
    try:
        parsed = json.loads(span)
    except json.JSONDecodeError:
        logger.info("plan_extractor.unparseable span_len=%s", len(span))
        return None
    if isinstance(parsed, dict) and isinstance(parsed.get("recipes"), list):
        logger.info("plan_extractor.found recipes=%s", len(parsed["recipes"]))
        return parsed
    return None


def strip_plan_block(text: str) -> str:
    """Remove the plan JSON from an assistant reply so only the conversational part is shown."""
    out = _FENCED_JSON_RE.sub("", text)
    span = greedy_brace_span(text)
    if span:
        out = out.replace(span, "", 1)
    out = _BLANK_RUN_RE.sub("\n\n", out).strip()
    return out or text

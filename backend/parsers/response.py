"""Recover a transaction array from free-form, possibly truncated model output.

Recovery runs as a fixed sequence of strategies. Each one either returns the
parsed JSON value or records why it failed; the first success wins:

1. strip markdown code fences (preprocessing for everything below)
2. greedy ``[...]`` regex span, parsed as JSON
3. first ``[`` to last ``]`` (whole text when there are no brackets)
4. complete transaction objects salvaged from a truncated array
5. cut at the last ``}`` and force-close the array
"""

import json
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from backend.errors import EmptyResultError, NotAnArrayError, UnparseableResponseError

logger = logging.getLogger(__name__)

_ARRAY_SPAN = re.compile(r"\[[\s\S]*\]")
_FLAT_OBJECT = re.compile(r"\{[^{}]*\}")
_FENCE = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)
REQUIRED_KEYS = ('"description"', '"amount"', '"type"')


@dataclass(frozen=True)
class ParseAttempt:
    """Outcome of one recovery strategy."""

    strategy: str
    data: Any = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def strip_code_fences(text: str) -> str:
    """Remove markdown fence markers around (or inside) the model output."""
    cleaned = text.strip()
    if cleaned.startswith("```") or cleaned.endswith("```"):
        cleaned = _FENCE.sub("", cleaned).strip()
    return cleaned


def _array_region(text: str) -> str:
    """Text from the first ``[`` onwards; truncated output may have no closing bracket."""
    start = text.find("[")
    return text[start:] if start != -1 else text


def _loads(strategy: str, candidate: str) -> ParseAttempt:
    try:
        return ParseAttempt(strategy, data=json.loads(candidate))
    except json.JSONDecodeError as e:
        return ParseAttempt(strategy, error=str(e))


def _regex_span(text: str) -> ParseAttempt:
    match = _ARRAY_SPAN.search(text)
    if not match:
        return ParseAttempt("regex_span", error="no [...] span found")
    return _loads("regex_span", match.group(0))


def _bracket_span(text: str) -> ParseAttempt:
    first = text.find("[")
    last = text.rfind("]")
    if first != -1 and last > first:
        return _loads("bracket_span", text[first : last + 1])
    # No array at all: the whole text may still be JSON (and then not an array)
    return _loads("bracket_span", text)


def _complete_objects(text: str) -> ParseAttempt:
    recovered = []
    for fragment in _FLAT_OBJECT.findall(_array_region(text)):
        if not all(key in fragment for key in REQUIRED_KEYS):
            continue
        try:
            recovered.append(json.loads(fragment))
        except json.JSONDecodeError:
            continue
    if not recovered:
        return ParseAttempt("complete_objects", error="no complete transaction objects")
    return ParseAttempt("complete_objects", data=recovered)


def _close_at_last_brace(text: str) -> ParseAttempt:
    region = _array_region(text)
    last_brace = region.rfind("}")
    if not region.startswith("[") or last_brace == -1:
        return ParseAttempt("close_at_last_brace", error="no closing brace to cut at")
    return _loads("close_at_last_brace", region[: last_brace + 1] + "]")


STRATEGIES: list[Callable[[str], ParseAttempt]] = [
    _regex_span,
    _bracket_span,
    _complete_objects,
    _close_at_last_brace,
]


def parse_transactions(raw_text: str) -> list[dict[str, Any]]:
    """
    Extract the transaction list from raw model output.

    Args:
        raw_text: Text returned by the provider

    Returns:
        Transaction objects in output order (not yet validated). Elements
        that are not JSON objects are dropped.

    Raises:
        UnparseableResponseError: If no strategy recovers valid JSON
        NotAnArrayError: If the recovered JSON is not an array
        EmptyResultError: If the array is empty
    """
    cleaned = strip_code_fences(raw_text or "")

    attempts = []
    for strategy in STRATEGIES:
        attempt = strategy(cleaned)
        attempts.append(attempt)
        if attempt.ok:
            break
    else:
        logger.error(f"Could not parse AI response ({len(cleaned)} chars): {cleaned[:200]!r}")
        summary = "; ".join(f"{a.strategy}: {a.error}" for a in attempts)
        raise UnparseableResponseError(detail=summary)

    if attempt.strategy != "regex_span":
        logger.warning(f"Recovered AI response with '{attempt.strategy}' after {len(attempts) - 1} failed attempts")

    data = attempt.data
    if not isinstance(data, list):
        raise NotAnArrayError(detail=f"top-level JSON is {type(data).__name__}")

    transactions = [item for item in data if isinstance(item, dict)]
    if len(transactions) < len(data):
        logger.warning(f"Dropped {len(data) - len(transactions)} non-object entries from AI response")

    if not transactions:
        raise EmptyResultError(detail="AI response contained no transactions")

    logger.info(f"Parsed {len(transactions)} transactions")
    return transactions

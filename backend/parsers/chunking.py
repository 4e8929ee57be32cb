"""Token estimation and line-respecting chunking of statement text."""

import logging
import math
from collections.abc import Iterator
from dataclasses import dataclass

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4
DEFAULT_MAX_TOKENS = 8000
DEFAULT_RESERVED_TOKENS = 2000


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


@dataclass(frozen=True)
class Chunk:
    """A bounded slice of statement text. ``index`` is 1-based."""

    index: int
    total_chunks: int
    text: str

    @property
    def label(self) -> str:
        return f"{self.index}/{self.total_chunks}"


def _split_lines(content: str, max_chars: int) -> Iterator[str]:
    """Yield chunk texts, accumulating whole lines up to ``max_chars``."""
    current: list[str] = []
    current_length = 0

    for line in content.split("\n"):
        line_length = len(line)

        # Adding this line (and its newline joiner) would overflow: flush what we have
        if current and current_length + 1 + line_length > max_chars:
            yield "\n".join(current)
            current = []
            current_length = 0

        if line_length > max_chars:
            # current is already empty here; hard-split the oversized line
            for start in range(0, line_length, max_chars):
                yield line[start : start + max_chars]
        else:
            current_length += line_length + (1 if current else 0)
            current.append(line)

    if current:
        yield "\n".join(current)


def chunk_content(
    content: str,
    max_tokens: int = DEFAULT_MAX_TOKENS,
    reserved_tokens: int = DEFAULT_RESERVED_TOKENS,
) -> Iterator[Chunk]:
    """
    Split statement text into ordered chunks that fit the provider budget.

    Lines are never split unless a single line alone exceeds the budget.
    Joining the chunk texts with newlines gives back the original content.

    Args:
        content: Statement text
        max_tokens: Per-request token budget
        reserved_tokens: Tokens kept aside for prompt scaffolding and the response

    Returns:
        A one-shot iterator of Chunk objects in document order
    """
    effective_tokens = max_tokens - reserved_tokens
    if effective_tokens <= 0:
        raise ValueError(f"reserved_tokens ({reserved_tokens}) must be smaller than max_tokens ({max_tokens})")
    max_chars = effective_tokens * CHARS_PER_TOKEN

    # Counting pass so every chunk knows its position; texts are produced lazily below
    total = sum(1 for _ in _split_lines(content, max_chars))
    logger.info(f"Splitting {len(content)} chars (~{estimate_tokens(content)} tokens) into {total} chunks")

    return (
        Chunk(index=i, total_chunks=total, text=text)
        for i, text in enumerate(_split_lines(content, max_chars), start=1)
    )

"""Generic LLM-based transaction extraction for any bank statement text."""

import logging
from typing import Any

from backend.config import settings
from backend.models import ProviderName
from backend.parsers.chunking import chunk_content, estimate_tokens
from backend.parsers.llm_client import ProviderGateway
from backend.parsers.prompts import build_extraction_prompt
from backend.parsers.response import parse_transactions
from backend.parsers.validation import validate_statement_content
from backend.services.orchestrator import ChunkCallback, ChunkOrchestrator

logger = logging.getLogger(__name__)


def needs_chunking(content: str, max_tokens: int | None = None) -> bool:
    """Whether the statement is too big for a single provider call."""
    max_tokens = settings.max_tokens_per_request if max_tokens is None else max_tokens
    return estimate_tokens(content) > max_tokens


async def extract_statement_transactions(
    content: str,
    gateway: ProviderGateway,
    preference: str | ProviderName | None = None,
    orchestrator: ChunkOrchestrator | None = None,
    on_chunk: ChunkCallback | None = None,
) -> list[dict[str, Any]]:
    """
    Turn statement text into raw transaction objects.

    Small statements go to the provider in one call; large ones are chunked
    and driven through the chunk orchestrator.

    Args:
        content: Decoded statement text
        gateway: Provider gateway used for every LLM call
        preference: Optional provider override ("groq", "gemini", "openai", "auto")
        orchestrator: Chunk orchestrator (built from settings when omitted)
        on_chunk: Progress callback forwarded to the orchestrator

    Returns:
        Raw transaction dicts, not yet validated

    Raises:
        StatementError: Validation, provider, or parsing failure
    """
    validate_statement_content(content)

    estimated = estimate_tokens(content)
    logger.info(f"Processing statement: {len(content)} chars, ~{estimated} tokens")

    if needs_chunking(content):
        logger.info(f"Content is large ({estimated} tokens), splitting into chunks...")
        orchestrator = orchestrator or ChunkOrchestrator(gateway)
        chunks = chunk_content(
            content,
            max_tokens=settings.max_tokens_per_request,
            reserved_tokens=settings.reserved_tokens,
        )
        return await orchestrator.run(chunks, preference, on_chunk=on_chunk)

    prompt = build_extraction_prompt(content, currency=settings.default_currency)
    output = await gateway.extract(prompt, preference)
    transactions = parse_transactions(output.text)
    logger.info(f"Extracted {len(transactions)} transactions via {output.provider.value}")
    return transactions

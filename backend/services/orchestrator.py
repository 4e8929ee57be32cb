"""Sequential, rate-limit aware extraction over statement chunks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from backend.config import settings
from backend.errors import (
    NoProviderConfiguredError,
    NoTransactionsExtractedError,
    RateLimitedError,
    StatementError,
)
from backend.models import ProviderName
from backend.parsers.chunking import Chunk
from backend.parsers.llm_client import ProviderGateway
from backend.parsers.prompts import build_extraction_prompt
from backend.parsers.response import parse_transactions
from backend.services.dedup import deduplicate_transactions

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[Chunk, int, int], None]


@dataclass(frozen=True)
class RetryPolicy:
    """How a single chunk is retried: fixed backoff, only on retryable errors."""

    max_attempts: int = 2
    backoff_seconds: float = 10.0
    retryable_on: tuple[type[Exception], ...] = (RateLimitedError,)

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(
            max_attempts=settings.chunk_max_attempts,
            backoff_seconds=settings.rate_limit_backoff_seconds,
        )

    def should_retry(self, error: Exception, attempt: int) -> bool:
        return attempt < self.max_attempts and isinstance(error, self.retryable_on)


@dataclass
class ChunkOutcome:
    chunk: Chunk
    transactions: list[dict[str, Any]]
    attempts: int
    error: StatementError | None = None


class ChunkOrchestrator:
    """
    Extract transactions chunk by chunk, never concurrently.

    A failed chunk is skipped rather than failing the job. Rate-limited
    chunks are retried according to the retry policy, and a fixed pacing
    delay separates successive chunk calls.
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        retry_policy: RetryPolicy | None = None,
        pacing_seconds: float | None = None,
        currency: str | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.gateway = gateway
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.pacing_seconds = settings.chunk_delay_seconds if pacing_seconds is None else pacing_seconds
        self.currency = currency or settings.default_currency
        self._sleep = sleep

    async def extract_chunk(
        self, chunk: Chunk, preference: str | ProviderName | None = None
    ) -> list[dict[str, Any]]:
        """One prompt -> provider -> parser round trip for a chunk."""
        prompt = build_extraction_prompt(chunk, currency=self.currency)
        output = await self.gateway.extract(prompt, preference)
        return parse_transactions(output.text)

    async def _process_chunk(self, chunk: Chunk, preference: str | ProviderName | None) -> ChunkOutcome:
        attempt = 0
        while True:
            attempt += 1
            try:
                transactions = await self.extract_chunk(chunk, preference)
                return ChunkOutcome(chunk, transactions, attempt)
            except NoProviderConfiguredError:
                raise
            except StatementError as e:
                logger.error(f"Error processing chunk {chunk.label} (attempt {attempt}): {e}")
                if not self.retry_policy.should_retry(e, attempt):
                    return ChunkOutcome(chunk, [], attempt, error=e)
                logger.info(f"Rate limit hit, waiting {self.retry_policy.backoff_seconds}s before retrying chunk {chunk.label}")
                await self._sleep(self.retry_policy.backoff_seconds)

    async def run(
        self,
        chunks: Iterable[Chunk],
        preference: str | ProviderName | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> list[dict[str, Any]]:
        """
        Process every chunk in order and merge the results.

        Args:
            chunks: Chunks in document order
            preference: Provider preference passed to the gateway
            on_chunk: Called after each chunk with (chunk, extracted in chunk, total so far)

        Returns:
            Deduplicated transactions, first occurrence wins

        Raises:
            NoProviderConfiguredError: If no provider is configured
            NoTransactionsExtractedError: If no chunk produced any transaction
        """
        self.gateway.ensure_configured()

        all_transactions: list[dict[str, Any]] = []
        skipped = 0
        first = True

        for chunk in chunks:
            if not first and self.pacing_seconds > 0:
                await self._sleep(self.pacing_seconds)
            first = False

            logger.info(f"Processing chunk {chunk.label} ({len(chunk.text)} chars)")
            outcome = await self._process_chunk(chunk, preference)

            if outcome.error is None:
                logger.info(f"Chunk {chunk.label} extracted {len(outcome.transactions)} transactions")
                all_transactions.extend(outcome.transactions)
            else:
                skipped += 1
                logger.warning(f"Skipping chunk {chunk.label} after {outcome.attempts} attempt(s)")

            if on_chunk is not None:
                on_chunk(chunk, len(outcome.transactions), len(all_transactions))

        if not all_transactions:
            raise NoTransactionsExtractedError(detail=f"no transactions found in any chunk ({skipped} skipped)")

        logger.info(f"Total transactions extracted from all chunks: {len(all_transactions)}")
        unique = deduplicate_transactions(all_transactions)
        logger.info(f"Unique transactions after deduplication: {len(unique)}")
        return unique

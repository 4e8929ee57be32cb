"""Tests for sequential chunk extraction with retry and pacing."""

import asyncio
import json

import pytest

from backend.errors import NoProviderConfiguredError, NoTransactionsExtractedError, RateLimitedError
from backend.models import ProviderName
from backend.parsers.chunking import Chunk
from backend.parsers.llm_client import ProviderGateway
from backend.services.orchestrator import ChunkOrchestrator, RetryPolicy


def make_chunks(n: int) -> list[Chunk]:
    return [Chunk(index=i, total_chunks=n, text=f"chunk {i} upi debit") for i in range(1, n + 1)]


def txn(description: str, amount: float = 100.0, date: str = "2023-09-06") -> dict:
    return {"description": description, "amount": amount, "type": "expense", "date": date}


def orchestrator_for(provider, fake_sleep, **kwargs) -> ChunkOrchestrator:
    gateway = ProviderGateway({provider.name: provider})
    policy = kwargs.pop("retry_policy", RetryPolicy(max_attempts=2, backoff_seconds=10.0))
    return ChunkOrchestrator(gateway, retry_policy=policy, pacing_seconds=1.0, sleep=fake_sleep, **kwargs)


class TestRetryPolicy:
    """Test the per-chunk retry decision."""

    def test_retries_rate_limit_once(self):
        """Rate limits are retried until attempts run out."""
        policy = RetryPolicy()
        error = RateLimitedError("groq")

        assert policy.should_retry(error, attempt=1)
        assert not policy.should_retry(error, attempt=2)

    def test_does_not_retry_other_errors(self):
        """Only retryable error types are retried."""
        assert not RetryPolicy().should_retry(ValueError("bad"), attempt=1)


@pytest.mark.asyncio
class TestChunkOrchestrator:
    """Test chunk-by-chunk extraction."""

    async def test_merges_chunks_in_order(self, stub_provider, sleeps):
        """Transactions from every chunk are accumulated in chunk order."""
        recorded, fake_sleep = sleeps
        provider = stub_provider(
            "groq",
            [json.dumps([txn("A")]), json.dumps([txn("B"), txn("C")]), json.dumps([txn("D")])],
        )

        result = await orchestrator_for(provider, fake_sleep).run(make_chunks(3))

        assert [t["description"] for t in result] == ["A", "B", "C", "D"]
        # Pacing between successive chunks, none before the first
        assert recorded == [1.0, 1.0]

    async def test_prompts_carry_chunk_position(self, stub_provider, sleeps):
        """Each prompt names its part number."""
        _, fake_sleep = sleeps
        provider = stub_provider("groq", [json.dumps([txn("A")]), json.dumps([txn("B")])])

        await orchestrator_for(provider, fake_sleep).run(make_chunks(2))

        assert "(Part 1/2)" in provider.prompts[0].user
        assert "(Part 2/2)" in provider.prompts[1].user

    async def test_deduplicates_across_chunks(self, stub_provider, sleeps):
        """Identical (date, description, amount) rows collapse, first wins."""
        _, fake_sleep = sleeps
        first = dict(txn("OVERLAP"), category="food")
        second = dict(txn("OVERLAP"), category="shopping")
        provider = stub_provider("groq", [json.dumps([first, txn("A")]), json.dumps([second, txn("B")])])

        result = await orchestrator_for(provider, fake_sleep).run(make_chunks(2))

        assert [t["description"] for t in result] == ["OVERLAP", "A", "B"]
        assert result[0]["category"] == "food"

    async def test_rate_limited_chunk_is_retried_after_backoff(self, stub_provider, sleeps):
        """A rate limit waits the backoff interval and retries the same chunk once."""
        recorded, fake_sleep = sleeps
        provider = stub_provider(
            "groq",
            [
                json.dumps([txn("A")]),
                RuntimeError("429 rate_limit_exceeded"),
                json.dumps([txn("B")]),
            ],
        )

        result = await orchestrator_for(provider, fake_sleep).run(make_chunks(2))

        assert [t["description"] for t in result] == ["A", "B"]
        assert provider.call_count == 3
        assert provider.prompts[1] == provider.prompts[2]
        assert recorded == [1.0, 10.0]

    async def test_chunk_skipped_when_retry_also_fails(self, stub_provider, sleeps):
        """A second rate limit skips the chunk without failing the job."""
        _, fake_sleep = sleeps
        provider = stub_provider(
            "groq",
            [
                RuntimeError("Rate limit reached"),
                RuntimeError("Rate limit reached"),
                json.dumps([txn("B")]),
            ],
        )

        result = await orchestrator_for(provider, fake_sleep).run(make_chunks(2))

        assert [t["description"] for t in result] == ["B"]
        assert provider.call_count == 3

    async def test_unparseable_chunk_is_skipped_without_retry(self, stub_provider, sleeps):
        """Malformed output skips the chunk immediately."""
        recorded, fake_sleep = sleeps
        provider = stub_provider("groq", ["no json here", json.dumps([txn("B")])])

        result = await orchestrator_for(provider, fake_sleep).run(make_chunks(2))

        assert [t["description"] for t in result] == ["B"]
        assert provider.call_count == 2
        assert recorded == [1.0]

    async def test_all_chunks_fail(self, stub_provider, sleeps):
        """No transactions from any chunk is a terminal error."""
        _, fake_sleep = sleeps
        provider = stub_provider("groq", ["[]", "garbage"])

        with pytest.raises(NoTransactionsExtractedError):
            await orchestrator_for(provider, fake_sleep).run(make_chunks(2))

    async def test_no_provider_configured(self, sleeps):
        """Missing credentials fail before any chunk is attempted."""
        _, fake_sleep = sleeps
        orchestrator = ChunkOrchestrator(ProviderGateway({}), sleep=fake_sleep)

        with pytest.raises(NoProviderConfiguredError):
            await orchestrator.run(make_chunks(2))

    async def test_reports_progress_per_chunk(self, stub_provider, sleeps):
        """The callback sees each chunk with running totals."""
        _, fake_sleep = sleeps
        provider = stub_provider("groq", [json.dumps([txn("A"), txn("B")]), "oops"])
        seen = []

        await orchestrator_for(provider, fake_sleep).run(
            make_chunks(2), on_chunk=lambda chunk, extracted, total: seen.append((chunk.index, extracted, total))
        )

        assert seen == [(1, 2, 2), (2, 0, 2)]

    async def test_cancellation_stops_the_chunk_loop(self, stub_provider):
        """Timing out the caller aborts the remaining chunks."""
        provider = stub_provider("groq", [json.dumps([txn(str(i))]) for i in range(5)])
        orchestrator = ChunkOrchestrator(
            ProviderGateway({ProviderName.GROQ: provider}),
            retry_policy=RetryPolicy(backoff_seconds=0),
            pacing_seconds=5.0,
        )

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(orchestrator.run(make_chunks(5)), timeout=0.2)

        assert provider.call_count == 1

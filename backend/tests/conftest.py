"""Shared fixtures: stub LLM providers and a throwaway database."""

from collections.abc import Callable

import pytest

from backend.db.sqlite import Database
from backend.models import ProviderName
from backend.parsers.prompts import ExtractionPrompt


class StubProvider:
    """Stands in for a LiteLLMProvider; replays scripted responses or errors."""

    def __init__(self, name: ProviderName, responses: list | None = None, model: str = "stub-model"):
        self.name = name
        self.model = model
        self._responses = list(responses or [])
        self.prompts: list[ExtractionPrompt] = []

    @property
    def call_count(self) -> int:
        return len(self.prompts)

    async def complete(self, prompt: ExtractionPrompt) -> str:
        self.prompts.append(prompt)
        if not self._responses:
            raise AssertionError(f"{self.name.value} stub called more times than scripted")
        response = self._responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        if callable(response):
            return response(prompt)
        return response


@pytest.fixture
def stub_provider() -> Callable[..., StubProvider]:
    """Factory: stub_provider("groq", [response, error, ...])."""

    def make(name: str, responses: list | None = None) -> StubProvider:
        return StubProvider(ProviderName(name), responses)

    return make


@pytest.fixture
def store(tmp_path) -> Database:
    return Database(tmp_path / "test.db")


@pytest.fixture
def sleeps() -> tuple[list[float], Callable]:
    """A fake sleep that records requested delays."""
    recorded: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        recorded.append(seconds)

    return recorded, fake_sleep

"""LLM provider clients and the failover gateway used for statement extraction."""

import logging
from dataclasses import dataclass
from typing import Protocol

import litellm
from litellm import acompletion

from backend.config import Settings, settings
from backend.errors import NoProviderConfiguredError, ProviderError, RateLimitedError
from backend.models import ProviderInfo, ProviderName
from backend.parsers.prompts import ExtractionPrompt

logger = logging.getLogger(__name__)

# Fastest / most generous free tier first
PROVIDER_PRIORITY = (ProviderName.GROQ, ProviderName.GEMINI, ProviderName.OPENAI)

RATE_LIMIT_MARKERS = ("rate_limit_exceeded", "429", "rate limit")


def is_rate_limit_error(error: BaseException) -> bool:
    """Check whether a provider failure is a throttling response."""
    if isinstance(error, (RateLimitedError, litellm.RateLimitError)):
        return True
    message = str(error).lower()
    return any(marker in message for marker in RATE_LIMIT_MARKERS)


class CompletionClient(Protocol):
    """Anything that can turn an extraction prompt into raw model text."""

    name: ProviderName
    model: str

    async def complete(self, prompt: ExtractionPrompt) -> str: ...


class LiteLLMProvider:
    """A single provider bound to its credential and model, called through litellm."""

    def __init__(
        self,
        name: ProviderName,
        model: str,
        api_key: str,
        temperature: float = 0.1,
        max_tokens: int = 8000,
        timeout: float = 120.0,
    ):
        self.name = name
        self.model = model
        self._api_key = api_key
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout

    async def complete(self, prompt: ExtractionPrompt) -> str:
        response = await acompletion(
            model=self.model,
            messages=prompt.messages(),
            api_key=self._api_key,
            temperature=self._temperature,  # Low temperature for consistency
            max_tokens=self._max_tokens,
            timeout=self._timeout,
        )
        return response.choices[0].message.content or ""

    def __repr__(self) -> str:
        return f"LiteLLMProvider(name={self.name.value!r}, model={self.model!r})"


@dataclass(frozen=True)
class ModelOutput:
    """Unparsed model text and the provider that produced it."""

    provider: ProviderName
    text: str


class ProviderGateway:
    """
    Routes extraction prompts to the configured providers.

    Selection: an explicit, configured provider wins; otherwise providers are
    tried in priority order (groq, gemini, openai). When the chosen provider
    fails, each remaining configured provider is tried once in the same
    order. If every attempt fails the primary provider's error is raised.
    """

    def __init__(
        self,
        clients: dict[ProviderName, CompletionClient],
        default_provider: str = "auto",
    ):
        clients = {ProviderName(name): client for name, client in clients.items()}
        self._clients = {name: clients[name] for name in PROVIDER_PRIORITY if name in clients}
        self._default_provider = default_provider

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "ProviderGateway":
        """Build one client per provider whose API key is present."""
        models = config.provider_models()
        clients = {}
        for name, api_key in config.provider_keys().items():
            if not api_key:
                continue
            provider = ProviderName(name)
            clients[provider] = LiteLLMProvider(
                name=provider,
                model=models[name],
                api_key=api_key,
                temperature=config.llm_temperature,
                max_tokens=config.llm_max_tokens,
                timeout=config.llm_timeout,
            )
        return cls(clients, default_provider=config.ai_provider)

    @property
    def configured(self) -> list[ProviderName]:
        return list(self._clients)

    def available_providers(self) -> list[ProviderInfo]:
        return [ProviderInfo(name=name, model=client.model) for name, client in self._clients.items()]

    def ensure_configured(self) -> None:
        if not self._clients:
            raise NoProviderConfiguredError()

    def select_provider(self, preference: str | ProviderName | None = None) -> ProviderName:
        """
        Pick the provider that serves the first attempt.

        Raises:
            NoProviderConfiguredError: If no provider has credentials
        """
        self.ensure_configured()
        choice = preference or self._default_provider

        if choice != "auto":
            requested = ProviderName(choice)
            if requested in self._clients:
                return requested
            logger.warning(f"Provider '{requested.value}' requested but not configured, using auto selection")

        return next(iter(self._clients))

    async def extract(
        self, prompt: ExtractionPrompt, preference: str | ProviderName | None = None
    ) -> ModelOutput:
        """
        Send a prompt to the selected provider, failing over on error.

        Returns:
            ModelOutput with the raw text of whichever provider answered

        Raises:
            NoProviderConfiguredError: If no provider has credentials
            RateLimitedError: If the primary provider was throttled and no fallback succeeded
            ProviderError: If the primary provider failed and no fallback succeeded
        """
        primary = self.select_provider(preference)
        logger.info(f"Calling {primary.value} ({self._clients[primary].model})")

        try:
            return await self._call(primary, prompt)
        except ProviderError as error:
            original_error = error
            logger.error(f"Error with {primary.value} provider: {error}")

        # Every provider is tried at most once, so the primary is never retried here
        for fallback in self._clients:
            if fallback == primary:
                continue
            logger.info(f"Fallback: trying {fallback.value}")
            try:
                return await self._call(fallback, prompt)
            except ProviderError as fallback_error:
                logger.error(f"Fallback {fallback.value} also failed: {fallback_error}")

        raise original_error

    async def _call(self, name: ProviderName, prompt: ExtractionPrompt) -> ModelOutput:
        client = self._clients[name]
        try:
            text = await client.complete(prompt)
        except Exception as e:
            if is_rate_limit_error(e):
                raise RateLimitedError(name.value, str(e)) from e
            raise ProviderError(name.value, str(e)) from e

        logger.info(f"{name.value} responded with {len(text)} chars")
        return ModelOutput(provider=name, text=text)

"""Configuration management for the statement extraction service."""

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

ProviderChoice = Literal["auto", "groq", "gemini", "openai"]

DEFAULT_STATEMENT_KEYWORDS = [
    "kotak",
    "hdfc",
    "icici",
    "sbi",
    "axis",
    "bank",
    "upi",
    "transaction",
    "statement",
    "account",
    "balance",
    "credit",
    "debit",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # LLM provider selection
    ai_provider: ProviderChoice = "auto"
    groq_api_key: str = ""
    gemini_api_key: str = ""
    openai_api_key: str = ""
    groq_model: str = "groq/llama-3.3-70b-versatile"
    gemini_model: str = "gemini/gemini-1.5-flash"
    openai_model: str = "gpt-3.5-turbo"

    # Calling convention shared by every provider
    llm_temperature: float = 0.1  # Near zero for repeatable extraction
    llm_max_tokens: int = 8000
    llm_timeout: float = 120.0

    # Chunking budget (tokens are estimated at 4 chars each)
    max_tokens_per_request: int = 8000
    reserved_tokens: int = 2000

    # Pacing between chunk calls and rate-limit recovery
    chunk_delay_seconds: float = 1.0
    rate_limit_backoff_seconds: float = 10.0
    chunk_max_attempts: int = 2

    # Statement validation
    min_content_chars: int = 10
    max_content_chars: int = 500_000
    max_upload_bytes: int = 5 * 1024 * 1024
    statement_keywords: list[str] = DEFAULT_STATEMENT_KEYWORDS

    default_currency: str = "INR"

    # "replace" clears a user's history when a new statement is saved
    upload_mode: Literal["replace", "append"] = "replace"
    request_timeout_seconds: float = 300.0

    # Development mode
    dev_mode: bool = True
    log_level: str = "INFO"

    # Data directory
    data_dir: Path = Path.home() / ".statementai"

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # GROQ_API_KEY and groq_api_key both work
        extra="ignore",  # Ignore extra environment variables
    )

    @property
    def db_path(self) -> Path:
        """Get the SQLite database path."""
        suffix = "dev" if self.dev_mode else "prod"
        return self.data_dir / f"statementai_{suffix}.db"

    def provider_keys(self) -> dict[str, str]:
        """API keys by provider name, in priority order."""
        return {
            "groq": self.groq_api_key,
            "gemini": self.gemini_api_key,
            "openai": self.openai_api_key,
        }

    def provider_models(self) -> dict[str, str]:
        """Model names by provider name, in priority order."""
        return {
            "groq": self.groq_model,
            "gemini": self.gemini_model,
            "openai": self.openai_model,
        }

    def ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def log_config(self) -> None:
        """Log current configuration with sensitive values redacted."""
        print("\n" + "=" * 60)
        print("📋 CONFIGURATION LOADED")
        print("=" * 60)
        print(f"AI Provider:         {self.ai_provider}")
        for name, key in self.provider_keys().items():
            status = "✓ Set (" + key[:4] + "..." + key[-4:] + ")" if key else "✗ Not set"
            print(f"{name.capitalize() + ' API Key:':<21}{status}")
        print(f"Max Tokens/Request:  {self.max_tokens_per_request} (reserved {self.reserved_tokens})")
        print(f"Chunk Delay:         {self.chunk_delay_seconds}s")
        print(f"Rate Limit Backoff:  {self.rate_limit_backoff_seconds}s")
        print(f"Upload Mode:         {self.upload_mode}")
        print(f"Dev Mode:            {self.dev_mode}")
        print(f"Database:            {self.db_path}")
        print(f"API Host:            {self.api_host}:{self.api_port}")
        print("=" * 60 + "\n")


# Global settings instance
settings = Settings()

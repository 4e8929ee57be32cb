"""Pydantic models for LLM-based statement parsing."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backend.models import TransactionCategory, TransactionType
from backend.parsers.validation import clean_amount_string


class RawTransaction(BaseModel):
    """Transaction as extracted by the LLM, before it is bound to a user.

    ``description``, ``amount`` and ``type`` are mandatory; everything else is
    best effort and gets defaulted by the materializer.
    """

    model_config = ConfigDict(extra="ignore")

    description: str = Field(min_length=1)
    amount: float
    type: TransactionType
    category: TransactionCategory = TransactionCategory.OTHER
    date: str | None = None
    merchant: str | None = None
    currency: str | None = None

    @field_validator("description", mode="before")
    @classmethod
    def _strip_description(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("amount", mode="before")
    @classmethod
    def _clean_amount(cls, value: Any) -> Any:
        if isinstance(value, str):
            return clean_amount_string(value)
        return value

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value: Any) -> TransactionCategory:
        # The keyword mapping in the prompt is advisory; anything outside the enum is "other"
        if isinstance(value, str):
            try:
                return TransactionCategory(value.strip().lower())
            except ValueError:
                pass
        return TransactionCategory.OTHER

    @field_validator("date", "merchant", "currency", mode="before")
    @classmethod
    def _optional_text(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

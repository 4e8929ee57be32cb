"""Data models for the statement extraction service."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class ProviderName(str, Enum):
    """Supported LLM providers, in auto-selection priority order."""

    GROQ = "groq"
    GEMINI = "gemini"
    OPENAI = "openai"


class TransactionType(str, Enum):
    """Direction of money movement."""

    INCOME = "income"
    EXPENSE = "expense"


class TransactionCategory(str, Enum):
    """Transaction categories assigned by the LLM."""

    SALARY = "salary"
    FOOD = "food"
    TRANSPORT = "transport"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    HEALTHCARE = "healthcare"
    OTHER = "other"


class Transaction(BaseModel):
    """A persisted financial transaction owned by a single user."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str
    description: str
    amount: float
    type: TransactionType
    category: TransactionCategory = TransactionCategory.OTHER
    currency: str = "INR"
    date: datetime
    merchant: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)


class UploadResponse(BaseModel):
    """Response after a statement upload."""

    success: bool = True
    count: int
    data: list[Transaction]
    message: str | None = None
    upload_id: str | None = None  # SHA256 of the uploaded file, used for progress polling


class ErrorResponse(BaseModel):
    """Body returned for any failed request."""

    success: bool = False
    message: str


class ProviderInfo(BaseModel):
    """A configured LLM provider."""

    name: ProviderName
    model: str
    status: str = "available"

"""Turn validated LLM output into persisted, user-owned transactions."""

import logging
from datetime import datetime
from typing import Any, Literal

from pydantic import ValidationError

from backend.config import settings
from backend.db.sqlite import Database
from backend.errors import NoValidTransactionsError
from backend.models import Transaction
from backend.parsers.document_types import RawTransaction

logger = logging.getLogger(__name__)

DATE_FORMATS = [
    "%Y-%m-%d",  # 2023-09-06
    "%d-%m-%Y",  # 06-09-2023
    "%d/%m/%Y",  # 06/09/2023
    "%d-%b-%Y",  # 06-Sep-2023
    "%d %b %Y",  # 06 Sep 2023
    "%d %B %Y",  # 06 September 2023
    "%Y/%m/%d",  # 2023/09/06
]


def parse_transaction_date(date_str: str | None, now: datetime | None = None) -> datetime:
    """Parse a statement date, falling back to the current time."""
    if date_str:
        try:
            return datetime.fromisoformat(date_str)
        except ValueError:
            pass
        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(date_str, fmt)
            except ValueError:
                continue
        logger.warning(f"Unparsable date {date_str!r}, using current time")
    return now or datetime.now()


def build_transactions(
    raw_transactions: list[dict[str, Any]],
    user_id: str,
    default_currency: str | None = None,
) -> list[Transaction]:
    """
    Validate raw extracted records and bind the survivors to a user.

    Records missing ``description``, ``amount`` or ``type`` (or carrying
    values that cannot be coerced) are skipped and logged.
    """
    default_currency = default_currency or settings.default_currency
    now = datetime.now()
    transactions = []

    for index, raw in enumerate(raw_transactions):
        try:
            parsed = RawTransaction.model_validate(raw)
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err["loc"])
            logger.warning(f"Skipping invalid transaction {index + 1} ({fields}): {raw}")
            continue

        transactions.append(
            Transaction(
                user_id=user_id,
                description=parsed.description,
                amount=parsed.amount,
                type=parsed.type,
                category=parsed.category,
                currency=parsed.currency or default_currency,
                date=parse_transaction_date(parsed.date, now=now),
                merchant=parsed.merchant,
                created_at=now,
            )
        )

    skipped = len(raw_transactions) - len(transactions)
    if skipped:
        logger.info(f"Dropped {skipped} of {len(raw_transactions)} extracted records")

    return transactions


def materialize_transactions(
    raw_transactions: list[dict[str, Any]],
    user_id: str,
    store: Database,
    mode: Literal["replace", "append"] | None = None,
) -> list[Transaction]:
    """
    Validate and persist extracted transactions for a user.

    Args:
        raw_transactions: Records from the response parser, in extraction order
        user_id: Owner of the new records
        store: Transaction store
        mode: "replace" swaps the user's history for this statement atomically,
            "append" only inserts (defaults to settings.upload_mode)

    Returns:
        Persisted transactions in extraction order

    Raises:
        NoValidTransactionsError: If no record survives validation
    """
    mode = mode or settings.upload_mode
    transactions = build_transactions(raw_transactions, user_id)

    if not transactions:
        raise NoValidTransactionsError()

    if mode == "replace":
        deleted, added = store.replace_user_transactions(user_id, transactions)
        logger.info(f"Cleared {deleted} existing transactions for user, saved {added}")
    else:
        added = store.add_transactions(transactions)
        logger.info(f"Saved {added} transactions")

    return transactions

"""Deduplication logic for extracted transactions."""

import hashlib
import logging
from typing import Any

logger = logging.getLogger(__name__)


def compute_file_hash(contents: bytes) -> str:
    """Compute SHA256 hash of file contents."""
    return hashlib.sha256(contents).hexdigest()


def dedup_key(transaction: dict[str, Any]) -> tuple[Any, Any, Any]:
    """
    Identity of an extracted transaction: its (date, description, amount).

    Chunks can overlap at their edges, so the same row may be extracted twice.
    Values are compared as the model returned them.
    """
    return (transaction.get("date"), transaction.get("description"), transaction.get("amount"))


def deduplicate_transactions(transactions: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Remove duplicate transactions, keeping the first occurrence of each key."""
    seen: set[tuple[Any, Any, Any]] = set()
    deduplicated = []

    for txn in transactions:
        try:
            key = dedup_key(txn)
            hash(key)
        except TypeError:
            # Unhashable values (lists, dicts) cannot match anything; keep the record
            deduplicated.append(txn)
            continue

        if key not in seen:
            seen.add(key)
            deduplicated.append(txn)
        else:
            logger.debug(f"Skipping duplicate transaction: {txn.get('description')} on {txn.get('date')}")

    if len(deduplicated) < len(transactions):
        logger.info(f"Removed {len(transactions) - len(deduplicated)} duplicate transactions")

    return deduplicated

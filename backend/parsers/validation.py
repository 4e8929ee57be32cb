"""Validation gates applied before any LLM call is made."""

import logging
import re

from backend.config import settings
from backend.errors import EmptyContentError, NotAStatementError, TooLargeError

# Configure logging for parsers
logger = logging.getLogger("statementai.parsers")

_CURRENCY_NOISE = re.compile(r"(₹|\$|€|£|\bINR\b|\bRs\.?)", re.IGNORECASE)


def validate_file_contents(contents: bytes, min_size: int = 10, max_size: int | None = None) -> None:
    """
    Validate uploaded file bytes before text extraction.

    Args:
        contents: Raw file bytes
        min_size: Minimum expected file size in bytes
        max_size: Maximum accepted file size in bytes (defaults to settings)

    Raises:
        EmptyContentError: If the file is empty or too small
        TooLargeError: If the file exceeds the upload ceiling
    """
    max_size = settings.max_upload_bytes if max_size is None else max_size

    if not contents:
        raise EmptyContentError("File is empty")

    if len(contents) < min_size:
        raise EmptyContentError(f"File too small ({len(contents)} bytes), minimum {min_size} bytes expected")

    if len(contents) > max_size:
        raise TooLargeError(f"File size exceeds {max_size // (1024 * 1024)}MB limit")


def validate_statement_content(
    content: str,
    keywords: list[str] | None = None,
    min_chars: int | None = None,
    max_chars: int | None = None,
) -> None:
    """
    Check that decoded text plausibly is a bank statement.

    The keyword check is a cheap, permissive gate: any single keyword match
    passes. It exists to avoid spending an LLM call on unrelated documents.

    Args:
        content: Decoded statement text
        keywords: Keywords to look for (case-insensitive substring match)
        min_chars: Minimum trimmed length
        max_chars: Maximum raw length

    Raises:
        EmptyContentError: If trimmed content is shorter than ``min_chars``
        TooLargeError: If content is longer than ``max_chars``
        NotAStatementError: If no keyword is present
    """
    keywords = settings.statement_keywords if keywords is None else keywords
    min_chars = settings.min_content_chars if min_chars is None else min_chars
    max_chars = settings.max_content_chars if max_chars is None else max_chars

    if not content or len(content.strip()) < min_chars:
        raise EmptyContentError()

    if len(content) > max_chars:
        raise TooLargeError(
            f"Statement has {len(content):,} characters, the limit is {max_chars:,}"
        )

    content_lower = content.lower()
    matched = next((kw for kw in keywords if kw.lower() in content_lower), None)
    if matched is None:
        logger.info("Rejected upload: no bank statement keywords found")
        raise NotAStatementError()

    logger.debug(f"Statement keyword matched: {matched!r}")


def clean_amount_string(amount_str: str) -> str:
    """
    Clean an amount string for parsing.

    Args:
        amount_str: Raw amount string, e.g. "₹1,200.50", "(300.00)", "45.00 Dr"

    Returns:
        Cleaned amount string ready for float conversion (empty if nothing left)
    """
    cleaned = _CURRENCY_NOISE.sub("", amount_str)

    # Column markers are encoded in "type", not in the sign
    cleaned = re.sub(r"(cr|dr)\.?\s*$", "", cleaned.strip(), flags=re.IGNORECASE)

    # Remove whitespace and thousand separators
    cleaned = cleaned.replace(" ", "").replace(",", "").strip()

    # Handle parentheses for negative numbers
    if cleaned.startswith("(") and cleaned.endswith(")"):
        cleaned = "-" + cleaned[1:-1]

    # Handle trailing minus sign
    if cleaned.endswith("-"):
        cleaned = "-" + cleaned[:-1]

    return cleaned

"""Tests for the validation gates."""

import pytest

from backend.errors import EmptyContentError, NotAStatementError, TooLargeError
from backend.parsers.validation import (
    clean_amount_string,
    validate_file_contents,
    validate_statement_content,
)


class TestValidateFileContents:
    """Test uploaded file checks."""

    def test_rejects_empty_contents(self):
        """Should reject empty file contents."""
        with pytest.raises(EmptyContentError, match="empty"):
            validate_file_contents(b"")

    def test_rejects_too_small_contents(self):
        """Should reject files smaller than minimum size."""
        with pytest.raises(EmptyContentError, match="too small"):
            validate_file_contents(b"abc", min_size=10)

    def test_rejects_oversized_contents(self):
        """Should reject files over the upload ceiling."""
        with pytest.raises(TooLargeError):
            validate_file_contents(b"x" * 2048, max_size=1024)

    def test_accepts_valid_contents(self):
        """Should accept valid file contents."""
        validate_file_contents(b"Valid file contents here", min_size=10)


class TestValidateStatementContent:
    """Test the bank statement heuristic gate."""

    def test_rejects_short_content(self):
        """Fewer than 10 characters after trimming is empty content."""
        with pytest.raises(EmptyContentError):
            validate_statement_content("   bank    ")

    def test_rejects_whitespace_only(self):
        """Whitespace-only content is empty."""
        with pytest.raises(EmptyContentError):
            validate_statement_content("\n\n          \t\n")

    def test_rejects_content_without_keywords(self):
        """Unrelated documents are turned away before any LLM call."""
        with pytest.raises(NotAStatementError):
            validate_statement_content("Dear diary, today I went hiking in the hills.")

    def test_any_single_keyword_passes(self):
        """One keyword is enough, case-insensitive."""
        validate_statement_content("Opening BALANCE carried forward")
        validate_statement_content("Kotak Mahindra 06-09-2023")

    def test_rejects_oversized_content(self):
        """Content over the character ceiling is too large."""
        with pytest.raises(TooLargeError):
            validate_statement_content("statement " * 20, max_chars=100)

    def test_custom_keywords(self):
        """Keyword list is configurable."""
        validate_statement_content("Monzo export for March", keywords=["monzo"])
        with pytest.raises(NotAStatementError):
            validate_statement_content("Bank statement for March", keywords=["monzo"])


class TestCleanAmountString:
    """Test amount normalization."""

    def test_strips_currency_and_separators(self):
        """Currency symbols and thousand separators are removed."""
        assert clean_amount_string("₹1,200.50") == "1200.50"
        assert clean_amount_string("Rs. 300.00") == "300.00"
        assert clean_amount_string("INR 45") == "45"

    def test_strips_column_markers(self):
        """Cr/Dr markers are dropped; direction lives in the type field."""
        assert clean_amount_string("300.00 Cr") == "300.00"
        assert clean_amount_string("45.00Dr") == "45.00"

    def test_parentheses_are_negative(self):
        """Accounting-style negatives are converted."""
        assert clean_amount_string("(50.25)") == "-50.25"

    def test_trailing_minus(self):
        """A trailing minus becomes a leading one."""
        assert clean_amount_string("50.25-") == "-50.25"

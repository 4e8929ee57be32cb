"""Tests for validating and persisting extracted transactions."""

from datetime import datetime

import pytest

from backend.errors import NoValidTransactionsError
from backend.models import TransactionCategory, TransactionType
from backend.services.materializer import (
    build_transactions,
    materialize_transactions,
    parse_transaction_date,
)

USER = "user-1"


def raw(**overrides) -> dict:
    record = {
        "description": "UPI/SWIGGY",
        "amount": 250.5,
        "type": "expense",
        "category": "food",
        "date": "2023-09-07",
        "merchant": "SWIGGY",
    }
    record.update(overrides)
    return {k: v for k, v in record.items() if v is not None}


class TestParseTransactionDate:
    """Test statement date handling."""

    def test_iso_date(self):
        """YYYY-MM-DD is parsed."""
        assert parse_transaction_date("2023-09-06") == datetime(2023, 9, 6)

    def test_indian_formats(self):
        """Day-first statement formats are parsed."""
        assert parse_transaction_date("06-09-2023") == datetime(2023, 9, 6)
        assert parse_transaction_date("06/09/2023") == datetime(2023, 9, 6)
        assert parse_transaction_date("06 Sep 2023") == datetime(2023, 9, 6)

    def test_unparsable_uses_now(self):
        """Garbage or missing dates fall back to the current time."""
        now = datetime(2024, 1, 1, 12, 0)

        assert parse_transaction_date("sometime last week", now=now) == now
        assert parse_transaction_date(None, now=now) == now


class TestBuildTransactions:
    """Test per-record validation."""

    def test_builds_user_owned_transaction(self):
        """Valid records become transactions bound to the user."""
        [txn] = build_transactions([raw()], USER)

        assert txn.user_id == USER
        assert txn.description == "UPI/SWIGGY"
        assert txn.amount == 250.5
        assert txn.type == TransactionType.EXPENSE
        assert txn.category == TransactionCategory.FOOD
        assert txn.merchant == "SWIGGY"
        assert txn.date == datetime(2023, 9, 7)

    def test_currency_defaults_to_inr(self):
        """Missing currency is INR."""
        [txn] = build_transactions([raw()], USER)

        assert txn.currency == "INR"

    def test_keeps_stated_currency(self):
        """A currency given by the model is kept."""
        [txn] = build_transactions([raw(currency="USD")], USER)

        assert txn.currency == "USD"

    def test_drops_record_missing_amount(self):
        """A record without amount is skipped, others survive."""
        records = [raw(description="NO AMOUNT", amount=None), raw()]

        transactions = build_transactions(records, USER)

        assert [t.description for t in transactions] == ["UPI/SWIGGY"]

    def test_drops_records_missing_required_fields(self):
        """Missing description or type drops the record."""
        records = [raw(description=None), raw(type=None), raw(description="   ")]

        assert build_transactions(records, USER) == []

    def test_drops_invalid_type(self):
        """Type must be income or expense."""
        assert build_transactions([raw(type="transfer")], USER) == []

    def test_unknown_category_becomes_other(self):
        """Categories outside the enum are mapped to other."""
        [txn] = build_transactions([raw(category="groceries & stuff")], USER)

        assert txn.category == TransactionCategory.OTHER

    def test_amount_strings_are_cleaned(self):
        """Formatted amounts from the model are accepted."""
        [txn] = build_transactions([raw(amount="₹1,200.50")], USER)

        assert txn.amount == 1200.5

    def test_type_is_case_insensitive(self):
        """INCOME and income are the same."""
        [txn] = build_transactions([raw(type="INCOME")], USER)

        assert txn.type == TransactionType.INCOME

    def test_preserves_extraction_order(self):
        """Output order is input order, not date order."""
        records = [raw(description="LATE", date="2023-12-31"), raw(description="EARLY", date="2023-01-01")]

        assert [t.description for t in build_transactions(records, USER)] == ["LATE", "EARLY"]


class TestMaterializeTransactions:
    """Test persistence policy."""

    def test_persists_for_user(self, store):
        """Surviving records are saved under the user."""
        saved = materialize_transactions([raw(), raw(amount=None)], USER, store, mode="append")

        assert len(saved) == 1
        assert [t.id for t in store.get_transactions(USER)] == [saved[0].id]

    def test_no_valid_transactions(self, store):
        """Zero survivors is a terminal error and nothing is written."""
        store.add_transactions(build_transactions([raw()], USER))

        with pytest.raises(NoValidTransactionsError):
            materialize_transactions([raw(amount=None)], USER, store, mode="replace")

        assert store.get_transaction_count(USER) == 1

    def test_replace_mode_swaps_history(self, store):
        """Replace clears only this user's previous transactions."""
        store.add_transactions(build_transactions([raw(description="OLD")], USER))
        store.add_transactions(build_transactions([raw(description="OTHER USER")], "user-2"))

        materialize_transactions([raw(description="NEW")], USER, store, mode="replace")

        assert [t.description for t in store.get_transactions(USER)] == ["NEW"]
        assert [t.description for t in store.get_transactions("user-2")] == ["OTHER USER"]

    def test_append_mode_keeps_history(self, store):
        """Append leaves earlier uploads in place."""
        store.add_transactions(build_transactions([raw(description="OLD")], USER))

        materialize_transactions([raw(description="NEW", date="2023-10-01")], USER, store, mode="append")

        assert [t.description for t in store.get_transactions(USER)] == ["NEW", "OLD"]

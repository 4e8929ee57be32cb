"""SQLite database operations for transactions."""

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from uuid import UUID

from backend.config import settings
from backend.models import Transaction, TransactionCategory, TransactionType

# SQL schema
SCHEMA = """
CREATE TABLE IF NOT EXISTS transactions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    description TEXT NOT NULL,
    amount REAL NOT NULL,
    type TEXT NOT NULL,
    category TEXT NOT NULL,
    currency TEXT NOT NULL DEFAULT 'INR',
    date TEXT NOT NULL,
    merchant TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_transactions_user_date ON transactions(user_id, date DESC);
CREATE INDEX IF NOT EXISTS idx_transactions_category ON transactions(category);
"""

COLUMNS = "id, user_id, description, amount, type, category, currency, date, merchant, created_at"


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path | None = None):
        if db_path is None:
            settings.ensure_directories()
        self.db_path = db_path or settings.db_path
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the database schema."""
        with self._get_connection() as conn:
            conn.executescript(SCHEMA)
            conn.commit()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    @staticmethod
    def _to_row(transaction: Transaction) -> tuple:
        return (
            str(transaction.id),
            transaction.user_id,
            transaction.description,
            transaction.amount,
            transaction.type.value,
            transaction.category.value,
            transaction.currency,
            transaction.date.isoformat(),
            transaction.merchant,
            transaction.created_at.isoformat(),
        )

    def _insert(self, conn: sqlite3.Connection, transactions: list[Transaction]) -> int:
        conn.executemany(
            f"INSERT INTO transactions ({COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [self._to_row(txn) for txn in transactions],
        )
        return len(transactions)

    def add_transactions(self, transactions: list[Transaction]) -> int:
        """Add transactions in one database transaction. Returns the number added."""
        if not transactions:
            return 0
        with self._get_connection() as conn:
            try:
                added = self._insert(conn, transactions)
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise
        return added

    def delete_user_transactions(self, user_id: str) -> int:
        """Delete every transaction owned by a user. Returns the number deleted."""
        with self._get_connection() as conn:
            cursor = conn.execute("DELETE FROM transactions WHERE user_id = ?", (user_id,))
            conn.commit()
            return cursor.rowcount

    def replace_user_transactions(self, user_id: str, transactions: list[Transaction]) -> tuple[int, int]:
        """
        Swap a user's history for a new set of transactions atomically.

        Returns:
            (deleted_count, added_count)
        """
        if any(txn.user_id != user_id for txn in transactions):
            raise ValueError("All transactions must belong to the user being replaced")

        with self._get_connection() as conn:
            try:
                cursor = conn.execute("DELETE FROM transactions WHERE user_id = ?", (user_id,))
                deleted = cursor.rowcount
                added = self._insert(conn, transactions)
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise
        return deleted, added

    def get_transactions(self, user_id: str, limit: int = 1000) -> list[Transaction]:
        """Get a user's transactions, newest first."""
        with self._get_connection() as conn:
            cursor = conn.execute(
                f"""
                SELECT {COLUMNS}
                FROM transactions
                WHERE user_id = ?
                ORDER BY date DESC
                LIMIT ?
                """,
                (user_id, limit),
            )
            return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def get_transaction_count(self, user_id: str | None = None) -> int:
        """Get number of transactions, optionally for a single user."""
        with self._get_connection() as conn:
            if user_id is None:
                cursor = conn.execute("SELECT COUNT(*) as count FROM transactions")
            else:
                cursor = conn.execute("SELECT COUNT(*) as count FROM transactions WHERE user_id = ?", (user_id,))
            return cursor.fetchone()["count"]

    def _row_to_transaction(self, row: sqlite3.Row) -> Transaction:
        """Convert a database row to a Transaction model."""
        return Transaction(
            id=UUID(row["id"]),
            user_id=row["user_id"],
            description=row["description"],
            amount=row["amount"],
            type=TransactionType(row["type"]),
            category=TransactionCategory(row["category"]),
            currency=row["currency"],
            date=datetime.fromisoformat(row["date"]),
            merchant=row["merchant"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


# Global database instance
db = Database()

"""SQLite store for users, transactions and budgets.

Every transaction and budget query is scoped by ``user_id``: a row owned by
another user behaves exactly like a row that does not exist.
"""
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Dict, Any, Optional

from .schema import SCHEMA_SQL


TRANSACTION_FIELDS = ("amount", "type", "category_name", "transaction_date", "description")
BUDGET_FIELDS = ("category_name", "amount", "period", "start_date", "end_date")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class SQLiteStore:
    """SQLite storage for users, transactions and budgets."""

    def __init__(self, db_path: Path):
        """Initialize the store with database path."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        # Enable WAL mode for better concurrency
        self.conn.execute("PRAGMA journal_mode=WAL")
        self._init_schema()

    def _init_schema(self) -> None:
        """Create tables and indexes if they don't exist yet."""
        self.conn.executescript(SCHEMA_SQL)
        self.conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self.conn:
            self.conn.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    def get_tables(self) -> List[str]:
        """Get list of tables in the database."""
        cursor = self.conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        )
        return [row[0] for row in cursor.fetchall()]

    # === User Methods ===

    def add_user(
        self,
        user_id: str,
        email: str,
        password_hash: str,
        full_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """Add a user. Raises sqlite3.IntegrityError if the email is taken."""
        self.conn.execute(
            "INSERT INTO users (id, email, full_name, password_hash) VALUES (?, ?, ?, ?)",
            (user_id, email, full_name, password_hash)
        )
        self.conn.commit()
        return self.get_user(user_id)

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get a user by ID."""
        cursor = self.conn.execute("SELECT * FROM users WHERE id = ?", (user_id,))
        row = cursor.fetchone()
        return dict(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Get a user by email (case-insensitive)."""
        cursor = self.conn.execute(
            "SELECT * FROM users WHERE lower(email) = lower(?)", (email,)
        )
        row = cursor.fetchone()
        return dict(row) if row else None

    def revoke_token(self, jti: str, expires_at: int) -> None:
        """Remember a logged-out token until its natural expiry."""
        self.conn.execute(
            "INSERT OR IGNORE INTO revoked_tokens (jti, expires_at) VALUES (?, ?)",
            (jti, expires_at)
        )
        self.conn.commit()

    def is_token_revoked(self, jti: str) -> bool:
        cursor = self.conn.execute(
            "SELECT 1 FROM revoked_tokens WHERE jti = ?", (jti,)
        )
        return cursor.fetchone() is not None

    def purge_expired_tokens(self, now: int) -> int:
        """Drop revocation entries for tokens that have expired. Returns count removed."""
        cursor = self.conn.execute(
            "DELETE FROM revoked_tokens WHERE expires_at < ?", (now,)
        )
        self.conn.commit()
        return cursor.rowcount

    # === Transaction Methods ===

    def add_transaction(
        self,
        user_id: str,
        amount: float,
        type: str,
        transaction_date: str,
        category_name: Optional[str] = None,
        description: Optional[str] = None
    ) -> Dict[str, Any]:
        """Add a transaction and return the stored row."""
        now = _now()
        cursor = self.conn.execute(
            """INSERT INTO transactions
               (user_id, amount, type, category_name, transaction_date, description,
                created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (user_id, amount, type, category_name, transaction_date, description, now, now)
        )
        self.conn.commit()
        return self.get_transaction(user_id, cursor.lastrowid)

    def add_transactions(self, user_id: str, transactions: List[Dict[str, Any]]) -> List[int]:
        """Add multiple transactions for one user, returns the new IDs."""
        ids = []
        for txn in transactions:
            row = self.add_transaction(
                user_id=user_id,
                amount=txn["amount"],
                type=txn["type"],
                transaction_date=txn["transaction_date"],
                category_name=txn.get("category_name"),
                description=txn.get("description")
            )
            ids.append(row["id"])
        return ids

    def get_transaction(self, user_id: str, txn_id: int) -> Optional[Dict[str, Any]]:
        """Get one of the user's transactions by ID."""
        cursor = self.conn.execute(
            "SELECT * FROM transactions WHERE id = ? AND user_id = ?",
            (txn_id, user_id)
        )
        row = cursor.fetchone()
        return dict(row) if row else None

    def get_transactions(
        self,
        user_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Get the user's transactions, newest first, with optional inclusive date bounds."""
        query = "SELECT * FROM transactions WHERE user_id = ?"
        params: List[Any] = [user_id]

        if start_date:
            query += " AND transaction_date >= ?"
            params.append(start_date)
        if end_date:
            query += " AND transaction_date <= ?"
            params.append(end_date)

        query += " ORDER BY transaction_date DESC, id DESC"
        cursor = self.conn.execute(query, params)
        return [dict(row) for row in cursor.fetchall()]

    def update_transaction(self, user_id: str, txn_id: int, **kwargs) -> Optional[Dict[str, Any]]:
        """Update a transaction's fields and refresh updated_at.

        Returns the updated row, or None if the user has no such transaction.
        """
        updates = {k: v for k, v in kwargs.items() if k in TRANSACTION_FIELDS}
        if not updates or not self.get_transaction(user_id, txn_id):
            return None

        updates["updated_at"] = _now()
        set_clause = ", ".join(f"{k} = ?" for k in updates.keys())
        params = list(updates.values()) + [txn_id, user_id]
        self.conn.execute(
            f"UPDATE transactions SET {set_clause} WHERE id = ? AND user_id = ?", params
        )
        self.conn.commit()
        return self.get_transaction(user_id, txn_id)

    def delete_transaction(self, user_id: str, txn_id: int) -> bool:
        """Delete one of the user's transactions. Returns False if nothing matched."""
        cursor = self.conn.execute(
            "DELETE FROM transactions WHERE id = ? AND user_id = ?",
            (txn_id, user_id)
        )
        self.conn.commit()
        return cursor.rowcount > 0

    # === Budget Methods ===

    def add_budget(
        self,
        user_id: str,
        category_name: str,
        amount: float,
        period: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> Dict[str, Any]:
        """Add a budget and return the stored row."""
        now = _now()
        cursor = self.conn.execute(
            """INSERT INTO budgets
               (user_id, category_name, amount, period, start_date, end_date,
                created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (user_id, category_name, amount, period, start_date, end_date, now, now)
        )
        self.conn.commit()
        return self.get_budget(user_id, cursor.lastrowid)

    def get_budget(self, user_id: str, budget_id: int) -> Optional[Dict[str, Any]]:
        """Get one of the user's budgets by ID."""
        cursor = self.conn.execute(
            "SELECT * FROM budgets WHERE id = ? AND user_id = ?",
            (budget_id, user_id)
        )
        row = cursor.fetchone()
        return dict(row) if row else None

    def get_budgets(self, user_id: str) -> List[Dict[str, Any]]:
        """Get the user's budgets, most recently created first."""
        cursor = self.conn.execute(
            "SELECT * FROM budgets WHERE user_id = ? ORDER BY created_at DESC, id DESC",
            (user_id,)
        )
        return [dict(row) for row in cursor.fetchall()]

    def update_budget(self, user_id: str, budget_id: int, **kwargs) -> Optional[Dict[str, Any]]:
        """Update a budget's fields and refresh updated_at.

        Returns the updated row, or None if the user has no such budget.
        """
        updates = {k: v for k, v in kwargs.items() if k in BUDGET_FIELDS}
        if not updates or not self.get_budget(user_id, budget_id):
            return None

        updates["updated_at"] = _now()
        set_clause = ", ".join(f"{k} = ?" for k in updates.keys())
        params = list(updates.values()) + [budget_id, user_id]
        self.conn.execute(
            f"UPDATE budgets SET {set_clause} WHERE id = ? AND user_id = ?", params
        )
        self.conn.commit()
        return self.get_budget(user_id, budget_id)

    def delete_budget(self, user_id: str, budget_id: int) -> bool:
        """Delete one of the user's budgets. Returns False if nothing matched."""
        cursor = self.conn.execute(
            "DELETE FROM budgets WHERE id = ? AND user_id = ?",
            (budget_id, user_id)
        )
        self.conn.commit()
        return cursor.rowcount > 0

    def reset_all_data(self) -> Dict[str, int]:
        """Delete every row from every table. Returns rows deleted per table."""
        counts = {}
        for table in ("transactions", "budgets", "revoked_tokens", "users"):
            cursor = self.conn.execute(f"DELETE FROM {table}")
            counts[table] = cursor.rowcount
        self.conn.commit()
        return counts

"""Shared pytest fixtures."""
from datetime import date
from pathlib import Path

import pytest

from investiq.models import Budget, Transaction, TransactionType


# A fixed "today" so reports that look at the current month are deterministic
TODAY = date(2024, 3, 15)


def make_txn(
    amount: float,
    txn_type: str = "expense",
    on: date = TODAY,
    category: str = None,
    user_id: str = "user-1",
    txn_id: int = None
) -> Transaction:
    """Build a Transaction record with sensible defaults."""
    return Transaction(
        id=txn_id,
        user_id=user_id,
        amount=amount,
        type=TransactionType(txn_type),
        transaction_date=on,
        category_name=category,
    )


def make_budget(category: str, amount: float, user_id: str = "user-1") -> Budget:
    return Budget(id=None, user_id=user_id, category_name=category, amount=amount, period="monthly")


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def temp_db_path(tmp_path) -> Path:
    """Path for a throwaway SQLite database."""
    return tmp_path / "test.db"


@pytest.fixture
def sample_transactions() -> list:
    """One user's transactions across February and March 2024."""
    return [
        make_txn(3500.00, "income", date(2024, 3, 1), "Salary"),
        make_txn(1200.00, "expense", date(2024, 3, 2), "Housing"),
        make_txn(85.50, "expense", date(2024, 3, 5), "Food"),
        make_txn(40.00, "expense", date(2024, 3, 9), "Food"),
        make_txn(15.99, "expense", date(2024, 3, 10), None),
        make_txn(250.00, "income", date(2024, 3, 12), "Freelance"),
        make_txn(3500.00, "income", date(2024, 2, 1), "Salary"),
        make_txn(1200.00, "expense", date(2024, 2, 2), "Housing"),
        make_txn(310.00, "expense", date(2024, 2, 20), "Travel"),
    ]


@pytest.fixture
def transaction_rows() -> list:
    """Raw rows as they arrive from a request body or the store."""
    return [
        {"amount": 3500.00, "type": "income", "transaction_date": "2024-01-18",
         "category_name": "Salary", "description": "Payroll"},
        {"amount": 15.99, "type": "expense", "transaction_date": "2024-01-15",
         "category_name": "Entertainment", "description": "Netflix"},
        {"amount": 125.50, "type": "expense", "transaction_date": "2024-01-16",
         "category_name": "Food", "description": "Groceries"},
        {"amount": 2500.00, "type": "expense", "transaction_date": "2024-01-17",
         "category_name": "Housing", "description": "Rent"},
    ]


@pytest.fixture
def sample_csv(tmp_path) -> Path:
    """A bank-style CSV with signed amounts."""
    csv_path = tmp_path / "transactions.csv"
    csv_path.write_text("""Date,Amount,Category,Description
2024-01-15,-15.99,Entertainment,NETFLIX
2024-01-16,-125.50,Food,WHOLE FOODS
2024-01-17,-2500.00,Housing,LANDLORD
2024-01-18,3500.00,Salary,EMPLOYER
""")
    return csv_path

"""Record types shared by the store, the reports and the web layer."""
from dataclasses import dataclass, asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional


class RecordValidationError(ValueError):
    """Raised when a raw row cannot be turned into a record."""


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


def parse_amount(value: Any, field: str = "amount") -> float:
    """Coerce a stored or submitted amount to a non-negative float."""
    if isinstance(value, bool) or value is None:
        raise RecordValidationError(f"{field} must be a number, got {value!r}")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise RecordValidationError(f"{field} must be a number, got {value!r}")
    if amount != amount or amount in (float("inf"), float("-inf")):
        raise RecordValidationError(f"{field} must be finite, got {value!r}")
    if amount < 0:
        raise RecordValidationError(f"{field} must not be negative, got {value!r}")
    return amount


def parse_date(value: Any, field: str = "date") -> Optional[date]:
    """Coerce an ISO date string (or date/datetime) to a date. None passes through."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        # Stored values may carry a time component
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise RecordValidationError(f"{field} must be an ISO date (YYYY-MM-DD), got {value!r}")


def parse_type(value: Any) -> TransactionType:
    try:
        return TransactionType(str(value).lower())
    except ValueError:
        raise RecordValidationError(f"type must be 'income' or 'expense', got {value!r}")


@dataclass(frozen=True)
class Transaction:
    id: Optional[int]
    user_id: str
    amount: float           # magnitude, direction is carried by type
    type: TransactionType
    transaction_date: date
    category_name: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_income(self) -> bool:
        return self.type is TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.type is TransactionType.EXPENSE

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Transaction":
        """Build a Transaction from a store row or request payload.

        Raises:
            RecordValidationError: if the row is missing an owner, or the
                amount, type or date cannot be parsed.
        """
        user_id = row.get("user_id")
        if user_id is None:
            raise RecordValidationError("user_id is required")
        txn_date = parse_date(row.get("transaction_date"), "transaction_date")
        if txn_date is None:
            raise RecordValidationError("transaction_date is required")
        return cls(
            id=row.get("id"),
            user_id=str(user_id),
            amount=parse_amount(row.get("amount")),
            type=parse_type(row.get("type")),
            transaction_date=txn_date,
            category_name=row.get("category_name"),
            description=row.get("description"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        data["transaction_date"] = self.transaction_date.isoformat()
        return data


@dataclass(frozen=True)
class Budget:
    id: Optional[int]
    user_id: str
    category_name: str
    amount: float
    period: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Budget":
        """Build a Budget from a store row or request payload."""
        user_id = row.get("user_id")
        if user_id is None:
            raise RecordValidationError("user_id is required")
        category_name = row.get("category_name")
        if not category_name:
            raise RecordValidationError("category_name is required")
        return cls(
            id=row.get("id"),
            user_id=str(user_id),
            category_name=category_name,
            amount=parse_amount(row.get("amount")),
            period=row.get("period"),
            start_date=parse_date(row.get("start_date"), "start_date"),
            end_date=parse_date(row.get("end_date"), "end_date"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["start_date"] = self.start_date.isoformat() if self.start_date else None
        data["end_date"] = self.end_date.isoformat() if self.end_date else None
        return data

"""Reductions over a single user's transactions.

Every function here is pure: it takes an already-validated, already
owner-scoped sequence of Transaction records and returns plain values.
"""
from typing import Dict, Iterable, List, Optional, Tuple

from investiq.config import UNCATEGORIZED
from investiq.models import Transaction, TransactionType


def sum_by_type(transactions: Iterable[Transaction], txn_type: TransactionType) -> float:
    """Sum the amounts of all transactions of the given type (0 when none)."""
    return sum((t.amount for t in transactions if t.type is txn_type), 0.0)


def total_balance(transactions: Iterable[Transaction]) -> float:
    """Signed sum over all transactions: income adds, expenses subtract."""
    return sum(
        (t.amount if t.is_income else -t.amount for t in transactions),
        0.0
    )


def filter_by_month(
    transactions: Iterable[Transaction],
    month: int,
    year: int
) -> List[Transaction]:
    """Keep transactions dated within the given calendar month (1-12) of year."""
    return [
        t for t in transactions
        if t.transaction_date.month == month and t.transaction_date.year == year
    ]


def category_breakdown(transactions: Iterable[Transaction]) -> Dict[str, float]:
    """Map category name to total expense amount.

    Income is ignored. Missing or empty category names are grouped under
    "Uncategorized". Keys keep first-encountered order.
    """
    breakdown: Dict[str, float] = {}
    for t in transactions:
        if not t.is_expense:
            continue
        name = t.category_name or UNCATEGORIZED
        breakdown[name] = breakdown.get(name, 0.0) + t.amount
    return breakdown


def top_category(breakdown: Dict[str, float]) -> Optional[Tuple[str, float]]:
    """Return the (name, amount) pair with the largest amount.

    Ties go to the entry inserted first. Returns None for an empty breakdown.
    """
    best: Optional[Tuple[str, float]] = None
    for name, amount in breakdown.items():
        if best is None or amount > best[1]:
            best = (name, amount)
    return best

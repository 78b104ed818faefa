"""Composite reports built from the aggregator primitives.

Field names are camelCase because they are served as-is to clients that
depend on the existing JSON shape.
"""
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from investiq.config import DEFAULT_TREND_MONTHS
from investiq.models import Budget, Transaction, TransactionType
from investiq.reports.aggregator import (
    category_breakdown,
    filter_by_month,
    sum_by_type,
    top_category,
    total_balance,
)


def months_ending_at(today: date, months_back: int) -> List[Tuple[int, int]]:
    """Return (year, month) pairs for the last N months ending at today's, oldest first."""
    current = today.year * 12 + (today.month - 1)
    pairs = []
    for offset in range(months_back - 1, -1, -1):
        index = current - offset
        pairs.append((index // 12, index % 12 + 1))
    return pairs


def monthly_summary(
    transactions: Sequence[Transaction],
    month: int,
    year: int
) -> Dict[str, Any]:
    """Income, expenses and expense breakdown for one calendar month."""
    monthly = filter_by_month(transactions, month, year)
    income = sum_by_type(monthly, TransactionType.INCOME)
    expenses = sum_by_type(monthly, TransactionType.EXPENSE)
    return {
        "month": month,
        "year": year,
        "income": income,
        "expenses": expenses,
        "netIncome": income - expenses,
        "transactionCount": len(monthly),
        "categoryBreakdown": category_breakdown(monthly),
    }


def spending_trend(
    transactions: Sequence[Transaction],
    months_back: int = DEFAULT_TREND_MONTHS,
    today: Optional[date] = None
) -> List[Dict[str, Any]]:
    """Total expenses per month for the last ``months_back`` months, oldest first.

    The window always ends at the current month and rolls over year
    boundaries. Months without transactions report 0.
    """
    if months_back < 1:
        raise ValueError(f"months_back must be at least 1, got {months_back}")
    today = today or date.today()

    trend = []
    for year, month in months_ending_at(today, months_back):
        monthly = filter_by_month(transactions, month, year)
        trend.append({
            "month": month,
            "year": year,
            "expenses": sum_by_type(monthly, TransactionType.EXPENSE),
        })
    return trend


def percentage_used(actual: float, budget_amount: float) -> Optional[float]:
    """Share of the budget consumed, in percent.

    A zero budget has no ceiling to measure against, so the result is None.
    """
    if budget_amount == 0:
        return None
    return actual / budget_amount * 100


def budget_vs_actual(
    budgets: Sequence[Budget],
    transactions: Sequence[Transaction],
    today: Optional[date] = None
) -> List[Dict[str, Any]]:
    """Compare each budget to the current month's spending in its category.

    Categories match by exact string equality. The budget's own start/end
    dates are not consulted: the comparison window is the calendar month
    containing ``today``.
    """
    today = today or date.today()
    expenses = [
        t for t in filter_by_month(transactions, today.month, today.year)
        if t.is_expense
    ]

    report = []
    for budget in budgets:
        actual = sum(
            (t.amount for t in expenses if t.category_name == budget.category_name),
            0.0
        )
        report.append({
            "category": budget.category_name,
            "budgetAmount": budget.amount,
            "actualAmount": actual,
            "difference": budget.amount - actual,
            "percentageUsed": percentage_used(actual, budget.amount),
        })
    return report


def financial_summary(
    transactions: Sequence[Transaction],
    today: Optional[date] = None
) -> Dict[str, Any]:
    """All-time balance plus the current month's income, expenses and top category."""
    today = today or date.today()
    monthly = filter_by_month(transactions, today.month, today.year)
    monthly_income = sum_by_type(monthly, TransactionType.INCOME)
    monthly_expenses = sum_by_type(monthly, TransactionType.EXPENSE)
    breakdown = category_breakdown(monthly)
    top = top_category(breakdown)

    return {
        "totalBalance": total_balance(transactions),
        "monthlyIncome": monthly_income,
        "monthlyExpenses": monthly_expenses,
        "monthlyNetIncome": monthly_income - monthly_expenses,
        "totalTransactions": len(transactions),
        "monthlyTransactions": len(monthly),
        "topSpendingCategory": {"name": top[0], "amount": top[1]} if top else None,
        "categoryBreakdown": breakdown,
    }

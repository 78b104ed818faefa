"""Aggregation, reporting and the rule-based assistant."""
from investiq.reports.aggregator import (
    category_breakdown,
    filter_by_month,
    sum_by_type,
    top_category,
    total_balance,
)
from investiq.reports.builder import (
    budget_vs_actual,
    financial_summary,
    monthly_summary,
    spending_trend,
)
from investiq.reports.assistant import generate_response, select_rule

__all__ = [
    "category_breakdown",
    "filter_by_month",
    "sum_by_type",
    "top_category",
    "total_balance",
    "budget_vs_actual",
    "financial_summary",
    "monthly_summary",
    "spending_trend",
    "generate_response",
    "select_rule",
]

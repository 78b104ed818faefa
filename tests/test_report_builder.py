"""Tests for the composite reports."""
import json
import math
from datetime import date

import pytest

from investiq.reports.builder import (
    budget_vs_actual,
    financial_summary,
    monthly_summary,
    months_ending_at,
    percentage_used,
    spending_trend,
)
from conftest import make_budget, make_txn


class TestMonthlySummary:

    def test_empty_month(self, sample_transactions):
        summary = monthly_summary(sample_transactions, 7, 2024)

        assert summary == {
            "month": 7,
            "year": 2024,
            "income": 0,
            "expenses": 0,
            "netIncome": 0,
            "transactionCount": 0,
            "categoryBreakdown": {},
        }

    def test_no_transactions_at_all(self):
        summary = monthly_summary([], 3, 2024)
        assert summary["transactionCount"] == 0
        assert summary["netIncome"] == 0

    def test_filters_to_month_before_aggregating(self, sample_transactions):
        summary = monthly_summary(sample_transactions, 3, 2024)

        assert summary["income"] == pytest.approx(3750.00)
        assert summary["expenses"] == pytest.approx(1341.49)
        assert summary["netIncome"] == pytest.approx(3750.00 - 1341.49)
        assert summary["transactionCount"] == 6
        assert set(summary["categoryBreakdown"]) == {"Housing", "Food", "Uncategorized"}

    def test_counts_income_and_expense_records(self):
        txns = [make_txn(10, "income"), make_txn(5, "expense")]
        assert monthly_summary(txns, 3, 2024)["transactionCount"] == 2


class TestSpendingTrend:

    def test_six_entries_oldest_first(self, sample_transactions, today):
        trend = spending_trend(sample_transactions, 6, today=today)

        assert len(trend) == 6
        assert [(e["year"], e["month"]) for e in trend] == [
            (2023, 10), (2023, 11), (2023, 12), (2024, 1), (2024, 2), (2024, 3)
        ]

    def test_months_without_data_report_zero(self, sample_transactions, today):
        trend = spending_trend(sample_transactions, 6, today=today)

        assert trend[0]["expenses"] == 0
        assert trend[4]["expenses"] == pytest.approx(1510.00)
        assert trend[5]["expenses"] == pytest.approx(1341.49)

    def test_income_ignored(self, today):
        trend = spending_trend([make_txn(999, "income")], 1, today=today)
        assert trend == [{"month": 3, "year": 2024, "expenses": 0}]

    def test_rolls_over_year_boundary(self):
        txns = [
            make_txn(100, on=date(2024, 11, 30)),
            make_txn(40, on=date(2024, 12, 31)),
            make_txn(25, on=date(2025, 1, 1)),
        ]
        trend = spending_trend(txns, 4, today=date(2025, 2, 10))

        assert trend == [
            {"month": 11, "year": 2024, "expenses": 100},
            {"month": 12, "year": 2024, "expenses": 40},
            {"month": 1, "year": 2025, "expenses": 25},
            {"month": 2, "year": 2025, "expenses": 0},
        ]

    def test_window_ending_in_january(self):
        pairs = months_ending_at(date(2025, 1, 31), 3)
        assert pairs == [(2024, 11), (2024, 12), (2025, 1)]

    def test_long_lookback_spans_multiple_years(self):
        pairs = months_ending_at(date(2024, 3, 1), 27)
        assert pairs[0] == (2022, 1)
        assert pairs[-1] == (2024, 3)
        assert len(set(pairs)) == 27

    def test_rejects_non_positive_window(self, today):
        with pytest.raises(ValueError):
            spending_trend([], 0, today=today)


class TestBudgetVsActual:

    def test_food_example(self, today):
        budgets = [make_budget("Food", 200)]
        txns = [make_txn(50, category="Food"), make_txn(30, category="Food")]

        [row] = budget_vs_actual(budgets, txns, today=today)

        assert row == {
            "category": "Food",
            "budgetAmount": 200,
            "actualAmount": 80,
            "difference": 120,
            "percentageUsed": 40,
        }

    def test_only_current_month_expenses_count(self, today):
        budgets = [make_budget("Food", 200)]
        txns = [
            make_txn(50, category="Food"),
            make_txn(70, category="Food", on=date(2024, 2, 28)),
            make_txn(500, "income", category="Food"),
        ]
        [row] = budget_vs_actual(budgets, txns, today=today)
        assert row["actualAmount"] == 50

    def test_category_match_is_exact(self, today):
        budgets = [make_budget("Food", 100)]
        txns = [make_txn(10, category="food"), make_txn(10, category="Food ")]
        [row] = budget_vs_actual(budgets, txns, today=today)
        assert row["actualAmount"] == 0
        assert row["percentageUsed"] == 0

    def test_overspent_budget(self, today):
        [row] = budget_vs_actual([make_budget("Fun", 50)], [make_txn(75, category="Fun")], today=today)
        assert row["difference"] == -25
        assert row["percentageUsed"] == 150

    def test_zero_budget_reports_null_percentage(self, today):
        budgets = [make_budget("Gifts", 0)]
        txns = [make_txn(25, category="Gifts")]

        [row] = budget_vs_actual(budgets, txns, today=today)

        assert row["percentageUsed"] is None
        assert row["difference"] == -25
        # Must serialize to valid JSON (no Infinity/NaN)
        json.dumps(row, allow_nan=False)

    def test_zero_budget_without_spending(self, today):
        [row] = budget_vs_actual([make_budget("Gifts", 0)], [], today=today)
        assert row["percentageUsed"] is None

    def test_one_row_per_budget_in_order(self, today):
        budgets = [make_budget("B", 10), make_budget("A", 10)]
        assert [r["category"] for r in budget_vs_actual(budgets, [], today=today)] == ["B", "A"]

    def test_percentage_used_is_finite(self):
        assert percentage_used(0, 0) is None
        assert math.isfinite(percentage_used(1, 3))


class TestFinancialSummary:

    def test_fields(self, sample_transactions, today):
        summary = financial_summary(sample_transactions, today=today)

        assert summary["totalBalance"] == pytest.approx(7250.00 - 2851.49)
        assert summary["monthlyIncome"] == pytest.approx(3750.00)
        assert summary["monthlyExpenses"] == pytest.approx(1341.49)
        assert summary["monthlyNetIncome"] == pytest.approx(3750.00 - 1341.49)
        assert summary["totalTransactions"] == 9
        assert summary["monthlyTransactions"] == 6
        assert summary["topSpendingCategory"] == {"name": "Housing", "amount": 1200.00}

    def test_empty(self, today):
        summary = financial_summary([], today=today)
        assert summary["topSpendingCategory"] is None
        assert summary["categoryBreakdown"] == {}
        assert summary["totalBalance"] == 0


class TestIdempotence:

    def test_reports_are_repeatable(self, sample_transactions, today):
        budgets = [make_budget("Food", 200), make_budget("Gifts", 0)]
        for build in (
            lambda: monthly_summary(sample_transactions, 3, 2024),
            lambda: spending_trend(sample_transactions, 6, today=today),
            lambda: budget_vs_actual(budgets, sample_transactions, today=today),
            lambda: financial_summary(sample_transactions, today=today),
        ):
            assert json.dumps(build()) == json.dumps(build())

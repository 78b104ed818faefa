"""Integration tests for the full finance service."""
import pytest
from datetime import date
from pathlib import Path

from investiq.api.finance_service import FinanceService
from investiq.models import RecordValidationError


JAN_20 = date(2024, 1, 20)


class TestIntegration:
    """End-to-end integration tests."""

    @pytest.fixture
    def temp_service(self, tmp_path):
        """Create a temporary service for testing."""
        with FinanceService(db_path=tmp_path / "test.db", secret_key="test-secret") as service:
            yield service

    @pytest.fixture
    def user_id(self, temp_service):
        user = temp_service.identity.register("alex@example.com", "hunter22", "Alex Doe")
        return user["id"]

    @pytest.fixture
    def other_user_id(self, temp_service):
        return temp_service.identity.register("sam@example.com", "hunter22")["id"]

    def test_full_import_and_report_flow(self, temp_service, user_id, sample_csv):
        """Test full flow: import -> reports -> assistant."""
        result = temp_service.import_file(user_id, sample_csv)
        assert result == {"total_parsed": 4, "added": 4, "rejected": 0, "errors": []}

        summary = temp_service.monthly_summary(user_id, 1, 2024)
        assert summary["income"] == pytest.approx(3500.00)
        assert summary["expenses"] == pytest.approx(2641.49)
        assert summary["transactionCount"] == 4
        assert summary["categoryBreakdown"]["Housing"] == 2500.00

        overview = temp_service.financial_summary(user_id, today=JAN_20)
        assert overview["totalBalance"] == pytest.approx(858.51)
        assert overview["topSpendingCategory"] == {"name": "Housing", "amount": 2500.00}

        answer = temp_service.insights(user_id, "What's my balance?", today=JAN_20)
        assert "Your current balance is $858.51." in answer["response"]

    def test_import_reports_rejected_rows(self, temp_service, user_id, tmp_path: Path):
        csv_path = tmp_path / "bad.csv"
        csv_path.write_text("""Date,Amount,Description
2024-01-15,-45.99,GOOD
2024-01-16,abc,BAD
""")

        result = temp_service.import_file(user_id, csv_path)

        assert result["added"] == 1
        assert result["rejected"] == 1
        assert result["errors"][0]["row"] == 2
        assert len(temp_service.list_transactions(user_id)) == 1

    def test_monthly_summary_defaults_to_current_month(self, temp_service, user_id, sample_csv):
        temp_service.import_file(user_id, sample_csv)

        summary = temp_service.monthly_summary(user_id, today=JAN_20)
        assert (summary["month"], summary["year"]) == (1, 2024)
        assert summary["transactionCount"] == 4

    def test_spending_trends(self, temp_service, user_id, sample_csv):
        temp_service.import_file(user_id, sample_csv)

        trend = temp_service.spending_trends(user_id, 3, today=date(2024, 2, 10))
        assert trend == [
            {"month": 12, "year": 2023, "expenses": 0},
            {"month": 1, "year": 2024, "expenses": pytest.approx(2641.49)},
            {"month": 2, "year": 2024, "expenses": 0},
        ]

    def test_budget_vs_actual(self, temp_service, user_id, sample_csv):
        temp_service.import_file(user_id, sample_csv)
        temp_service.create_budget(user_id, {"category_name": "Food", "amount": 250, "period": "monthly"})
        temp_service.create_budget(user_id, {"category_name": "Gifts", "amount": 0, "period": "monthly"})

        rows = {r["category"]: r for r in temp_service.budget_vs_actual(user_id, today=JAN_20)}

        assert rows["Food"]["actualAmount"] == pytest.approx(125.50)
        assert rows["Food"]["percentageUsed"] == pytest.approx(50.2)
        assert rows["Gifts"]["percentageUsed"] is None

    def test_transaction_crud(self, temp_service, user_id):
        created = temp_service.create_transaction(user_id, {
            "amount": "42.5", "type": "expense", "transaction_date": "2024-01-05",
            "category_name": "Food",
        })
        assert created["amount"] == 42.5
        assert created["description"] is None

        updated = temp_service.update_transaction(user_id, created["id"], {
            "amount": 40, "type": "expense", "transaction_date": "2024-01-06",
            "category_name": "Groceries", "description": "corrected",
        })
        assert updated["category_name"] == "Groceries"
        assert updated["transaction_date"] == "2024-01-06"

        assert temp_service.delete_transaction(user_id, created["id"]) is True
        assert temp_service.get_transaction(user_id, created["id"]) is None

    def test_invalid_transaction_is_rejected(self, temp_service, user_id):
        with pytest.raises(RecordValidationError):
            temp_service.create_transaction(user_id, {
                "amount": "abc", "type": "expense", "transaction_date": "2024-01-05",
            })
        assert temp_service.list_transactions(user_id) == []

    def test_users_are_isolated(self, temp_service, user_id, other_user_id, sample_csv):
        temp_service.import_file(user_id, sample_csv)
        budget = temp_service.create_budget(user_id, {"category_name": "Food", "amount": 100})
        txn_id = temp_service.list_transactions(user_id)[0]["id"]

        assert temp_service.list_transactions(other_user_id) == []
        assert temp_service.financial_summary(other_user_id, today=JAN_20)["totalTransactions"] == 0
        assert temp_service.update_transaction(other_user_id, txn_id, {
            "amount": 1, "type": "income", "transaction_date": "2024-01-01",
        }) is None
        assert temp_service.delete_budget(other_user_id, budget["id"]) is False
        assert len(temp_service.list_budgets(user_id)) == 1

    def test_insights_timestamp_is_only_varying_field(self, temp_service, user_id, sample_csv):
        temp_service.import_file(user_id, sample_csv)

        first = temp_service.insights(user_id, "budget", today=JAN_20)
        second = temp_service.insights(user_id, "budget", today=JAN_20)

        assert first["response"] == second["response"]
        assert set(first) == {"response", "timestamp"}

    def test_monthly_summary_fetches_only_that_month(self, temp_service, user_id):
        for day, amount in (("2024-01-31", 1), ("2024-02-01", 10), ("2024-02-29", 20), ("2024-03-01", 100)):
            temp_service.create_transaction(user_id, {
                "amount": amount, "type": "expense", "transaction_date": day,
            })

        summary = temp_service.monthly_summary(user_id, 2, 2024)

        assert summary["transactionCount"] == 2
        assert summary["expenses"] == 30

    def test_load_transactions_with_date_bounds(self, temp_service, user_id, sample_csv):
        temp_service.import_file(user_id, sample_csv)

        loaded = temp_service.load_transactions(
            user_id, start_date=date(2024, 1, 16), end_date=date(2024, 1, 17)
        )

        assert sorted(t.transaction_date.day for t in loaded) == [16, 17]
        assert len(temp_service.load_transactions(user_id)) == 4

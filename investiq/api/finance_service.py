"""Finance service - main orchestration layer.

Fetches one user's rows from the store, turns them into records and hands
them to the report functions. The report functions never see the store.
"""
import calendar
from datetime import date, datetime, timezone
from pathlib import Path
from typing import List, Dict, Any, Optional
import logging

from investiq.config import DB_PATH, DEFAULT_TREND_MONTHS, SECRET_KEY, ensure_data_dir
from investiq.db.sqlite_store import SQLiteStore, TRANSACTION_FIELDS, BUDGET_FIELDS
from investiq.api.auth import IdentityService
from investiq.ingestion.csv_parser import CSVParser
from investiq.models import Budget, RecordValidationError, Transaction
from investiq.reports import builder
from investiq.reports.assistant import generate_response


logger = logging.getLogger(__name__)


class FinanceService:
    """Main service for the finance backend.

    Owns the record store and the identity service, and exposes user-scoped
    CRUD plus the derived reports.
    """

    def __init__(self, db_path: Optional[Path] = None, secret_key: Optional[str] = None):
        """Initialize the finance service.

        Args:
            db_path: Path to SQLite database (default: ~/.investiq/investiq.db)
            secret_key: Token signing key (default: INVESTIQ_SECRET_KEY)
        """
        self.db_path = Path(db_path) if db_path else DB_PATH
        if db_path is None:
            ensure_data_dir()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.store = SQLiteStore(self.db_path)
        self.identity = IdentityService(self.store, secret_key=secret_key or SECRET_KEY)

    def close(self):
        """Close all connections."""
        self.store.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # === Record loading ===

    def load_transactions(
        self,
        user_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Transaction]:
        """Load the user's transactions as validated records, optionally within inclusive date bounds."""
        rows = self.store.get_transactions(
            user_id,
            start_date=start_date.isoformat() if start_date else None,
            end_date=end_date.isoformat() if end_date else None
        )
        return [Transaction.from_row(row) for row in rows]

    def load_budgets(self, user_id: str) -> List[Budget]:
        """Load the user's budgets as validated records."""
        return [Budget.from_row(row) for row in self.store.get_budgets(user_id)]

    # === Transactions ===

    def list_transactions(self, user_id: str) -> List[Dict[str, Any]]:
        return self.store.get_transactions(user_id)

    def get_transaction(self, user_id: str, txn_id: int) -> Optional[Dict[str, Any]]:
        return self.store.get_transaction(user_id, txn_id)

    def _validated_transaction(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        txn = Transaction.from_row({**data, "user_id": user_id})
        clean = txn.to_dict()
        return {k: clean[k] for k in TRANSACTION_FIELDS}

    def create_transaction(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and store a new transaction.

        Raises:
            RecordValidationError: if amount, type or date are malformed
        """
        fields = self._validated_transaction(user_id, data)
        row = self.store.add_transaction(user_id=user_id, **fields)
        logger.info(f"Created transaction {row['id']} for user {user_id}")
        return row

    def update_transaction(
        self,
        user_id: str,
        txn_id: int,
        data: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Replace every mutable field of a transaction. None if not found."""
        fields = self._validated_transaction(user_id, data)
        row = self.store.update_transaction(user_id, txn_id, **fields)
        if row:
            logger.info(f"Updated transaction {txn_id} for user {user_id}")
        return row

    def delete_transaction(self, user_id: str, txn_id: int) -> bool:
        deleted = self.store.delete_transaction(user_id, txn_id)
        if deleted:
            logger.info(f"Deleted transaction {txn_id} for user {user_id}")
        return deleted

    def import_file(self, user_id: str, file_path: Path) -> Dict[str, Any]:
        """Import transactions for a user from a CSV/Excel file.

        Rows the parser or the record validation rejects are skipped.

        Returns:
            Dict with import statistics
        """
        logger.info(f"Importing file for user {user_id}: {file_path}")

        parser = CSVParser()
        parsed = parser.parse(file_path)
        rejected = list(parser.rejected)

        valid = []
        for index, txn in enumerate(parsed, start=1):
            try:
                valid.append(self._validated_transaction(user_id, txn))
            except RecordValidationError as e:
                rejected.append((index, str(e)))

        added_ids = self.store.add_transactions(user_id, valid)
        logger.info(f"Added {len(added_ids)} transactions, {len(rejected)} rows rejected")

        return {
            "total_parsed": len(parsed),
            "added": len(added_ids),
            "rejected": len(rejected),
            "errors": [{"row": row, "reason": reason} for row, reason in rejected],
        }

    # === Budgets ===

    def list_budgets(self, user_id: str) -> List[Dict[str, Any]]:
        return self.store.get_budgets(user_id)

    def _validated_budget(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        budget = Budget.from_row({**data, "user_id": user_id})
        clean = budget.to_dict()
        return {k: clean[k] for k in BUDGET_FIELDS}

    def create_budget(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate and store a new budget."""
        fields = self._validated_budget(user_id, data)
        row = self.store.add_budget(user_id=user_id, **fields)
        logger.info(f"Created budget {row['id']} for user {user_id}")
        return row

    def update_budget(
        self,
        user_id: str,
        budget_id: int,
        data: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Replace every mutable field of a budget. None if not found."""
        fields = self._validated_budget(user_id, data)
        row = self.store.update_budget(user_id, budget_id, **fields)
        if row:
            logger.info(f"Updated budget {budget_id} for user {user_id}")
        return row

    def delete_budget(self, user_id: str, budget_id: int) -> bool:
        deleted = self.store.delete_budget(user_id, budget_id)
        if deleted:
            logger.info(f"Deleted budget {budget_id} for user {user_id}")
        return deleted

    # === Reports ===

    def monthly_summary(
        self,
        user_id: str,
        month: Optional[int] = None,
        year: Optional[int] = None,
        today: Optional[date] = None
    ) -> Dict[str, Any]:
        """Monthly summary, defaulting to the current month."""
        today = today or date.today()
        month = month or today.month
        year = year or today.year
        last_day = calendar.monthrange(year, month)[1]
        transactions = self.load_transactions(
            user_id,
            start_date=date(year, month, 1),
            end_date=date(year, month, last_day)
        )
        return builder.monthly_summary(transactions, month, year)

    def spending_trends(
        self,
        user_id: str,
        months: int = DEFAULT_TREND_MONTHS,
        today: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        return builder.spending_trend(self.load_transactions(user_id), months, today)

    def budget_vs_actual(self, user_id: str, today: Optional[date] = None) -> List[Dict[str, Any]]:
        return builder.budget_vs_actual(
            self.load_budgets(user_id),
            self.load_transactions(user_id),
            today
        )

    def financial_summary(self, user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
        return builder.financial_summary(self.load_transactions(user_id), today)

    def insights(self, user_id: str, message: str, today: Optional[date] = None) -> Dict[str, Any]:
        """Answer a prompt from the assistant.

        ``timestamp`` is the generation time and the only field that differs
        between two calls with the same data.
        """
        response = generate_response(
            message,
            self.load_transactions(user_id),
            self.load_budgets(user_id),
            today
        )
        return {
            "response": response,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

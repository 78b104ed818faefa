"""CSV and Excel parser for transaction import."""
import logging
import re
from pathlib import Path
from typing import List, Dict, Any, Optional, Tuple
from datetime import datetime
import pandas as pd

from investiq.models import TransactionType


logger = logging.getLogger(__name__)

# Common column name variations
DATE_COLUMNS = ["transaction_date", "date", "transaction date", "trans date", "posted date", "posting date"]
AMOUNT_COLUMNS = ["amount", "transaction amount", "trans_amt", "debit/credit", "value"]
TYPE_COLUMNS = ["type", "transaction type", "kind", "direction"]
CATEGORY_COLUMNS = ["category_name", "category", "category name"]
DESC_COLUMNS = ["description", "memo", "merchant", "payee", "notes", "details", "name"]

# Type column values that carry a direction; anything else falls back to the sign
TYPE_VALUES = {
    "income": TransactionType.INCOME,
    "credit": TransactionType.INCOME,
    "deposit": TransactionType.INCOME,
    "expense": TransactionType.EXPENSE,
    "debit": TransactionType.EXPENSE,
    "withdrawal": TransactionType.EXPENSE,
}


class CSVParser:
    """Parser for CSV and Excel transaction files with column auto-detection.

    Rows that cannot be turned into a transaction are skipped and recorded in
    ``rejected`` as ``(row_number, reason)`` pairs.
    """

    def __init__(self, column_mapping: Optional[Dict[str, str]] = None):
        """Initialize parser with optional custom column mapping.

        Args:
            column_mapping: Custom mapping of {output_field: input_column}
        """
        self.column_mapping = column_mapping
        self.rejected: List[Tuple[int, str]] = []

    def parse(self, file_path: Path) -> List[Dict[str, Any]]:
        """Parse a CSV or Excel file into transaction dicts.

        Args:
            file_path: Path to the file

        Returns:
            List of dicts with transaction_date, amount, type, category_name, description
        """
        self.rejected = []
        df = self._read_file(file_path)
        df = self._clean_dataframe(df)

        if df.empty:
            return []

        mapping = self._get_column_mapping(df)
        missing = [field for field in ("date", "amount") if field not in mapping]
        if missing:
            raise ValueError(f"Could not find column(s) for: {', '.join(missing)}")

        transactions = []
        for index, (_, row) in enumerate(df.iterrows(), start=1):
            txn, reason = self._row_to_transaction(row, mapping)
            if txn:
                transactions.append(txn)
            else:
                self.rejected.append((index, reason))

        if self.rejected:
            logger.warning(f"Skipped {len(self.rejected)} unparseable rows in {file_path}")
        return transactions

    def _read_file(self, file_path: Path, nrows: Optional[int] = None) -> pd.DataFrame:
        """Read CSV or Excel file into DataFrame."""
        path = Path(file_path)

        if path.suffix.lower() in [".xlsx", ".xls"]:
            df = pd.read_excel(path, nrows=nrows)
        else:
            df = self._read_csv_with_header_detection(path, nrows)

        return df

    def _read_csv_with_header_detection(
        self,
        path: Path,
        nrows: Optional[int] = None
    ) -> pd.DataFrame:
        """Read CSV and detect where the actual header row is."""
        with open(path, 'r', encoding='utf-8', errors='ignore') as f:
            lines = f.readlines()

        # pandas skips blank lines, so only non-blank lines count towards the header index
        pandas_row = 0
        header_row = 0

        for line in lines[:20]:
            lower = line.lower().strip()
            if not lower:
                continue
            if ',' in lower and any(col in lower for col in ["date", "amount", "category", "description"]):
                header_row = pandas_row
                break
            pandas_row += 1

        return pd.read_csv(path, header=header_row, nrows=nrows)

    def _clean_dataframe(self, df: pd.DataFrame) -> pd.DataFrame:
        """Clean the dataframe - remove empty rows, normalize headers."""
        df.columns = [str(c).strip() for c in df.columns]
        return df.dropna(how='all')

    def _get_column_mapping(self, df: pd.DataFrame) -> Dict[str, str]:
        """Determine column mapping for the dataframe."""
        if self.column_mapping:
            return self.column_mapping

        columns_lower = {str(c).lower(): c for c in df.columns}
        mapping = {}

        for field, candidates in (
            ("date", DATE_COLUMNS),
            ("amount", AMOUNT_COLUMNS),
            ("type", TYPE_COLUMNS),
            ("category", CATEGORY_COLUMNS),
            ("description", DESC_COLUMNS),
        ):
            for col in candidates:
                if col in columns_lower:
                    mapping[field] = columns_lower[col]
                    break

        return mapping

    def _row_to_transaction(
        self,
        row: pd.Series,
        mapping: Dict[str, str]
    ) -> Tuple[Optional[Dict[str, Any]], str]:
        """Convert a DataFrame row to a transaction dict, or (None, reason)."""
        date_val = row.get(mapping.get("date", ""))
        amount_val = row.get(mapping.get("amount", ""))
        type_val = row.get(mapping.get("type", ""))
        category_val = row.get(mapping.get("category", ""))
        desc_val = row.get(mapping.get("description", ""))

        if pd.isna(date_val):
            return None, "missing date"
        if pd.isna(amount_val):
            return None, "missing amount"

        date_str = self._normalize_date(date_val)
        if not date_str:
            return None, f"unparseable date {date_val!r}"

        amount = self._normalize_amount(amount_val)
        if amount is None:
            return None, f"non-numeric amount {amount_val!r}"

        txn_type = self._resolve_type(type_val, amount)

        return {
            "transaction_date": date_str,
            "amount": abs(amount),
            "type": txn_type.value,
            "category_name": str(category_val).strip() if not pd.isna(category_val) else None,
            "description": str(desc_val).strip() if not pd.isna(desc_val) else None,
        }, ""

    def _resolve_type(self, type_val: Any, amount: float) -> TransactionType:
        """Use an explicit type column when it is recognizable, otherwise the sign."""
        if not pd.isna(type_val):
            known = TYPE_VALUES.get(str(type_val).strip().lower())
            if known:
                return known
        return TransactionType.EXPENSE if amount < 0 else TransactionType.INCOME

    def _normalize_date(self, date_val: Any) -> Optional[str]:
        """Normalize various date formats to ISO (YYYY-MM-DD)."""
        if isinstance(date_val, (datetime, pd.Timestamp)):
            return date_val.strftime("%Y-%m-%d")

        date_str = str(date_val).strip()

        formats = [
            "%Y-%m-%d",      # ISO
            "%m/%d/%Y",      # US
            "%m/%d/%y",      # US short year
            "%d-%b-%Y",      # 15-Jan-2024
            "%d/%m/%Y",      # European
            "%Y/%m/%d",      # Alternative ISO
        ]

        for fmt in formats:
            try:
                return datetime.strptime(date_str, fmt).strftime("%Y-%m-%d")
            except ValueError:
                continue

        try:
            return pd.to_datetime(date_str).strftime("%Y-%m-%d")
        except (ValueError, TypeError):
            return None

    def _normalize_amount(self, amount_val: Any) -> Optional[float]:
        """Normalize various amount formats to a signed float."""
        if isinstance(amount_val, (int, float)):
            return float(amount_val)

        amount_str = str(amount_val).strip()
        amount_str = re.sub(r'[$,]', '', amount_str)

        # Accounting format: (12.50) means -12.50
        if amount_str.startswith('(') and amount_str.endswith(')'):
            amount_str = '-' + amount_str[1:-1]

        try:
            return float(amount_str)
        except ValueError:
            return None

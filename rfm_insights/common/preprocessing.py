"""
Transaction Normalization Module
================================

Turns raw, string-typed transaction rows into canonical customer id /
date / amount records. Rows that cannot be parsed are skipped and counted,
never raised.

Supported input formats:
- Dates: day/month/year separated by '-' or '/', optionally followed by a
  whitespace-separated time component which is ignored. Years below 100
  are read as 19xx.
- Amounts: any text; every character other than digits, '.' and '-' is
  removed before parsing ("PHP 1,234.50" -> 1234.5).

Usage:
    from rfm_insights.common import TransactionNormalizer

    normalizer = TransactionNormalizer()
    result = normalizer.normalize(df, column_map)
    transactions = result.transactions
"""

import math
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Mapping, Optional, Union

import pandas as pd
from loguru import logger

_DATE_SEPARATORS = re.compile(r'[-/]')
_AMOUNT_DISALLOWED = re.compile(r'[^0-9.\-]')
_AMOUNT_PREFIX = re.compile(r'-?(?:\d+\.?\d*|\.\d+)')

SKIP_MISSING_CUSTOMER = 'missing_customer_id'
SKIP_INVALID_DATE = 'invalid_date'
SKIP_INVALID_AMOUNT = 'invalid_amount'

TRANSACTION_COLUMNS = ['customer_id', 'date', 'amount', 'location']


def parse_date(value: Any) -> Optional[date]:
    """
    Parse a dd/mm/yyyy (or dd-mm-yyyy) string into a date.

    Returns None when the value has no three numeric parts or the parts
    do not form a real calendar date (e.g. 31/02/2024). Years 0-99 read
    as 1900-1999, so "01/02/24" is 1 February 1924.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None

    parts = _DATE_SEPARATORS.split(text.split()[0])
    if len(parts) != 3:
        return None
    if not all(part.isascii() and part.isdigit() for part in parts):
        return None

    day, month, year = (int(part) for part in parts)
    if year < 100:
        year += 1900
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_amount(value: Any) -> Optional[float]:
    """
    Parse a currency-formatted amount.

    The leading numeric prefix of the cleaned text is used, so "12.5.3"
    reads as 12.5. Returns None when no number remains.
    """
    if value is None:
        return None
    cleaned = _AMOUNT_DISALLOWED.sub('', str(value))
    match = _AMOUNT_PREFIX.match(cleaned)
    if match is None:
        return None
    amount = float(match.group(0))
    if not math.isfinite(amount):
        return None
    return amount


@dataclass(frozen=True)
class ParsedRow:
    """One transaction after normalization."""

    customer_id: str
    date: date
    amount: float
    location: Optional[str] = None


@dataclass(frozen=True)
class RowSkip:
    """Marker for a row excluded from aggregation."""

    reason: str


RowResult = Union[ParsedRow, RowSkip]


@dataclass
class RejectionReport:
    """Counts of skipped rows by reason. Never part of the snapshot."""

    total_rows: int = 0
    reasons: Dict[str, int] = field(default_factory=dict)

    @property
    def rejected(self) -> int:
        return sum(self.reasons.values())

    @property
    def accepted(self) -> int:
        return self.total_rows - self.rejected

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalRows': self.total_rows,
            'accepted': self.accepted,
            'rejected': self.rejected,
            'reasons': dict(self.reasons),
        }


@dataclass
class NormalizedTransactions:
    """Valid transactions plus the rejection report of one pass."""

    transactions: pd.DataFrame
    report: RejectionReport


class TransactionNormalizer:
    """
    Row-level parser for raw transaction logs.

    Example:
        >>> normalizer = TransactionNormalizer()
        >>> result = normalizer.normalize(df, column_map)
        >>> result.report.rejected
        0
    """

    def __init__(self):
        """Initialize TransactionNormalizer."""
        logger.info("TransactionNormalizer initialized")

    def normalize_row(self, row: Mapping[str, Any], column_map) -> RowResult:
        """
        Parse a single raw row.

        Args:
            row: Mapping of header name -> raw cell text
            column_map: Resolved ColumnMap for the file

        Returns:
            ParsedRow, or RowSkip naming the first field that failed
        """
        customer_id = row.get(column_map.customer_id)
        if customer_id is None or customer_id == '':
            return RowSkip(SKIP_MISSING_CUSTOMER)

        parsed_date = parse_date(row.get(column_map.date))
        if parsed_date is None:
            return RowSkip(SKIP_INVALID_DATE)

        amount = parse_amount(row.get(column_map.amount))
        if amount is None:
            return RowSkip(SKIP_INVALID_AMOUNT)

        location = None
        if column_map.location is not None:
            location = row.get(column_map.location.name)

        return ParsedRow(str(customer_id), parsed_date, amount, location)

    def normalize(self, df: pd.DataFrame, column_map) -> NormalizedTransactions:
        """
        Parse every row of a raw transaction frame.

        Args:
            df: String-typed DataFrame as produced by DataLoader
            column_map: Resolved ColumnMap for the file

        Returns:
            NormalizedTransactions with a frame of valid rows
            (customer_id, date, amount, location) in file order;
            'date' holds datetime.date objects
        """
        parsed = []
        skipped: Counter = Counter()

        for row in df.to_dict('records'):
            result = self.normalize_row(row, column_map)
            if isinstance(result, RowSkip):
                skipped[result.reason] += 1
                logger.debug(f"Skipping row: {result.reason}")
                continue
            parsed.append(result)

        transactions = pd.DataFrame(
            [(r.customer_id, r.date, r.amount, r.location) for r in parsed],
            columns=TRANSACTION_COLUMNS
        )
        # Dates stay as datetime.date objects; years outside the
        # datetime64[ns] range are still valid calendar dates here.
        transactions['amount'] = transactions['amount'].astype(float)

        report = RejectionReport(total_rows=len(df), reasons=dict(skipped))
        if report.rejected:
            logger.info(
                f"Normalized {report.accepted} of {report.total_rows} rows "
                f"({report.rejected} skipped: {report.reasons})"
            )
        else:
            logger.info(f"Normalized {report.accepted} rows")

        return NormalizedTransactions(transactions=transactions, report=report)

"""
RFM Aggregation Module
======================

Folds normalized transactions into one Recency / Frequency / Monetary
record per customer.

Recency is measured against an anchor date one calendar day after the
latest transaction in the whole batch, so the most recent purchase always
has a recency of at least zero and re-uploads of the same log produce the
same values regardless of when they are analysed.

Usage:
    from rfm_insights.customer_segmentation import RFMAggregator

    aggregator = RFMAggregator()
    rfm_df = aggregator.calculate_rfm(transactions)
    records = aggregator.to_records(rfm_df)
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Optional

import pandas as pd
from loguru import logger

RFM_COLUMNS = ['customer_id', 'recency', 'frequency', 'monetary', 'last_visit']


@dataclass(frozen=True)
class RFMRecord:
    """Recency (days), frequency (visits) and monetary (spend) of a customer."""

    recency: int
    frequency: int
    monetary: float


class RFMAggregator:
    """
    Per-customer RFM aggregation.

    Customers are grouped by exact customer id (case-sensitive, untrimmed)
    and kept in order of first appearance.

    Example:
        >>> aggregator = RFMAggregator()
        >>> rfm = aggregator.calculate_rfm(transactions)
        >>> rfm[['customer_id', 'recency', 'frequency', 'monetary']]
    """

    def __init__(self):
        """Initialize RFMAggregator."""
        logger.info("RFMAggregator initialized")

    @staticmethod
    def compute_anchor_date(transactions: pd.DataFrame) -> Optional[date]:
        """
        Anchor date for recency: latest transaction date plus one day.

        Args:
            transactions: Normalized transactions with a 'date' column

        Returns:
            Anchor date, or None when there are no transactions
        """
        if transactions.empty:
            return None
        return max(transactions['date']) + timedelta(days=1)

    def calculate_rfm(
        self,
        transactions: pd.DataFrame,
        reference_date: Optional[date] = None
    ) -> pd.DataFrame:
        """
        Calculate RFM metrics for each customer.

        Args:
            transactions: Normalized transactions (customer_id, date, amount)
            reference_date: Anchor date override (default: latest date + 1 day)

        Returns:
            DataFrame with customer_id, recency, frequency, monetary and
            last_visit, one row per customer with at least one transaction
        """
        if transactions.empty:
            logger.info("No valid transactions; RFM table is empty")
            return pd.DataFrame(columns=RFM_COLUMNS)

        if reference_date is None:
            reference_date = self.compute_anchor_date(transactions)

        df = transactions[['customer_id', 'date', 'amount']].copy()
        df['day'] = df['date'].map(date.toordinal)

        rfm = df.groupby('customer_id', sort=False).agg(
            frequency=('amount', 'size'),
            monetary=('amount', 'sum'),
            last_day=('day', 'max'),
        ).reset_index()

        # Dates carry no time part, so the day difference is already whole.
        rfm['recency'] = (reference_date.toordinal() - rfm['last_day']).clip(lower=0)
        rfm['last_visit'] = rfm['last_day'].map(date.fromordinal)
        rfm['frequency'] = rfm['frequency'].astype(int)
        rfm['monetary'] = rfm['monetary'].astype(float)
        rfm = rfm[RFM_COLUMNS]

        logger.info(f"Calculated RFM for {len(rfm)} customers (anchor {reference_date})")
        return rfm

    @staticmethod
    def to_records(rfm: pd.DataFrame) -> Dict[str, RFMRecord]:
        """
        Convert an RFM table into an ordered customer id -> RFMRecord mapping.

        Args:
            rfm: Output of calculate_rfm

        Returns:
            Dictionary in the table's row order
        """
        return {
            str(row.customer_id): RFMRecord(
                recency=int(row.recency),
                frequency=int(row.frequency),
                monetary=float(row.monetary),
            )
            for row in rfm.itertuples(index=False)
        }

"""
Segment Analysis Module
=======================

KPIs, historical comparison, drill-down filtering and recommendations
over analysis snapshots.

Usage:
    from rfm_insights.customer_segmentation import SegmentAnalyzer

    analyzer = SegmentAnalyzer()
    kpis = analyzer.calculate_kpis(snapshot)
    comparison = analyzer.compare(snapshot, historical_snapshot)
    rows = analyzer.explore(snapshot, 'At-Risk', min_visits=3)
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from loguru import logger

from .segment_rules import AT_RISK, CHAMPIONS, LOYAL, NEW
from .snapshot import AnalysisSnapshot, CustomerSummary

KPI_NAMES = ('totalCustomers', 'avgSpend', 'atRiskCount', 'championCount')


@dataclass(frozen=True)
class KPISummary:
    """Headline numbers of one snapshot."""

    total_customers: int
    avg_spend: float
    at_risk_count: int
    champion_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'totalCustomers': self.total_customers,
            'avgSpend': self.avg_spend,
            'atRiskCount': self.at_risk_count,
            'championCount': self.champion_count,
        }


@dataclass(frozen=True)
class KPIComparison:
    """Current vs. historical KPIs with percentage deltas.

    ``deltas`` only has an entry for KPIs whose historical value is
    present and non-zero.
    """

    current: KPISummary
    historical: Optional[KPISummary]
    deltas: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'current': self.current.to_dict(),
            'historical': self.historical.to_dict() if self.historical else None,
            'deltas': dict(self.deltas),
        }


@dataclass(frozen=True)
class Insight:
    """A recommendation card."""

    title: str
    message: str
    kind: str  # 'action' or 'growth'

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def percentage_change(current: float, historical: Optional[float]) -> Optional[float]:
    """(current - historical) / historical * 100, or None for a missing or zero base."""
    if historical is None or historical == 0:
        return None
    return (current - historical) / historical * 100


def format_delta(delta: Optional[float]) -> str:
    """Render a delta as '+20.0%' / '-12.5%' ('' when undefined)."""
    if delta is None:
        return ''
    sign = '+' if delta > 0 else ''
    return f"{sign}{delta:.1f}%"


class SegmentAnalyzer:
    """
    Read-side analysis of segment snapshots.

    Example:
        >>> analyzer = SegmentAnalyzer()
        >>> analyzer.compare(current, historical).deltas
        {'totalCustomers': 20.0, 'avgSpend': -3.1, ...}
    """

    def __init__(
        self,
        max_rows: int = 100,
        new_customer_ratio: float = 0.4,
        upsell_min_champions: int = 10,
        upsell_min_loyal: int = 20
    ):
        """
        Initialize SegmentAnalyzer.

        Args:
            max_rows: Row cap for segment drill-down tables
            new_customer_ratio: New-customer share above which a
                conversion recommendation is made
            upsell_min_champions: Champions needed (exclusive) for the
                upsell recommendation
            upsell_min_loyal: Loyal customers needed (exclusive) for the
                upsell recommendation
        """
        self.max_rows = max_rows
        self.new_customer_ratio = new_customer_ratio
        self.upsell_min_champions = upsell_min_champions
        self.upsell_min_loyal = upsell_min_loyal

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'SegmentAnalyzer':
        insights = config.get('insights', {})
        return cls(
            max_rows=config.get('explorer', {}).get('max_rows', 100),
            new_customer_ratio=insights.get('new_customer_ratio', 0.4),
            upsell_min_champions=insights.get('upsell_min_champions', 10),
            upsell_min_loyal=insights.get('upsell_min_loyal', 20),
        )

    def calculate_kpis(self, snapshot: AnalysisSnapshot) -> KPISummary:
        """
        Aggregate headline KPIs over all segments.

        Args:
            snapshot: Snapshot to summarise

        Returns:
            KPISummary (average spend is 0 when there are no customers)
        """
        customers = snapshot.all_customers()
        total_customers = len({c.id for c in customers})
        total_spend = sum(c.spend for c in customers)
        avg_spend = total_spend / total_customers if total_customers > 0 else 0.0

        return KPISummary(
            total_customers=total_customers,
            avg_spend=avg_spend,
            at_risk_count=snapshot.count(AT_RISK),
            champion_count=snapshot.count(CHAMPIONS),
        )

    def compare(
        self,
        current: AnalysisSnapshot,
        historical: Optional[AnalysisSnapshot] = None
    ) -> KPIComparison:
        """
        Compare current KPIs with a previously stored snapshot.

        Args:
            current: Snapshot of the latest run
            historical: Stored snapshot to compare against

        Returns:
            KPIComparison with deltas in percent
        """
        current_kpis = self.calculate_kpis(current)
        if historical is None:
            return KPIComparison(current=current_kpis, historical=None)

        historical_kpis = self.calculate_kpis(historical)
        current_values = current_kpis.to_dict()
        historical_values = historical_kpis.to_dict()

        deltas = {}
        for name in KPI_NAMES:
            delta = percentage_change(current_values[name], historical_values[name])
            if delta is not None:
                deltas[name] = delta

        logger.info(
            "KPI comparison: "
            + ", ".join(f"{name} {format_delta(d)}" for name, d in deltas.items())
        )
        return KPIComparison(current=current_kpis, historical=historical_kpis, deltas=deltas)

    def largest_segment(self, snapshot: AnalysisSnapshot, default: str = CHAMPIONS) -> str:
        """Segment with the most customers (first declared wins ties)."""
        counts = snapshot.segment_counts()
        if not counts:
            return default
        return max(counts, key=counts.get)

    def explore(
        self,
        snapshot: AnalysisSnapshot,
        segment: str,
        id_contains: str = '',
        min_visits: float = 0,
        min_spend: float = 0
    ) -> List[CustomerSummary]:
        """
        Drill-down rows for one segment.

        Args:
            snapshot: Snapshot to read
            segment: Segment name (unknown names yield no rows)
            id_contains: Case-insensitive substring the customer id must contain
            min_visits: Minimum visit count
            min_spend: Minimum total spend

        Returns:
            Matching customers, highest spend first, at most max_rows
        """
        needle = (id_contains or '').lower()
        rows = [
            c for c in snapshot.get(segment).customers
            if needle in c.id.lower() and c.visits >= min_visits and c.spend >= min_spend
        ]
        rows.sort(key=lambda c: c.spend, reverse=True)
        return rows[:self.max_rows]

    def generate_insights(self, snapshot: AnalysisSnapshot) -> List[Insight]:
        """
        Rule-based recommendations for the snapshot.

        Args:
            snapshot: Snapshot to inspect

        Returns:
            Action insights followed by growth insights (possibly empty)
        """
        insights = []

        at_risk = snapshot.count(AT_RISK)
        champions = snapshot.count(CHAMPIONS)
        new_customers = snapshot.count(NEW)
        loyal = snapshot.count(LOYAL)
        total = sum(snapshot.segment_counts().values())

        if at_risk > 0:
            insights.append(Insight(
                title="High Churn Risk",
                message=(
                    f"You have {at_risk} at-risk customers. Action: Launch a "
                    f"\"We Miss You!\" campaign to re-engage them."
                ),
                kind='action',
            ))
        if champions > 0:
            insights.append(Insight(
                title="Nurture Champions",
                message=(
                    f"Your {champions} Champions are your most valuable asset. "
                    f"Action: Create a VIP program."
                ),
                kind='action',
            ))
        if total > 0 and new_customers / total > self.new_customer_ratio:
            insights.append(Insight(
                title="Convert New Buyers",
                message=(
                    "A high percentage of your customers are new. "
                    "Strategy: Implement a \"welcome\" offer."
                ),
                kind='growth',
            ))
        if champions > self.upsell_min_champions and loyal > self.upsell_min_loyal:
            insights.append(Insight(
                title="Upsell Loyal Customers",
                message=(
                    "You have a strong base of Loyal Customers. Strategy: "
                    "Promote products that Champions buy to this segment."
                ),
                kind='growth',
            ))

        return insights

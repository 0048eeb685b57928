"""Builders shared by several test modules."""

from rfm_insights.customer_segmentation import (
    AnalysisSnapshot,
    CustomerSummary,
    SegmentGroup,
)


def make_csv(rows, header="Customer ID,Date,Amount") -> str:
    """Build CSV text from a header line and row tuples."""
    lines = [header]
    lines.extend(",".join(str(cell) for cell in row) for row in rows)
    return "\n".join(lines) + "\n"


def make_snapshot(counts, spend=100.0, prefix="C") -> AnalysisSnapshot:
    """Snapshot with ``counts[segment]`` customers per segment."""
    segments = {}
    n = 0
    for segment, count in counts.items():
        customers = []
        for _ in range(count):
            n += 1
            customers.append(CustomerSummary(id=f"{prefix}{n}", last_visit=1, visits=1, spend=spend))
        segments[segment] = SegmentGroup(customers=tuple(customers), description=segment)
    return AnalysisSnapshot(segments=segments)

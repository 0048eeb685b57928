"""
Segment Rules Module
====================

Rule-based customer segmentation over RFM records.

Each customer is tested against an ordered cascade and lands in the first
segment whose rule matches:

1. Champions        recency <= champion_recency and frequency >= champion_frequency
2. Loyal Customers  recency <= at_risk_recency - 1 and frequency >= 2
3. At-Risk          recency > at_risk_recency and frequency > 1
4. New Customers    frequency == 1
5. Hibernating      everyone else

Usage:
    from rfm_insights.customer_segmentation import SegmentClassifier, SegmentSettings

    classifier = SegmentClassifier()
    snapshot = classifier.classify(records, SegmentSettings())
"""

from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from .rfm_features import RFMRecord
from .snapshot import AnalysisSnapshot, CustomerSummary, SegmentGroup

CHAMPIONS = 'Champions'
LOYAL = 'Loyal Customers'
AT_RISK = 'At-Risk'
NEW = 'New Customers'
HIBERNATING = 'Hibernating'

SEGMENT_DESCRIPTIONS: Dict[str, str] = {
    CHAMPIONS: "Your best and most frequent customers. Reward them!",
    LOYAL: "Consistent customers. Nurture them to become Champions.",
    AT_RISK: "Good customers who haven't visited recently. Re-engage them!",
    NEW: "First-time buyers. Encourage a second purchase.",
    HIBERNATING: "Haven't visited in a long time. Try to win them back.",
}

SEGMENT_ORDER: Tuple[str, ...] = tuple(SEGMENT_DESCRIPTIONS)


class SegmentSettings(BaseModel):
    """
    User-tunable thresholds for the segment cascade.

    Accepts camelCase (as stored in user profiles) or snake_case names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    champion_recency: int = Field(30, alias='championRecency')
    champion_frequency: int = Field(5, alias='championFrequency')
    at_risk_recency: int = Field(90, alias='atRiskRecency')

    @classmethod
    def from_mapping(
        cls,
        values: Optional[Mapping[str, Any]] = None,
        defaults: Optional['SegmentSettings'] = None
    ) -> 'SegmentSettings':
        """
        Merge a partial settings mapping over defaults.

        Keys present in ``values`` override the defaults, zero included.

        Args:
            values: Stored or submitted settings (camelCase or snake_case)
            defaults: Base settings (default: built-in thresholds)

        Returns:
            New SegmentSettings instance

        Raises:
            pydantic.ValidationError: If a value is not an integer
        """
        merged = (defaults or cls()).model_dump()
        for key, value in (values or {}).items():
            name = _FIELD_BY_KEY.get(key)
            if name is not None and value is not None:
                merged[name] = value
        return cls(**merged)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'SegmentSettings':
        """Build settings from the 'segments' section of a loaded config."""
        return cls.from_mapping(config.get('segments', {}))

    def to_dict(self) -> Dict[str, int]:
        return self.model_dump(by_alias=True)


_FIELD_BY_KEY: Dict[str, str] = {
    key: name
    for name, info in SegmentSettings.model_fields.items()
    for key in (name, info.alias)
}


Rule = Tuple[str, Callable[[RFMRecord, SegmentSettings], bool]]

SEGMENT_RULES: Tuple[Rule, ...] = (
    (CHAMPIONS, lambda r, s: r.recency <= s.champion_recency
        and r.frequency >= s.champion_frequency),
    (LOYAL, lambda r, s: r.recency <= (s.at_risk_recency - 1)
        and r.frequency >= 2),
    (AT_RISK, lambda r, s: r.recency > s.at_risk_recency and r.frequency > 1),
    (NEW, lambda r, s: r.frequency == 1),
)


class SegmentClassifier:
    """
    Ordered, first-match-wins segment assignment.

    The classifier holds no state between runs; settings are passed to
    every call.

    Example:
        >>> classifier = SegmentClassifier()
        >>> classifier.assign_segment(RFMRecord(0, 2, 150.0), SegmentSettings())
        'Loyal Customers'
    """

    def __init__(self, rules: Tuple[Rule, ...] = SEGMENT_RULES, default: str = HIBERNATING):
        """
        Initialize SegmentClassifier.

        Args:
            rules: Ordered (segment name, predicate) pairs
            default: Segment for customers no rule matches
        """
        self.rules = rules
        self.default = default

    def assign_segment(self, record: RFMRecord, settings: SegmentSettings) -> str:
        """Return the first segment whose rule matches the record."""
        for segment, rule in self.rules:
            if rule(record, settings):
                return segment
        return self.default

    def classify(
        self,
        records: Mapping[str, RFMRecord],
        settings: Optional[SegmentSettings] = None
    ) -> AnalysisSnapshot:
        """
        Assign every customer to exactly one segment.

        Args:
            records: Ordered customer id -> RFMRecord mapping
            settings: Thresholds to apply (default: built-in thresholds)

        Returns:
            AnalysisSnapshot with all five segments present, customers kept
            in input order within each segment
        """
        settings = settings or SegmentSettings()
        members: Dict[str, list] = {name: [] for name in SEGMENT_ORDER}

        for customer_id, record in records.items():
            segment = self.assign_segment(record, settings)
            members[segment].append(CustomerSummary(
                id=customer_id,
                last_visit=record.recency,
                visits=record.frequency,
                spend=record.monetary,
            ))

        snapshot = AnalysisSnapshot(segments={
            name: SegmentGroup(
                customers=tuple(members[name]),
                description=SEGMENT_DESCRIPTIONS[name],
            )
            for name in SEGMENT_ORDER
        })

        logger.info(f"Segment distribution: {snapshot.segment_counts()}")
        return snapshot

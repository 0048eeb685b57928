"""
Analysis Snapshot Module
========================

Immutable result of one analysis run: segment name -> customers and a
description. Snapshots are what gets stored in the history and compared
against later uploads, so their plain-dict form is the wire format:

    {
        "Champions": {
            "customers": [{"id": "C1", "lastVisit": 3, "visits": 7, "spend": 812.5}],
            "description": "..."
        },
        ...
    }
"""

from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class CustomerSummary(BaseModel):
    """One customer row of a segment."""

    model_config = ConfigDict(
        frozen=True, populate_by_name=True, coerce_numbers_to_str=True
    )

    id: str
    last_visit: int = Field(alias='lastVisit')
    visits: int
    spend: float


class SegmentGroup(BaseModel):
    """Customers of one segment, in classification order."""

    model_config = ConfigDict(frozen=True)

    customers: Tuple[CustomerSummary, ...] = ()
    description: str = ''

    def __len__(self) -> int:
        return len(self.customers)


class AnalysisSnapshot(BaseModel):
    """
    Segment partition produced by one analysis run.

    Example:
        >>> snapshot = AnalysisSnapshot.from_dict(stored_payload)
        >>> snapshot.segment_counts()
        {'Champions': 12, 'Loyal Customers': 40, ...}
    """

    model_config = ConfigDict(frozen=True)

    segments: Mapping[str, SegmentGroup] = Field(default_factory=dict, validate_default=True)

    @field_validator('segments', mode='after')
    @classmethod
    def freeze_segments(cls, value: Mapping[str, SegmentGroup]) -> Mapping[str, SegmentGroup]:
        return MappingProxyType(dict(value))

    @field_serializer('segments')
    def serialize_segments(self, value: Mapping[str, SegmentGroup]) -> Dict[str, Any]:
        return {name: group.model_dump(by_alias=True) for name, group in value.items()}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> 'AnalysisSnapshot':
        """Rebuild a snapshot from its plain-dict form."""
        return cls(segments={
            name: SegmentGroup.model_validate(group)
            for name, group in (payload or {}).items()
        })

    def to_dict(self) -> Dict[str, Any]:
        """Plain nested-dict form for transport and storage."""
        return {
            name: group.model_dump(by_alias=True, mode='json')
            for name, group in self.segments.items()
        }

    def get(self, name: str) -> SegmentGroup:
        """Segment by name, or an empty group when absent."""
        return self.segments.get(name, SegmentGroup())

    def count(self, name: str) -> int:
        return len(self.get(name))

    def segment_counts(self) -> Dict[str, int]:
        return {name: len(group) for name, group in self.segments.items()}

    def all_customers(self) -> List[CustomerSummary]:
        return [c for group in self.segments.values() for c in group.customers]

    def customer_ids(self) -> Set[str]:
        return {c.id for c in self.all_customers()}

    @property
    def is_empty(self) -> bool:
        return not self.all_customers()

    def is_partition_of(self, customer_ids: Iterable[str]) -> bool:
        """
        Check that segments are pairwise disjoint and together cover
        exactly the given customer ids.
        """
        expected = set(customer_ids)
        customers = self.all_customers()
        return len(customers) == len(expected) and self.customer_ids() == expected

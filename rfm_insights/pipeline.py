"""
Analysis Pipeline
=================

One analysis run end to end:

    raw CSV -> ColumnMapper -> TransactionNormalizer -> RFMAggregator
            -> SegmentClassifier -> AnalysisSnapshot

The run is a pure in-memory computation. Settings are resolved by the
caller before the run and passed in as an immutable SegmentSettings;
loading settings and storing the snapshot happen outside.

Usage:
    from rfm_insights.pipeline import RFMAnalysisPipeline

    pipeline = RFMAnalysisPipeline()
    result = pipeline.analyze_csv(csv_text, settings)
    if isinstance(result, ColumnMappingFailed):
        raise SystemExit(result.reason)
    payload = result.to_dict()
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from loguru import logger

from .common.data_loader import DataLoader
from .common.preprocessing import RejectionReport, TransactionNormalizer
from .customer_segmentation.column_mapping import (
    ColumnMap,
    ColumnMapper,
    ColumnMappingFailed,
)
from .customer_segmentation.rfm_features import RFMAggregator
from .customer_segmentation.segment_rules import SegmentClassifier, SegmentSettings
from .customer_segmentation.snapshot import AnalysisSnapshot

ALL_LOCATIONS = 'all'


@dataclass(frozen=True)
class AnalysisResult:
    """Successful outcome of one analysis run."""

    column_map: ColumnMap
    snapshot: AnalysisSnapshot
    rejections: RejectionReport
    anchor_date: Optional[date]
    location: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'columnMap': self.column_map.to_dict(),
            'segmentedData': self.snapshot.to_dict(),
        }


AnalysisOutcome = Union[AnalysisResult, ColumnMappingFailed]


class RFMAnalysisPipeline:
    """
    Column mapping, normalization, aggregation and classification in one call.

    Example:
        >>> pipeline = RFMAnalysisPipeline()
        >>> result = pipeline.analyze_csv(open("sales.csv").read())
        >>> result.snapshot.segment_counts()
    """

    def __init__(
        self,
        loader: Optional[DataLoader] = None,
        mapper: Optional[ColumnMapper] = None,
        normalizer: Optional[TransactionNormalizer] = None,
        aggregator: Optional[RFMAggregator] = None,
        classifier: Optional[SegmentClassifier] = None
    ):
        self.loader = loader or DataLoader()
        self.mapper = mapper or ColumnMapper()
        self.normalizer = normalizer or TransactionNormalizer()
        self.aggregator = aggregator or RFMAggregator()
        self.classifier = classifier or SegmentClassifier()

    def analyze_csv(
        self,
        content: Union[str, bytes],
        settings: Optional[SegmentSettings] = None,
        location: Optional[str] = None
    ) -> AnalysisOutcome:
        """
        Analyse raw CSV content.

        Args:
            content: CSV text or UTF-8 bytes (a BOM is tolerated)
            settings: Segment thresholds for this run
            location: Restrict to rows of one location value

        Returns:
            AnalysisResult, or ColumnMappingFailed when the required
            columns are missing
        """
        df = self.loader.read_csv_text(content)
        return self.analyze_frame(df, settings, location=location)

    def analyze_frame(
        self,
        df: pd.DataFrame,
        settings: Optional[SegmentSettings] = None,
        location: Optional[str] = None
    ) -> AnalysisOutcome:
        """
        Analyse a string-typed transaction frame.

        Args:
            df: Frame as produced by DataLoader
            settings: Segment thresholds for this run
            location: Restrict to rows of one location value; ignored when
                the file has no location column or the value is 'all'

        Returns:
            AnalysisResult or ColumnMappingFailed
        """
        settings = settings or SegmentSettings()

        mapping = self.mapper.detect(self.loader.get_headers(df))
        if isinstance(mapping, ColumnMappingFailed):
            logger.error(f"Column mapping failed: {mapping.reason}")
            return mapping

        if location and location != ALL_LOCATIONS and mapping.location is not None:
            df = self.filter_by_location(df, mapping, location)
        else:
            location = None

        normalized = self.normalizer.normalize(df, mapping)
        anchor = self.aggregator.compute_anchor_date(normalized.transactions)
        rfm = self.aggregator.calculate_rfm(normalized.transactions, reference_date=anchor)
        records = self.aggregator.to_records(rfm)
        snapshot = self.classifier.classify(records, settings)

        if snapshot.is_empty:
            logger.warning("No valid transactions found; all segments are empty")

        return AnalysisResult(
            column_map=mapping,
            snapshot=snapshot,
            rejections=normalized.report,
            anchor_date=anchor,
            location=location,
        )

    @staticmethod
    def filter_by_location(df: pd.DataFrame, column_map: ColumnMap, location: str) -> pd.DataFrame:
        """Rows whose location cell equals the given value."""
        filtered = df[df[column_map.location.name] == location]
        logger.info(f"Filtered to {len(filtered)} rows for location '{location}'")
        return filtered

    @staticmethod
    def list_locations(df: pd.DataFrame, column_map: ColumnMap) -> List[str]:
        """Distinct non-empty location values, sorted."""
        if column_map.location is None:
            return []
        values = df[column_map.location.name]
        return sorted({v for v in values if v})

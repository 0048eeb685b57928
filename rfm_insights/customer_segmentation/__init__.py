"""
Customer Segmentation Module
============================

Column mapping, RFM aggregation and rule-based segmentation.
"""

from .column_mapping import ColumnMap, ColumnMapper, ColumnMappingFailed
from .rfm_features import RFMAggregator, RFMRecord
from .segment_rules import SegmentClassifier, SegmentSettings
from .snapshot import AnalysisSnapshot, CustomerSummary, SegmentGroup
from .segment_analysis import SegmentAnalyzer

__all__ = [
    "ColumnMap",
    "ColumnMapper",
    "ColumnMappingFailed",
    "RFMAggregator",
    "RFMRecord",
    "SegmentClassifier",
    "SegmentSettings",
    "AnalysisSnapshot",
    "CustomerSummary",
    "SegmentGroup",
    "SegmentAnalyzer",
]

"""
RFM Insights
============

Retail transaction log analysis that classifies customers into behavioral
segments using Recency / Frequency / Monetary (RFM) rules:
- Column mapping inference from CSV headers
- Date/amount normalization with silent row skipping
- Per-customer RFM aggregation and rule-based segmentation
- Snapshot KPIs, historical comparison and drill-down tables
- History and settings persistence

Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Retail Analytics Team"

from .common import DataLoader, TransactionNormalizer, Reporter, load_config
from .customer_segmentation import (
    AnalysisSnapshot,
    ColumnMapper,
    ColumnMappingFailed,
    RFMAggregator,
    SegmentAnalyzer,
    SegmentClassifier,
    SegmentSettings,
)
from .pipeline import AnalysisResult, RFMAnalysisPipeline

__all__ = [
    "DataLoader",
    "TransactionNormalizer",
    "Reporter",
    "load_config",
    "AnalysisSnapshot",
    "ColumnMapper",
    "ColumnMappingFailed",
    "RFMAggregator",
    "SegmentAnalyzer",
    "SegmentClassifier",
    "SegmentSettings",
    "AnalysisResult",
    "RFMAnalysisPipeline",
]

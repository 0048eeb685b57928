"""
Reporting Module
================

Writes the results of an analysis run to disk: a JSON document with the
column map, KPIs, insights and full snapshot, and a CSV drill-down table
with one row per customer.

Usage:
    from rfm_insights.common import Reporter

    reporter = Reporter(output_dir="outputs/reports")
    paths = reporter.generate_segmentation_report(results, "march_upload")
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
from loguru import logger

REPORT_COLUMNS = ['segment', 'id', 'lastVisit', 'visits', 'spend']


class Reporter:
    """
    Report generation for RFM analysis results.

    Example:
        >>> reporter = Reporter(output_dir="outputs/reports")
        >>> reporter.generate_segmentation_report(results, "customer_segments")
    """

    def __init__(self, output_dir: str = "outputs/reports"):
        """
        Initialize Reporter.

        Args:
            output_dir: Directory for saving reports
        """
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Reporter initialized. Output: {self.output_dir}")

    def generate_segmentation_report(
        self,
        results: Dict[str, Any],
        report_name: str,
        formats: List[str] = ['csv', 'json']
    ) -> Dict[str, Path]:
        """
        Generate customer segmentation report.

        Args:
            results: Analysis results containing:
                - file_name: Name of the analysed file
                - column_map: Detected column map (dict form)
                - segmented_data: Snapshot in dict form
                - kpis: KPI dictionary
                - comparison: Optional KPI comparison dictionary
                - insights: List of insight dictionaries
                - rejected_rows: Optional rejection report dictionary
            report_name: Base name for report files
            formats: Output formats

        Returns:
            Dictionary of format -> file path
        """
        output_paths = {}
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        segmented = results.get('segmented_data', {})

        # CSV Export
        if 'csv' in formats:
            table = self.snapshot_to_frame(segmented)
            csv_path = self.output_dir / f"{report_name}_{timestamp}.csv"
            table.to_csv(csv_path, index=False)
            output_paths['csv'] = csv_path
            logger.info(f"Saved CSV report: {csv_path}")

        # JSON Export
        if 'json' in formats:
            json_path = self.output_dir / f"{report_name}_{timestamp}.json"

            json_data = {
                'generated_at': timestamp,
                'file_name': results.get('file_name'),
                'column_map': results.get('column_map', {}),
                'kpis': results.get('kpis', {}),
                'comparison': results.get('comparison'),
                'insights': results.get('insights', []),
                'rejected_rows': results.get('rejected_rows'),
                'segmentedData': segmented,
            }

            with open(json_path, 'w') as f:
                json.dump(json_data, f, indent=2)
            output_paths['json'] = json_path
            logger.info(f"Saved JSON report: {json_path}")

        logger.info(f"Generated segmentation report: {report_name}")
        return output_paths

    @staticmethod
    def snapshot_to_frame(segmented: Dict[str, Any]) -> pd.DataFrame:
        """Flatten a snapshot dict into one row per customer."""
        rows = [
            {'segment': name, **customer}
            for name, group in segmented.items()
            for customer in group.get('customers', [])
        ]
        return pd.DataFrame(rows, columns=REPORT_COLUMNS)

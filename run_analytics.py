#!/usr/bin/env python3
"""
RFM Insights - Main Runner
==========================

Command-line interface for segmenting customers from a transaction log.

Usage:
    python run_analytics.py --data data/sample_transactions.csv
    python run_analytics.py --data march.csv --save --user store-42
    python run_analytics.py --data april.csv --compare-with 3 --user store-42

Examples:
    # Segment one region only
    python run_analytics.py --data data/sample_transactions.csv --location North

    # Use custom thresholds from a config file
    python run_analytics.py --data sales.csv --config config/settings.yaml
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

from loguru import logger

from rfm_insights.common import DataLoader, Reporter, load_config
from rfm_insights.customer_segmentation import (
    ColumnMappingFailed,
    SegmentAnalyzer,
    SegmentSettings,
)
from rfm_insights.customer_segmentation.segment_analysis import format_delta
from rfm_insights.pipeline import RFMAnalysisPipeline
from rfm_insights.storage import (
    HistoryNotFoundError,
    HistoryStore,
    SettingsStore,
    create_session_factory,
)


def setup_logging(log_level: str = "INFO"):
    """Configure logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>"
    )


def run_segmentation(args, config) -> int:
    """Run customer segmentation pipeline."""
    logger.info("Starting Customer Segmentation Pipeline")

    # Settings are resolved once, before the run
    defaults = SegmentSettings.from_config(config)
    history = None
    settings = defaults
    if args.save or args.compare_with is not None or args.user_settings:
        session_factory = create_session_factory(config['database']['url'])
        history = HistoryStore(session_factory, list_limit=config['history']['list_limit'])
        if args.user_settings:
            settings = SettingsStore(session_factory, defaults=defaults).get(args.user)

    # Load data
    loader = DataLoader()
    df = loader.load_csv(args.data)
    logger.debug(f"Data summary: {loader.get_data_summary(df)}")

    pipeline = RFMAnalysisPipeline(loader=loader)
    result = pipeline.analyze_frame(df, settings, location=args.location)

    if isinstance(result, ColumnMappingFailed):
        logger.error(result.reason)
        return 1

    analyzer = SegmentAnalyzer.from_config(config)
    kpis = analyzer.calculate_kpis(result.snapshot)

    # Compare against a stored analysis
    comparison = None
    if args.compare_with is not None:
        try:
            historical = history.get_snapshot(args.user, args.compare_with)
        except HistoryNotFoundError as e:
            logger.error(str(e))
            return 1
        comparison = analyzer.compare(result.snapshot, historical)

    deltas = comparison.deltas if comparison else {}
    logger.info(f"Total Customers: {kpis.total_customers} {format_delta(deltas.get('totalCustomers'))}")
    logger.info(f"Average Spend: {kpis.avg_spend:,.2f} {format_delta(deltas.get('avgSpend'))}")
    logger.info(f"At-Risk Customers: {kpis.at_risk_count} {format_delta(deltas.get('atRiskCount'))}")
    logger.info(f"Champion Customers: {kpis.champion_count} {format_delta(deltas.get('championCount'))}")

    if result.column_map.location is not None:
        locations = pipeline.list_locations(df, result.column_map)
        logger.info(f"{result.column_map.location.label} values: {', '.join(locations)}")

    insights = analyzer.generate_insights(result.snapshot)
    for insight in insights:
        logger.info(f"[{insight.kind}] {insight.title}: {insight.message}")
    if not insights:
        logger.info("No high-priority recommendations. Segments appear healthy.")

    file_name = Path(args.data).name
    if args.save:
        history_id = history.save(args.user, file_name, datetime.now(), result.snapshot)
        logger.info(f"Saved analysis as history id {history_id}")

    # Generate report
    reporter = Reporter(output_dir=args.output)
    results = {
        'file_name': file_name,
        'column_map': result.column_map.to_dict(),
        'segmented_data': result.snapshot.to_dict(),
        'kpis': kpis.to_dict(),
        'comparison': comparison.to_dict() if comparison else None,
        'insights': [i.to_dict() for i in insights],
        'rejected_rows': result.rejections.to_dict(),
    }
    reporter.generate_segmentation_report(results, Path(args.data).stem)

    logger.info(f"Segmentation complete. Results saved to {args.output}")
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='RFM Insights',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    parser.add_argument(
        '--data',
        type=str,
        required=True,
        help='Path to input transaction CSV'
    )

    parser.add_argument(
        '--config',
        type=str,
        default='config/settings.yaml',
        help='Path to configuration file'
    )

    parser.add_argument(
        '--output',
        type=str,
        default='outputs',
        help='Output directory for results'
    )

    parser.add_argument(
        '--log-level',
        type=str,
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: from config)'
    )

    parser.add_argument(
        '--location',
        type=str,
        default=None,
        help="Only analyse rows of this location value ('all' for every row)"
    )

    # History options
    parser.add_argument(
        '--user',
        type=str,
        default='default',
        help='Owner of stored analyses and settings'
    )

    parser.add_argument(
        '--user-settings',
        action='store_true',
        help="Use the user's stored segment thresholds instead of the config"
    )

    parser.add_argument(
        '--save',
        action='store_true',
        help='Store the analysis in the history database'
    )

    parser.add_argument(
        '--compare-with',
        type=int,
        default=None,
        help='History id to compare KPIs against'
    )

    args = parser.parse_args()

    # Setup
    config = load_config(args.config)
    setup_logging(args.log_level or config['logging']['level'])

    # Create output directory
    Path(args.output).mkdir(parents=True, exist_ok=True)

    sys.exit(run_segmentation(args, config))


if __name__ == '__main__':
    main()

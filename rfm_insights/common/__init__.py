"""
Common utilities for the RFM insights suite.
"""

from .config import load_config
from .data_loader import DataLoader
from .preprocessing import TransactionNormalizer, parse_amount, parse_date
from .reporting import Reporter

__all__ = [
    "load_config",
    "DataLoader",
    "TransactionNormalizer",
    "parse_amount",
    "parse_date",
    "Reporter",
]

"""
Configuration Module
====================

Loads the YAML configuration for the RFM insights suite and merges it
over the built-in defaults.

Usage:
    from rfm_insights.common import load_config

    config = load_config("config/settings.yaml")
    url = config['database']['url']
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from loguru import logger


DEFAULT_CONFIG: Dict[str, Any] = {
    'segments': {
        'champion_recency': 30,
        'champion_frequency': 5,
        'at_risk_recency': 90,
    },
    'database': {
        'url': 'sqlite:///rfm_insights.db',
    },
    'history': {
        'list_limit': 10,
    },
    'explorer': {
        'max_rows': 100,
    },
    'insights': {
        'new_customer_ratio': 0.4,
        'upsell_min_champions': 10,
        'upsell_min_loyal': 20,
    },
    'logging': {
        'level': 'INFO',
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file, falling back to defaults.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Configuration dictionary with every default key present
    """
    user_config: Dict[str, Any] = {}

    if config_path and Path(config_path).exists():
        with open(config_path, 'r') as f:
            user_config = yaml.safe_load(f) or {}
        logger.debug(f"Loaded configuration from {config_path}")

    config = _deep_merge(DEFAULT_CONFIG, user_config)

    # Environment overrides
    database_url = os.getenv("RFM_DATABASE_URL")
    if database_url:
        config['database']['url'] = database_url

    return config

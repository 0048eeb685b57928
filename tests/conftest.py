"""Shared fixtures for the RFM insights test suite.

Every test that touches the database gets its own file-backed SQLite
database under ``tmp_path`` so stores never share state between tests.
"""

from pathlib import Path

import pytest

from rfm_insights.common import load_config
from rfm_insights.storage import create_session_factory

from .helpers import make_csv


@pytest.fixture
def scenario_csv() -> str:
    return make_csv([
        ("C1", "01/01/2024", "100"),
        ("C1", "15/01/2024", "50"),
        ("C2", "01/01/2024", "abc"),
    ])


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'rfm_test.db'}"


@pytest.fixture
def session_factory(database_url: str):
    return create_session_factory(database_url)


@pytest.fixture
def config(database_url: str) -> dict:
    cfg = load_config(None)
    cfg['database']['url'] = database_url
    return cfg

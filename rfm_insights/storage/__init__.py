"""
Storage Module
==============

SQLAlchemy-backed persistence for analysis history and user settings.
"""

from .client import create_session_factory, create_tables, session_scope
from .history import HistoryEntry, HistoryNotFoundError, HistoryStore
from .settings_store import SettingsStore

__all__ = [
    "create_session_factory",
    "create_tables",
    "session_scope",
    "HistoryEntry",
    "HistoryNotFoundError",
    "HistoryStore",
    "SettingsStore",
]

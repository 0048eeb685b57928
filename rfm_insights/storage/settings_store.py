"""
Per-user segment settings persistence.
"""

import json
from typing import Optional

from loguru import logger
from sqlalchemy.orm import sessionmaker

from ..customer_segmentation.segment_rules import SegmentSettings
from .client import session_scope
from .models import UserSettingsRecord


class SettingsStore:
    """
    Reads and writes SegmentSettings per user.

    Users without stored settings get ``defaults``.
    """

    def __init__(self, session_factory: sessionmaker, defaults: Optional[SegmentSettings] = None):
        self.session_factory = session_factory
        self.defaults = defaults or SegmentSettings()

    def get(self, user_id: str) -> SegmentSettings:
        with session_scope(self.session_factory) as session:
            record = session.get(UserSettingsRecord, user_id)
            stored = json.loads(record.settings) if record is not None else {}
        return SegmentSettings.from_mapping(stored, defaults=self.defaults)

    def save(self, user_id: str, settings: SegmentSettings) -> SegmentSettings:
        payload = json.dumps(settings.to_dict())
        with session_scope(self.session_factory) as session:
            record = session.get(UserSettingsRecord, user_id)
            if record is None:
                session.add(UserSettingsRecord(user_id=user_id, settings=payload))
            else:
                record.settings = payload
        logger.info(f"Saved settings for user {user_id}: {settings.to_dict()}")
        return settings

"""
Analysis History Store
======================

Stores analysis snapshots as opaque JSON blobs keyed by owning user, file
name and analysis timestamp, and reads them back for comparison.

Usage:
    from rfm_insights.storage import HistoryStore

    store = HistoryStore(session_factory)
    history_id = store.save("user-1", "march.csv", datetime.now(), snapshot)
    entries = store.list("user-1")
    historical = store.get_snapshot("user-1", entries[0].id)
"""

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Union

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.orm import sessionmaker

from ..customer_segmentation.snapshot import AnalysisSnapshot
from .client import session_scope
from .models import AnalysisRecord


class HistoryNotFoundError(LookupError):
    """No stored analysis with this id for this user."""


@dataclass(frozen=True)
class HistoryEntry:
    """Index fields of one stored analysis."""

    id: int
    file_name: str
    analysis_date: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'file_name': self.file_name,
            'analysis_date': self.analysis_date.isoformat(),
        }


class HistoryStore:
    """
    SQLAlchemy-backed analysis history.

    Example:
        >>> store = HistoryStore(create_session_factory("sqlite:///history.db"))
        >>> store.list("user-1")
        []
    """

    def __init__(self, session_factory: sessionmaker, list_limit: int = 10):
        """
        Initialize HistoryStore.

        Args:
            session_factory: Factory from create_session_factory
            list_limit: Number of entries returned by list()
        """
        self.session_factory = session_factory
        self.list_limit = list_limit

    def save(
        self,
        user_id: str,
        file_name: str,
        analysis_date: datetime,
        snapshot: Union[AnalysisSnapshot, Mapping[str, Any]]
    ) -> int:
        """
        Store a snapshot.

        Args:
            user_id: Owning user
            file_name: Name of the analysed file
            analysis_date: When the analysis ran
            snapshot: Snapshot or its plain-dict form

        Returns:
            Id of the new history record
        """
        if isinstance(snapshot, AnalysisSnapshot):
            snapshot = snapshot.to_dict()
        data = json.dumps({'segmentedData': snapshot})

        with session_scope(self.session_factory) as session:
            record = AnalysisRecord(
                user_id=user_id,
                file_name=file_name,
                analysis_date=analysis_date,
                data=data,
            )
            session.add(record)
            session.flush()
            history_id = record.id

        logger.info(f"Saved analysis {history_id} ({file_name}) for user {user_id}")
        return history_id

    def list(self, user_id: str, limit: Optional[int] = None) -> List[HistoryEntry]:
        """Most recent analyses of a user, newest first."""
        stmt = (
            select(AnalysisRecord.id, AnalysisRecord.file_name, AnalysisRecord.analysis_date)
            .where(AnalysisRecord.user_id == user_id)
            .order_by(AnalysisRecord.analysis_date.desc(), AnalysisRecord.id.desc())
            .limit(limit if limit is not None else self.list_limit)
        )
        with session_scope(self.session_factory) as session:
            rows = session.execute(stmt).all()
        return [HistoryEntry(id=r.id, file_name=r.file_name, analysis_date=r.analysis_date) for r in rows]

    def get(self, user_id: str, history_id: int) -> Dict[str, Any]:
        """
        Stored payload of one analysis.

        Returns:
            {'segmentedData': {...}} exactly as saved

        Raises:
            HistoryNotFoundError: If the record does not exist for this user
        """
        stmt = select(AnalysisRecord.data).where(
            AnalysisRecord.id == history_id,
            AnalysisRecord.user_id == user_id,
        )
        with session_scope(self.session_factory) as session:
            data = session.execute(stmt).scalar_one_or_none()

        if data is None:
            raise HistoryNotFoundError(f"History not found: {history_id}")
        return json.loads(data)

    def get_snapshot(self, user_id: str, history_id: int) -> AnalysisSnapshot:
        """Stored analysis rebuilt as an AnalysisSnapshot."""
        payload = self.get(user_id, history_id)
        return AnalysisSnapshot.from_dict(payload.get('segmentedData', {}))

    def clear(self, user_id: str) -> int:
        """Delete every analysis of a user; returns the number removed."""
        with session_scope(self.session_factory) as session:
            result = session.execute(delete(AnalysisRecord).where(AnalysisRecord.user_id == user_id))
            removed = result.rowcount
        logger.info(f"Cleared {removed} analyses for user {user_id}")
        return removed

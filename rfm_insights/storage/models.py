"""
ORM models for analysis history and per-user segment settings.

Both tables follow the same shape: a few index columns plus an opaque
JSON text payload.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class AnalysisRecord(Base):
    __tablename__ = "analyses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    file_name: Mapped[str] = mapped_column(String, nullable=False)
    analysis_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # {"segmentedData": {...}} serialized as JSON text
    data: Mapped[str] = mapped_column(Text, nullable=False)


class UserSettingsRecord(Base):
    __tablename__ = "user_settings"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    settings: Mapped[str] = mapped_column(Text, nullable=False)

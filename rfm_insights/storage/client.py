"""
SQLAlchemy engine/session helpers.

Usage
-----
from rfm_insights.storage.client import create_session_factory, session_scope

factory = create_session_factory("sqlite:///rfm_insights.db")
with session_scope(factory) as s:
    s.add(...)
"""

from contextlib import contextmanager
from typing import Iterator

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base


def create_session_factory(database_url: str, init_schema: bool = True) -> sessionmaker:
    """
    Build a session factory bound to a new engine.

    Args:
        database_url: SQLAlchemy database URL
        init_schema: Create the history/settings tables when missing

    Returns:
        sessionmaker producing Session objects
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Sessions are opened from API worker threads
        connect_args["check_same_thread"] = False
    engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)

    factory = sessionmaker(bind=engine, expire_on_commit=False, class_=Session)
    if init_schema:
        create_tables(factory)
    return factory


def create_tables(factory: sessionmaker) -> None:
    """Create missing tables on the factory's engine."""
    engine = factory.kw['bind']
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready: {engine.url.render_as_string(hide_password=True)}")


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

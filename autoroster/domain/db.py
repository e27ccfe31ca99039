"""Engine and session helpers."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .models import Base

logger = logging.getLogger(__name__)

DEFAULT_DB_URL = "sqlite:///autoroster.db"


def create_db_engine(db_url: str = DEFAULT_DB_URL, echo: bool = False) -> Engine:
    return create_engine(db_url, echo=echo)


def init_database(db_url: str = DEFAULT_DB_URL) -> None:
    """Create any missing tables; existing data is left alone."""
    Base.metadata.create_all(create_db_engine(db_url))
    logger.info("Database initialized: %s", db_url)


def get_session_factory(db_url: str = DEFAULT_DB_URL) -> sessionmaker:
    # Rows stay readable after commit; reports hand them back to callers
    return sessionmaker(bind=create_db_engine(db_url), expire_on_commit=False)


def get_session(db_url: str = DEFAULT_DB_URL) -> Session:
    return get_session_factory(db_url)()


def reset_database(db_url: str = DEFAULT_DB_URL) -> None:
    """Drop and recreate every table. All stored data is lost."""
    engine = create_db_engine(db_url)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    logger.warning("Database reset: %s", db_url)

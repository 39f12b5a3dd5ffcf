"""Database session management utilities."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from clinic.models import Base
from clinic.services.errors import SchedulingError
from clinic.utils.config import get_settings

LOGGER = logging.getLogger(__name__)


@lru_cache()
def get_engine() -> Engine:
    """Create the process-wide engine from settings on first use."""

    settings = get_settings()
    return create_engine(settings.database_url, future=True, echo=settings.sql_echo)


@lru_cache()
def get_sessionmaker() -> sessionmaker:
    return sessionmaker(
        bind=get_engine(),
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


def init_db(engine: Optional[Engine] = None) -> None:
    """Create every table known to the ORM metadata."""

    Base.metadata.create_all(bind=engine or get_engine())


@contextmanager
def get_session(factory: Optional[sessionmaker] = None) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session: Session = (factory or get_sessionmaker())()
    try:
        yield session
        session.commit()
    except SchedulingError:
        session.rollback()
        raise
    except Exception:
        LOGGER.exception("Unexpected failure; rolling back transaction")
        session.rollback()
        raise
    finally:
        session.close()


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding a request-scoped transactional session."""

    with get_session() as session:
        yield session

"""Shared fixtures: an in-memory database seeded with a small clinic."""

from datetime import time
from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from calendar_service.clinic_calendar import ClinicCalendar, Closure, DayHours
from calendar_service.memory_adapter import InMemoryScheduleSource
from clinic.services.db import init_db
from seed import NEXT_MONDAY, seed_clinic


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    factory = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )
    with factory() as session:
        seed_clinic(session)
        session.commit()
    return factory


@pytest.fixture
def session(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def memory_calendar() -> ClinicCalendar:
    """Same week as the seeded database, held in memory."""

    source = InMemoryScheduleSource(
        days=[
            DayHours(weekday=1, open_time=time(9), close_time=time(17)),
            DayHours(weekday=2, is_closed=True),
            DayHours(weekday=4, open_time=time(9), close_time=time(17)),
            DayHours(weekday=5, open_time=time(9), close_time=time(17)),
        ],
        closures=[Closure(date=NEXT_MONDAY, reason="Public holiday")],
    )
    return ClinicCalendar(source)

"""Clinic opening-hours ORM models."""

from __future__ import annotations

import datetime as dt
from datetime import datetime, time
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Integer,
    String,
    Time,
)
from sqlalchemy.orm import Mapped, mapped_column

from clinic.models.base import Base

DAY_NAMES = {
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
    7: "Sunday",
}


class ClinicDaySchedule(Base):
    """Weekly opening hours for one ISO weekday (1=Monday..7=Sunday)."""

    __tablename__ = "clinic_day_schedules"
    __table_args__ = (
        CheckConstraint("weekday BETWEEN 1 AND 7", name="ck_day_schedule_weekday"),
        CheckConstraint(
            "is_closed OR (open_time IS NOT NULL AND close_time IS NOT NULL"
            " AND open_time < close_time)",
            name="ck_day_schedule_window",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    weekday: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    open_time: Mapped[Optional[time]] = mapped_column(Time(), nullable=True)
    close_time: Mapped[Optional[time]] = mapped_column(Time(), nullable=True)
    is_closed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(),
        default=datetime.now,
        onupdate=datetime.now,
        nullable=False,
    )

    @property
    def day_name(self) -> str:
        return DAY_NAMES.get(self.weekday, "Unknown")


class ClosureException(Base):
    """One-off date overriding the weekly schedule (holiday, special closure)."""

    __tablename__ = "clinic_closure_exceptions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date(), unique=True, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_closed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(),
        default=datetime.now,
        nullable=False,
    )

"""Clinic hours persistence and administration."""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from calendar_service.clinic_calendar import ClinicCalendar, Closure, DayHours
from clinic.models.clinic import DAY_NAMES, ClinicDaySchedule, ClosureException
from clinic.services.errors import NotFoundError, ValidationError

LOGGER = logging.getLogger(__name__)

CLOSURE_REASON_MAX_LENGTH = 255


class SqlScheduleSource:
    """Schedule source reading day schedules and closures through a session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def day_schedule(self, weekday: int) -> Optional[DayHours]:
        row = self.session.scalars(
            select(ClinicDaySchedule).where(ClinicDaySchedule.weekday == weekday)
        ).first()
        if row is None:
            return None
        return DayHours.model_validate(row)

    def closure_on(self, day: date) -> Optional[Closure]:
        row = self.session.scalars(
            select(ClosureException).where(ClosureException.date == day)
        ).first()
        if row is None:
            return None
        return Closure.model_validate(row)

    def day_schedules(self) -> List[DayHours]:
        rows = self.session.scalars(
            select(ClinicDaySchedule).order_by(ClinicDaySchedule.weekday)
        ).all()
        return [DayHours.model_validate(row) for row in rows]

    def closures_from(self, day: date, limit: int) -> List[Closure]:
        rows = self.session.scalars(
            select(ClosureException)
            .where(
                ClosureException.date >= day,
                ClosureException.is_closed.is_(True),
            )
            .order_by(ClosureException.date)
            .limit(limit)
        ).all()
        return [Closure.model_validate(row) for row in rows]


def build_calendar(session: Session) -> ClinicCalendar:
    """Return a calendar backed by the database bound to ``session``."""

    return ClinicCalendar(SqlScheduleSource(session))


class ClinicHoursService:
    """Administrative writes to the weekly schedule and closure exceptions."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert_day(
        self,
        weekday: int,
        *,
        open_time: Optional[time],
        close_time: Optional[time],
        is_closed: bool,
    ) -> ClinicDaySchedule:
        """Create or replace the schedule for ``weekday``."""

        errors: Dict[str, List[str]] = {}
        if weekday not in DAY_NAMES:
            errors.setdefault("weekday", []).append(
                "Weekday must be between 1 (Monday) and 7 (Sunday)."
            )
        if not is_closed:
            if open_time is None:
                errors.setdefault("open_time", []).append("Please provide an open time.")
            if close_time is None:
                errors.setdefault("close_time", []).append("Please provide a close time.")
            if open_time is not None and close_time is not None and close_time <= open_time:
                errors.setdefault("close_time", []).append(
                    "Close time must be after open time."
                )
        if errors:
            raise ValidationError(errors)

        schedule = self.session.scalars(
            select(ClinicDaySchedule).where(ClinicDaySchedule.weekday == weekday)
        ).first()
        if schedule is None:
            schedule = ClinicDaySchedule(weekday=weekday)
            self.session.add(schedule)

        schedule.is_closed = is_closed
        schedule.open_time = None if is_closed else open_time
        schedule.close_time = None if is_closed else close_time
        self.session.flush()

        LOGGER.info(
            "Clinic schedule for %s set: closed=%s open=%s close=%s",
            schedule.day_name,
            schedule.is_closed,
            schedule.open_time,
            schedule.close_time,
        )
        return schedule

    def remove_day(self, weekday: int) -> None:
        schedule = self.session.scalars(
            select(ClinicDaySchedule).where(ClinicDaySchedule.weekday == weekday)
        ).first()
        if schedule is None:
            raise NotFoundError(f"No schedule configured for weekday {weekday}.")

        self.session.delete(schedule)
        self.session.flush()
        LOGGER.info("Clinic schedule for %s removed", DAY_NAMES[weekday])

    def add_closure(
        self,
        day: date,
        *,
        today: date,
        reason: Optional[str] = None,
        is_closed: bool = True,
    ) -> ClosureException:
        """Register a one-off closure for ``day``."""

        errors: Dict[str, List[str]] = {}
        if day < today:
            errors.setdefault("date", []).append("The date must be today or later.")
        existing = self.session.scalars(
            select(ClosureException).where(ClosureException.date == day)
        ).first()
        if existing is not None:
            errors.setdefault("date", []).append(
                "A closure exception already exists for this date."
            )
        if reason is not None and len(reason) > CLOSURE_REASON_MAX_LENGTH:
            errors.setdefault("reason", []).append(
                f"Reason may not be greater than {CLOSURE_REASON_MAX_LENGTH} characters."
            )
        if errors:
            raise ValidationError(errors)

        closure = ClosureException(date=day, reason=reason, is_closed=is_closed)
        self.session.add(closure)
        self.session.flush()
        LOGGER.info("Closure exception added for %s (%s)", day.isoformat(), reason)
        return closure

    def remove_closure(self, closure_id: int) -> None:
        closure = self.session.get(ClosureException, closure_id)
        if closure is None:
            raise NotFoundError(f"Closure exception {closure_id} not found.")

        self.session.delete(closure)
        self.session.flush()
        LOGGER.info("Closure exception %s removed", closure_id)

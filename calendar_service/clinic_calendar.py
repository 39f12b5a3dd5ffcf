"""Clinic opening-hours calendar.

Answers whether the clinic is open at a given instant by combining the weekly
day schedules with one-off closure exceptions. The calendar only reads; where
the data lives is decided by the injected :class:`ScheduleSource`.

Days without a usable schedule are always reported closed.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections import OrderedDict
from datetime import date, datetime, time
from typing import Dict, List, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict

LOGGER = logging.getLogger(__name__)

WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

NOT_OPEN_THIS_DAY = "The clinic is not open on this day."
CLOSED_THIS_DAY = "The clinic is closed on this day."
SPECIAL_CLOSURE = "Special closure"
WEEKLY_CLOSURE = "Standard weekly closure"
CLOSED_TODAY = "The clinic is currently closed today."


class DayHours(BaseModel):
    """Weekly opening hours for one ISO weekday."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    weekday: int
    open_time: Optional[time] = None
    close_time: Optional[time] = None
    is_closed: bool = False

    @property
    def is_usable(self) -> bool:
        return (
            not self.is_closed
            and self.open_time is not None
            and self.close_time is not None
            and self.open_time < self.close_time
        )


class Closure(BaseModel):
    """A dated override of the weekly schedule."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    date: dt.date
    reason: Optional[str] = None
    is_closed: bool = True


class OpeningWindow(BaseModel):
    """Half-open ``[open_time, close_time)`` interval of bookable times."""

    model_config = ConfigDict(frozen=True)

    open_time: time
    close_time: time

    def contains(self, moment: time) -> bool:
        return self.open_time <= moment < self.close_time


class OpeningStatus(BaseModel):
    """Outcome of an opening-hours lookup."""

    model_config = ConfigDict(frozen=True)

    open: bool
    reason: Optional[str] = None
    window: Optional[OpeningWindow] = None


class CurrentStatus(BaseModel):
    """Whether the clinic is open right now, phrased for display."""

    model_config = ConfigDict(frozen=True)

    is_open: bool
    message: str


class ScheduleSource(Protocol):
    """Read access to the clinic's stored schedule."""

    def day_schedule(self, weekday: int) -> Optional[DayHours]:
        ...

    def closure_on(self, day: date) -> Optional[Closure]:
        ...

    def day_schedules(self) -> Sequence[DayHours]:
        ...

    def closures_from(self, day: date, limit: int) -> Sequence[Closure]:
        ...


def format_clock(value: time) -> str:
    """Render a time of day as ``9:00 AM``."""

    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def closure_message(closure: Closure) -> str:
    return f"The clinic is closed on this date: {closure.reason or SPECIAL_CLOSURE}"


class ClinicCalendar:
    """Single source of truth for clinic opening hours."""

    def __init__(self, source: ScheduleSource) -> None:
        self.source = source

    # ------------------------------------------------------------------
    # Queries used by validation
    # ------------------------------------------------------------------
    def is_open_at(self, moment: datetime) -> OpeningStatus:
        """Return whether the clinic opens on the day of ``moment``."""

        return self.status_on(moment.date())

    @staticmethod
    def is_within_hours(moment: datetime, window: OpeningWindow) -> bool:
        """Return True when the time of day of ``moment`` falls in ``window``."""

        return window.contains(moment.time())

    def status_on(self, day: date) -> OpeningStatus:
        weekday = day.isoweekday()
        schedule = self.source.day_schedule(weekday)

        if schedule is None:
            return OpeningStatus(open=False, reason=NOT_OPEN_THIS_DAY)

        if schedule.is_closed:
            return OpeningStatus(open=False, reason=CLOSED_THIS_DAY)

        if not schedule.is_usable:
            LOGGER.warning(
                "Ignoring malformed schedule for weekday=%s open=%s close=%s",
                weekday,
                schedule.open_time,
                schedule.close_time,
            )
            return OpeningStatus(open=False, reason=NOT_OPEN_THIS_DAY)

        closure = self.source.closure_on(day)
        if closure is not None and closure.is_closed:
            return OpeningStatus(open=False, reason=closure_message(closure))

        return OpeningStatus(
            open=True,
            window=OpeningWindow(
                open_time=schedule.open_time,
                close_time=schedule.close_time,
            ),
        )

    # ------------------------------------------------------------------
    # Read-only summaries
    # ------------------------------------------------------------------
    def hours_for(self, day: date) -> OpeningStatus:
        """Summarize one date, letting a closure exception win over the weekday."""

        closure = self.source.closure_on(day)
        if closure is not None and closure.is_closed:
            return OpeningStatus(open=False, reason=closure_message(closure))

        schedule = self.source.day_schedule(day.isoweekday())
        if schedule is None or not schedule.is_usable:
            return OpeningStatus(open=False, reason=WEEKLY_CLOSURE)
        return self.status_on(day)

    def current_status(self, now: datetime) -> CurrentStatus:
        """Describe today's opening hours relative to ``now``."""

        today = self.hours_for(now.date())
        if not today.open:
            return CurrentStatus(is_open=False, message=CLOSED_TODAY)

        window = today.window
        moment = now.time()
        if window.contains(moment):
            return CurrentStatus(
                is_open=True,
                message=f"The clinic is open until {format_clock(window.close_time)}.",
            )
        if moment < window.open_time:
            return CurrentStatus(
                is_open=False,
                message=f"The clinic will open at {format_clock(window.open_time)}.",
            )
        return CurrentStatus(
            is_open=False,
            message=f"The clinic closed at {format_clock(window.close_time)}.",
        )

    def weekly_hours(self) -> Dict[str, str]:
        """Return Monday..Sunday mapped to ``"9:00 AM - 5:00 PM"`` or ``"Closed"``."""

        by_weekday = {item.weekday: item for item in self.source.day_schedules()}
        schedule: Dict[str, str] = OrderedDict()
        for index, name in enumerate(WEEKDAY_NAMES, start=1):
            day = by_weekday.get(index)
            if day is None or not day.is_usable:
                schedule[name] = "Closed"
            else:
                schedule[name] = (
                    f"{format_clock(day.open_time)} - {format_clock(day.close_time)}"
                )
        return schedule

    def upcoming_closures(self, today: date, limit: int = 5) -> List[Closure]:
        """Return closing exceptions dated today or later, soonest first."""

        closures = [
            closure
            for closure in self.source.closures_from(today, limit)
            if closure.is_closed and closure.date >= today
        ]
        closures.sort(key=lambda closure: closure.date)
        return closures[:limit]

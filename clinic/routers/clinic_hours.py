"""Clinic hours router."""

from __future__ import annotations

import datetime as dt
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from calendar_service.clinic_calendar import CurrentStatus, format_clock
from clinic.routers.deps import get_clock
from clinic.services.clinic_hours import ClinicHoursService, build_calendar
from clinic.services.db import get_db
from clinic.services.validator import Clock
from clinic.utils.config import Settings, get_settings

router = APIRouter()


class ClosureSummary(BaseModel):
    date: dt.date
    reason: Optional[str] = None


class OperatingHoursResponse(BaseModel):
    """Weekly schedule plus the next closures."""

    weekly_schedule: Dict[str, str]
    upcoming_closures: List[ClosureSummary]


class DayHoursResponse(BaseModel):
    date: dt.date
    status: str
    reason: Optional[str] = None
    open_time: Optional[str] = None
    close_time: Optional[str] = None


class DayScheduleRequest(BaseModel):
    open_time: Optional[dt.time] = None
    close_time: Optional[dt.time] = None
    is_closed: bool = False


class DayScheduleResponse(BaseModel):
    weekday: int
    day_name: str
    open_time: Optional[dt.time] = None
    close_time: Optional[dt.time] = None
    is_closed: bool


class ClosureRequest(BaseModel):
    date: dt.date
    reason: Optional[str] = None
    is_closed: bool = True


class ClosureResponse(BaseModel):
    id: int
    date: dt.date
    reason: Optional[str] = None
    is_closed: bool


@router.get("/hours", response_model=OperatingHoursResponse)
def operating_hours(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> OperatingHoursResponse:
    """Return the weekly schedule and upcoming closures."""

    calendar = build_calendar(db)
    closures = calendar.upcoming_closures(
        clock().date(),
        limit=settings.upcoming_closure_limit,
    )
    return OperatingHoursResponse(
        weekly_schedule=calendar.weekly_hours(),
        upcoming_closures=[
            ClosureSummary(date=closure.date, reason=closure.reason)
            for closure in closures
        ],
    )


@router.get("/status", response_model=CurrentStatus)
def current_status(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> CurrentStatus:
    """Return whether the clinic is open right now."""

    return build_calendar(db).current_status(clock())


@router.get("/hours/{day}", response_model=DayHoursResponse)
def hours_for_day(day: dt.date, db: Session = Depends(get_db)) -> DayHoursResponse:
    """Return whether the clinic opens on ``day`` and during which hours."""

    opening = build_calendar(db).hours_for(day)
    if not opening.open:
        return DayHoursResponse(date=day, status="Closed", reason=opening.reason)

    return DayHoursResponse(
        date=day,
        status="Open",
        open_time=format_clock(opening.window.open_time),
        close_time=format_clock(opening.window.close_time),
    )


@router.put("/schedule/{weekday}", response_model=DayScheduleResponse)
def set_day_schedule(
    weekday: int,
    payload: DayScheduleRequest,
    db: Session = Depends(get_db),
) -> DayScheduleResponse:
    schedule = ClinicHoursService(db).upsert_day(
        weekday,
        open_time=payload.open_time,
        close_time=payload.close_time,
        is_closed=payload.is_closed,
    )
    return DayScheduleResponse(
        weekday=schedule.weekday,
        day_name=schedule.day_name,
        open_time=schedule.open_time,
        close_time=schedule.close_time,
        is_closed=schedule.is_closed,
    )


@router.delete("/schedule/{weekday}", status_code=status.HTTP_204_NO_CONTENT)
def remove_day_schedule(weekday: int, db: Session = Depends(get_db)) -> Response:
    ClinicHoursService(db).remove_day(weekday)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/closures",
    response_model=ClosureResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_closure(
    payload: ClosureRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> ClosureResponse:
    closure = ClinicHoursService(db).add_closure(
        payload.date,
        today=clock().date(),
        reason=payload.reason,
        is_closed=payload.is_closed,
    )
    return ClosureResponse(
        id=closure.id,
        date=closure.date,
        reason=closure.reason,
        is_closed=closure.is_closed,
    )


@router.delete("/closures/{closure_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_closure(closure_id: int, db: Session = Depends(get_db)) -> Response:
    ClinicHoursService(db).remove_closure(closure_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

"""Filtered appointment listings."""

from __future__ import annotations

import datetime as dt
import logging
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.models.patient import Patient
from clinic.models.treatment import TreatmentRecord
from clinic.models.user import User
from clinic.services.errors import ValidationError

LOGGER = logging.getLogger(__name__)


class AppointmentFilters(BaseModel):
    """Optional criteria; unset fields do not restrict the listing."""

    model_config = ConfigDict(frozen=True)

    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    dentist_id: Optional[int] = None
    patient_id: Optional[int] = None
    status: Optional[AppointmentStatus] = None
    search: Optional[str] = None


class AppointmentSearch:
    """Read-side queries over appointments, newest start first."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def list_appointments(self, filters: AppointmentFilters) -> List[Appointment]:
        if (
            filters.start_date is not None
            and filters.end_date is not None
            and filters.end_date < filters.start_date
        ):
            raise ValidationError(
                {"end_date": "The end date must be on or after the start date."}
            )

        query = select(Appointment).options(
            selectinload(Appointment.patient),
            selectinload(Appointment.dentist),
            selectinload(Appointment.treatment_records).selectinload(
                TreatmentRecord.treatment_type
            ),
            selectinload(Appointment.treatment_records).selectinload(
                TreatmentRecord.teeth
            ),
        )

        # Date bounds apply to the calendar day of the start time.
        if filters.start_date is not None:
            start = dt.datetime.combine(filters.start_date, dt.time())
            query = query.where(Appointment.start_datetime >= start)
        if filters.end_date is not None:
            next_day = filters.end_date + dt.timedelta(days=1)
            end = dt.datetime.combine(next_day, dt.time())
            query = query.where(Appointment.start_datetime < end)
        if filters.dentist_id is not None:
            query = query.where(Appointment.dentist_id == filters.dentist_id)
        if filters.patient_id is not None:
            query = query.where(Appointment.patient_id == filters.patient_id)
        if filters.status is not None:
            query = query.where(Appointment.status == filters.status)

        term = (filters.search or "").strip()
        if term:
            pattern = f"%{term}%"
            query = query.where(
                or_(
                    Appointment.patient.has(
                        or_(
                            Patient.first_name.ilike(pattern),
                            Patient.last_name.ilike(pattern),
                        )
                    ),
                    Appointment.dentist.has(User.name.ilike(pattern)),
                )
            )

        query = query.order_by(Appointment.start_datetime.desc(), Appointment.id.desc())
        appointments = list(self.session.scalars(query).all())
        LOGGER.debug(
            "Appointment listing %s matched %s rows", filters, len(appointments)
        )
        return appointments

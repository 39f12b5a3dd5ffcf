"""Appointment request validation.

Every applicable rule is evaluated and the failures are returned together as a
field-keyed error map, the way a booking form expects them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from calendar_service.clinic_calendar import ClinicCalendar
from clinic.services.errors import ErrorMap, NotFoundError, ValidationError

LOGGER = logging.getLogger(__name__)

PURPOSE_MAX_LENGTH = 1000

OUTSIDE_CLINIC_HOURS = "Appointment time must be within clinic hours."

DentistLookup = Callable[[int], bool]
PatientLookup = Callable[[int], None]
TreatmentTypeLookup = Callable[[int], bool]
Clock = Callable[[], datetime]


class AppointmentRequest(BaseModel):
    """Requested appointment data as submitted by the booking form."""

    dentist_id: int
    patient_id: Optional[int] = None
    start_datetime: datetime
    end_datetime: Optional[datetime] = None
    treatment_type_ids: List[int] = Field(default_factory=list)
    purpose: Optional[str] = None

    @field_validator("start_datetime", "end_datetime")
    @classmethod
    def _as_local_time(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None or value.tzinfo is None:
            return value
        return value.astimezone().replace(tzinfo=None)

    @field_validator("purpose")
    @classmethod
    def _blank_purpose_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class ValidatedAppointment(BaseModel):
    """Appointment command that passed validation and may be persisted."""

    model_config = ConfigDict(frozen=True)

    dentist_id: int
    patient_id: Optional[int] = None
    start_datetime: datetime
    end_datetime: Optional[datetime] = None
    treatment_type_ids: Tuple[int, ...]
    purpose: Optional[str] = None


class AppointmentValidator:
    """Checks a proposed appointment against clinic hours and reference data."""

    def __init__(
        self,
        calendar: ClinicCalendar,
        *,
        is_dentist: DentistLookup,
        ensure_patient: PatientLookup,
        treatment_type_active: TreatmentTypeLookup,
        clock: Clock = datetime.now,
    ) -> None:
        self.calendar = calendar
        self.is_dentist = is_dentist
        self.ensure_patient = ensure_patient
        self.treatment_type_active = treatment_type_active
        self.clock = clock

    def validate_create(self, request: AppointmentRequest) -> ValidatedAppointment:
        """Validate a new booking; raises :class:`ValidationError` on failure."""

        return self._validate(request, creating=True)

    def validate_update(self, request: AppointmentRequest) -> ValidatedAppointment:
        """Validate a reschedule; the patient is fixed and therefore ignored."""

        return self._validate(request, creating=False)

    def collect_errors(self, request: AppointmentRequest, *, creating: bool) -> ErrorMap:
        errors: Dict[str, List[str]] = {}

        def add(field: str, message: str) -> None:
            errors.setdefault(field, []).append(message)

        try:
            if not self.is_dentist(request.dentist_id):
                add("dentist_id", "The selected user is not a dentist.")
        except NotFoundError:
            add("dentist_id", "The selected dentist does not exist.")

        if creating:
            if request.patient_id is None:
                add("patient_id", "Please select a patient.")
            else:
                try:
                    self.ensure_patient(request.patient_id)
                except NotFoundError:
                    add("patient_id", "The selected patient does not exist.")

        now = self.clock()
        if request.start_datetime <= now:
            add(
                "start_datetime",
                "Appointment must be scheduled for a future date and time.",
            )

        if (
            request.end_datetime is not None
            and request.end_datetime <= request.start_datetime
        ):
            add("end_datetime", "The end time must be after the start time.")

        if not request.treatment_type_ids:
            add("treatment_type_ids", "Please select at least one treatment type.")
        for type_id in _unique(request.treatment_type_ids):
            try:
                if not self.treatment_type_active(type_id):
                    add(
                        "treatment_type_ids",
                        f"The selected treatment type {type_id} is not active.",
                    )
            except NotFoundError:
                add(
                    "treatment_type_ids",
                    f"The selected treatment type {type_id} does not exist.",
                )

        if request.purpose is not None and len(request.purpose) > PURPOSE_MAX_LENGTH:
            add(
                "purpose",
                f"Purpose may not be greater than {PURPOSE_MAX_LENGTH} characters.",
            )

        status = self.calendar.is_open_at(request.start_datetime)
        if not status.open:
            add("start_datetime", status.reason or OUTSIDE_CLINIC_HOURS)
        elif not self.calendar.is_within_hours(request.start_datetime, status.window):
            add("start_datetime", OUTSIDE_CLINIC_HOURS)

        return errors

    def _validate(
        self,
        request: AppointmentRequest,
        *,
        creating: bool,
    ) -> ValidatedAppointment:
        errors = self.collect_errors(request, creating=creating)
        if errors:
            LOGGER.info(
                "Appointment request rejected: dentist=%s start=%s fields=%s",
                request.dentist_id,
                request.start_datetime,
                sorted(errors),
            )
            raise ValidationError(errors)

        return ValidatedAppointment(
            dentist_id=request.dentist_id,
            patient_id=request.patient_id if creating else None,
            start_datetime=request.start_datetime,
            end_datetime=request.end_datetime,
            treatment_type_ids=tuple(_unique(request.treatment_type_ids)),
            purpose=request.purpose,
        )


def _unique(values: List[int]) -> List[int]:
    seen = set()
    ordered: List[int] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered

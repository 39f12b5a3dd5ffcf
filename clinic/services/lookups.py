"""Database-backed reference lookups used during appointment validation."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from clinic.models.patient import Patient
from clinic.models.treatment import TreatmentType
from clinic.models.user import User
from clinic.services.clinic_hours import build_calendar
from clinic.services.errors import NotFoundError
from clinic.services.validator import AppointmentValidator, Clock


class SqlLookups:
    """Resolves users, patients and treatment types through a session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def is_dentist(self, user_id: int) -> bool:
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found.")
        return user.is_dentist

    def ensure_patient(self, patient_id: int) -> None:
        if self.session.get(Patient, patient_id) is None:
            raise NotFoundError(f"Patient {patient_id} not found.")

    def treatment_type_active(self, treatment_type_id: int) -> bool:
        treatment_type = self.session.get(TreatmentType, treatment_type_id)
        if treatment_type is None:
            raise NotFoundError(f"Treatment type {treatment_type_id} not found.")
        return treatment_type.is_active


def build_validator(session: Session, clock: Clock = datetime.now) -> AppointmentValidator:
    """Wire a validator to the database bound to ``session``."""

    lookups = SqlLookups(session)
    return AppointmentValidator(
        build_calendar(session),
        is_dentist=lookups.is_dentist,
        ensure_patient=lookups.ensure_patient,
        treatment_type_active=lookups.treatment_type_active,
        clock=clock,
    )

"""ORM models; importing the package registers every mapped class."""

from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.models.audit import AuditLog
from clinic.models.base import Base
from clinic.models.clinic import ClinicDaySchedule, ClosureException
from clinic.models.patient import Patient
from clinic.models.treatment import (
    Tooth,
    TreatmentRecord,
    TreatmentRecordFile,
    TreatmentType,
)
from clinic.models.user import User, UserRole

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "AuditLog",
    "Base",
    "ClinicDaySchedule",
    "ClosureException",
    "Patient",
    "Tooth",
    "TreatmentRecord",
    "TreatmentRecordFile",
    "TreatmentType",
    "User",
    "UserRole",
]

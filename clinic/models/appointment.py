"""Appointment model definition."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.models.base import Base

if TYPE_CHECKING:
    from clinic.models.patient import Patient
    from clinic.models.treatment import TreatmentRecord
    from clinic.models.user import User
else:  # pragma: no cover - typing runtime fallback
    Patient = "Patient"  # type: ignore[assignment]
    TreatmentRecord = "TreatmentRecord"  # type: ignore[assignment]
    User = "User"  # type: ignore[assignment]


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states."""

    SCHEDULED = "Scheduled"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self]

    def can_transition_to(self, target: "AppointmentStatus") -> bool:
        return target in ALLOWED_TRANSITIONS[self]


ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.SCHEDULED: frozenset(
        {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED}
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
}


class Appointment(Base):
    """Represents a dentist appointment booking."""

    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint(
            "end_datetime IS NULL OR end_datetime > start_datetime",
            name="ck_appointment_end_after_start",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id"),
        nullable=False,
    )
    dentist_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
    )
    status: Mapped[AppointmentStatus] = mapped_column(
        SAEnum(
            AppointmentStatus,
            native_enum=False,
            length=32,
            values_callable=lambda statuses: [status.value for status in statuses],
        ),
        default=AppointmentStatus.SCHEDULED,
        nullable=False,
    )
    start_datetime: Mapped[datetime] = mapped_column(
        DateTime(),
        nullable=False,
    )
    end_datetime: Mapped[Optional[datetime]] = mapped_column(
        DateTime(),
        nullable=True,
    )
    purpose: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(),
        default=datetime.now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(),
        default=datetime.now,
        onupdate=datetime.now,
        nullable=False,
    )

    patient: Mapped["Patient"] = relationship(back_populates="appointments")
    dentist: Mapped["User"] = relationship(back_populates="appointments")
    treatment_records: Mapped[List["TreatmentRecord"]] = relationship(
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="TreatmentRecord.id",
    )

"""Treatment type and treatment record ORM models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clinic.models.base import Base

if TYPE_CHECKING:
    from clinic.models.appointment import Appointment
else:  # pragma: no cover - typing runtime fallback
    Appointment = "Appointment"  # type: ignore[assignment]


treatment_record_teeth = Table(
    "treatment_record_teeth",
    Base.metadata,
    Column(
        "treatment_record_id",
        ForeignKey("treatment_records.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tooth_id",
        ForeignKey("teeth.id", ondelete="CASCADE"),
        primary_key=True,
    ),
)


class TreatmentType(Base):
    """A billable treatment offered by the clinic."""

    __tablename__ = "treatment_types"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    standard_cost: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(8, 2),
        nullable=True,
    )
    is_per_tooth: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class Tooth(Base):
    """A tooth that can be referenced by treatment records."""

    __tablename__ = "teeth"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)


class TreatmentRecord(Base):
    """One treatment type performed (or planned) within an appointment."""

    __tablename__ = "treatment_records"
    __table_args__ = (
        UniqueConstraint(
            "appointment_id",
            "treatment_type_id",
            name="uq_treatment_record_appointment_type",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    appointment_id: Mapped[int] = mapped_column(
        ForeignKey("appointments.id", ondelete="CASCADE"),
        nullable=False,
    )
    treatment_type_id: Mapped[int] = mapped_column(
        ForeignKey("treatment_types.id"),
        nullable=False,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
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

    appointment: Mapped["Appointment"] = relationship(
        back_populates="treatment_records",
    )
    treatment_type: Mapped[TreatmentType] = relationship()
    files: Mapped[List["TreatmentRecordFile"]] = relationship(
        back_populates="treatment_record",
        cascade="all, delete-orphan",
        order_by="TreatmentRecordFile.id",
    )
    teeth: Mapped[List[Tooth]] = relationship(
        secondary=treatment_record_teeth,
        order_by=Tooth.id,
    )


class TreatmentRecordFile(Base):
    """An attachment stored against a treatment record."""

    __tablename__ = "treatment_record_files"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    treatment_record_id: Mapped[int] = mapped_column(
        ForeignKey("treatment_records.id", ondelete="CASCADE"),
        nullable=False,
    )
    file_path: Mapped[str] = mapped_column(String(512), nullable=False)
    original_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(),
        default=datetime.now,
        nullable=False,
    )

    treatment_record: Mapped[TreatmentRecord] = relationship(back_populates="files")

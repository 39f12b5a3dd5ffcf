"""Appointment scheduling router."""

from __future__ import annotations

import datetime as dt
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.models.treatment import TreatmentRecord
from clinic.routers.deps import get_clock
from clinic.services.appointment_search import AppointmentFilters, AppointmentSearch
from clinic.services.db import get_db
from clinic.services.lifecycle import AppointmentLifecycle
from clinic.services.lookups import build_validator
from clinic.services.treatment_records import (
    TreatmentRecordSet,
    record_price,
    total_price,
)
from clinic.services.validator import AppointmentRequest, Clock

router = APIRouter()


class CancelRequest(BaseModel):
    """Cancellation payload."""

    cancellation_reason: Optional[str] = None


class NotesRequest(BaseModel):
    notes: Optional[str] = None


class TeethRequest(BaseModel):
    tooth_ids: List[int] = Field(default_factory=list)


class TreatmentRecordResponse(BaseModel):
    """Serialized treatment record."""

    id: int
    treatment_type_id: int
    treatment_type_name: Optional[str] = None
    notes: Optional[str] = None
    tooth_ids: List[int] = Field(default_factory=list)
    file_names: List[str] = Field(default_factory=list)
    price: Decimal


class AppointmentResponse(BaseModel):
    """Serialized appointment with its treatment records."""

    id: int
    patient_id: int
    patient_name: Optional[str] = None
    dentist_id: int
    dentist_name: Optional[str] = None
    status: AppointmentStatus
    start_datetime: datetime
    end_datetime: Optional[datetime] = None
    purpose: Optional[str] = None
    cancellation_reason: Optional[str] = None
    treatment_records: List[TreatmentRecordResponse]
    total_amount: Decimal


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_appointment(
    payload: AppointmentRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AppointmentResponse:
    """Validate and book a new appointment."""

    command = build_validator(db, clock).validate_create(payload)
    appointment = AppointmentLifecycle(db).create(command)
    return _serialize(appointment)


@router.get("", response_model=List[AppointmentResponse])
def list_appointments(
    start_date: Optional[dt.date] = Query(default=None),
    end_date: Optional[dt.date] = Query(default=None),
    dentist_id: Optional[int] = Query(default=None),
    patient_id: Optional[int] = Query(default=None),
    status_filter: Optional[AppointmentStatus] = Query(default=None, alias="status"),
    search: Optional[str] = Query(default=None, max_length=255),
    db: Session = Depends(get_db),
) -> List[AppointmentResponse]:
    """List appointments matching the filters, latest start first."""

    filters = AppointmentFilters(
        start_date=start_date,
        end_date=end_date,
        dentist_id=dentist_id,
        patient_id=patient_id,
        status=status_filter,
        search=search,
    )
    appointments = AppointmentSearch(db).list_appointments(filters)
    return [_serialize(appointment) for appointment in appointments]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
) -> AppointmentResponse:
    return _serialize(AppointmentLifecycle(db).get(appointment_id))


@router.put("/{appointment_id}", response_model=AppointmentResponse)
def reschedule_appointment(
    appointment_id: int,
    payload: AppointmentRequest,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> AppointmentResponse:
    """Validate and apply new dentist, time, purpose or treatment types."""

    lifecycle = AppointmentLifecycle(db)
    appointment = lifecycle.get(appointment_id)
    lifecycle.ensure_reschedulable(appointment)

    command = build_validator(db, clock).validate_update(payload)
    lifecycle.reschedule(appointment, command)
    return _serialize(appointment)


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    payload: CancelRequest,
    db: Session = Depends(get_db),
) -> AppointmentResponse:
    lifecycle = AppointmentLifecycle(db)
    appointment = lifecycle.get(appointment_id)
    lifecycle.cancel(appointment, payload.cancellation_reason)
    return _serialize(appointment)


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
def complete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
) -> AppointmentResponse:
    lifecycle = AppointmentLifecycle(db)
    appointment = lifecycle.get(appointment_id)
    lifecycle.complete(appointment)
    return _serialize(appointment)


@router.put(
    "/{appointment_id}/records/{record_id}/notes",
    response_model=TreatmentRecordResponse,
)
def update_record_notes(
    appointment_id: int,
    record_id: int,
    payload: NotesRequest,
    db: Session = Depends(get_db),
) -> TreatmentRecordResponse:
    records = TreatmentRecordSet(db)
    record = records.get_record(appointment_id, record_id)
    records.update_notes(record, payload.notes)
    return _serialize_record(record)


@router.put(
    "/{appointment_id}/records/{record_id}/teeth",
    response_model=TreatmentRecordResponse,
)
def update_record_teeth(
    appointment_id: int,
    record_id: int,
    payload: TeethRequest,
    db: Session = Depends(get_db),
) -> TreatmentRecordResponse:
    records = TreatmentRecordSet(db)
    record = records.get_record(appointment_id, record_id)
    records.set_teeth(record, payload.tooth_ids)
    return _serialize_record(record)


def _serialize_record(record: TreatmentRecord) -> TreatmentRecordResponse:
    treatment_type = record.treatment_type
    return TreatmentRecordResponse(
        id=record.id,
        treatment_type_id=record.treatment_type_id,
        treatment_type_name=treatment_type.name if treatment_type else None,
        notes=record.notes,
        tooth_ids=[tooth.id for tooth in record.teeth],
        file_names=[item.original_name or item.file_path for item in record.files],
        price=record_price(record),
    )


def _serialize(appointment: Appointment) -> AppointmentResponse:
    records = appointment.treatment_records
    return AppointmentResponse(
        id=appointment.id,
        patient_id=appointment.patient_id,
        patient_name=appointment.patient.full_name if appointment.patient else None,
        dentist_id=appointment.dentist_id,
        dentist_name=appointment.dentist.name if appointment.dentist else None,
        status=appointment.status,
        start_datetime=appointment.start_datetime,
        end_datetime=appointment.end_datetime,
        purpose=appointment.purpose,
        cancellation_reason=appointment.cancellation_reason,
        treatment_records=[_serialize_record(record) for record in records],
        total_amount=total_price(records),
    )

"""Appointment lifecycle.

Appointments start ``Scheduled`` and end either ``Completed`` or ``Cancelled``;
both end states are final. Each operation only flushes, so the appointment
row, its treatment-record diff and the audit entry commit together in the
caller's session scope.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from clinic.models.appointment import Appointment, AppointmentStatus
from clinic.services.audit import AuditModule, AuditService, AuditTarget
from clinic.services.errors import (
    AlreadyCancelledError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from clinic.services.treatment_records import TreatmentRecordSet
from clinic.services.validator import ValidatedAppointment

LOGGER = logging.getLogger(__name__)

CANCELLATION_REASON_MIN_LENGTH = 10
CANCELLATION_REASON_MAX_LENGTH = 500


class AppointmentLifecycle:
    """Creates appointments and moves them through their states."""

    def __init__(
        self,
        session: Session,
        *,
        records: Optional[TreatmentRecordSet] = None,
        audit: Optional[AuditService] = None,
    ) -> None:
        self.session = session
        self.audit = audit or AuditService(session)
        self.records = records or TreatmentRecordSet(session, self.audit)

    def get(self, appointment_id: int) -> Appointment:
        appointment = self.session.get(Appointment, appointment_id)
        if appointment is None:
            raise NotFoundError(f"Appointment {appointment_id} not found.")
        return appointment

    @staticmethod
    def ensure_reschedulable(appointment: Appointment) -> None:
        if appointment.status != AppointmentStatus.SCHEDULED:
            raise InvalidStateError("Only scheduled appointments can be rescheduled.")

    def create(
        self,
        command: ValidatedAppointment,
        *,
        actor_id: Optional[int] = None,
    ) -> Appointment:
        """Persist a new ``Scheduled`` appointment with one record per treatment type."""

        if command.patient_id is None:
            raise ValidationError({"patient_id": "Please select a patient."})

        appointment = Appointment(
            patient_id=command.patient_id,
            dentist_id=command.dentist_id,
            start_datetime=command.start_datetime,
            end_datetime=command.end_datetime,
            purpose=command.purpose,
            status=AppointmentStatus.SCHEDULED,
        )
        self.session.add(appointment)
        self.session.flush()

        self.records.reconcile(appointment, command.treatment_type_ids)

        self.audit.log(
            activity_title="Appointment Created",
            message=f"Created appointment #{appointment.id} for patient #{appointment.patient_id}",
            module_type=AuditModule.APPOINTMENT_MANAGEMENT,
            target_type=AuditTarget.APPOINTMENT,
            target_id=appointment.id,
            new_value=_snapshot(appointment),
            actor_id=actor_id,
        )
        self.session.flush()
        LOGGER.info(
            "Appointment %s created: patient=%s dentist=%s start=%s",
            appointment.id,
            appointment.patient_id,
            appointment.dentist_id,
            appointment.start_datetime,
        )
        return appointment

    def reschedule(
        self,
        appointment: Appointment,
        command: ValidatedAppointment,
        *,
        actor_id: Optional[int] = None,
    ) -> Appointment:
        """Change dentist, times, purpose and treatment types of a scheduled visit."""

        self.ensure_reschedulable(appointment)

        old_value = _snapshot(appointment)

        appointment.dentist_id = command.dentist_id
        appointment.start_datetime = command.start_datetime
        appointment.end_datetime = command.end_datetime
        appointment.purpose = command.purpose
        self.session.flush()

        self.records.reconcile(appointment, command.treatment_type_ids)

        self.audit.log(
            activity_title="Appointment Updated",
            message=f"Updated appointment #{appointment.id}",
            module_type=AuditModule.APPOINTMENT_MANAGEMENT,
            target_type=AuditTarget.APPOINTMENT,
            target_id=appointment.id,
            old_value=old_value,
            new_value=_snapshot(appointment),
            actor_id=actor_id,
        )
        self.session.flush()
        LOGGER.info(
            "Appointment %s rescheduled: dentist=%s start=%s",
            appointment.id,
            appointment.dentist_id,
            appointment.start_datetime,
        )
        return appointment

    def cancel(
        self,
        appointment: Appointment,
        reason: Optional[str],
        *,
        actor_id: Optional[int] = None,
    ) -> Appointment:
        """Cancel a scheduled appointment, recording why."""

        if appointment.status == AppointmentStatus.CANCELLED:
            raise AlreadyCancelledError()
        if not appointment.status.can_transition_to(AppointmentStatus.CANCELLED):
            raise InvalidStateError("Only scheduled appointments can be cancelled.")

        cleaned = _check_cancellation_reason(reason)
        old_status = appointment.status

        appointment.status = AppointmentStatus.CANCELLED
        appointment.cancellation_reason = cleaned

        self.audit.log(
            activity_title="Appointment Cancelled",
            message=f"Cancelled appointment #{appointment.id}",
            module_type=AuditModule.APPOINTMENT_MANAGEMENT,
            target_type=AuditTarget.APPOINTMENT,
            target_id=appointment.id,
            old_value={"status": old_status.value},
            new_value={
                "status": AppointmentStatus.CANCELLED.value,
                "cancellation_reason": cleaned,
            },
            actor_id=actor_id,
        )
        self.session.flush()
        LOGGER.info("Appointment %s cancelled", appointment.id)
        return appointment

    def complete(
        self,
        appointment: Appointment,
        *,
        actor_id: Optional[int] = None,
    ) -> Appointment:
        """Mark a scheduled appointment as completed."""

        if not appointment.status.can_transition_to(AppointmentStatus.COMPLETED):
            raise InvalidStateError(
                "Only scheduled appointments can be marked as completed."
            )

        old_status = appointment.status
        appointment.status = AppointmentStatus.COMPLETED

        self.audit.log(
            activity_title="Appointment Completed",
            message=f"Marked appointment #{appointment.id} as completed",
            module_type=AuditModule.APPOINTMENT_MANAGEMENT,
            target_type=AuditTarget.APPOINTMENT,
            target_id=appointment.id,
            old_value={"status": old_status.value},
            new_value={"status": AppointmentStatus.COMPLETED.value},
            actor_id=actor_id,
        )
        self.session.flush()
        LOGGER.info("Appointment %s completed", appointment.id)
        return appointment


def _check_cancellation_reason(reason: Optional[str]) -> str:
    cleaned = (reason or "").strip()
    if not cleaned:
        message = "Please provide a reason for cancellation."
    elif len(cleaned) < CANCELLATION_REASON_MIN_LENGTH:
        message = (
            "Cancellation reason must be at least "
            f"{CANCELLATION_REASON_MIN_LENGTH} characters."
        )
    elif len(cleaned) > CANCELLATION_REASON_MAX_LENGTH:
        message = (
            "Cancellation reason may not be greater than "
            f"{CANCELLATION_REASON_MAX_LENGTH} characters."
        )
    else:
        return cleaned
    raise ValidationError({"cancellation_reason": message})


def _snapshot(appointment: Appointment) -> Dict[str, Any]:
    return {
        "dentist_id": appointment.dentist_id,
        "start_datetime": appointment.start_datetime.isoformat(),
        "end_datetime": (
            appointment.end_datetime.isoformat() if appointment.end_datetime else None
        ),
        "purpose": appointment.purpose,
        "status": appointment.status.value,
        "treatment_type_ids": sorted(
            record.treatment_type_id for record in appointment.treatment_records
        ),
    }

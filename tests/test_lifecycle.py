"""Appointment lifecycle: creation, rescheduling and state changes."""

from typing import Sequence

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from clinic.models import (
    Appointment,
    AppointmentStatus,
    AuditLog,
    Tooth,
    TreatmentRecord,
    TreatmentRecordFile,
)
from clinic.models.treatment import treatment_record_teeth
from clinic.services.db import get_session
from clinic.services.errors import (
    AlreadyCancelledError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from clinic.services.lifecycle import AppointmentLifecycle
from clinic.services.treatment_records import TreatmentRecordSet
from clinic.services.validator import ValidatedAppointment
from seed import DENTIST_ID, PATIENT_ID, SECOND_DENTIST_ID, STAFF_ID, THURSDAY, at


def make_command(
    type_ids: Sequence[int] = (1, 2),
    **overrides,
) -> ValidatedAppointment:
    payload = {
        "dentist_id": DENTIST_ID,
        "patient_id": PATIENT_ID,
        "start_datetime": at(THURSDAY, 10),
        "end_datetime": at(THURSDAY, 11),
        "treatment_type_ids": tuple(type_ids),
        "purpose": "Routine check-up",
    }
    payload.update(overrides)
    return ValidatedAppointment(**payload)


@pytest.fixture
def lifecycle(session: Session) -> AppointmentLifecycle:
    return AppointmentLifecycle(session)


@pytest.fixture
def appointment(lifecycle: AppointmentLifecycle) -> Appointment:
    return lifecycle.create(make_command(), actor_id=DENTIST_ID)


def count(session: Session, table) -> int:
    return session.execute(select(func.count()).select_from(table)).scalar_one()


def audit_titles(session: Session) -> list:
    return list(
        session.scalars(select(AuditLog.activity_title).order_by(AuditLog.id)).all()
    )


def test_create_schedules_with_one_record_per_type(
    session: Session,
    appointment: Appointment,
) -> None:
    assert appointment.id is not None
    assert appointment.status == AppointmentStatus.SCHEDULED
    assert sorted(r.treatment_type_id for r in appointment.treatment_records) == [1, 2]
    assert audit_titles(session) == ["Appointment Created"]

    entry = session.scalars(select(AuditLog)).one()
    assert entry.target_id == appointment.id
    assert entry.actor_id == DENTIST_ID
    assert entry.new_value["treatment_type_ids"] == [1, 2]


def test_create_requires_patient(lifecycle: AppointmentLifecycle) -> None:
    with pytest.raises(ValidationError) as excinfo:
        lifecycle.create(make_command(patient_id=None))

    assert excinfo.value.errors == {"patient_id": ["Please select a patient."]}


def test_get_unknown_appointment(lifecycle: AppointmentLifecycle) -> None:
    with pytest.raises(NotFoundError):
        lifecycle.get(404)


def test_reschedule_keeps_surviving_records(
    session: Session,
    lifecycle: AppointmentLifecycle,
    appointment: Appointment,
) -> None:
    by_type = {r.treatment_type_id: r for r in appointment.treatment_records}
    cleaning, filling = by_type[1], by_type[2]
    filling.notes = "Composite, upper right"
    cleaning.teeth = [session.get(Tooth, 11)]
    cleaning.files.append(TreatmentRecordFile(file_path="uploads/scan.png"))
    session.flush()
    filling_id = filling.id

    lifecycle.reschedule(
        appointment,
        make_command(
            (2, 3),
            dentist_id=SECOND_DENTIST_ID,
            start_datetime=at(THURSDAY, 14),
            end_datetime=None,
        ),
    )

    records = {r.treatment_type_id: r for r in appointment.treatment_records}
    assert sorted(records) == [2, 3]
    assert records[2].id == filling_id
    assert records[2].notes == "Composite, upper right"
    assert appointment.dentist_id == SECOND_DENTIST_ID
    assert appointment.start_datetime == at(THURSDAY, 14)
    assert appointment.end_datetime is None
    assert appointment.patient_id == PATIENT_ID
    assert count(session, TreatmentRecordFile.__table__) == 0
    assert count(session, treatment_record_teeth) == 0

    entry = session.scalars(select(AuditLog).order_by(AuditLog.id.desc())).first()
    assert entry.activity_title == "Appointment Updated"
    assert entry.old_value["treatment_type_ids"] == [1, 2]
    assert entry.new_value["treatment_type_ids"] == [2, 3]


@pytest.mark.parametrize(
    "status",
    [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED],
)
def test_terminal_appointments_cannot_be_rescheduled(
    lifecycle: AppointmentLifecycle,
    appointment: Appointment,
    status: AppointmentStatus,
) -> None:
    appointment.status = status

    with pytest.raises(InvalidStateError) as excinfo:
        lifecycle.reschedule(appointment, make_command((3,)))

    assert excinfo.value.code == "invalid_state"


def test_complete(session: Session, lifecycle: AppointmentLifecycle, appointment) -> None:
    lifecycle.complete(appointment)

    assert appointment.status == AppointmentStatus.COMPLETED
    assert audit_titles(session)[-1] == "Appointment Completed"

    with pytest.raises(InvalidStateError):
        lifecycle.complete(appointment)


def test_cancelled_appointment_cannot_be_completed(
    lifecycle: AppointmentLifecycle,
    appointment: Appointment,
) -> None:
    lifecycle.cancel(appointment, "Patient requested reschedule")

    with pytest.raises(InvalidStateError) as excinfo:
        lifecycle.complete(appointment)

    assert excinfo.value.message == (
        "Only scheduled appointments can be marked as completed."
    )


def test_cancel_stores_stripped_reason(
    session: Session,
    lifecycle: AppointmentLifecycle,
    appointment: Appointment,
) -> None:
    lifecycle.cancel(
        appointment,
        "  Patient requested reschedule  ",
        actor_id=STAFF_ID,
    )

    assert appointment.status == AppointmentStatus.CANCELLED
    assert appointment.cancellation_reason == "Patient requested reschedule"

    entry = session.scalars(select(AuditLog).order_by(AuditLog.id.desc())).first()
    assert entry.activity_title == "Appointment Cancelled"
    assert entry.old_value == {"status": "Scheduled"}
    assert entry.new_value == {
        "status": "Cancelled",
        "cancellation_reason": "Patient requested reschedule",
    }


def test_cancel_twice_reports_already_cancelled(
    lifecycle: AppointmentLifecycle,
    appointment: Appointment,
) -> None:
    lifecycle.cancel(appointment, "Patient requested reschedule")

    with pytest.raises(AlreadyCancelledError) as excinfo:
        lifecycle.cancel(appointment, "Patient requested reschedule")

    assert excinfo.value.code == "already_cancelled"
    assert excinfo.value.message == "This appointment is already cancelled."


def test_completed_appointment_cannot_be_cancelled(
    lifecycle: AppointmentLifecycle,
    appointment: Appointment,
) -> None:
    lifecycle.complete(appointment)

    with pytest.raises(InvalidStateError) as excinfo:
        lifecycle.cancel(appointment, "Patient requested reschedule")

    assert not isinstance(excinfo.value, AlreadyCancelledError)
    assert appointment.status == AppointmentStatus.COMPLETED


@pytest.mark.parametrize(
    ("reason", "message"),
    [
        (None, "Please provide a reason for cancellation."),
        ("   ", "Please provide a reason for cancellation."),
        ("ok", "Cancellation reason must be at least 10 characters."),
        ("x" * 501, "Cancellation reason may not be greater than 500 characters."),
    ],
)
def test_cancel_rejects_bad_reasons(
    lifecycle: AppointmentLifecycle,
    appointment: Appointment,
    reason,
    message: str,
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        lifecycle.cancel(appointment, reason)

    assert excinfo.value.errors == {"cancellation_reason": [message]}
    assert appointment.status == AppointmentStatus.SCHEDULED
    assert appointment.cancellation_reason is None


class ExplodingRecordSet(TreatmentRecordSet):
    """Fails after the records have already been flushed."""

    def reconcile(self, appointment, requested_type_ids):
        super().reconcile(appointment, requested_type_ids)
        raise RuntimeError("disk full")


def test_failed_create_leaves_nothing_behind(session_factory: sessionmaker) -> None:
    with pytest.raises(RuntimeError):
        with get_session(session_factory) as session:
            lifecycle = AppointmentLifecycle(
                session, records=ExplodingRecordSet(session)
            )
            lifecycle.create(make_command())

    with session_factory() as session:
        assert count(session, Appointment) == 0
        assert count(session, TreatmentRecord) == 0
        assert count(session, AuditLog) == 0


def test_failed_reschedule_keeps_committed_state(
    session_factory: sessionmaker,
) -> None:
    with get_session(session_factory) as session:
        appointment_id = AppointmentLifecycle(session).create(make_command()).id

    with pytest.raises(RuntimeError):
        with get_session(session_factory) as session:
            lifecycle = AppointmentLifecycle(
                session, records=ExplodingRecordSet(session)
            )
            lifecycle.reschedule(
                lifecycle.get(appointment_id),
                make_command((3,), dentist_id=SECOND_DENTIST_ID),
            )

    with session_factory() as session:
        stored = session.get(Appointment, appointment_id)
        assert stored.dentist_id == DENTIST_ID
        assert sorted(r.treatment_type_id for r in stored.treatment_records) == [1, 2]
        assert audit_titles(session) == ["Appointment Created"]

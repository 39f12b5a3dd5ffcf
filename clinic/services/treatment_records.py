"""Treatment records attached to appointments.

The set of records for an appointment follows its selected treatment types.
Reconciliation only inserts and deletes the difference, so records whose type
stays selected keep their notes, files and teeth.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic.models.appointment import Appointment
from clinic.models.treatment import Tooth, TreatmentRecord
from clinic.services.audit import AuditModule, AuditService, AuditTarget
from clinic.services.errors import NotFoundError, ValidationError

LOGGER = logging.getLogger(__name__)

NOTES_MAX_LENGTH = 5000


class ReconcileResult(BaseModel):
    """Treatment type ids touched by one reconciliation."""

    model_config = ConfigDict(frozen=True)

    added: Tuple[int, ...] = ()
    removed: Tuple[int, ...] = ()
    kept: Tuple[int, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.added or self.removed)


class TreatmentRecordSet:
    """Keeps an appointment's treatment records in line with its treatment types."""

    def __init__(self, session: Session, audit: Optional[AuditService] = None) -> None:
        self.session = session
        self.audit = audit or AuditService(session)

    def reconcile(
        self,
        appointment: Appointment,
        requested_type_ids: Iterable[int],
    ) -> ReconcileResult:
        """Insert and delete records so their types equal ``requested_type_ids``."""

        requested = set(requested_type_ids)
        records = appointment.treatment_records
        current = {record.treatment_type_id for record in records}

        to_remove = current - requested
        to_add = requested - current
        kept = current & requested

        for record in [r for r in records if r.treatment_type_id in to_remove]:
            records.remove(record)

        for type_id in sorted(to_add):
            records.append(TreatmentRecord(treatment_type_id=type_id))

        result = ReconcileResult(
            added=tuple(sorted(to_add)),
            removed=tuple(sorted(to_remove)),
            kept=tuple(sorted(kept)),
        )
        if result.changed:
            self.session.flush()
            LOGGER.info(
                "Appointment %s treatment types reconciled: added=%s removed=%s kept=%s",
                appointment.id,
                list(result.added),
                list(result.removed),
                list(result.kept),
            )
        return result

    def get_record(self, appointment_id: int, record_id: int) -> TreatmentRecord:
        record = self.session.scalars(
            select(TreatmentRecord).where(
                TreatmentRecord.id == record_id,
                TreatmentRecord.appointment_id == appointment_id,
            )
        ).first()
        if record is None:
            raise NotFoundError(
                f"Treatment record {record_id} not found for appointment {appointment_id}."
            )
        return record

    def update_notes(
        self,
        record: TreatmentRecord,
        notes: Optional[str],
        *,
        actor_id: Optional[int] = None,
    ) -> TreatmentRecord:
        if notes is not None and len(notes) > NOTES_MAX_LENGTH:
            raise ValidationError(
                {"notes": f"Notes may not be greater than {NOTES_MAX_LENGTH} characters."}
            )

        old_notes = record.notes
        record.notes = notes
        self.audit.log(
            activity_title="Treatment Notes Updated",
            message=f"Updated notes for treatment record #{record.id}",
            module_type=AuditModule.TREATMENT_MANAGEMENT,
            target_type=AuditTarget.TREATMENT_RECORD,
            target_id=record.id,
            old_value={"notes": old_notes},
            new_value={"notes": notes},
            actor_id=actor_id,
        )
        self.session.flush()
        return record

    def set_teeth(
        self,
        record: TreatmentRecord,
        tooth_ids: Iterable[int],
        *,
        actor_id: Optional[int] = None,
    ) -> TreatmentRecord:
        wanted = sorted(set(tooth_ids))
        teeth: List[Tooth] = []
        if wanted:
            teeth = list(
                self.session.scalars(select(Tooth).where(Tooth.id.in_(wanted))).all()
            )
        missing = sorted(set(wanted) - {tooth.id for tooth in teeth})
        if missing:
            raise ValidationError(
                {
                    "tooth_ids": [
                        f"The selected tooth {tooth_id} does not exist."
                        for tooth_id in missing
                    ]
                }
            )

        old_ids = [tooth.id for tooth in record.teeth]
        record.teeth = sorted(teeth, key=lambda tooth: tooth.id)
        self.audit.log(
            activity_title="Treatment Teeth Updated",
            message=f"Updated teeth for treatment record #{record.id}",
            module_type=AuditModule.TREATMENT_MANAGEMENT,
            target_type=AuditTarget.TREATMENT_RECORD,
            target_id=record.id,
            old_value={"tooth_ids": old_ids},
            new_value={"tooth_ids": wanted},
            actor_id=actor_id,
        )
        self.session.flush()
        return record


def record_price(record: TreatmentRecord) -> Decimal:
    """Price of one record; per-tooth types bill at least one tooth."""

    treatment_type = record.treatment_type
    if treatment_type is None:
        return Decimal("0.00")

    base_cost = treatment_type.standard_cost or Decimal("0.00")
    if treatment_type.is_per_tooth:
        return base_cost * max(1, len(record.teeth))
    return base_cost


def total_price(records: Iterable[TreatmentRecord]) -> Decimal:
    return sum((record_price(record) for record in records), Decimal("0.00"))

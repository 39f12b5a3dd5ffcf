"""Audit trail for scheduling changes."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from clinic.models.audit import AuditLog

LOGGER = logging.getLogger(__name__)


class AuditModule(str, Enum):
    APPOINTMENT_MANAGEMENT = "appointment-management"
    TREATMENT_MANAGEMENT = "treatment-management"


class AuditTarget(str, Enum):
    APPOINTMENT = "appointment"
    TREATMENT_RECORD = "treatment-record"


class AuditService:
    """Writes audit rows inside the caller's transaction."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def log(
        self,
        *,
        activity_title: str,
        message: str,
        module_type: AuditModule,
        target_type: Optional[AuditTarget] = None,
        target_id: Optional[int] = None,
        old_value: Optional[Dict[str, Any]] = None,
        new_value: Optional[Dict[str, Any]] = None,
        actor_id: Optional[int] = None,
    ) -> AuditLog:
        entry = AuditLog(
            actor_id=actor_id,
            activity_title=activity_title,
            message=message,
            module_type=module_type.value,
            target_type=target_type.value if target_type else None,
            target_id=target_id,
            old_value=old_value,
            new_value=new_value,
        )
        self.session.add(entry)
        LOGGER.debug("Audit: %s (%s #%s)", activity_title, entry.target_type, target_id)
        return entry

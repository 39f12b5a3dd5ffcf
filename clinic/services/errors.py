"""Typed errors raised by the scheduling core.

Every error here is an expected, recoverable condition meant to be rendered to
the end user. Anything else escaping a service is an unexpected fault.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Union

ErrorMap = Dict[str, List[str]]


class SchedulingError(Exception):
    """Base class for scheduling failures surfaced to the caller."""

    code = "scheduling_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """One or more fields failed validation."""

    code = "validation_error"

    def __init__(self, errors: Mapping[str, Union[str, Iterable[str]]]) -> None:
        normalized: ErrorMap = {}
        for field, messages in errors.items():
            if isinstance(messages, str):
                normalized[field] = [messages]
            else:
                normalized[field] = list(messages)
        self.errors = normalized
        summary = "; ".join(
            f"{field}: {', '.join(messages)}" for field, messages in normalized.items()
        )
        super().__init__(summary or "Validation failed.")


class InvalidStateError(SchedulingError):
    """A lifecycle transition was attempted from a state that forbids it."""

    code = "invalid_state"


class AlreadyCancelledError(InvalidStateError):
    """The appointment has already been cancelled."""

    code = "already_cancelled"

    def __init__(self, message: str = "This appointment is already cancelled.") -> None:
        super().__init__(message)


class NotFoundError(SchedulingError):
    """A referenced record does not exist."""

    code = "not_found"

"""Shared FastAPI dependencies."""

from datetime import datetime

from clinic.services.validator import Clock


def get_clock() -> Clock:
    """Return the clock used to judge whether a booking lies in the future."""

    return datetime.now

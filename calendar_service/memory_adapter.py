"""In-memory schedule source for fixtures and previews."""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List, Optional

from calendar_service.clinic_calendar import Closure, DayHours


class InMemoryScheduleSource:
    """Holds day schedules and closures in plain dictionaries."""

    def __init__(
        self,
        days: Iterable[DayHours] = (),
        closures: Iterable[Closure] = (),
    ) -> None:
        self._days: Dict[int, DayHours] = {}
        self._closures: Dict[date, Closure] = {}
        for day in days:
            self.set_day(day)
        for closure in closures:
            self.add_closure(closure)

    def set_day(self, day: DayHours) -> None:
        self._days[day.weekday] = day

    def add_closure(self, closure: Closure) -> None:
        self._closures[closure.date] = closure

    def day_schedule(self, weekday: int) -> Optional[DayHours]:
        return self._days.get(weekday)

    def closure_on(self, day: date) -> Optional[Closure]:
        return self._closures.get(day)

    def day_schedules(self) -> List[DayHours]:
        return [self._days[weekday] for weekday in sorted(self._days)]

    def closures_from(self, day: date, limit: int) -> List[Closure]:
        upcoming = sorted(
            (
                closure
                for closure in self._closures.values()
                if closure.is_closed and closure.date >= day
            ),
            key=lambda closure: closure.date,
        )
        return upcoming[:limit]

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime

from agenda.core.settings import clinic_tz
from agenda.utils.week import monday_of, shift_week


def local_today() -> date:
    return datetime.now(clinic_tz()).date()


class WeekNavigation:
    """Âncora da semana visível (sempre uma segunda-feira)."""

    def __init__(self, anchor: date | None = None, today: Callable[[], date] = local_today):
        self._today = today
        self.anchor = monday_of(anchor) if anchor else monday_of(today())

    def next(self) -> date:
        self.anchor = shift_week(self.anchor, 1)
        return self.anchor

    def previous(self) -> date:
        self.anchor = shift_week(self.anchor, -1)
        return self.anchor

    def today(self) -> date:
        self.anchor = monday_of(self._today())
        return self.anchor

    def current_date(self) -> date:
        return self._today()

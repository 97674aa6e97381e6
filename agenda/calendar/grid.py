"""Grade semanal de consultas (7 dias x 12 horas, 08:00..19:00).

Cada consulta ocupa uma única célula, definida pelo dia local e pela hora
truncada do início. A duração é só informação exibida, nunca altura na grade.
Consultas fora de [08, 19] simplesmente não aparecem.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from agenda.schemas.appointments import Appointment, status_meta
from agenda.utils.tz import combine_local
from agenda.utils.week import day_label, days_of, hours_of, week_label


@dataclass
class GridCell:
    day: date
    hour: int
    appointments: list[Appointment] = field(default_factory=list)

    @property
    def is_free(self) -> bool:
        return not self.appointments

    @property
    def start(self) -> datetime:
        return combine_local(self.day, self.hour)


@dataclass
class DayColumn:
    date: date
    is_today: bool = False

    @property
    def label(self) -> str:
        return day_label(self.date)


@dataclass
class HourRow:
    hour: int
    cells: list[GridCell]

    @property
    def label(self) -> str:
        return f"{self.hour:02d}:00"


@dataclass
class WeekGrid:
    anchor: date
    days: list[DayColumn]
    rows: list[HourRow]

    @property
    def label(self) -> str:
        return week_label(self.anchor)

    def cell(self, day: date, hour: int) -> GridCell | None:
        for row in self.rows:
            if row.hour != hour:
                continue
            for c in row.cells:
                if c.day == day:
                    return c
        return None

    def cells(self) -> list[GridCell]:
        return [c for row in self.rows for c in row.cells]


def slot_appointments(
    day: date, hour: int, appointments: Iterable[Appointment], tz: ZoneInfo
) -> list[Appointment]:
    """Consultas cujo início local cai em (day, hour); mantém a ordem de origem."""
    out = []
    for ap in appointments:
        lt = ap.local_start(tz)
        if (lt.year, lt.month, lt.day) == (day.year, day.month, day.day) and lt.hour == hour:
            out.append(ap)
    return out


def build_week_grid(
    anchor: date,
    appointments: Iterable[Appointment],
    tz: ZoneInfo,
    today: date | None = None,
) -> WeekGrid:
    days = days_of(anchor)
    hours = hours_of()

    # uma passada só: indexa por (data local, hora) preservando a ordem da API
    ap_map: dict[tuple[date, int], list[Appointment]] = {}
    for ap in appointments:
        lt = ap.local_start(tz)
        ap_map.setdefault((lt.date(), lt.hour), []).append(ap)

    rows = [
        HourRow(
            hour=hour,
            cells=[GridCell(day, hour, list(ap_map.get((day, hour), []))) for day in days],
        )
        for hour in hours
    ]
    columns = [DayColumn(d, is_today=(d == today)) for d in days]
    return WeekGrid(anchor=anchor, days=columns, rows=rows)


def cell_entry(ap: Appointment, tz: ZoneInfo) -> dict[str, Any]:
    meta = status_meta(ap.status)
    return {
        "id": ap.id,
        "time": ap.local_start(tz).strftime("%H:%M"),
        "patient_name": ap.patient_name or "Paciente",
        "dentist_name": ap.dentist_name or "Dentista",
        "duration": f"{ap.duration_minutes} min",
        "status_label": meta.label,
        "status_color": meta.color,
    }

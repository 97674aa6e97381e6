from __future__ import annotations

from datetime import date, datetime, time, timedelta

# Grade fixa: 08:00 .. 19:00 (inclusive), uma linha por hora
GRID_FIRST_HOUR = 8
GRID_LAST_HOUR = 19
DAYS_PER_WEEK = 7

PT_WEEKDAYS_SHORT = ["Seg", "Ter", "Qua", "Qui", "Sex", "Sáb", "Dom"]
PT_MONTHS = [
    "janeiro",
    "fevereiro",
    "março",
    "abril",
    "maio",
    "junho",
    "julho",
    "agosto",
    "setembro",
    "outubro",
    "novembro",
    "dezembro",
]


def monday_of(d: date) -> date:
    """Segunda-feira da semana de d (domingo volta seis dias)."""
    if isinstance(d, datetime):
        d = d.date()
    return d - timedelta(days=d.weekday())  # weekday(): Mon=0 .. Sun=6


def days_of(anchor: date) -> list[date]:
    return [anchor + timedelta(days=i) for i in range(DAYS_PER_WEEK)]


def hours_of() -> list[int]:
    return list(range(GRID_FIRST_HOUR, GRID_LAST_HOUR + 1))


def shift_week(anchor: date, weeks: int) -> date:
    return anchor + timedelta(days=7 * weeks)


def week_range(anchor: date) -> tuple[datetime, datetime]:
    """[segunda 00:00, domingo 23:59:59.999999] no horário de parede."""
    start = datetime.combine(anchor, time.min)
    end = datetime.combine(anchor + timedelta(days=DAYS_PER_WEEK - 1), time.max)
    return start, end


def fmt_long(d: date) -> str:
    return f"{d.day} de {PT_MONTHS[d.month - 1]} de {d.year}"


def week_label(anchor: date) -> str:
    end = anchor + timedelta(days=DAYS_PER_WEEK - 1)
    return f"{fmt_long(anchor)} - {fmt_long(end)}"


def day_label(d: date) -> str:
    return f"{PT_WEEKDAYS_SHORT[d.weekday()]} {d.day:02d}/{d.month:02d}"

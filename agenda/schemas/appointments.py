from __future__ import annotations

import enum
from datetime import datetime
from typing import NamedTuple
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from agenda.utils.tz import iso_utc, to_utc, to_wall_clock

MIN_DURATION_MINUTES = 15
DEFAULT_DURATION_MINUTES = 30


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class StatusMeta(NamedTuple):
    value: str
    label: str
    color: str


STATUS_TABLE: tuple[StatusMeta, ...] = (
    StatusMeta(AppointmentStatus.SCHEDULED.value, "Agendada", "blue"),
    StatusMeta(AppointmentStatus.CONFIRMED.value, "Confirmada", "green"),
    StatusMeta(AppointmentStatus.IN_PROGRESS.value, "Em andamento", "yellow"),
    StatusMeta(AppointmentStatus.COMPLETED.value, "Concluída", "gray"),
    StatusMeta(AppointmentStatus.CANCELLED.value, "Cancelada", "red"),
    StatusMeta(AppointmentStatus.NO_SHOW.value, "Não compareceu", "orange"),
)
_STATUS_BY_VALUE = {m.value: m for m in STATUS_TABLE}


def status_meta(value: str | AppointmentStatus | None) -> StatusMeta:
    key = value.value if isinstance(value, AppointmentStatus) else (value or "")
    # status desconhecido vindo da API: exibe cru, em cinza
    return _STATUS_BY_VALUE.get(key, StatusMeta(key, key or "-", "gray"))


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Appointment(_CamelModel):
    id: str
    patient_id: str
    dentist_id: str
    start_time: datetime
    duration_minutes: int
    status: str
    notes: str | None = None
    # desnormalizados pela API de leitura (não autoritativos)
    patient_name: str | None = None
    dentist_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def local_start(self, tz: ZoneInfo) -> datetime:
        return to_wall_clock(self.start_time, tz)


class AppointmentPayload(_CamelModel):
    """Corpo de POST/PUT /appointments (PUT é substituição completa)."""

    patient_id: str = Field(..., min_length=1)
    dentist_id: str = Field(..., min_length=1)
    start_time: datetime
    duration_minutes: int = Field(..., ge=MIN_DURATION_MINUTES)
    status: AppointmentStatus
    notes: str | None = None

    @classmethod
    def from_local(
        cls,
        *,
        patient_id: str,
        dentist_id: str,
        start_local: datetime,
        duration_minutes: int,
        status: AppointmentStatus | str,
        notes: str | None,
        tz: ZoneInfo,
    ) -> AppointmentPayload:
        return cls(
            patient_id=patient_id,
            dentist_id=dentist_id,
            start_time=to_utc(start_local, tz),
            duration_minutes=duration_minutes,
            status=status,
            notes=notes or None,
        )

    @field_serializer("start_time")
    def _ser_start_time(self, value: datetime) -> str:
        return iso_utc(value)

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

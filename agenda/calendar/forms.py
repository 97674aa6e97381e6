from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, ValidationError

from agenda.schemas.appointments import (
    DEFAULT_DURATION_MINUTES,
    MIN_DURATION_MINUTES,
    Appointment,
    AppointmentPayload,
    AppointmentStatus,
)
from agenda.utils.tz import truncate_to_minute

FIELD_MESSAGES = {
    "patient_id": "Selecione um paciente",
    "dentist_id": "Selecione um dentista",
    "start_time": "Data e hora são obrigatórias",
    "duration_minutes": f"A duração deve ser de pelo menos {MIN_DURATION_MINUTES} minutos",
    "status": "Status inválido",
}


@dataclass
class AppointmentForm:
    """Campos do modal; start_time é horário de parede (naive) da clínica."""

    patient_id: str = ""
    dentist_id: str = ""
    start_time: datetime | None = None
    duration_minutes: int | None = DEFAULT_DURATION_MINUTES
    status: str = AppointmentStatus.SCHEDULED.value
    notes: str = ""

    @classmethod
    def for_slot(cls, start: datetime) -> AppointmentForm:
        return cls(start_time=truncate_to_minute(start))

    @classmethod
    def from_appointment(cls, ap: Appointment, tz: ZoneInfo) -> AppointmentForm:
        return cls(
            patient_id=ap.patient_id,
            dentist_id=ap.dentist_id,
            start_time=truncate_to_minute(ap.local_start(tz)),
            duration_minutes=ap.duration_minutes,
            status=ap.status,
            notes=ap.notes or "",
        )

    @property
    def start_time_input(self) -> str:
        # formato de <input type="datetime-local">
        return self.start_time.strftime("%Y-%m-%dT%H:%M") if self.start_time else ""


class _FormRules(BaseModel):
    patient_id: str = Field(..., min_length=1)
    dentist_id: str = Field(..., min_length=1)
    start_time: datetime
    duration_minutes: int = Field(..., ge=MIN_DURATION_MINUTES)
    status: AppointmentStatus


def validate_form(form: AppointmentForm) -> dict[str, str]:
    """Erros por campo; dict vazio quando o formulário pode ser enviado."""
    try:
        _FormRules(**{k: v for k, v in asdict(form).items() if k != "notes"})
    except ValidationError as exc:
        errors: dict[str, str] = {}
        for err in exc.errors():
            name = str(err["loc"][0]) if err["loc"] else ""
            if name in FIELD_MESSAGES:
                errors.setdefault(name, FIELD_MESSAGES[name])
        return errors
    return {}


def to_payload(form: AppointmentForm, tz: ZoneInfo) -> AppointmentPayload:
    if validate_form(form):
        raise ValueError("Formulário inválido.")
    return AppointmentPayload.from_local(
        patient_id=form.patient_id,
        dentist_id=form.dentist_id,
        start_local=form.start_time,
        duration_minutes=form.duration_minutes,
        status=form.status,
        notes=form.notes,
        tz=tz,
    )


def parse_start_time(raw: str | None) -> datetime | None:
    if not raw:
        return None
    for fmt in ("%Y-%m-%dT%H:%M", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M"):
        try:
            return datetime.strptime(raw.strip(), fmt)
        except ValueError:
            continue
    return None


def parse_duration(raw: str | int | None) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def form_fields_from_input(data: Mapping[str, str]) -> dict:
    """Converte o POST do modal (strings) nos tipos do AppointmentForm."""
    fields: dict = {}
    for name in ("patient_id", "dentist_id", "status", "notes"):
        if name in data:
            fields[name] = (data.get(name) or "").strip()
    if "start_time" in data:
        fields["start_time"] = parse_start_time(data.get("start_time"))
    if "duration_minutes" in data:
        fields["duration_minutes"] = parse_duration(data.get("duration_minutes"))
    return fields

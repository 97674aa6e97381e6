from __future__ import annotations

from datetime import UTC, date, datetime, time
from zoneinfo import ZoneInfo

BR_TZ = ZoneInfo("America/Sao_Paulo")


def ensure_aware_utc(dt: datetime) -> datetime:
    """
    Garante que dt é timezone-aware em UTC.
    - Se já vier aware: converte para UTC.
    - Se vier naive: ERRO (evita enviar horário errado para a API).
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Datetime naive recebido. Sempre use datetimes timezone-aware."
        )
    return dt.astimezone(UTC)


def to_utc(dt: datetime, tz: ZoneInfo | None = None) -> datetime:
    """
    Converte um datetime (naive ou aware) para UTC.
    - Naive: assume tz fornecida (padrão BR), é o horário de parede do formulário.
    - Aware: só converte para UTC.
    """
    tz = tz or BR_TZ
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return dt.astimezone(UTC)


def to_wall_clock(dt: datetime, tz: ZoneInfo | None = None) -> datetime:
    """
    Horário de parede (naive) na TZ da clínica.
    A API pode devolver timestamps com offset ou sem; naive já é local.
    """
    tz = tz or BR_TZ
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(tz).replace(tzinfo=None)


def truncate_to_minute(dt: datetime) -> datetime:
    return dt.replace(second=0, microsecond=0)


def combine_local(d: date, hour: int) -> datetime:
    """Início exato de uma célula da grade: dia às HH:00:00 (naive, local)."""
    return datetime.combine(d, time(hour, 0, 0, 0))


def iso_utc(dt: datetime) -> str:
    """
    Serializa em ISO 8601 sempre em UTC com sufixo 'Z'.
    """
    return ensure_aware_utc(dt).isoformat().replace("+00:00", "Z")

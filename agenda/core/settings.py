from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Env(str, Enum):
    DEV = "dev"
    HML = "hml"
    PROD = "prod"


class Settings(BaseSettings):
    APP_ENV: Env = Env.DEV
    DEBUG: bool = False

    # API de consultas/pacientes/dentistas (backend da clínica)
    API_BASE_URL: str = "http://localhost:8080/api"
    API_TOKEN: str | None = None
    API_TIMEOUT_SECONDS: float = 10.0

    # Fuso da clínica: a grade semanal é sempre montada em hora local
    CLINIC_TZ: str = "America/Sao_Paulo"

    SESSION_SECRET: str = "dev-change-me"
    SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 8  # 8h
    SESSION_STORE_MAX: int = 1000  # agendas abertas mantidas em memória
    SECURE_COOKIES: bool = False
    ALLOWED_HOSTS: str = "localhost,127.0.0.1"

    LOG_JSON: bool = True
    LOG_LEVEL: str = "INFO"

    @field_validator("CLINIC_TZ")
    @classmethod
    def _known_zone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"CLINIC_TZ desconhecido: {v!r}") from exc
        return v

    model_config = SettingsConfigDict(
        env_file=".env.dev",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# cria instância global
settings = Settings()


def clinic_tz() -> ZoneInfo:
    return ZoneInfo(settings.CLINIC_TZ)

from __future__ import annotations

from datetime import date
from typing import Any, Protocol, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from agenda.core.logging import get_logger
from agenda.core.settings import settings
from agenda.schemas.appointments import Appointment, AppointmentPayload
from agenda.schemas.people import Dentist, Patient

ModelT = TypeVar("ModelT", bound=BaseModel)


class CollaboratorError(Exception):
    """Falha de uma chamada à API da clínica (rede ou resposta de erro)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AppointmentGateway(Protocol):
    async def fetch_appointments_by_range(
        self, start_date: date, end_date: date
    ) -> list[Appointment]: ...

    async def create_appointment(self, payload: AppointmentPayload) -> Appointment: ...

    async def update_appointment(
        self, appointment_id: str, payload: AppointmentPayload
    ) -> Appointment: ...

    async def delete_appointment(self, appointment_id: str) -> None: ...

    async def list_patients(self) -> list[Patient]: ...

    async def list_dentists(self) -> list[Dentist]: ...


def _error_message(response: httpx.Response) -> str:
    # backend responde {"message": "..."} em erros de regra de negócio
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Erro {response.status_code} na API da clínica"


class ClinicApiClient:
    """Cliente HTTP (httpx) para /appointments, /patients e /dentists."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        token = token if token is not None else settings.API_TOKEN
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=(base_url or settings.API_BASE_URL).rstrip("/"),
            headers=headers,
            timeout=timeout if timeout is not None else settings.API_TIMEOUT_SECONDS,
            transport=transport,
        )
        self._log = get_logger().bind(component="api_client")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            self._log.warning("api.transport_error", method=method, url=url, error=str(exc))
            raise CollaboratorError("Não foi possível contatar a API da clínica") from exc

        if response.is_error:
            self._log.warning(
                "api.error_status",
                method=method,
                url=url,
                status_code=response.status_code,
            )
            raise CollaboratorError(_error_message(response), response.status_code)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _parse(self, model: type[ModelT], data: Any) -> ModelT:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            self._log.warning("api.invalid_payload", model=model.__name__, errors=exc.error_count())
            raise CollaboratorError("Resposta inválida da API da clínica") from exc

    async def fetch_appointments_by_range(
        self, start_date: date, end_date: date
    ) -> list[Appointment]:
        data = await self._request(
            "GET",
            "/appointments",
            params={
                "startDate": start_date.isoformat(),
                "endDate": end_date.isoformat(),
            },
        )
        return [self._parse(Appointment, item) for item in data or []]

    async def create_appointment(self, payload: AppointmentPayload) -> Appointment:
        data = await self._request("POST", "/appointments", json=payload.to_wire())
        return self._parse(Appointment, data)

    async def update_appointment(
        self, appointment_id: str, payload: AppointmentPayload
    ) -> Appointment:
        data = await self._request(
            "PUT", f"/appointments/{appointment_id}", json=payload.to_wire()
        )
        return self._parse(Appointment, data)

    async def delete_appointment(self, appointment_id: str) -> None:
        await self._request("DELETE", f"/appointments/{appointment_id}")

    async def list_patients(self) -> list[Patient]:
        data = await self._request("GET", "/patients")
        return [self._parse(Patient, item) for item in data or []]

    async def list_dentists(self) -> list[Dentist]:
        data = await self._request("GET", "/dentists")
        return [self._parse(Dentist, item) for item in data or []]

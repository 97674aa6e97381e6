from __future__ import annotations

from fastapi import Depends, Request

from agenda.calendar.controller import CalendarController
from agenda.calendar.session import SessionStore
from agenda.core.logging import set_calendar_session
from agenda.core.settings import settings
from agenda.services.api_client import AppointmentGateway, ClinicApiClient

SESSION_KEY = "calendar_sid"

_client: ClinicApiClient | None = None
session_store = SessionStore(
    max_age_seconds=settings.SESSION_MAX_AGE_SECONDS,
    max_sessions=settings.SESSION_STORE_MAX,
)


def get_gateway() -> AppointmentGateway:
    global _client
    if _client is None:
        _client = ClinicApiClient()
    return _client


async def close_gateway() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def get_session_store() -> SessionStore:
    return session_store


async def get_controller(
    request: Request,
    gateway: AppointmentGateway = Depends(get_gateway),  # noqa: B008
    store: SessionStore = Depends(get_session_store),  # noqa: B008
) -> CalendarController:
    # cookie assinado guarda só o token; o estado fica no SessionStore
    session = store.get(request.session.get(SESSION_KEY))
    if session is None:
        session = store.create(gateway)
        request.session[SESSION_KEY] = session.id
    set_calendar_session(session.id)

    controller = CalendarController(session)
    await controller.start()
    return controller

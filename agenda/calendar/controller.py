from __future__ import annotations

from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from agenda.calendar.forms import AppointmentForm, to_payload, validate_form
from agenda.calendar.grid import WeekGrid, build_week_grid
from agenda.calendar.session import (
    AppointmentModal,
    CalendarSession,
    ModalMode,
    ModalState,
    Notice,
)
from agenda.core.logging import get_logger, session_label
from agenda.core.settings import clinic_tz
from agenda.schemas.appointments import Appointment
from agenda.services.api_client import AppointmentGateway, CollaboratorError
from agenda.utils.tz import truncate_to_minute

MSG_LOAD_ERROR = "Erro ao carregar consultas"
MSG_CREATED = "Consulta criada com sucesso"
MSG_UPDATED = "Consulta atualizada com sucesso"
MSG_DELETED = "Consulta excluída com sucesso"
MSG_DELETE_ERROR = "Erro ao excluir consulta"


class CalendarController:
    """Único ponto de mutação de uma CalendarSession."""

    def __init__(self, session: CalendarSession, tz: ZoneInfo | None = None):
        self.session = session
        self.tz = tz or clinic_tz()
        self.log = get_logger(calendar_session=session_label(session.id))

    @property
    def gateway(self) -> AppointmentGateway:
        return self.session.cache.gateway

    @property
    def anchor(self) -> date:
        return self.session.navigation.anchor

    @property
    def appointments(self) -> list[Appointment]:
        return self.session.cache.appointments

    @property
    def modal(self) -> AppointmentModal:
        return self.session.modal

    # --------------------------
    # Notices
    # --------------------------
    def _notify(self, level: str, message: str) -> None:
        self.session.notices.append(Notice(level, message))

    def pop_notices(self) -> list[Notice]:
        notices, self.session.notices = self.session.notices, []
        return notices

    # --------------------------
    # Carga & navegação semanal
    # --------------------------
    async def _load(self) -> bool:
        try:
            return await self.session.cache.load(self.anchor)
        except CollaboratorError:
            # mantém a coleção anterior (desatualizada, mas presente)
            self._notify("error", MSG_LOAD_ERROR)
            return False

    async def start(self) -> None:
        if self.session.started:
            return
        self.session.started = True
        await self._load()

    async def refresh(self) -> bool:
        return await self._load()

    async def next_week(self) -> date:
        self.session.navigation.next()
        await self._load()
        return self.anchor

    async def previous_week(self) -> date:
        self.session.navigation.previous()
        await self._load()
        return self.anchor

    async def go_to_today(self) -> date:
        self.session.navigation.today()
        await self._load()
        return self.anchor

    def grid(self) -> WeekGrid:
        return build_week_grid(
            self.anchor,
            self.appointments,
            self.tz,
            today=self.session.navigation.current_date(),
        )

    # --------------------------
    # Cliques na grade
    # --------------------------
    async def click_cell(self, day: date, hour: int) -> bool:
        """Célula vazia abre criação; célula ocupada não faz nada."""
        cell = self.grid().cell(day, hour)
        if cell is None:
            raise ValueError("Célula fora da grade semanal.")
        if not cell.is_free:
            self.log.info("slot.occupied", day=day.isoformat(), hour=hour)
            return False
        await self.open_create(cell.start)
        return True

    async def click_appointment(self, appointment_id: str) -> Appointment:
        ap = self.session.cache.find(appointment_id)
        if ap is None:
            raise LookupError(appointment_id)
        await self.open_edit(ap)
        return ap

    # --------------------------
    # Modal (criar/editar)
    # --------------------------
    async def _load_lookups(self) -> None:
        # recarrega a cada abertura; falha aqui não impede o modal
        modal = self.modal
        try:
            modal.patients = await self.gateway.list_patients()
        except CollaboratorError as exc:
            self.log.warning("lookups.patients.error", error=exc.message)
            modal.patients = []
        try:
            modal.dentists = await self.gateway.list_dentists()
        except CollaboratorError as exc:
            self.log.warning("lookups.dentists.error", error=exc.message)
            modal.dentists = []

    async def open_create(self, start: datetime | None = None) -> AppointmentModal:
        self.close_modal()
        if start is None:
            start = datetime.now(self.tz).replace(tzinfo=None)
        modal = self.modal
        modal.mode = ModalMode.CREATE
        modal.form = AppointmentForm.for_slot(start)
        await self._load_lookups()
        modal.state = ModalState.OPEN
        self.log.info("modal.open", mode="create", start=modal.form.start_time_input)
        return modal

    async def open_edit(self, ap: Appointment) -> AppointmentModal:
        self.close_modal()
        modal = self.modal
        modal.mode = ModalMode.EDIT
        modal.appointment_id = ap.id
        modal.form = AppointmentForm.from_appointment(ap, self.tz)
        await self._load_lookups()
        modal.state = ModalState.OPEN
        self.log.info("modal.open", mode="edit", appointment_id=ap.id)
        return modal

    def update_form(self, **fields: Any) -> None:
        modal = self.modal
        if not modal.is_open:
            return
        for name, value in fields.items():
            if not hasattr(modal.form, name):
                continue
            if name == "start_time" and value is not None:
                value = truncate_to_minute(value)
            setattr(modal.form, name, value)
            modal.errors.pop(name, None)

    def close_modal(self) -> None:
        self.session.modal = AppointmentModal()

    async def submit(self, **fields: Any) -> bool:
        modal = self.modal
        if modal.state != ModalState.OPEN:
            return False
        if fields:
            self.update_form(**fields)

        errors = validate_form(modal.form)
        if errors:
            modal.errors = errors
            self.log.info("modal.invalid", fields=sorted(errors))
            return False

        modal.errors = {}
        modal.error = None
        modal.state = ModalState.SUBMITTING
        payload = to_payload(modal.form, self.tz)
        try:
            if modal.mode == ModalMode.EDIT:
                await self.gateway.update_appointment(modal.appointment_id, payload)
                message = MSG_UPDATED
            else:
                await self.gateway.create_appointment(payload)
                message = MSG_CREATED
        except CollaboratorError as exc:
            modal.state = ModalState.OPEN
            modal.error = exc.message
            self._notify("error", exc.message)
            self.log.warning("modal.submit.error", mode=modal.mode.value, error=exc.message)
            return False

        self.log.info("modal.submit", mode=modal.mode.value)
        # outra aba pode ter aberto um modal novo durante o await
        if self.session.modal is modal:
            self.close_modal()
        self._notify("success", message)
        await self._load()
        return True

    # --------------------------
    # Exclusão (sempre com confirmação)
    # --------------------------
    def request_delete(self, appointment_id: str) -> Appointment:
        ap = self.session.cache.find(appointment_id)
        if ap is None:
            raise LookupError(appointment_id)
        self.close_modal()
        self.session.pending_delete = ap
        return ap

    def cancel_delete(self) -> None:
        self.session.pending_delete = None

    async def confirm_delete(self) -> bool:
        ap = self.session.pending_delete
        if ap is None:
            return False
        self.session.pending_delete = None
        try:
            await self.gateway.delete_appointment(ap.id)
        except CollaboratorError as exc:
            self._notify("error", MSG_DELETE_ERROR)
            self.log.warning("appointment.delete.error", appointment_id=ap.id, error=exc.message)
            return False

        self.log.info("appointment.delete", appointment_id=ap.id)
        self._notify("success", MSG_DELETED)
        await self._load()
        return True

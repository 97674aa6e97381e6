from __future__ import annotations

from datetime import date

from agenda.core.logging import get_logger
from agenda.schemas.appointments import Appointment
from agenda.services.api_client import AppointmentGateway, CollaboratorError
from agenda.utils.week import week_range


class AppointmentCache:
    """
    Consultas da semana visível. Cada load substitui a coleção inteira.

    Loads sobrepostos (navegação rápida) não são cancelados; cada um recebe
    uma geração e só a resposta da geração mais recente é aplicada.
    """

    def __init__(self, gateway: AppointmentGateway):
        self.gateway = gateway
        self.appointments: list[Appointment] = []
        self.loaded_anchor: date | None = None
        self.generation = 0

    async def load(self, anchor: date) -> bool:
        self.generation += 1
        gen = self.generation
        start, end = week_range(anchor)
        log = get_logger().bind(anchor=anchor.isoformat(), generation=gen)

        try:
            items = await self.gateway.fetch_appointments_by_range(start.date(), end.date())
        except CollaboratorError as exc:
            if gen != self.generation:
                log.info("appointments.load.stale_error", error=exc.message)
                return False
            log.warning("appointments.load.error", error=exc.message)
            raise

        if gen != self.generation:
            log.info("appointments.load.stale", latest=self.generation)
            return False

        self.appointments = list(items)
        self.loaded_anchor = anchor
        log.info("appointments.load", count=len(self.appointments))
        return True

    def find(self, appointment_id: str) -> Appointment | None:
        for ap in self.appointments:
            if ap.id == appointment_id:
                return ap
        return None

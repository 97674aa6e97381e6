from __future__ import annotations

import enum
import secrets
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date

from agenda.calendar.cache import AppointmentCache
from agenda.calendar.forms import AppointmentForm
from agenda.calendar.navigation import WeekNavigation, local_today
from agenda.core.logging import get_logger
from agenda.schemas.appointments import Appointment
from agenda.schemas.people import Dentist, Patient
from agenda.services.api_client import AppointmentGateway


class ModalState(str, enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    SUBMITTING = "submitting"


class ModalMode(str, enum.Enum):
    CREATE = "create"
    EDIT = "edit"


@dataclass
class Notice:
    level: str  # "success" | "error"
    message: str


@dataclass
class AppointmentModal:
    state: ModalState = ModalState.CLOSED
    mode: ModalMode | None = None
    appointment_id: str | None = None
    form: AppointmentForm = field(default_factory=AppointmentForm)
    errors: dict[str, str] = field(default_factory=dict)
    error: str | None = None
    patients: list[Patient] = field(default_factory=list)
    dentists: list[Dentist] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.state != ModalState.CLOSED

    @property
    def title(self) -> str:
        return "Editar consulta" if self.mode == ModalMode.EDIT else "Nova consulta"


@dataclass
class CalendarSession:
    """Estado de uma agenda aberta; só o CalendarController o altera."""

    id: str
    navigation: WeekNavigation
    cache: AppointmentCache
    modal: AppointmentModal = field(default_factory=AppointmentModal)
    pending_delete: Appointment | None = None
    notices: list[Notice] = field(default_factory=list)
    started: bool = False
    last_seen: float = 0.0


class SessionStore:
    """Sessões em memória (token -> CalendarSession), uma por navegador.

    Sessões sem uso há mais de `max_age_seconds` são descartadas, e o total
    nunca passa de `max_sessions` (sai a usada há mais tempo).
    """

    def __init__(
        self,
        today: Callable[[], date] = local_today,
        max_age_seconds: float = 60 * 60 * 8,
        max_sessions: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._today = today
        self._clock = clock
        self.max_age_seconds = max_age_seconds
        self.max_sessions = max(1, max_sessions)
        self._sessions: OrderedDict[str, CalendarSession] = OrderedDict()
        self.log = get_logger()

    def _expired(self, session: CalendarSession, now: float) -> bool:
        return now - session.last_seen > self.max_age_seconds

    def get(self, session_id: str | None) -> CalendarSession | None:
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None:
            return None
        now = self._clock()
        if self._expired(session, now):
            self.drop(session_id)
            return None
        session.last_seen = now
        self._sessions.move_to_end(session_id)
        return session

    def create(self, gateway: AppointmentGateway) -> CalendarSession:
        now = self._clock()
        self._evict(now)
        sid = secrets.token_urlsafe(16)
        session = CalendarSession(
            id=sid,
            navigation=WeekNavigation(today=self._today),
            cache=AppointmentCache(gateway),
            last_seen=now,
        )
        self._sessions[sid] = session
        return session

    def _evict(self, now: float) -> None:
        expired = [sid for sid, s in self._sessions.items() if self._expired(s, now)]
        for sid in expired:
            self.drop(sid)
        # abre espaço para a nova sessão
        overflow = 0
        while len(self._sessions) >= self.max_sessions:
            self._sessions.popitem(last=False)
            overflow += 1
        if expired or overflow:
            self.log.info(
                "sessions.evicted", expired=len(expired), overflow=overflow, kept=len(self)
            )

    def drop(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)

import os
import sys

# Add the current directory to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest

from agenda.calendar.controller import CalendarController
from agenda.calendar.session import SessionStore
from agenda.schemas.appointments import Appointment, AppointmentPayload
from agenda.schemas.people import Dentist, Patient
from agenda.services.api_client import CollaboratorError

SP = ZoneInfo("America/Sao_Paulo")

# Quarta-feira; semana de 2024-03-11 (segunda) a 2024-03-17 (domingo)
FIXED_TODAY = date(2024, 3, 13)


def make_appointment(
    id="a1",
    start=datetime(2024, 3, 11, 9, 0),
    duration=30,
    status="SCHEDULED",
    patient_id="p1",
    dentist_id="d1",
    **extra,
) -> Appointment:
    return Appointment(
        id=id,
        patient_id=patient_id,
        dentist_id=dentist_id,
        start_time=start,
        duration_minutes=duration,
        status=status,
        **extra,
    )


class FakeGateway:
    """API da clínica em memória; registra todas as chamadas."""

    def __init__(self, appointments=None, patients=None, dentists=None):
        self.appointments: list[Appointment] = list(appointments or [])
        self.patients = patients if patients is not None else [
            Patient(id="p1", first_name="Ana", last_name="Souza"),
            Patient(id="p2", first_name="Bruno", last_name="Lima"),
        ]
        self.dentists = dentists if dentists is not None else [
            Dentist(id="d1", first_name="Carla", last_name="Mendes", specialty="ORTODONCIA"),
        ]
        self.calls: list[tuple] = []
        self.fail: set[str] = set()
        self._seq = 0

    def _check(self, name: str) -> None:
        if name in self.fail:
            raise CollaboratorError(f"{name} falhou", 500)

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)

    async def fetch_appointments_by_range(self, start_date, end_date):
        self.calls.append(("fetch", start_date, end_date))
        self._check("fetch")
        return [
            a
            for a in self.appointments
            if start_date <= a.local_start(SP).date() <= end_date
        ]

    def _from_payload(self, appointment_id: str, payload: AppointmentPayload) -> Appointment:
        return Appointment(
            id=appointment_id,
            patient_id=payload.patient_id,
            dentist_id=payload.dentist_id,
            start_time=payload.start_time,
            duration_minutes=payload.duration_minutes,
            status=payload.status.value,
            notes=payload.notes,
        )

    async def create_appointment(self, payload):
        self.calls.append(("create", payload))
        self._check("create")
        self._seq += 1
        created = self._from_payload(f"new{self._seq}", payload)
        self.appointments.append(created)
        return created

    async def update_appointment(self, appointment_id, payload):
        self.calls.append(("update", appointment_id, payload))
        self._check("update")
        for i, a in enumerate(self.appointments):
            if a.id == appointment_id:
                self.appointments[i] = self._from_payload(appointment_id, payload)
                return self.appointments[i]
        raise CollaboratorError("Consulta não encontrada", 404)

    async def delete_appointment(self, appointment_id):
        self.calls.append(("delete", appointment_id))
        self._check("delete")
        before = len(self.appointments)
        self.appointments = [a for a in self.appointments if a.id != appointment_id]
        if len(self.appointments) == before:
            raise CollaboratorError("Consulta não encontrada", 404)

    async def list_patients(self):
        self.calls.append(("patients",))
        self._check("patients")
        return list(self.patients)

    async def list_dentists(self):
        self.calls.append(("dentists",))
        self._check("dentists")
        return list(self.dentists)


@pytest.fixture
def tz():
    return SP


@pytest.fixture
def gateway():
    """Gateway with a single appointment on Monday 2024-03-11 09:00."""
    return FakeGateway([make_appointment()])


@pytest.fixture
def store():
    return SessionStore(today=lambda: FIXED_TODAY)


@pytest.fixture
def session(store, gateway):
    return store.create(gateway)


@pytest.fixture
def controller(session, tz):
    return CalendarController(session, tz=tz)


@pytest.fixture
def client(store, gateway):
    """Create a test client with the fake gateway and a fixed clock."""
    from fastapi.testclient import TestClient

    from agenda.deps import get_gateway, get_session_store
    from agenda.main import app

    app.dependency_overrides[get_gateway] = lambda: gateway
    app.dependency_overrides[get_session_store] = lambda: store

    with TestClient(app) as client:
        yield client

    # Clear overrides after test
    app.dependency_overrides.clear()

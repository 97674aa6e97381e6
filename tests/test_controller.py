from datetime import UTC, date, datetime

import pytest

from agenda.calendar.controller import (
    MSG_CREATED,
    MSG_DELETE_ERROR,
    MSG_DELETED,
    MSG_LOAD_ERROR,
    MSG_UPDATED,
    CalendarController,
)
from agenda.calendar.session import ModalMode, ModalState

from conftest import make_appointment


@pytest.mark.asyncio
async def test_start_loads_current_week_once(controller, gateway):
    await controller.start()
    await controller.start()
    assert controller.anchor == date(2024, 3, 11)
    assert gateway.calls == [("fetch", date(2024, 3, 11), date(2024, 3, 17))]
    assert [a.id for a in controller.appointments] == ["a1"]


@pytest.mark.asyncio
async def test_each_navigation_triggers_exactly_one_fetch(controller, gateway):
    await controller.start()
    await controller.next_week()
    await controller.next_week()
    await controller.previous_week()
    await controller.go_to_today()

    fetches = [c[1] for c in gateway.calls if c[0] == "fetch"]
    assert fetches == [
        date(2024, 3, 11),
        date(2024, 3, 18),
        date(2024, 3, 25),
        date(2024, 3, 18),
        date(2024, 3, 11),
    ]


@pytest.mark.asyncio
async def test_fetch_failure_keeps_stale_collection_and_notifies(controller, gateway):
    await controller.start()
    gateway.fail.add("fetch")

    await controller.next_week()

    assert controller.anchor == date(2024, 3, 18)
    assert [a.id for a in controller.appointments] == ["a1"]
    notices = controller.pop_notices()
    assert [(n.level, n.message) for n in notices] == [("error", MSG_LOAD_ERROR)]
    assert controller.pop_notices() == []
    assert gateway.count("fetch") == 2  # sem retry


@pytest.mark.asyncio
async def test_click_empty_cell_opens_create_with_defaults(controller, gateway):
    await controller.start()

    opened = await controller.click_cell(date(2024, 3, 13), 14)

    modal = controller.modal
    assert opened is True
    assert modal.state == ModalState.OPEN
    assert modal.mode == ModalMode.CREATE
    assert modal.form.start_time == datetime(2024, 3, 13, 14, 0, 0)
    assert modal.form.duration_minutes == 30
    assert modal.form.status == "SCHEDULED"
    # listas recarregadas a cada abertura
    assert [p.id for p in modal.patients] == ["p1", "p2"]
    assert [d.id for d in modal.dentists] == ["d1"]


@pytest.mark.asyncio
async def test_click_occupied_cell_does_not_open_create(controller, gateway):
    await controller.start()

    opened = await controller.click_cell(date(2024, 3, 11), 9)

    assert opened is False
    assert controller.modal.state == ModalState.CLOSED
    assert gateway.count("patients") == 0


@pytest.mark.asyncio
async def test_click_outside_grid_is_rejected(controller):
    await controller.start()
    with pytest.raises(ValueError):
        await controller.click_cell(date(2024, 3, 13), 20)
    with pytest.raises(ValueError):
        await controller.click_cell(date(2024, 3, 18), 9)


@pytest.mark.asyncio
async def test_create_submission_calls_collaborator_and_reloads(controller, gateway):
    await controller.start()
    await controller.click_cell(date(2024, 3, 13), 14)

    ok = await controller.submit(patient_id="p2", dentist_id="d1", notes="avaliação")

    assert ok is True
    creates = [c for c in gateway.calls if c[0] == "create"]
    assert len(creates) == 1
    payload = creates[0][1]
    assert payload.start_time == datetime(2024, 3, 13, 17, 0, tzinfo=UTC)
    assert payload.duration_minutes == 30
    assert payload.notes == "avaliação"
    assert controller.modal.state == ModalState.CLOSED
    assert gateway.calls[-1][0] == "fetch"
    grid = controller.grid()
    assert not grid.cell(date(2024, 3, 13), 14).is_free
    assert [n.message for n in controller.pop_notices()] == [MSG_CREATED]


@pytest.mark.asyncio
async def test_short_duration_is_rejected_before_network(controller, gateway):
    await controller.start()
    await controller.click_cell(date(2024, 3, 13), 14)
    fetches_before = gateway.count("fetch")

    ok = await controller.submit(patient_id="p1", dentist_id="d1", duration_minutes=10)

    assert ok is False
    assert set(controller.modal.errors) == {"duration_minutes"}
    assert controller.modal.state == ModalState.OPEN
    assert gateway.count("create") == 0
    assert gateway.count("fetch") == fetches_before


@pytest.mark.asyncio
async def test_editing_a_field_clears_its_error(controller):
    await controller.start()
    await controller.click_cell(date(2024, 3, 13), 14)
    await controller.submit()
    assert set(controller.modal.errors) == {"patient_id", "dentist_id"}

    controller.update_form(patient_id="p1")

    assert set(controller.modal.errors) == {"dentist_id"}


@pytest.mark.asyncio
async def test_click_appointment_opens_prefilled_edit(controller):
    await controller.start()

    await controller.click_appointment("a1")

    modal = controller.modal
    assert modal.mode == ModalMode.EDIT
    assert modal.appointment_id == "a1"
    assert modal.form.patient_id == "p1"
    assert modal.form.start_time == datetime(2024, 3, 11, 9, 0)


@pytest.mark.asyncio
async def test_click_unknown_appointment(controller):
    await controller.start()
    with pytest.raises(LookupError):
        await controller.click_appointment("nope")


@pytest.mark.asyncio
async def test_update_is_keyed_by_id_with_absolute_timestamp(controller, gateway):
    await controller.start()
    await controller.click_appointment("a1")

    ok = await controller.submit(start_time=datetime(2024, 3, 12, 10, 15), status="CONFIRMED")

    assert ok is True
    (_, appointment_id, payload) = next(c for c in gateway.calls if c[0] == "update")
    assert appointment_id == "a1"
    assert payload.to_wire()["startTime"] == "2024-03-12T13:15:00Z"
    assert payload.status.value == "CONFIRMED"
    assert [n.message for n in controller.pop_notices()] == [MSG_UPDATED]
    assert controller.grid().cell(date(2024, 3, 12), 10).appointments[0].id == "a1"


@pytest.mark.asyncio
async def test_failed_submission_reopens_modal_with_error(controller, gateway):
    await controller.start()
    await controller.click_cell(date(2024, 3, 13), 14)
    gateway.fail.add("create")

    ok = await controller.submit(patient_id="p1", dentist_id="d1")

    assert ok is False
    assert controller.modal.state == ModalState.OPEN
    assert controller.modal.error == "create falhou"
    assert [n.level for n in controller.pop_notices()] == ["error"]
    assert [a.id for a in controller.appointments] == ["a1"]


@pytest.mark.asyncio
async def test_opening_new_intent_closes_previous_modal(controller):
    await controller.start()
    await controller.click_cell(date(2024, 3, 13), 14)
    controller.update_form(notes="rascunho")

    await controller.click_appointment("a1")

    assert controller.modal.mode == ModalMode.EDIT
    assert controller.modal.form.notes == ""


@pytest.mark.asyncio
async def test_lookup_failure_still_opens_modal(controller, gateway):
    await controller.start()
    gateway.fail.add("patients")

    await controller.open_create()

    assert controller.modal.state == ModalState.OPEN
    assert controller.modal.patients == []
    assert [d.id for d in controller.modal.dentists] == ["d1"]


@pytest.mark.asyncio
async def test_delete_without_confirmation_does_nothing(controller, gateway):
    await controller.start()
    controller.request_delete("a1")
    controller.cancel_delete()

    assert await controller.confirm_delete() is False
    assert gateway.count("delete") == 0
    assert [a.id for a in controller.appointments] == ["a1"]


@pytest.mark.asyncio
async def test_confirmed_delete_calls_collaborator_and_reloads(controller, gateway):
    await controller.start()
    controller.request_delete("a1")

    assert await controller.confirm_delete() is True
    assert gateway.calls[-2] == ("delete", "a1")
    assert gateway.calls[-1][0] == "fetch"
    assert controller.appointments == []
    assert controller.session.pending_delete is None
    assert [n.message for n in controller.pop_notices()] == [MSG_DELETED]


@pytest.mark.asyncio
async def test_failed_delete_leaves_state_unchanged(controller, gateway):
    await controller.start()
    gateway.fail.add("delete")
    fetches = gateway.count("fetch")
    controller.request_delete("a1")

    assert await controller.confirm_delete() is False
    assert [a.id for a in controller.appointments] == ["a1"]
    assert gateway.count("fetch") == fetches
    assert [(n.level, n.message) for n in controller.pop_notices()] == [("error", MSG_DELETE_ERROR)]


@pytest.mark.asyncio
async def test_request_delete_closes_open_modal(controller):
    await controller.start()
    await controller.click_appointment("a1")

    controller.request_delete("a1")

    assert controller.modal.state == ModalState.CLOSED
    assert controller.session.pending_delete.id == "a1"


@pytest.mark.asyncio
async def test_grid_marks_today(store, gateway, tz):
    ctl = CalendarController(store.create(gateway), tz=tz)
    await ctl.start()
    grid = ctl.grid()
    assert [d.date for d in grid.days if d.is_today] == [date(2024, 3, 13)]


@pytest.mark.asyncio
async def test_out_of_hours_appointment_is_loaded_but_not_shown(store, tz):
    from conftest import FakeGateway

    gw = FakeGateway([make_appointment(id="late", start=datetime(2024, 3, 12, 20, 0))])
    ctl = CalendarController(store.create(gw), tz=tz)
    await ctl.start()

    assert [a.id for a in ctl.appointments] == ["late"]
    assert all(c.is_free for c in ctl.grid().cells())
    assert ctl.pop_notices() == []


@pytest.mark.asyncio
async def test_modal_opened_during_submit_stays_open(session, tz):
    import asyncio

    from conftest import FakeGateway

    class SlowCreateGateway(FakeGateway):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self.release = asyncio.Event()

        async def create_appointment(self, payload):
            await self.release.wait()
            return await super().create_appointment(payload)

    gw = SlowCreateGateway([make_appointment()])
    session.cache.gateway = gw
    first_tab = CalendarController(session, tz=tz)
    second_tab = CalendarController(session, tz=tz)
    await first_tab.start()
    await first_tab.click_cell(date(2024, 3, 13), 14)

    pending = asyncio.create_task(first_tab.submit(patient_id="p1", dentist_id="d1"))
    await asyncio.sleep(0)
    await second_tab.click_appointment("a1")
    gw.release.set()

    assert await pending is True
    assert session.modal.state == ModalState.OPEN
    assert session.modal.mode == ModalMode.EDIT
    assert session.modal.appointment_id == "a1"

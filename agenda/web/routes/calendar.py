from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from agenda.calendar.controller import CalendarController
from agenda.calendar.forms import form_fields_from_input
from agenda.calendar.grid import WeekGrid, cell_entry
from agenda.deps import get_controller
from agenda.web.flash import pop_flash, set_flash
from agenda.web.templating import render

router = APIRouter(prefix="/appointments", tags=["appointments"])

WEEK_URL = "/appointments"


def _back(request: Request, ctl: CalendarController) -> RedirectResponse:
    for notice in ctl.pop_notices():
        set_flash(request, notice.message, notice.level)
    return RedirectResponse(WEEK_URL, status_code=303)


def _week_payload(grid: WeekGrid, ctl: CalendarController) -> dict[str, Any]:
    rows = []
    for row in grid.rows:
        cells = []
        for cell, col in zip(row.cells, grid.days, strict=True):
            cells.append(
                {
                    "day": cell.day.isoformat(),
                    "hour": cell.hour,
                    "state": "is-free" if cell.is_free else "is-busy",
                    "is_today": col.is_today,
                    "entries": [cell_entry(ap, ctl.tz) for ap in cell.appointments],
                }
            )
        rows.append({"label": row.label, "cells": cells})
    return {
        "label": grid.label,
        "days": [{"label": d.label, "is_today": d.is_today} for d in grid.days],
        "rows": rows,
    }


# --------------------------
# Render: WEEK
# --------------------------
@router.get("", response_class=HTMLResponse)
async def ui_week(request: Request, ctl: CalendarController = Depends(get_controller)):  # noqa: B008
    for notice in ctl.pop_notices():
        set_flash(request, notice.message, notice.level)

    modal = ctl.modal
    context = {
        "week": _week_payload(ctl.grid(), ctl),
        "anchor": ctl.anchor.isoformat(),
        "modal": modal if modal.is_open else None,
        "pending_delete": ctl.session.pending_delete,
        "flashes": pop_flash(request),
    }
    if ctl.session.pending_delete is not None:
        context["pending_entry"] = cell_entry(ctl.session.pending_delete, ctl.tz)
    return render(request, "pages/appointments/week.html", context)


# --------------------------
# Navegação semanal
# --------------------------
@router.post("/week/{direction}")
async def ui_navigate(
    direction: str,
    request: Request,
    ctl: CalendarController = Depends(get_controller),  # noqa: B008
):
    if direction == "next":
        await ctl.next_week()
    elif direction == "previous":
        await ctl.previous_week()
    elif direction == "today":
        await ctl.go_to_today()
    else:
        raise HTTPException(404, "Direção inválida")
    return _back(request, ctl)


@router.post("/refresh")
async def ui_refresh(request: Request, ctl: CalendarController = Depends(get_controller)):  # noqa: B008
    await ctl.refresh()
    return _back(request, ctl)


# --------------------------
# Modal (criar/editar)
# --------------------------
@router.post("/new")
async def ui_new(request: Request, ctl: CalendarController = Depends(get_controller)):  # noqa: B008
    await ctl.open_create()
    return _back(request, ctl)


@router.post("/slots")
async def ui_click_slot(
    request: Request,
    day: str = Form(...),
    hour: int = Form(...),
    ctl: CalendarController = Depends(get_controller),  # noqa: B008
):
    try:
        await ctl.click_cell(date.fromisoformat(day), hour)
    except ValueError as exc:
        raise HTTPException(400, "Horário fora da grade") from exc
    return _back(request, ctl)


@router.post("/modal")
async def ui_submit_modal(request: Request, ctl: CalendarController = Depends(get_controller)):  # noqa: B008
    form = await request.form()
    fields = form_fields_from_input({k: str(v) for k, v in form.items()})
    await ctl.submit(**fields)
    return _back(request, ctl)


@router.post("/modal/close")
async def ui_close_modal(request: Request, ctl: CalendarController = Depends(get_controller)):  # noqa: B008
    ctl.close_modal()
    return _back(request, ctl)


@router.post("/{appointment_id}/edit")
async def ui_edit(
    appointment_id: str,
    request: Request,
    ctl: CalendarController = Depends(get_controller),  # noqa: B008
):
    try:
        await ctl.click_appointment(appointment_id)
    except LookupError as exc:
        raise HTTPException(404, "Consulta não encontrada") from exc
    return _back(request, ctl)


# --------------------------
# Exclusão
# --------------------------
@router.post("/{appointment_id}/delete")
async def ui_request_delete(
    appointment_id: str,
    request: Request,
    ctl: CalendarController = Depends(get_controller),  # noqa: B008
):
    try:
        ctl.request_delete(appointment_id)
    except LookupError as exc:
        raise HTTPException(404, "Consulta não encontrada") from exc
    return _back(request, ctl)


@router.post("/delete/confirm")
async def ui_confirm_delete(request: Request, ctl: CalendarController = Depends(get_controller)):  # noqa: B008
    await ctl.confirm_delete()
    return _back(request, ctl)


@router.post("/delete/cancel")
async def ui_cancel_delete(request: Request, ctl: CalendarController = Depends(get_controller)):  # noqa: B008
    ctl.cancel_delete()
    return _back(request, ctl)

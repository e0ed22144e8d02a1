from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date
import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ahe_ics.client import AcademicApiError
from ahe_ics.constants import ICS_CONTENT_TYPE
from ahe_ics.metrics import calendar_request_seconds

from .auth import calendar_auth_enabled, calendar_request_is_authorized
from .calendar_service import (
    CalendarRenderData,
    CalendarRequestError,
    fetch_calendar_data,
    render_calendar_ics,
)
from .config import AppSettings
from .healthchecks import collect_health_checks
from .real_ip import resolve_client_ip
from .state import AppState, build_app_state

_settings = AppSettings()
_state: AppState | None = None
_logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(_: FastAPI):
    global _state
    created: AppState | None = None
    if _state is None:
        created = build_app_state(_settings)
        _state = created
    if not calendar_auth_enabled(_state.settings):
        _logger.info("AHE_CAL_TOKEN is not set; calendar endpoints are public")
    try:
        yield
    finally:
        if created is not None:
            await created.close()
            _state = None


app = FastAPI(
    title="AHE ICS",
    lifespan=_lifespan,
    openapi_url="/openapi.json" if _settings.openapi_enabled else None,
)


def _get_state() -> AppState:
    if _state is None:
        raise RuntimeError("application state is not initialised")
    return _state


def _parse_date_param(name: str, value: str | None) -> date | None:
    if value is None or not value.strip():
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise CalendarRequestError(f"'{name}' must be a YYYY-MM-DD date") from None


def _log_calendar_request(request: Request, settings: AppSettings) -> None:
    peer = request.client.host if request.client else None
    client_ip = resolve_client_ip(peer, request.headers, settings.real_ip_header)
    _logger.info(
        "Calendar request %s from %s (%s)",
        request.url.path,
        client_ip.ip or "unknown",
        client_ip.source,
    )


def _authorize(request: Request, settings: AppSettings, token: str | None) -> None:
    if not calendar_request_is_authorized(request, settings, query_token=token):
        raise HTTPException(status_code=401, detail="Unauthorized")


def _calendar_json(data: CalendarRenderData) -> dict[str, Any]:
    return {
        "student_id": data.student_id,
        "from": data.date_from.isoformat(),
        "to": data.date_to.isoformat(),
        "plan": [item.model_dump(mode="json") for item in data.plan],
        "exams": [exam.model_dump(mode="json") for exam in data.exams],
    }


async def _serve_ics(
    request: Request,
    date_from: str | None,
    date_to: str | None,
    token: str | None,
) -> Response:
    state = _get_state()
    _log_calendar_request(request, state.settings)
    _authorize(request, state.settings, token)
    with calendar_request_seconds.time():
        try:
            payload = await render_calendar_ics(
                state,
                _parse_date_param("from", date_from),
                _parse_date_param("to", date_to),
            )
        except CalendarRequestError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except AcademicApiError as exc:
            _logger.error("Calendar request failed: %s", exc)
            raise HTTPException(status_code=502, detail="Upstream academic API error") from exc
    return Response(content=payload, media_type=ICS_CONTENT_TYPE)


async def _serve_json(
    request: Request,
    date_from: str | None,
    date_to: str | None,
    token: str | None,
) -> dict[str, Any]:
    state = _get_state()
    if not state.settings.json_enabled:
        raise HTTPException(status_code=404, detail="Not Found")
    _log_calendar_request(request, state.settings)
    _authorize(request, state.settings, token)
    with calendar_request_seconds.time():
        try:
            data = await fetch_calendar_data(
                state,
                _parse_date_param("from", date_from),
                _parse_date_param("to", date_to),
            )
        except CalendarRequestError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except AcademicApiError as exc:
            _logger.error("Calendar data request failed: %s", exc)
            raise HTTPException(status_code=502, detail="Upstream academic API error") from exc
    return _calendar_json(data)


@app.get("/calendar.ics")
async def calendar_ics(
    request: Request,
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    token: str | None = None,
) -> Response:
    return await _serve_ics(request, date_from, date_to, token)


@app.get("/calendar/me.ics")
async def calendar_me_ics(
    request: Request,
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    token: str | None = None,
) -> Response:
    return await _serve_ics(request, date_from, date_to, token)


@app.get("/calendar.json")
async def calendar_json(
    request: Request,
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    token: str | None = None,
) -> dict[str, Any]:
    return await _serve_json(request, date_from, date_to, token)


@app.get("/calendar/me.json")
async def calendar_me_json(
    request: Request,
    date_from: str | None = Query(default=None, alias="from"),
    date_to: str | None = Query(default=None, alias="to"),
    token: str | None = None,
) -> dict[str, Any]:
    return await _serve_json(request, date_from, date_to, token)


@app.get("/healthz")
async def healthz() -> JSONResponse:
    checks = await collect_health_checks(_get_state())
    healthy = all(item["ok"] for item in checks.values())
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ok" if healthy else "degraded", "checks": checks},
    )


@app.get("/metrics")
async def metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = ["app"]

"""Aggregate the class plan and exam sessions into one calendar payload."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
import logging
from typing import List
from zoneinfo import ZoneInfo

from ahe_ics.cache import IcsCacheKey
from ahe_ics.client import AcademicApiError
from ahe_ics.constants import CALENDAR_TZ
from ahe_ics.exams import resolve_exams
from ahe_ics.ics import render_calendar
from ahe_ics.models import ExamEvent, PlanItem

from .config import AppSettings
from .state import AppState

_logger = logging.getLogger(__name__)


class CalendarRequestError(ValueError):
    """Raised for calendar requests that can never succeed as sent."""


@dataclass(frozen=True)
class CalendarRequestContext:
    student_id: int
    index_id: int | None
    date_from: date
    date_to: date
    token: str

    @property
    def cache_key(self) -> IcsCacheKey:
        return IcsCacheKey(self.student_id, self.date_from, self.date_to)


@dataclass
class CalendarRenderData:
    student_id: int
    date_from: date
    date_to: date
    plan: List[PlanItem] = field(default_factory=list)
    exams: List[ExamEvent] = field(default_factory=list)


def calendar_today() -> date:
    return datetime.now(tz=ZoneInfo(CALENDAR_TZ)).date()


def calendar_window(
    settings: AppSettings,
    date_from: date | None = None,
    date_to: date | None = None,
    *,
    today: date | None = None,
) -> tuple[date, date]:
    current = today or calendar_today()
    start = date_from or current - timedelta(days=settings.calendar_past_days)
    end = date_to or current + timedelta(days=settings.calendar_future_days)
    if end < start:
        raise CalendarRequestError(
            f"'to' ({end.isoformat()}) must not be before 'from' ({start.isoformat()})"
        )
    return start, end


async def prepare_calendar_context(
    state: AppState,
    date_from: date | None = None,
    date_to: date | None = None,
    *,
    today: date | None = None,
) -> CalendarRequestContext:
    start, end = calendar_window(state.settings, date_from, date_to, today=today)
    token = await state.get_token()
    student = await state.get_student_context()
    return CalendarRequestContext(
        student_id=student.student_id,
        index_id=student.index_id,
        date_from=start,
        date_to=end,
        token=token,
    )


async def _fetch_exams(state: AppState, context: CalendarRequestContext) -> List[ExamEvent]:
    if not state.settings.exams_enabled:
        _logger.info("Exam sessions disabled, skipping exam resolution")
        return []
    if context.index_id is None:
        _logger.info("No index id for student %s, skipping exams", context.student_id)
        return []
    try:
        return await resolve_exams(
            state.client,
            context.token,
            context.index_id,
            context.date_from,
            context.date_to,
        )
    except AcademicApiError as exc:
        _logger.warning(
            "Exam resolution failed for student %s, rendering plan only: %s",
            context.student_id,
            exc,
        )
        return []


async def fetch_calendar_render_data(
    state: AppState,
    context: CalendarRequestContext,
) -> CalendarRenderData:
    plan = await state.client.get_plan(
        context.token,
        context.student_id,
        context.date_from,
        context.date_to,
    )
    exams = await _fetch_exams(state, context)
    _logger.debug(
        "Calendar data for student %s: %d classes, %d exams",
        context.student_id,
        len(plan),
        len(exams),
    )
    return CalendarRenderData(
        student_id=context.student_id,
        date_from=context.date_from,
        date_to=context.date_to,
        plan=plan,
        exams=exams,
    )


async def render_calendar_ics(
    state: AppState,
    date_from: date | None = None,
    date_to: date | None = None,
    *,
    today: date | None = None,
) -> str:
    context = await prepare_calendar_context(state, date_from, date_to, today=today)
    cached = state.ics_cache.get(context.cache_key)
    if cached is not None:
        _logger.debug("Serving cached calendar for student %s", context.student_id)
        return cached

    data = await fetch_calendar_render_data(state, context)
    payload = render_calendar(
        data.student_id,
        data.plan,
        data.exams,
        lang=state.settings.calendar_lang,
    )
    state.ics_cache.insert(context.cache_key, payload)
    return payload


async def fetch_calendar_data(
    state: AppState,
    date_from: date | None = None,
    date_to: date | None = None,
    *,
    today: date | None = None,
) -> CalendarRenderData:
    context = await prepare_calendar_context(state, date_from, date_to, today=today)
    return await fetch_calendar_render_data(state, context)


__all__ = [
    "CalendarRenderData",
    "CalendarRequestContext",
    "CalendarRequestError",
    "calendar_today",
    "calendar_window",
    "fetch_calendar_data",
    "fetch_calendar_render_data",
    "prepare_calendar_context",
    "render_calendar_ics",
]

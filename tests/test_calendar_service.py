import asyncio
from datetime import date

import pytest

from ahe_app.calendar_service import (
    CalendarRequestError,
    calendar_window,
    fetch_calendar_data,
    render_calendar_ics,
)
from ahe_app.config import AppSettings
from ahe_app.state import build_app_state
from ahe_ics.client import AcademicApiStatusError

FROM = date(2025, 1, 1)
TO = date(2025, 1, 31)


def _state(api, **settings):
    return build_app_state(AppSettings(**settings), client=api)


def test_calendar_window_defaults_around_today():
    cfg = AppSettings(AHE_CAL_PAST_DAYS=3, AHE_CAL_FUTURE_DAYS=5)

    assert calendar_window(cfg, today=date(2025, 3, 10)) == (date(2025, 3, 7), date(2025, 3, 15))
    assert calendar_window(cfg, FROM, None, today=date(2025, 3, 10)) == (FROM, date(2025, 3, 15))


def test_calendar_window_rejects_reversed_range():
    with pytest.raises(CalendarRequestError):
        calendar_window(AppSettings(), TO, FROM)


def test_fetch_calendar_data_includes_plan_and_exams(make_fake_api):
    state = _state(make_fake_api())

    data = asyncio.run(fetch_calendar_data(state, FROM, TO))

    assert data.student_id == 77
    assert [item.subject_name for item in data.plan] == ["Algebra"]
    assert [exam.subject for exam in data.exams] == ["Physics"]


def test_exam_failure_still_renders_plan(make_fake_api):
    state = _state(make_fake_api(exams_fail=True))

    body = asyncio.run(render_calendar_ics(state, FROM, TO))

    assert "Algebra [Wyklad]" in body
    assert "Physics" not in body


def test_plan_failure_is_fatal(make_fake_api):
    state = _state(make_fake_api(plan_fail=True))

    with pytest.raises(AcademicApiStatusError):
        asyncio.run(render_calendar_ics(state, FROM, TO))


def test_exams_disabled_skips_exam_calls(make_fake_api):
    api = make_fake_api()
    state = _state(api, AHE_CAL_EXAMS_ENABLED=False)

    data = asyncio.run(fetch_calendar_data(state, FROM, TO))

    assert data.exams == []
    assert "year" not in api.calls
    assert "protocol" not in api.calls


def test_rendered_calendar_is_cached_per_window(make_fake_api):
    api = make_fake_api()
    state = _state(api)

    async def scenario():
        first = await render_calendar_ics(state, FROM, TO)
        second = await render_calendar_ics(state, FROM, TO)
        await render_calendar_ics(state, FROM, date(2025, 2, 28))
        return first, second

    first, second = asyncio.run(scenario())

    assert first == second
    assert api.calls.count("plan") == 2
    assert api.calls.count("login") == 1
    assert api.calls.count("student") == 1

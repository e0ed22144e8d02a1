from __future__ import annotations

import logging
from typing import Any

from ahe_ics.client import AcademicApiError

from .state import AppState

_logger = logging.getLogger(__name__)


def _ok(component: str, detail: str = "ok") -> dict[str, Any]:
    return {"component": component, "ok": True, "detail": detail}


def _fail(component: str, detail: str) -> dict[str, Any]:
    return {"component": component, "ok": False, "detail": detail}


def check_app_health() -> dict[str, Any]:
    return _ok("app")


async def check_upstream_health(state: AppState) -> dict[str, Any]:
    try:
        token = await state.get_token()
        profile = await state.client.get_student_data(token)
    except AcademicApiError as exc:
        _logger.warning("Upstream health check failed: %s", exc)
        return _fail("upstream", str(exc))
    return _ok("upstream", f"student {profile.student_id}")


async def collect_health_checks(state: AppState) -> dict[str, dict[str, Any]]:
    return {
        "app": check_app_health(),
        "upstream": await check_upstream_health(state),
    }


__all__ = ["check_app_health", "check_upstream_health", "collect_health_checks"]

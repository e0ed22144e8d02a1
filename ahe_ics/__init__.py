"""AHE schedule and exam aggregation core."""

from .cache import IcsCacheKey, TokenCache, TtlCache, TtlSlot, new_ics_cache
from .client import (
    AcademicApiClient,
    AcademicApiError,
    AcademicApiRequestError,
    AcademicApiResponseError,
    AcademicApiStatusError,
)
from .constants import APP_VERSION as __version__
from .exams import resolve_exams
from .ics import render_calendar
from .models import ExamEvent, PlanItem, TermQuery
from .normalizer import normalize_subject
from .student import StudentContext, StudentContextCache, pick_index_id

__all__ = [
    "AcademicApiClient",
    "AcademicApiError",
    "AcademicApiRequestError",
    "AcademicApiResponseError",
    "AcademicApiStatusError",
    "ExamEvent",
    "IcsCacheKey",
    "PlanItem",
    "StudentContext",
    "StudentContextCache",
    "TermQuery",
    "TokenCache",
    "TtlCache",
    "TtlSlot",
    "__version__",
    "new_ics_cache",
    "normalize_subject",
    "pick_index_id",
    "render_calendar",
    "resolve_exams",
]

"""Resolve and cache the student identity used by every calendar request."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

from .cache import Clock, TtlSlot
from .client import AcademicApiError
from .constants import ACTIVE_INDEX_STATUS, STUDENT_CONTEXT_TTL_SECONDS
from .models import StudentData, StudentIndex

_logger = logging.getLogger(__name__)

FetchProfile = Callable[[], Awaitable[StudentData]]
FetchIndexList = Callable[[], Awaitable[List[StudentIndex]]]


@dataclass(frozen=True)
class StudentContext:
    student_id: int
    index_id: Optional[int] = None


def _index_rank(item: StudentIndex) -> Tuple[bool, int, int, int]:
    return (
        item.status_symbol == ACTIVE_INDEX_STATUS,
        item.year or 0,
        item.semester or 0,
        item.index_id,
    )


def pick_index_id(indexes: Sequence[StudentIndex]) -> int | None:
    """Pick the active index first, then the latest year, semester and id."""
    if not indexes:
        return None
    return max(indexes, key=_index_rank).index_id


async def resolve_student_context(
    fetch_profile: FetchProfile,
    fetch_index_list: FetchIndexList,
    *,
    exams_enabled: bool,
) -> StudentContext:
    profile = await fetch_profile()
    student_id = profile.student_id

    # Without exams the index id is never needed downstream.
    if not exams_enabled:
        return StudentContext(student_id=student_id)

    if profile.index_id is not None:
        return StudentContext(student_id=student_id, index_id=profile.index_id)

    try:
        indexes = await fetch_index_list()
    except AcademicApiError as exc:
        _logger.warning(
            "Failed to fetch index list for student %s, skipping exams: %s",
            student_id,
            exc,
        )
        return StudentContext(student_id=student_id)

    index_id = pick_index_id(indexes)
    if index_id is None:
        _logger.warning("Index list for student %s is empty, skipping exams", student_id)
    else:
        _logger.debug("Index %s resolved from index list for student %s", index_id, student_id)
    return StudentContext(student_id=student_id, index_id=index_id)


class StudentContextCache:
    def __init__(
        self,
        *,
        ttl_seconds: float = STUDENT_CONTEXT_TTL_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        self.ttl_seconds = max(0.0, float(ttl_seconds))
        self._slot: TtlSlot[StudentContext] = TtlSlot(name="student_context", clock=clock)

    async def get_context(
        self,
        fetch_profile: FetchProfile,
        fetch_index_list: FetchIndexList,
        *,
        exams_enabled: bool,
    ) -> StudentContext:
        async def _resolve() -> Tuple[StudentContext, float]:
            context = await resolve_student_context(
                fetch_profile,
                fetch_index_list,
                exams_enabled=exams_enabled,
            )
            return context, self.ttl_seconds

        return await self._slot.get_or_compute(_resolve)


__all__ = [
    "StudentContext",
    "StudentContextCache",
    "pick_index_id",
    "resolve_student_context",
]

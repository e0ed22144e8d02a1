"""Work out which subjects are really examined and collect their exam dates."""

from __future__ import annotations

import asyncio
from datetime import date, datetime, timedelta
import logging
from typing import (
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Protocol,
    Sequence,
    Set,
    Tuple,
    TypeVar,
)

from .client import AcademicApiError
from .constants import (
    EXAM_DEFAULT_DURATION_MINUTES,
    EXAM_DEFAULT_START,
    EXAM_SETTLEMENT_NAME,
    TERM_NUMBERS,
)
from .metrics import exam_degraded_total
from .models import (
    ExamEvent,
    ExamProtocolIntermediateItem,
    ExamProtocolItem,
    ExamScheduleItem,
    TermQuery,
)
from .normalizer import clean_lecturer, clean_text, normalize_subject, parse_time

_logger = logging.getLogger(__name__)
_DEFAULT_DURATION = timedelta(minutes=EXAM_DEFAULT_DURATION_MINUTES)

RowT = TypeVar("RowT")


class ExamApi(Protocol):
    async def get_current_academic_year(self, token: str) -> int: ...

    async def get_exam_protocol(
        self, token: str, index_id: int, term: TermQuery
    ) -> List[ExamProtocolItem]: ...

    async def get_exam_protocol_intermediate(
        self, token: str, exam_card_id: int, exam_card_position_id: int
    ) -> List[ExamProtocolIntermediateItem]: ...

    async def get_exam_schedule(self, token: str, term: TermQuery) -> List[ExamScheduleItem]: ...


def build_terms_for_year(academic_year: int) -> List[TermQuery]:
    return [TermQuery(academic_year=academic_year, term_number=n) for n in TERM_NUMBERS]


def is_exam_settlement(name: str | None) -> bool:
    return normalize_subject(name) == EXAM_SETTLEMENT_NAME


async def resolve_exam_subjects_for_term(
    api: ExamApi,
    token: str,
    term: TermQuery,
    items: Iterable[ExamProtocolItem],
) -> Set[str]:
    """Return normalized subjects of ``items`` that are settled by an exam.

    Subjects whose own settlement method is not an exam are checked through
    the intermediate protocol of their exam card. Card lookups are memoized
    for the duration of this call; a failed lookup counts as "not an exam".
    """
    subjects: Set[str] = set()
    settled_by_card: Dict[Tuple[int, int], bool] = {}

    for item in items:
        subject = normalize_subject(item.subject)
        if subject is None:
            continue

        if is_exam_settlement(item.settlement_method_name):
            subjects.add(subject)
            continue

        card_key = item.exam_card_key
        if card_key is None:
            continue

        if card_key not in settled_by_card:
            card_id, position_id = card_key
            try:
                entries = await api.get_exam_protocol_intermediate(token, card_id, position_id)
            except AcademicApiError as exc:
                exam_degraded_total.labels(stage="intermediate").inc()
                _logger.warning(
                    "Intermediate exam protocol fetch failed for card %s/%s (%s term %s): %s",
                    card_id,
                    position_id,
                    term.academic_year,
                    term.term_number,
                    exc,
                )
                settled_by_card[card_key] = False
            else:
                settled_by_card[card_key] = any(
                    is_exam_settlement(entry.settlement_method_name) for entry in entries
                )

        if settled_by_card[card_key]:
            subjects.add(subject)

    return subjects


def map_exam_event(
    item: ExamScheduleItem,
    date_from: date,
    date_to: date,
) -> ExamEvent | None:
    if item.exam_date is None:
        return None
    exam_day = item.exam_date.date()
    if exam_day < date_from or exam_day > date_to:
        return None

    starts = datetime.combine(exam_day, parse_time(item.start_time) or EXAM_DEFAULT_START)
    end_time = parse_time(item.end_time)
    ends = datetime.combine(exam_day, end_time) if end_time is not None else None
    if ends is None or ends <= starts:
        ends = starts + _DEFAULT_DURATION

    return ExamEvent(
        published_data_id=item.published_data_id,
        subject=item.subject.strip(),
        notes=clean_text(item.notes),
        location=clean_text(item.room),
        lecturer=clean_lecturer(item.lecturer),
        details=clean_text(item.details),
        starts=starts,
        ends=ends,
    )


async def _gather_per_term(
    terms: Sequence[TermQuery],
    fetch: Callable[[TermQuery], Awaitable[List[RowT]]],
    *,
    stage: str,
) -> List[Tuple[TermQuery, List[RowT]]]:
    results = await asyncio.gather(*(fetch(term) for term in terms), return_exceptions=True)
    fetched: List[Tuple[TermQuery, List[RowT]]] = []
    for term, result in zip(terms, results):
        if isinstance(result, AcademicApiError):
            exam_degraded_total.labels(stage=stage).inc()
            _logger.warning(
                "Exam %s fetch failed for %s term %s: %s",
                stage,
                term.academic_year,
                term.term_number,
                result,
            )
            continue
        if isinstance(result, BaseException):
            raise result
        fetched.append((term, result))
    return fetched


async def resolve_exams(
    api: ExamApi,
    token: str,
    index_id: int,
    date_from: date,
    date_to: date,
) -> List[ExamEvent]:
    """Resolve exam events for ``index_id`` between ``date_from`` and ``date_to``.

    Only the current academic year lookup is fatal. Failed per-term or
    per-card calls shrink the result instead of raising.
    """
    academic_year = await api.get_current_academic_year(token)
    terms = sorted(build_terms_for_year(academic_year))

    subjects_by_term: Dict[TermQuery, Set[str]] = {}
    protocols = await _gather_per_term(
        terms,
        lambda term: api.get_exam_protocol(token, index_id, term),
        stage="protocol",
    )
    for term, items in protocols:
        subjects = await resolve_exam_subjects_for_term(api, token, term, items)
        if subjects:
            subjects_by_term[term] = subjects

    if not subjects_by_term:
        _logger.debug("No examined subjects found in protocols for index %s", index_id)
        return []

    examined_terms = sorted(subjects_by_term)
    seen: Set[Tuple[int, datetime, str]] = set()
    resolved: List[Tuple[ExamEvent, str]] = []
    schedules = await _gather_per_term(
        examined_terms,
        lambda term: api.get_exam_schedule(token, term),
        stage="schedule",
    )
    for term, rows in schedules:
        subjects = subjects_by_term[term]
        for row in rows:
            subject = normalize_subject(row.subject)
            if subject is None or subject not in subjects:
                continue
            event = map_exam_event(row, date_from, date_to)
            if event is None:
                continue
            key = (event.published_data_id, event.starts, subject)
            if key in seen:
                continue
            seen.add(key)
            resolved.append((event, row.subject))

    # Ties on start time fall back to the subject text exactly as upstream sent it.
    resolved.sort(key=lambda pair: (pair[0].starts, pair[1]))
    return [event for event, _raw_subject in resolved]


__all__ = [
    "ExamApi",
    "build_terms_for_year",
    "is_exam_settlement",
    "map_exam_event",
    "resolve_exam_subjects_for_term",
    "resolve_exams",
]

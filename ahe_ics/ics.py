from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Sequence
from zoneinfo import ZoneInfo

from icalendar import Calendar, Event

from .constants import APP_VERSION, CALENDAR_TZ, CALENDAR_UID_DOMAIN
from .i18n import CalendarLanguage, IcsTexts, ics_texts
from .models import ExamEvent, PlanItem

_PRODID = f"-//AHE ICS//{APP_VERSION}//PL"
_LOCATION_SEPARATOR = " \u2014 "


def _local(value: datetime) -> datetime:
    tz = ZoneInfo(CALENDAR_TZ)
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def _non_blank(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip()
    return text or None


def plan_summary(item: PlanItem) -> str:
    class_type = item.class_type
    if item.class_type_short.strip():
        class_type = f"{item.class_type} {item.class_type_short}"
    return f"{item.subject_name} [{class_type}]"


def plan_location(item: PlanItem, texts: IcsTexts) -> str:
    if item.webinar:
        return texts.location_webinar
    parts = [
        part
        for part in (_non_blank(item.room_number), _non_blank(item.room_address))
        if part is not None
    ]
    if not parts:
        return texts.location_default
    return _LOCATION_SEPARATOR.join(parts)


def plan_description(item: PlanItem, texts: IcsTexts) -> str:
    names = [name for name in (_non_blank(i.full_name) for i in item.instructors) if name]
    instructors = ", ".join(names) if names else texts.missing_data
    return f"{texts.label_instructors}: {instructors}\n{texts.label_type}: {item.class_type}"


def exam_description(exam: ExamEvent, texts: IcsTexts) -> str:
    lines: List[str] = [f"{texts.label_instructors}: {exam.lecturer or texts.missing_data}"]
    if exam.notes:
        lines.append(f"{texts.label_exam_type}: {exam.notes}")
    if exam.details:
        lines.append(f"{texts.label_details}: {exam.details}")
    return "\n".join(lines)


def _plan_event(student_id: int, item: PlanItem, texts: IcsTexts, stamp: datetime) -> Event:
    event = Event()
    event.add("uid", f"ahe-{student_id}-{item.schedule_item_id}@{CALENDAR_UID_DOMAIN}")
    event.add("dtstamp", stamp)
    event.add("dtstart", _local(item.starts_at))
    event.add("dtend", _local(item.ends_at))
    event.add("summary", plan_summary(item))
    event.add("location", plan_location(item, texts))
    event.add("description", plan_description(item, texts))
    return event


def _exam_event(student_id: int, exam: ExamEvent, texts: IcsTexts, stamp: datetime) -> Event:
    starts_key = exam.starts.strftime("%Y%m%dT%H%M")
    event = Event()
    event.add(
        "uid",
        f"ahe-exam-{student_id}-{exam.published_data_id}-{starts_key}@{CALENDAR_UID_DOMAIN}",
    )
    event.add("dtstamp", stamp)
    event.add("dtstart", _local(exam.starts))
    event.add("dtend", _local(exam.ends))
    event.add("summary", f"{texts.label_exam}: {exam.subject}")
    event.add("location", exam.location or texts.location_default)
    event.add("description", exam_description(exam, texts))
    event.add("categories", [texts.label_exam])
    return event


def render_calendar(
    student_id: int,
    plan: Sequence[PlanItem],
    exams: Sequence[ExamEvent],
    *,
    lang: CalendarLanguage = "pl",
    generated_at: datetime | None = None,
) -> str:
    """Render class and exam events into one ICS document."""
    texts = ics_texts(lang)
    stamp = (generated_at or datetime.now(tz=timezone.utc)).astimezone(timezone.utc)

    calendar = Calendar()
    calendar.add("prodid", _PRODID)
    calendar.add("version", "2.0")
    calendar.add("calscale", "GREGORIAN")
    calendar.add("x-wr-calname", texts.calendar_name)
    calendar.add("x-wr-timezone", CALENDAR_TZ)

    for item in plan:
        calendar.add_component(_plan_event(student_id, item, texts, stamp))
    for exam in exams:
        calendar.add_component(_exam_event(student_id, exam, texts, stamp))
    calendar.add_missing_timezones()

    return calendar.to_ical().decode("utf-8")


__all__ = [
    "exam_description",
    "plan_description",
    "plan_location",
    "plan_summary",
    "render_calendar",
]

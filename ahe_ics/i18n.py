from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

CalendarLanguage = Literal["pl", "en"]


@dataclass(frozen=True)
class IcsTexts:
    calendar_name: str
    location_webinar: str
    location_default: str
    label_exam: str
    label_exam_type: str
    label_details: str
    label_instructors: str
    label_type: str
    missing_data: str


PL_TEXTS = IcsTexts(
    calendar_name="Plan AHE",
    location_webinar="Webinar",
    location_default="Sala",
    label_exam="Egzamin",
    label_exam_type="Rodzaj",
    label_details="Szczegoly",
    label_instructors="Prowadzacy",
    label_type="Typ",
    missing_data="(brak danych)",
)

EN_TEXTS = IcsTexts(
    calendar_name="AHE Schedule",
    location_webinar="Webinar",
    location_default="Room",
    label_exam="Exam",
    label_exam_type="Type",
    label_details="Details",
    label_instructors="Instructors",
    label_type="Class type",
    missing_data="(no data)",
)

_TEXTS = {"pl": PL_TEXTS, "en": EN_TEXTS}


def ics_texts(lang: str) -> IcsTexts:
    try:
        return _TEXTS[lang.strip().lower()]
    except KeyError:
        raise ValueError(f"unsupported calendar language: {lang}") from None


__all__ = ["CalendarLanguage", "EN_TEXTS", "IcsTexts", "PL_TEXTS", "ics_texts"]

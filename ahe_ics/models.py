from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _lenient_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def _positive_or_none(value: Any) -> int | None:
    if value is None:
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None


class _UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TokenResponse(_UpstreamModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int = 0


class StudentData(_UpstreamModel):
    student_id: int = Field(validation_alias=AliasChoices("IDStudent", "student_id"))
    index_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("IDIndeks", "IndeksID", "index_id"),
    )
    first_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("Imie", "first_name"),
    )
    last_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("Nazwisko", "last_name"),
    )

    @field_validator("index_id", mode="before")
    @classmethod
    def _index_id(cls, value: Any) -> int | None:
        return _positive_or_none(value)


class StudentIndex(_UpstreamModel):
    index_id: int = Field(validation_alias=AliasChoices("IDIndeks", "IndeksID", "index_id"))
    status_symbol: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("StatusSymbol", "StatusIndeksuSymbol", "status_symbol"),
    )
    year: Optional[int] = Field(default=None, validation_alias=AliasChoices("Rok", "year"))
    semester: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("Semestr", "semester"),
    )


class ExamProtocolItem(_UpstreamModel):
    subject: str = Field(default="", validation_alias=AliasChoices("Przedmiot", "subject"))
    settlement_method_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "SposobZaliczeniaNazwa",
            "FormaZaliczeniaNazwa",
            "settlement_method_name",
        ),
    )
    exam_card_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("KartaEgzID", "exam_card_id"),
    )
    exam_card_position_id: Optional[int] = Field(
        default=None,
        validation_alias=AliasChoices("KartaEgzPozID", "exam_card_position_id"),
    )

    @field_validator("subject", mode="before")
    @classmethod
    def _subject(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("exam_card_id", "exam_card_position_id", mode="before")
    @classmethod
    def _card_ids(cls, value: Any) -> int | None:
        return _positive_or_none(value)

    @property
    def exam_card_key(self) -> tuple[int, int] | None:
        if self.exam_card_id is None or self.exam_card_position_id is None:
            return None
        return self.exam_card_id, self.exam_card_position_id


class ExamProtocolIntermediateItem(_UpstreamModel):
    settlement_method_name: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "SposobZaliczeniaNazwa",
            "FormaZaliczeniaNazwa",
            "settlement_method_name",
        ),
    )


class ExamScheduleItem(_UpstreamModel):
    published_data_id: int = Field(
        validation_alias=AliasChoices("IDPublikowanaDana", "published_data_id"),
    )
    subject: str = Field(default="", validation_alias=AliasChoices("EgzPrzedmiot", "subject"))
    notes: Optional[str] = Field(default=None, validation_alias=AliasChoices("Uwagi", "notes"))
    exam_date: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("EgzData", "exam_date"),
    )
    start_time: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GodzOd", "start_time"),
    )
    end_time: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GodzDo", "end_time"),
    )
    room: Optional[str] = Field(default=None, validation_alias=AliasChoices("Sala", "room"))
    lecturer: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("Wykladowca", "lecturer"),
    )
    details: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("OpisSzczegolowy", "details"),
    )

    @field_validator("subject", mode="before")
    @classmethod
    def _subject(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("exam_date", mode="before")
    @classmethod
    def _exam_date(cls, value: Any) -> datetime | None:
        return _lenient_datetime(value)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _time_text(cls, value: Any) -> str | None:
        return value if isinstance(value, str) else None


class PlanInstructor(_UpstreamModel):
    full_name: str = Field(validation_alias=AliasChoices("ImieNazwisko", "full_name"))


class PlanItem(_UpstreamModel):
    schedule_item_id: int = Field(
        validation_alias=AliasChoices("IDPlanZajecPoz", "schedule_item_id"),
    )
    starts_at: datetime = Field(validation_alias=AliasChoices("DataOD", "starts_at"))
    ends_at: datetime = Field(validation_alias=AliasChoices("DataDO", "ends_at"))
    subject_name: str = Field(validation_alias=AliasChoices("PNazwa", "subject_name"))
    class_type: str = Field(default="", validation_alias=AliasChoices("TypZajec", "class_type"))
    class_type_short: str = Field(
        default="",
        validation_alias=AliasChoices("TypZajecSkrot", "class_type_short"),
    )
    room_number: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SalaNumer", "room_number"),
    )
    room_address: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SalaAdres", "room_address"),
    )
    webinar: bool = Field(default=False, validation_alias=AliasChoices("Webinar", "webinar"))
    instructors: List[PlanInstructor] = Field(
        default_factory=list,
        validation_alias=AliasChoices("Dydaktyk", "instructors"),
    )

    @field_validator("class_type", "class_type_short", mode="before")
    @classmethod
    def _type_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("webinar", mode="before")
    @classmethod
    def _webinar(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("instructors", mode="before")
    @classmethod
    def _instructors(cls, value: Any) -> Any:
        return [] if value is None else value


class ExamEvent(BaseModel):
    """A resolved exam ready for rendering."""

    model_config = ConfigDict(frozen=True)

    published_data_id: int
    subject: str
    notes: Optional[str] = None
    location: Optional[str] = None
    lecturer: Optional[str] = None
    details: Optional[str] = None
    starts: datetime
    ends: datetime


@dataclass(frozen=True, order=True)
class TermQuery:
    academic_year: int
    term_number: int


__all__ = [
    "ExamEvent",
    "ExamProtocolIntermediateItem",
    "ExamProtocolItem",
    "ExamScheduleItem",
    "PlanInstructor",
    "PlanItem",
    "StudentData",
    "StudentIndex",
    "TermQuery",
    "TokenResponse",
]

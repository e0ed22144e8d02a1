import sys, pathlib, os

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.environ.setdefault("PYTHONPATH", str(ROOT))
os.environ.setdefault("AHE_USERNAME", "student@example.test")
os.environ.setdefault("AHE_PASSWORD", "secret")

from datetime import datetime

import pytest

from ahe_ics.client import AcademicApiStatusError
from ahe_ics.models import (
    ExamProtocolItem,
    ExamScheduleItem,
    PlanItem,
    StudentData,
    TokenResponse,
)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeAcademicApi:
    base_url = "https://wps.example.test"

    def __init__(self, *, exams_fail=False, plan_fail=False, index_id=42):
        self.exams_fail = exams_fail
        self.plan_fail = plan_fail
        self.index_id = index_id
        self.calls = []

    async def login(self, username, password):
        self.calls.append("login")
        return TokenResponse(access_token="tok", expires_in=3600)

    async def get_student_data(self, token):
        self.calls.append("student")
        return StudentData(student_id=77, index_id=self.index_id)

    async def get_student_indexes(self, token):
        self.calls.append("indexes")
        return []

    async def get_current_academic_year(self, token):
        self.calls.append("year")
        if self.exams_fail:
            raise AcademicApiStatusError("year down", status_code=500)
        return 2024

    async def get_exam_protocol(self, token, index_id, term):
        self.calls.append("protocol")
        if term.term_number != 1:
            return []
        return [ExamProtocolItem(subject="Physics", settlement_method_name="Egzamin")]

    async def get_exam_protocol_intermediate(self, token, exam_card_id, exam_card_position_id):
        self.calls.append("intermediate")
        return []

    async def get_exam_schedule(self, token, term):
        self.calls.append("schedule")
        return [
            ExamScheduleItem(
                published_data_id=5,
                subject="Physics",
                exam_date=datetime(2025, 1, 20),
                start_time="10:00",
            )
        ]

    async def get_plan(self, token, student_id, date_from, date_to):
        self.calls.append("plan")
        if self.plan_fail:
            raise AcademicApiStatusError("plan down", status_code=502)
        return [
            PlanItem(
                schedule_item_id=11,
                starts_at=datetime(2025, 1, 10, 8, 0),
                ends_at=datetime(2025, 1, 10, 9, 30),
                subject_name="Algebra",
                class_type="Wyklad",
            )
        ]

    async def aclose(self):
        self.calls.append("close")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_fake_api():
    return FakeAcademicApi

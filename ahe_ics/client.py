"""Async HTTP client for the AHE academic records (WPS) API."""

from __future__ import annotations

from datetime import date
import logging
from typing import Any, Dict, List, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from .constants import (
    API_BASE_URL,
    API_CURRENT_ACADEMIC_YEAR_PATH,
    API_EXAM_FILTER_PATH,
    API_EXAM_PROTOCOL_INTERMEDIATE_PATH,
    API_EXAM_PROTOCOL_PATH,
    API_LOGIN_PATH,
    API_PLAN_PATH,
    API_STUDENT_INDEXES_PATH,
    API_STUDENT_PATH,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    LOGIN_GRANT_TYPE,
    LOGIN_ROLE_ID,
    USER_AGENT,
)
from .metrics import upstream_errors_total
from .models import (
    ExamProtocolIntermediateItem,
    ExamProtocolItem,
    ExamScheduleItem,
    PlanItem,
    StudentData,
    StudentIndex,
    TermQuery,
    TokenResponse,
)

_logger = logging.getLogger(__name__)
_BODY_PREVIEW_CHARS = 200

ModelT = TypeVar("ModelT", bound=BaseModel)


class AcademicApiError(RuntimeError):
    """Base class for academic records API failures."""


class AcademicApiRequestError(AcademicApiError):
    """Raised when the request could not be sent or timed out."""


class AcademicApiStatusError(AcademicApiError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class AcademicApiResponseError(AcademicApiError):
    """Raised when the response body is not what the endpoint promises."""


def _body_preview(response: httpx.Response) -> str:
    try:
        text = response.text
    except UnicodeDecodeError:
        return "<binary>"
    return text[:_BODY_PREVIEW_CHARS]


def _academic_year_from_payload(payload: Any) -> int:
    if isinstance(payload, bool):
        raise AcademicApiResponseError("invalid current academic year json")
    if isinstance(payload, int):
        return payload
    if isinstance(payload, str) and payload.strip().isdigit():
        return int(payload.strip())
    if isinstance(payload, dict):
        for key in ("RokAkad", "RokAkademicki", "academic_year"):
            value = payload.get(key)
            if isinstance(value, int) and not isinstance(value, bool):
                return value
            if isinstance(value, str) and value.strip().isdigit():
                return int(value.strip())
    raise AcademicApiResponseError("invalid current academic year json")


class AcademicApiClient:
    """Thin async wrapper around the academic records REST endpoints."""

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        *,
        timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": USER_AGENT},
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        call: str,
        token: str | None = None,
        params: Dict[str, Any] | None = None,
        form: Dict[str, str] | None = None,
    ) -> Any:
        headers: Dict[str, str] = {}
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"

        _logger.debug("%s %s params=%s", method, path, params or {})
        try:
            resp = await self._http.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                params=params,
                data=form,
            )
        except httpx.HTTPError as exc:
            upstream_errors_total.labels(call=call).inc()
            _logger.warning("%s request failed: %s", call, exc)
            raise AcademicApiRequestError(f"{call} request failed: {exc}") from exc

        if not resp.is_success:
            upstream_errors_total.labels(call=call).inc()
            _logger.warning("%s failed with HTTP %s", call, resp.status_code)
            raise AcademicApiStatusError(
                f"{call} failed: HTTP {resp.status_code} body={_body_preview(resp)}",
                status_code=resp.status_code,
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            upstream_errors_total.labels(call=call).inc()
            raise AcademicApiResponseError(f"invalid {call} json") from exc
        _logger.debug("%s ok (HTTP %s)", call, resp.status_code)
        return payload

    def _parse_model(self, model: Type[ModelT], payload: Any, *, call: str) -> ModelT:
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            upstream_errors_total.labels(call=call).inc()
            raise AcademicApiResponseError(f"invalid {call} json: {exc}") from exc

    def _parse_rows(self, model: Type[ModelT], payload: Any, *, call: str) -> List[ModelT]:
        if not isinstance(payload, list):
            upstream_errors_total.labels(call=call).inc()
            raise AcademicApiResponseError(f"invalid {call} json: expected a list")
        rows: List[ModelT] = []
        for position, row in enumerate(payload):
            try:
                rows.append(model.model_validate(row))
            except ValidationError as exc:
                _logger.warning(
                    "Skipping malformed %s row %s: %s",
                    call,
                    position,
                    exc.errors(include_url=False),
                )
        return rows

    async def login(self, username: str, password: str) -> TokenResponse:
        payload = await self._request(
            "POST",
            API_LOGIN_PATH,
            call="login",
            form={
                "username": username,
                "password": password,
                "roleID": LOGIN_ROLE_ID,
                "grant_type": LOGIN_GRANT_TYPE,
            },
        )
        return self._parse_model(TokenResponse, payload, call="login")

    async def get_current_academic_year(self, token: str) -> int:
        payload = await self._request(
            "GET",
            API_CURRENT_ACADEMIC_YEAR_PATH,
            call="current academic year",
            token=token,
        )
        try:
            return _academic_year_from_payload(payload)
        except AcademicApiResponseError:
            upstream_errors_total.labels(call="current academic year").inc()
            raise

    async def get_student_data(self, token: str) -> StudentData:
        payload = await self._request("GET", API_STUDENT_PATH, call="student data", token=token)
        return self._parse_model(StudentData, payload, call="student data")

    async def get_student_indexes(self, token: str) -> List[StudentIndex]:
        payload = await self._request(
            "GET",
            API_STUDENT_INDEXES_PATH,
            call="student indexes",
            token=token,
        )
        return self._parse_rows(StudentIndex, payload, call="student indexes")

    async def get_exam_protocol(
        self,
        token: str,
        index_id: int,
        term: TermQuery,
    ) -> List[ExamProtocolItem]:
        payload = await self._request(
            "GET",
            API_EXAM_PROTOCOL_PATH,
            call="exam protocol",
            token=token,
            params={
                "IndeksID": index_id,
                "RokAkad": term.academic_year,
                "SemestrID": term.term_number,
            },
        )
        return self._parse_rows(ExamProtocolItem, payload, call="exam protocol")

    async def get_exam_protocol_intermediate(
        self,
        token: str,
        exam_card_id: int,
        exam_card_position_id: int,
    ) -> List[ExamProtocolIntermediateItem]:
        payload = await self._request(
            "GET",
            API_EXAM_PROTOCOL_INTERMEDIATE_PATH,
            call="exam protocol intermediate",
            token=token,
            params={"KartaEgzID": exam_card_id, "KartaEgzPozID": exam_card_position_id},
        )
        return self._parse_rows(
            ExamProtocolIntermediateItem,
            payload,
            call="exam protocol intermediate",
        )

    async def get_exam_schedule(self, token: str, term: TermQuery) -> List[ExamScheduleItem]:
        payload = await self._request(
            "GET",
            API_EXAM_FILTER_PATH,
            call="exam schedule",
            token=token,
            params={
                "KierunekID": "",
                "PracownikID": "",
                "RokAkad": term.academic_year,
                "SekcjaID": "",
                "SemestrID": term.term_number,
                "SystemID": "",
                "TrybID": "",
            },
        )
        return self._parse_rows(ExamScheduleItem, payload, call="exam schedule")

    async def get_plan(
        self,
        token: str,
        student_id: int,
        date_from: date,
        date_to: date,
    ) -> List[PlanItem]:
        payload = await self._request(
            "GET",
            API_PLAN_PATH,
            call="plan",
            token=token,
            params={
                "CzyNieaktywnePlany": 0,
                "DataDo": date_to.isoformat(),
                "DataOd": date_from.isoformat(),
                "StudentID": student_id,
                "loader": "none",
            },
        )
        return self._parse_rows(PlanItem, payload, call="plan")


__all__ = [
    "AcademicApiClient",
    "AcademicApiError",
    "AcademicApiRequestError",
    "AcademicApiResponseError",
    "AcademicApiStatusError",
]

from __future__ import annotations

from datetime import time

APP_VERSION = "0.1.0"
USER_AGENT = f"ahe-ics/{APP_VERSION}"

API_BASE_URL = "https://wpsapi.ahe.lodz.pl"
API_LOGIN_PATH = "/api/Profil/zaloguj"
API_STUDENT_PATH = "/api/Student/GetDaneStudenta"
API_STUDENT_INDEXES_PATH = "/api/Indeks/GETPobierzListeIndeksowDlaStudenta"
API_PLAN_PATH = "/api/PlanyZajec/GETPlanSzczegolowy"
API_EXAM_PROTOCOL_PATH = "/api/ProtokolyEgzaminacyjne/GetProtokolEgzaminacyjnySzczegolowy"
API_EXAM_PROTOCOL_INTERMEDIATE_PATH = "/api/ProtokolyEgzaminacyjne/GetProtokolEgzaminacyjnyPosredni"
API_EXAM_FILTER_PATH = "/api/Egzaminy/GETEgazminFiltr"
API_CURRENT_ACADEMIC_YEAR_PATH = "/api/Slowniki/GETPobierzAktualnyRokAkademicki"

LOGIN_ROLE_ID = "2"
LOGIN_GRANT_TYPE = "password"

TOKEN_REFRESH_GRACE_SECONDS = 30
ICS_CACHE_TTL_SECONDS = 600
STUDENT_CONTEXT_TTL_SECONDS = 600

EXAM_SETTLEMENT_NAME = "egzamin"
EXAM_DEFAULT_START = time(9, 0)
EXAM_DEFAULT_DURATION_MINUTES = 90
ACTIVE_INDEX_STATUS = "S"
TERM_NUMBERS = (1, 2)

CALENDAR_TZ = "Europe/Warsaw"
CALENDAR_UID_DOMAIN = "wpsapi.ahe.lodz.pl"
ICS_CONTENT_TYPE = "text/calendar; charset=utf-8"

DEFAULT_BIND_ADDR = "0.0.0.0:8080"
DEFAULT_CAL_PAST_DAYS = 60
DEFAULT_CAL_FUTURE_DAYS = 60
DEFAULT_CAL_LANG = "pl"
DEFAULT_HTTP_TIMEOUT_SECONDS = 30.0

__all__ = [
    "ACTIVE_INDEX_STATUS",
    "API_BASE_URL",
    "API_CURRENT_ACADEMIC_YEAR_PATH",
    "API_EXAM_FILTER_PATH",
    "API_EXAM_PROTOCOL_INTERMEDIATE_PATH",
    "API_EXAM_PROTOCOL_PATH",
    "API_LOGIN_PATH",
    "API_PLAN_PATH",
    "API_STUDENT_INDEXES_PATH",
    "API_STUDENT_PATH",
    "APP_VERSION",
    "CALENDAR_TZ",
    "CALENDAR_UID_DOMAIN",
    "DEFAULT_BIND_ADDR",
    "DEFAULT_CAL_FUTURE_DAYS",
    "DEFAULT_CAL_LANG",
    "DEFAULT_CAL_PAST_DAYS",
    "DEFAULT_HTTP_TIMEOUT_SECONDS",
    "EXAM_DEFAULT_DURATION_MINUTES",
    "EXAM_DEFAULT_START",
    "EXAM_SETTLEMENT_NAME",
    "ICS_CACHE_TTL_SECONDS",
    "ICS_CONTENT_TYPE",
    "LOGIN_GRANT_TYPE",
    "LOGIN_ROLE_ID",
    "STUDENT_CONTEXT_TTL_SECONDS",
    "TERM_NUMBERS",
    "TOKEN_REFRESH_GRACE_SECONDS",
    "USER_AGENT",
]

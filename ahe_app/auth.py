from __future__ import annotations

import logging
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from fastapi import Request

from .config import AppSettings

CALENDAR_TOKEN_HEADER = "X-Calendar-Token"

_password_hasher = PasswordHasher()
_logger = logging.getLogger(__name__)


def _normalize_token(value: str | None) -> str | None:
    if value is None:
        return None
    token = value.strip()
    return token or None


def expected_calendar_token(settings: AppSettings) -> str | None:
    return _normalize_token(settings.calendar_token)


def calendar_auth_enabled(settings: AppSettings) -> bool:
    return expected_calendar_token(settings) is not None


def _token_from_authorization_header(request: Request) -> str | None:
    raw = request.headers.get("Authorization")
    if not raw:
        return None
    scheme, sep, token = raw.partition(" ")
    if not sep or scheme.lower() != "bearer":
        return None
    return _normalize_token(token)


def provided_calendar_token(request: Request, query_token: str | None = None) -> str | None:
    """Query parameter first, then the calendar header, then a bearer token."""
    candidates = (
        _normalize_token(query_token),
        _normalize_token(request.headers.get(CALENDAR_TOKEN_HEADER)),
        _token_from_authorization_header(request),
    )
    for candidate in candidates:
        if candidate:
            return candidate
    return None


def _verify_hashed_token(token_hash: str, provided: str) -> bool:
    try:
        return _password_hasher.verify(token_hash, provided)
    except VerificationError:
        return False
    except InvalidHashError:
        _logger.warning("Configured calendar token hash cannot be verified")
        return False


def calendar_request_is_authorized(
    request: Request,
    settings: AppSettings,
    *,
    query_token: str | None = None,
) -> bool:
    expected = expected_calendar_token(settings)
    if expected is None:
        return True
    provided = provided_calendar_token(request, query_token)
    if provided is None:
        return False
    if settings.calendar_token_hashed:
        return _verify_hashed_token(expected, provided)
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


__all__ = [
    "CALENDAR_TOKEN_HEADER",
    "calendar_auth_enabled",
    "calendar_request_is_authorized",
    "expected_calendar_token",
    "provided_calendar_token",
]

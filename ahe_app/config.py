from __future__ import annotations

from typing import Any, Literal

from argon2 import Type, extract_parameters
from argon2.exceptions import InvalidHashError
from pydantic import AliasChoices, Field, PrivateAttr, field_validator, model_validator
from pydantic_settings import BaseSettings

from ahe_ics.constants import (
    API_BASE_URL,
    DEFAULT_BIND_ADDR,
    DEFAULT_CAL_FUTURE_DAYS,
    DEFAULT_CAL_LANG,
    DEFAULT_CAL_PAST_DAYS,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    ICS_CACHE_TTL_SECONDS,
    STUDENT_CONTEXT_TTL_SECONDS,
    TOKEN_REFRESH_GRACE_SECONDS,
)

_PLAIN_TOKEN_PREFIX = "plain:"
_ARGON2_TOKEN_PREFIX = "argon2:"
_ARGON2ID_HASH_PREFIX = "$argon2id$"
_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _normalize_optional_env(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None


def _validated_argon2id_hash(value: str | None) -> str:
    if value is None:
        raise ValueError("AHE_CAL_TOKEN Argon2id hash cannot be empty")
    try:
        params = extract_parameters(value)
    except InvalidHashError as exc:
        raise ValueError("AHE_CAL_TOKEN Argon2id hash is not a valid PHC string") from exc
    if params.type is not Type.ID:
        raise ValueError("AHE_CAL_TOKEN must use Argon2id (expected prefix '$argon2id$')")
    return value


class AppSettings(BaseSettings):
    """Runtime settings for the calendar service."""

    username: str = Field(validation_alias=AliasChoices("AHE_USERNAME"))
    password: str = Field(validation_alias=AliasChoices("AHE_PASSWORD"))
    api_base_url: str = Field(
        default=API_BASE_URL,
        validation_alias=AliasChoices("AHE_API_BASE_URL"),
    )
    http_timeout_seconds: float = Field(
        default=DEFAULT_HTTP_TIMEOUT_SECONDS,
        gt=0,
        validation_alias=AliasChoices("AHE_HTTP_TIMEOUT_SECONDS"),
    )
    bind_addr: str = Field(
        default=DEFAULT_BIND_ADDR,
        validation_alias=AliasChoices("BIND_ADDR", "AHE_BIND_ADDR"),
    )
    calendar_past_days: int = Field(
        default=DEFAULT_CAL_PAST_DAYS,
        ge=0,
        validation_alias=AliasChoices("AHE_CAL_PAST_DAYS"),
    )
    calendar_future_days: int = Field(
        default=DEFAULT_CAL_FUTURE_DAYS,
        ge=0,
        validation_alias=AliasChoices("AHE_CAL_FUTURE_DAYS"),
    )
    calendar_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AHE_CAL_TOKEN"),
    )
    calendar_lang: Literal["pl", "en"] = Field(
        default=DEFAULT_CAL_LANG,
        validation_alias=AliasChoices("AHE_CAL_LANG"),
    )
    exams_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("AHE_CAL_EXAMS_ENABLED"),
    )
    json_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("AHE_CAL_JSON_ENABLED"),
    )
    openapi_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("AHE_OPENAPI_ENABLED"),
    )
    real_ip_header: str | None = Field(
        default=None,
        validation_alias=AliasChoices("REAL_IP_HEADER", "AHE_REAL_IP_HEADER"),
    )
    ics_cache_ttl_seconds: int = Field(
        default=ICS_CACHE_TTL_SECONDS,
        ge=0,
        validation_alias=AliasChoices("AHE_ICS_CACHE_TTL_SECONDS"),
    )
    student_cache_ttl_seconds: int = Field(
        default=STUDENT_CONTEXT_TTL_SECONDS,
        ge=0,
        validation_alias=AliasChoices("AHE_STUDENT_CACHE_TTL_SECONDS"),
    )
    token_refresh_grace_seconds: int = Field(
        default=TOKEN_REFRESH_GRACE_SECONDS,
        ge=0,
        validation_alias=AliasChoices("AHE_TOKEN_REFRESH_GRACE_SECONDS"),
    )
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("AHE_LOG_LEVEL", "LOG_LEVEL"),
    )

    _calendar_token_hashed: bool = PrivateAttr(default=False)

    @field_validator("calendar_lang", mode="before")
    @classmethod
    def _lower_lang(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: Any) -> Any:
        if not isinstance(value, str):
            return value
        level = value.strip().upper() or "INFO"
        if level not in _LOG_LEVELS:
            raise ValueError(f"unsupported log level: {value}")
        return level

    @model_validator(mode="after")
    def validate_runtime_environment(self) -> "AppSettings":
        token = _normalize_optional_env(self.calendar_token)
        hashed = False
        if token is not None and token.startswith(_PLAIN_TOKEN_PREFIX):
            token = _normalize_optional_env(token[len(_PLAIN_TOKEN_PREFIX):])
            if token is None:
                raise ValueError("AHE_CAL_TOKEN plain token cannot be empty")
        elif token is not None and token.startswith(_ARGON2_TOKEN_PREFIX):
            token = _validated_argon2id_hash(
                _normalize_optional_env(token[len(_ARGON2_TOKEN_PREFIX):])
            )
            hashed = True
        elif token is not None and token.startswith(_ARGON2ID_HASH_PREFIX):
            token = _validated_argon2id_hash(token)
            hashed = True
        self.calendar_token = token
        self._calendar_token_hashed = hashed

        if self.real_ip_header is not None:
            header = self.real_ip_header.strip().lower()
            if not header:
                raise ValueError("REAL_IP_HEADER cannot be empty")
            self.real_ip_header = header

        host, sep, port = self.bind_addr.strip().rpartition(":")
        if not sep or not host or not port.isdigit():
            raise ValueError(f"BIND_ADDR must look like host:port, got {self.bind_addr!r}")
        return self

    @property
    def calendar_token_hashed(self) -> bool:
        """True when ``calendar_token`` holds an Argon2id hash rather than the secret."""
        return self._calendar_token_hashed

    @property
    def bind_host(self) -> str:
        return self.bind_addr.strip().rpartition(":")[0].strip("[]")

    @property
    def bind_port(self) -> int:
        return int(self.bind_addr.strip().rpartition(":")[2])


__all__ = ["AppSettings"]

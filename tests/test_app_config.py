import os
import subprocess
import sys

from argon2 import PasswordHasher
from pydantic import ValidationError
import pytest

from ahe_app.config import AppSettings


def test_defaults(monkeypatch):
    for name in ("BIND_ADDR", "AHE_BIND_ADDR", "AHE_CAL_TOKEN", "REAL_IP_HEADER", "AHE_CAL_LANG"):
        monkeypatch.delenv(name, raising=False)

    cfg = AppSettings()

    assert cfg.api_base_url == "https://wpsapi.ahe.lodz.pl"
    assert cfg.bind_host == "0.0.0.0"
    assert cfg.bind_port == 8080
    assert cfg.calendar_past_days == 60
    assert cfg.calendar_future_days == 60
    assert cfg.calendar_token is None
    assert cfg.calendar_lang == "pl"
    assert cfg.exams_enabled is True
    assert cfg.json_enabled is True
    assert cfg.openapi_enabled is True
    assert cfg.ics_cache_ttl_seconds == 600


def test_credentials_from_env(monkeypatch):
    monkeypatch.setenv("AHE_USERNAME", "jan@student.test")
    monkeypatch.setenv("AHE_PASSWORD", "hunter2")

    cfg = AppSettings()

    assert cfg.username == "jan@student.test"
    assert cfg.password == "hunter2"


def test_bind_addr_aliases(monkeypatch):
    monkeypatch.delenv("BIND_ADDR", raising=False)
    monkeypatch.setenv("AHE_BIND_ADDR", "127.0.0.1:9000")

    cfg = AppSettings()

    assert (cfg.bind_host, cfg.bind_port) == ("127.0.0.1", 9000)


def test_invalid_bind_addr_rejected(monkeypatch):
    monkeypatch.setenv("BIND_ADDR", "localhost")

    with pytest.raises(ValidationError):
        AppSettings()


def test_window_days_must_not_be_negative(monkeypatch):
    monkeypatch.setenv("AHE_CAL_PAST_DAYS", "-1")

    with pytest.raises(ValidationError):
        AppSettings()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("secret", "secret"), ("plain:secret", "secret"), ("  plain: s3 ", "s3"), ("   ", None)],
)
def test_calendar_token_normalisation(monkeypatch, raw, expected):
    monkeypatch.setenv("AHE_CAL_TOKEN", raw)

    assert AppSettings().calendar_token == expected


def test_empty_plain_token_rejected(monkeypatch):
    monkeypatch.setenv("AHE_CAL_TOKEN", "plain:")

    with pytest.raises(ValidationError):
        AppSettings()


@pytest.mark.parametrize("prefix", ["argon2:", "argon2: ", ""])
def test_argon2id_token_hash_accepted(monkeypatch, prefix):
    token_hash = PasswordHasher(time_cost=1, memory_cost=64, parallelism=1).hash("s3cret")
    monkeypatch.setenv("AHE_CAL_TOKEN", f"{prefix}{token_hash}")

    cfg = AppSettings()

    assert cfg.calendar_token == token_hash
    assert cfg.calendar_token_hashed is True


def test_plain_prefix_is_never_treated_as_hash(monkeypatch):
    monkeypatch.setenv("AHE_CAL_TOKEN", "plain:$argon2id$not-a-hash")

    cfg = AppSettings()

    assert cfg.calendar_token == "$argon2id$not-a-hash"
    assert cfg.calendar_token_hashed is False


@pytest.mark.parametrize(
    "raw",
    [
        "argon2:",
        "$argon2id$garbage",
        "argon2:not-a-phc-string",
        "argon2:$argon2i$v=19$m=64,t=1,p=1$c2FsdHNhbHQ$aGFzaGhhc2hoYXNo",
    ],
)
def test_invalid_argon2_token_rejected(monkeypatch, raw):
    monkeypatch.setenv("AHE_CAL_TOKEN", raw)

    with pytest.raises(ValidationError):
        AppSettings()


def test_real_ip_header_lowercased(monkeypatch):
    monkeypatch.setenv("REAL_IP_HEADER", " X-Forwarded-For ")

    assert AppSettings().real_ip_header == "x-forwarded-for"


def test_blank_real_ip_header_rejected(monkeypatch):
    monkeypatch.setenv("AHE_REAL_IP_HEADER", "  ")

    with pytest.raises(ValidationError):
        AppSettings()


def test_language_and_flags(monkeypatch):
    monkeypatch.setenv("AHE_CAL_LANG", "EN")
    monkeypatch.setenv("AHE_CAL_EXAMS_ENABLED", "false")
    monkeypatch.setenv("AHE_CAL_JSON_ENABLED", "0")
    monkeypatch.setenv("AHE_OPENAPI_ENABLED", "no")

    cfg = AppSettings()

    assert cfg.calendar_lang == "en"
    assert cfg.exams_enabled is False
    assert cfg.json_enabled is False
    assert cfg.openapi_enabled is False


def test_unsupported_language_rejected(monkeypatch):
    monkeypatch.setenv("AHE_CAL_LANG", "de")

    with pytest.raises(ValidationError):
        AppSettings()


def test_log_level_aliases(monkeypatch):
    monkeypatch.delenv("AHE_LOG_LEVEL", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "debug")

    assert AppSettings().log_level == "DEBUG"

    monkeypatch.setenv("LOG_LEVEL", "chatty")
    with pytest.raises(ValidationError):
        AppSettings()


def test_missing_credentials_fail_app_import():
    env = os.environ.copy()
    env.pop("AHE_USERNAME", None)
    env.pop("AHE_PASSWORD", None)

    result = subprocess.run(
        [sys.executable, "-c", "import ahe_app.api"],
        capture_output=True,
        text=True,
        env=env,
        check=False,
    )

    assert result.returncode != 0
    assert "AHE_USERNAME" in f"{result.stdout}\n{result.stderr}"

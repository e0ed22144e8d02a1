import asyncio
from datetime import date

import pytest

from ahe_ics import metrics
from ahe_ics.cache import IcsCacheKey, TokenCache, TtlCache, TtlSlot, new_ics_cache
from ahe_ics.models import TokenResponse


def _hits(cache: str) -> float:
    return metrics.cache_requests_total.labels(cache=cache, result="hit")._value.get()


def test_slot_returns_cached_value_within_ttl(clock):
    slot = TtlSlot(name="test_slot", clock=clock)
    calls = []

    async def compute():
        calls.append(clock())
        return f"value-{len(calls)}", 60

    async def scenario():
        first = await slot.get_or_compute(compute)
        clock.advance(59)
        second = await slot.get_or_compute(compute)
        return first, second

    assert asyncio.run(scenario()) == ("value-1", "value-1")
    assert len(calls) == 1


def test_slot_recomputes_exactly_once_after_expiry(clock):
    slot = TtlSlot(name="test_slot", clock=clock)
    calls = []

    async def compute():
        calls.append(clock())
        return f"value-{len(calls)}", 60

    async def scenario():
        await slot.get_or_compute(compute)
        clock.advance(60)
        second = await slot.get_or_compute(compute)
        third = await slot.get_or_compute(compute)
        return second, third

    assert asyncio.run(scenario()) == ("value-2", "value-2")
    assert len(calls) == 2


def test_slot_concurrent_callers_share_one_refresh(clock):
    slot = TtlSlot(name="test_slot", clock=clock)
    calls = []

    async def compute():
        calls.append(1)
        await asyncio.sleep(0)
        return "shared", 60

    async def scenario():
        return await asyncio.gather(*(slot.get_or_compute(compute) for _ in range(5)))

    assert asyncio.run(scenario()) == ["shared"] * 5
    assert len(calls) == 1


def test_slot_failed_compute_leaves_slot_empty(clock):
    slot = TtlSlot(name="test_slot", clock=clock)

    calls = []

    async def broken():
        raise RuntimeError("boom")

    async def good():
        calls.append(1)
        return "ok", 10

    async def scenario():
        with pytest.raises(RuntimeError):
            await slot.get_or_compute(broken)
        first = await slot.get_or_compute(good)
        second = await slot.get_or_compute(good)
        return first, second

    assert asyncio.run(scenario()) == ("ok", "ok")
    assert calls == [1]


def test_slot_negative_ttl_is_clamped(clock):
    slot = TtlSlot(name="test_slot", clock=clock)
    calls = []

    async def compute():
        calls.append(1)
        return "v", -5

    async def scenario():
        await slot.get_or_compute(compute)
        await slot.get_or_compute(compute)

    asyncio.run(scenario())
    assert len(calls) == 2


def test_ttl_cache_get_insert_and_expiry(clock):
    cache = TtlCache(10, name="test_keyed", clock=clock)
    cache.insert("a", 1)
    assert cache.get("a") == 1
    assert cache.get("b") is None

    clock.advance(10)
    assert cache.get("a") is None


def test_ttl_cache_purges_expired_on_insert(clock):
    cache = TtlCache(10, name="test_keyed", clock=clock)
    cache.insert("old", 1)
    clock.advance(11)
    cache.insert("new", 2)

    assert len(cache) == 1
    assert cache.get("new") == 2


def test_ttl_cache_entries_have_independent_lifetimes(clock):
    cache = TtlCache(10, name="test_keyed", clock=clock)
    cache.insert("first", 1)
    clock.advance(6)
    cache.insert("second", 2)
    clock.advance(6)

    assert cache.get("first") is None
    assert cache.get("second") == 2


def test_ics_cache_keys_by_student_and_window(clock):
    cache = new_ics_cache(600, clock=clock)
    key = IcsCacheKey(7, date(2025, 1, 1), date(2025, 1, 31))
    cache.insert(key, "BEGIN:VCALENDAR")
    before = _hits("ics")

    assert cache.get(IcsCacheKey(7, date(2025, 1, 1), date(2025, 1, 31))) == "BEGIN:VCALENDAR"
    assert cache.get(IcsCacheKey(8, date(2025, 1, 1), date(2025, 1, 31))) is None
    assert _hits("ics") == before + 1


def test_token_cache_refreshes_before_upstream_expiry(clock):
    cache = TokenCache(refresh_grace_seconds=30, clock=clock)
    logins = []

    async def login(username, password):
        logins.append((username, password))
        return TokenResponse(access_token=f"tok-{len(logins)}", expires_in=100)

    async def scenario():
        first = await cache.get_token(login, "user", "pass")
        clock.advance(69)
        second = await cache.get_token(login, "user", "pass")
        clock.advance(1)
        third = await cache.get_token(login, "user", "pass")
        return first, second, third

    assert asyncio.run(scenario()) == ("tok-1", "tok-1", "tok-2")
    assert logins == [("user", "pass"), ("user", "pass")]


def test_token_cache_short_lived_token_is_not_reused(clock):
    cache = TokenCache(refresh_grace_seconds=30, clock=clock)
    logins = []

    async def login(username, password):
        logins.append(1)
        return TokenResponse(access_token="short", expires_in=10)

    async def scenario():
        await cache.get_token(login, "u", "p")
        await cache.get_token(login, "u", "p")

    asyncio.run(scenario())
    assert len(logins) == 2


def test_token_cache_propagates_login_failure(clock):
    cache = TokenCache(clock=clock)

    async def login(username, password):
        raise RuntimeError("bad credentials")

    with pytest.raises(RuntimeError, match="bad credentials"):
        asyncio.run(cache.get_token(login, "u", "p"))

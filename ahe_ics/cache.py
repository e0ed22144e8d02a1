"""Process-local TTL caches for the upstream credential and rendered calendars."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import date
import logging
import time
from typing import Awaitable, Callable, Dict, Generic, Hashable, NamedTuple, Tuple, TypeVar

from .constants import ICS_CACHE_TTL_SECONDS, TOKEN_REFRESH_GRACE_SECONDS
from .metrics import record_cache_lookup
from .models import TokenResponse

_logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Clock = Callable[[], float]
LoginFn = Callable[[str, str], Awaitable[TokenResponse]]


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    expires_at: float

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class TtlSlot(Generic[T]):
    """Holds at most one value until its expiry.

    Reads are lock-free; a refresh takes the lock and re-checks the slot so a
    caller that queued behind a concurrent refresh reuses the fresh value
    instead of computing another one. ``compute`` returns ``(value, ttl)``;
    when it raises, the slot is left untouched.
    """

    def __init__(self, *, name: str, clock: Clock = time.monotonic) -> None:
        self.name = name
        self._clock = clock
        self._entry: CacheEntry[T] | None = None
        self._lock = asyncio.Lock()

    async def get_or_compute(self, compute: Callable[[], Awaitable[Tuple[T, float]]]) -> T:
        entry = self._entry
        if entry is not None and entry.is_valid(self._clock()):
            _logger.debug("%s cache hit", self.name)
            record_cache_lookup(self.name, True)
            return entry.value

        async with self._lock:
            entry = self._entry
            if entry is not None and entry.is_valid(self._clock()):
                _logger.debug("%s cache hit after lock", self.name)
                record_cache_lookup(self.name, True)
                return entry.value

            _logger.debug("%s cache miss", self.name)
            record_cache_lookup(self.name, False)
            value, ttl_seconds = await compute()
            self._entry = CacheEntry(
                value=value,
                expires_at=self._clock() + max(0.0, float(ttl_seconds)),
            )
            return value


class TtlCache(Generic[K, V]):
    """Keyed cache where every entry lives ``ttl_seconds`` from insertion."""

    def __init__(
        self,
        ttl_seconds: float,
        *,
        name: str,
        clock: Clock = time.monotonic,
    ) -> None:
        self.name = name
        self.ttl_seconds = max(0.0, float(ttl_seconds))
        self._clock = clock
        self._entries: Dict[K, CacheEntry[V]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: K) -> V | None:
        entry = self._entries.get(key)
        hit = entry is not None and entry.is_valid(self._clock())
        record_cache_lookup(self.name, hit)
        if not hit:
            return None
        return entry.value  # type: ignore[union-attr]

    def insert(self, key: K, value: V) -> None:
        now = self._clock()
        self.purge_expired(now=now)
        self._entries[key] = CacheEntry(value=value, expires_at=now + self.ttl_seconds)

    def purge_expired(self, *, now: float | None = None) -> int:
        current = self._clock() if now is None else now
        stale = [key for key, entry in self._entries.items() if not entry.is_valid(current)]
        for key in stale:
            self._entries.pop(key, None)
        return len(stale)


class IcsCacheKey(NamedTuple):
    student_id: int
    date_from: date
    date_to: date


def new_ics_cache(
    ttl_seconds: float = ICS_CACHE_TTL_SECONDS,
    *,
    clock: Clock = time.monotonic,
) -> TtlCache[IcsCacheKey, str]:
    return TtlCache(ttl_seconds, name="ics", clock=clock)


class TokenCache:
    """Keeps one upstream access token and logs in again shortly before expiry."""

    def __init__(
        self,
        *,
        refresh_grace_seconds: int = TOKEN_REFRESH_GRACE_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        self.refresh_grace_seconds = max(0, int(refresh_grace_seconds))
        self._slot: TtlSlot[str] = TtlSlot(name="token", clock=clock)

    async def get_token(self, login: LoginFn, username: str, password: str) -> str:
        async def _login() -> Tuple[str, float]:
            _logger.debug("Logging in to the academic records API")
            token = await login(username, password)
            ttl = max(0, int(token.expires_in) - self.refresh_grace_seconds)
            return token.access_token, float(ttl)

        return await self._slot.get_or_compute(_login)


__all__ = [
    "CacheEntry",
    "IcsCacheKey",
    "TokenCache",
    "TtlCache",
    "TtlSlot",
    "new_ics_cache",
]

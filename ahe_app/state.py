from __future__ import annotations

from dataclasses import dataclass
import logging
import time
from typing import List

from ahe_ics.cache import Clock, IcsCacheKey, TokenCache, TtlCache, new_ics_cache
from ahe_ics.client import AcademicApiClient
from ahe_ics.models import StudentData, StudentIndex
from ahe_ics.student import StudentContext, StudentContextCache

from .config import AppSettings

_logger = logging.getLogger(__name__)


@dataclass
class AppState:
    """Process-wide client and caches shared by every request."""

    settings: AppSettings
    client: AcademicApiClient
    token_cache: TokenCache
    student_cache: StudentContextCache
    ics_cache: TtlCache[IcsCacheKey, str]
    owns_client: bool = False

    async def get_token(self) -> str:
        return await self.token_cache.get_token(
            self.client.login,
            self.settings.username,
            self.settings.password,
        )

    async def get_student_context(self) -> StudentContext:
        async def _profile() -> StudentData:
            return await self.client.get_student_data(await self.get_token())

        async def _indexes() -> List[StudentIndex]:
            return await self.client.get_student_indexes(await self.get_token())

        return await self.student_cache.get_context(
            _profile,
            _indexes,
            exams_enabled=self.settings.exams_enabled,
        )

    async def close(self) -> None:
        if self.owns_client:
            await self.client.aclose()


def build_app_state(
    settings: AppSettings,
    *,
    client: AcademicApiClient | None = None,
    clock: Clock = time.monotonic,
) -> AppState:
    owns_client = client is None
    api_client = client or AcademicApiClient(
        settings.api_base_url,
        timeout=settings.http_timeout_seconds,
    )
    _logger.debug("Academic API client targets %s", api_client.base_url)
    return AppState(
        settings=settings,
        client=api_client,
        token_cache=TokenCache(
            refresh_grace_seconds=settings.token_refresh_grace_seconds,
            clock=clock,
        ),
        student_cache=StudentContextCache(
            ttl_seconds=settings.student_cache_ttl_seconds,
            clock=clock,
        ),
        ics_cache=new_ics_cache(settings.ics_cache_ttl_seconds, clock=clock),
        owns_client=owns_client,
    )


__all__ = ["AppState", "build_app_state"]

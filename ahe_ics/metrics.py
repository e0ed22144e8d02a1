from __future__ import annotations

from prometheus_client import Counter, Histogram

cache_requests_total = Counter(
    "ahe_cache_requests_total",
    "Cache lookups by cache name and result",
    ["cache", "result"],
)

upstream_errors_total = Counter(
    "ahe_upstream_errors_total",
    "Failed calls to the academic records API",
    ["call"],
)

exam_degraded_total = Counter(
    "ahe_exam_degraded_total",
    "Exam resolution steps skipped after an upstream failure",
    ["stage"],
)

calendar_request_seconds = Histogram(
    "ahe_calendar_request_seconds",
    "Calendar request latency seconds",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)


def record_cache_lookup(cache: str, hit: bool) -> None:
    cache_requests_total.labels(cache=cache, result="hit" if hit else "miss").inc()


__all__ = [
    "cache_requests_total",
    "calendar_request_seconds",
    "exam_degraded_total",
    "record_cache_lookup",
    "upstream_errors_total",
]

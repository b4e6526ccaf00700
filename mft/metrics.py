"""Prometheus metrics for crawl observability."""
from __future__ import annotations

from prometheus_client import REGISTRY, Counter, Gauge, Histogram


FETCH_ATTEMPTS_TOTAL = Counter(
    "mft_fetch_attempts_total",
    "Total fetch attempts by outcome",
    ["feed_id", "status_class", "error_class"],
)

FETCH_LATENCY_SECONDS = Histogram(
    "mft_fetch_latency_seconds",
    "Fetch latency per request",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 20, 30, 60),
)

CHANGES_DETECTED_TOTAL = Counter(
    "mft_changes_detected_total",
    "Change records produced",
    ["feed_id"],
)

CRAWL_OUTCOMES_TOTAL = Counter(
    "mft_crawl_outcomes_total",
    "Per-source crawl outcomes",
    ["outcome"],
)

HISTORY_ENTRIES_GAUGE = Gauge(
    "mft_history_entries",
    "Entries retained in the history document after the last write",
)


def status_class(status_code: int | None) -> str:
    code = int(status_code or 0)
    return (
        "2xx" if 200 <= code < 300 else
        "3xx" if 300 <= code < 400 else
        "4xx" if 400 <= code < 500 else
        "5xx" if 500 <= code < 600 else
        "other"
    )


__all__ = [
    "CHANGES_DETECTED_TOTAL",
    "CRAWL_OUTCOMES_TOTAL",
    "FETCH_ATTEMPTS_TOTAL",
    "FETCH_LATENCY_SECONDS",
    "HISTORY_ENTRIES_GAUGE",
    "REGISTRY",
    "status_class",
]

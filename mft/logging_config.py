"""JSON structured logging configuration.

Every line carries the service name and environment. While a crawl is
processing a feed, lines from any module (fetch, extract, detection) are
tagged with that feed's id.
"""
from __future__ import annotations

import logging
import sys
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

from mft.config import Settings, settings as default_settings

current_feed_id: ContextVar[str | None] = ContextVar("current_feed_id", default=None)


class FeedContextFilter(logging.Filter):
    """Attach ``feed_id`` from the crawl context unless the call passed one."""

    def filter(self, record: logging.LogRecord) -> bool:
        feed_id = current_feed_id.get()
        if feed_id is not None and not hasattr(record, "feed_id"):
            record.feed_id = feed_id
        return True


def setup_logging(settings: Settings | None = None) -> None:
    """Configure root logger with JSON output for the crawl/build commands."""
    cfg = settings or default_settings
    handler = logging.StreamHandler(sys.stdout)

    formatter = JsonFormatter(
        fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
        rename_fields={
            "asctime": "timestamp",
            "levelname": "level",
            "name": "logger",
        },
        static_fields={"service": "mft", "env": cfg.APP_ENV},
        json_ensure_ascii=False,
    )
    handler.setFormatter(formatter)
    handler.addFilter(FeedContextFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(cfg.APP_LOG_LEVEL)

    # httpx logs one INFO line per request; the fetcher already logs outcomes.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

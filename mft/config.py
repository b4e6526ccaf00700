"""Centralised settings — reads .env / env vars via pydantic-settings."""
from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """All configuration for the MFT crawler, sourced from environment."""

    model_config = SettingsConfigDict(
        env_prefix="MFT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──
    DATA_DIR: Path = Path("data")
    DOCS_DIR: Path = Path("docs")

    # ── Fetch ──
    FETCH_TIMEOUT_S: float = 30.0
    REQUEST_DELAY_S: float = 1.0
    USER_AGENT: str = "MFT-Crawler/1.0 (GitHub Pages Feed Tracker)"

    # ── History / diff ──
    HISTORY_MAX_ENTRIES: int = 100
    DIFF_CONTENT_MAX_CHARS: int = 500
    DIFF_PREVIEW_MAX: int = 5

    # ── Site ──
    DISPLAY_TZ: str = "Asia/Tokyo"
    SITE_TITLE: str = "MFT - My Favorite Things"

    # ── App ──
    APP_ENV: str = "development"
    APP_LOG_LEVEL: str = "INFO"
    METRICS_TEXTFILE: Path | None = None

    @property
    def feeds_path(self) -> Path:
        return self.DATA_DIR / "feeds.json"

    @property
    def history_path(self) -> Path:
        return self.DATA_DIR / "history.json"

    @property
    def snapshots_dir(self) -> Path:
        return self.DATA_DIR / "snapshots"


settings = Settings()

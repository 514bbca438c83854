"""
Environment configuration for the approval desk.

Values are read from the process environment (after ``.env`` has been loaded
by the app module) when :class:`AppConfig` is instantiated.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List

DEFAULT_WEBHOOK_ENDPOINT = "https://biohackyourself.app.n8n.cloud/webhook/content-action"
DEFAULT_TIMELINE_URL = "https://biohackyourself.app.n8n.cloud/webhook-test/approvalschedule"

DEFAULT_CONTENT_SPREADSHEET_ID = "1C1fnywWU1RMUQ4UmoKBurT7pI7WaffX2pn-6T45wVtY"
DEFAULT_NEWS_SPREADSHEET_ID = "1FNumIx65f0J1OoU8MWX4KwROQwis-TFB_rmwmr3e-WU"
DEFAULT_RSS_SPREADSHEET_ID = "1u6hNIrJM91COY54xzQrBDU6rfzrBIRpk2XhKHQawfsI"

# Keys whose values are redacted in to_dict(redact_secrets=True)
_SECRET_KEYS = frozenset({"webhook_endpoint", "timeline_url"})


def _redact(value: str) -> str:
    """Mask a secret, keeping the first 4 and last 2 characters of long values."""
    if not value or len(value) < 8:
        return "***"
    return f"{value[:4]}***{value[-2:]}"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _env_list(name: str) -> List[str]:
    raw = os.environ.get(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


class AppConfig:
    """Process-wide settings loaded from environment variables."""

    def __init__(self) -> None:
        self.webhook_endpoint: str = os.environ.get("WEBHOOK_ENDPOINT", DEFAULT_WEBHOOK_ENDPOINT)
        self.dispatch_timeout: float = _env_float("DISPATCH_TIMEOUT", 30.0)
        self.dispatch_max_attempts: int = _env_int("DISPATCH_MAX_ATTEMPTS", 3)
        self.dispatch_base_delay: float = _env_float("DISPATCH_BASE_DELAY", 1.0)

        self.timeline_url: str = os.environ.get("TIMELINE_URL", DEFAULT_TIMELINE_URL)

        self.content_spreadsheet_id: str = os.environ.get(
            "CONTENT_SPREADSHEET_ID", DEFAULT_CONTENT_SPREADSHEET_ID
        )
        self.news_spreadsheet_id: str = os.environ.get(
            "NEWS_SPREADSHEET_ID", DEFAULT_NEWS_SPREADSHEET_ID
        )
        self.rss_spreadsheet_id: str = os.environ.get(
            "RSS_SPREADSHEET_ID", DEFAULT_RSS_SPREADSHEET_ID
        )
        self.sheets_timeout: float = _env_float("SHEETS_TIMEOUT", 30.0)
        self.queue_limit: int = _env_int("QUEUE_LIMIT", 100)

        self.backend_port: int = _env_int("BACKEND_PORT", 8000)
        self.cors_origins: List[str] = _env_list("BACKEND_CORS_ORIGINS")
        self.log_level: str = os.environ.get("LOG_LEVEL", "info").lower()

        if self.dispatch_max_attempts < 1:
            raise ValueError("DISPATCH_MAX_ATTEMPTS must be at least 1")

    def to_dict(self, redact_secrets: bool = True) -> Dict[str, Any]:
        """Return all config keys, masking secrets unless told otherwise."""
        data: Dict[str, Any] = {
            "webhook_endpoint": self.webhook_endpoint,
            "dispatch_timeout": self.dispatch_timeout,
            "dispatch_max_attempts": self.dispatch_max_attempts,
            "dispatch_base_delay": self.dispatch_base_delay,
            "timeline_url": self.timeline_url,
            "content_spreadsheet_id": self.content_spreadsheet_id,
            "news_spreadsheet_id": self.news_spreadsheet_id,
            "rss_spreadsheet_id": self.rss_spreadsheet_id,
            "sheets_timeout": self.sheets_timeout,
            "queue_limit": self.queue_limit,
            "backend_port": self.backend_port,
            "cors_origins": list(self.cors_origins),
            "log_level": self.log_level,
        }
        if redact_secrets:
            for key in _SECRET_KEYS:
                data[key] = _redact(str(data[key]))
        return data

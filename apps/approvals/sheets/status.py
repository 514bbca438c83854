"""Status constants, pending checks and small string helpers for sheet cells."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

PENDING = "Pending"
APPROVED = "Approved"
REJECTED = "Rejected"

_PENDING_APPROVAL_VALUES = frozenset({"pending approval", "pending", "pending review", "review"})

_SEPARATOR_RE = re.compile(r"[\s_-]+")
_WHITESPACE_RE = re.compile(r"\s+")

_HYPERLINK_FORMULA_RE = re.compile(r'=HYPERLINK\(\s*"([^"]+)"', re.IGNORECASE)
_HREF_RE = re.compile(r'href="([^"]+)"', re.IGNORECASE)
_BARE_URL_RE = re.compile(r"https?://[^\s\"'<>]+", re.IGNORECASE)

_PUBLISH_TOKEN_SPLIT_RE = re.compile(r"[,|\s]+")
_PUBLISHED_PATTERNS = (
    re.compile(r"^\d{12,22}$"),
    re.compile(r"^urn:li:(share|activity|ugcpost):\d+$", re.IGNORECASE),
    re.compile(r"linkedin\.com/.*(share|activity|ugcpost)", re.IGNORECASE),
    re.compile(r"(facebook\.com|fb\.watch|fb\.me)", re.IGNORECASE),
    re.compile(r"(twitter\.com|x\.com)/.+/status/\d+", re.IGNORECASE),
    re.compile(r"^https?://", re.IGNORECASE),
    re.compile(r"\b(posted|published)\b", re.IGNORECASE),
)

CAPTION_MAX_LENGTH = 2000
CAPTION_WARN_LENGTH = 1800


def _as_text(raw: Any) -> str:
    return "" if raw is None else str(raw).strip()


def _coalesce(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def normalize_key(raw: Any) -> str:
    """Lower-case and collapse runs of spaces, underscores and dashes."""
    return _SEPARATOR_RE.sub(" ", _as_text(raw).lower())


def is_pending_approval(raw: Any) -> bool:
    return normalize_key(raw) in _PENDING_APPROVAL_VALUES


def is_rss_success(raw: Any) -> bool:
    """True when the RSS gate column (S) reads ``RSS_Success``."""
    return _WHITESPACE_RE.sub(" ", _as_text(raw).lower()) == "rss_success"


def extract_url_from_hyperlink(text: str) -> Optional[str]:
    """Pull the URL out of a HYPERLINK formula, an anchor tag, or free text."""
    if not text:
        return None
    for pattern in (_HYPERLINK_FORMULA_RE, _HREF_RE):
        match = pattern.search(text)
        if match:
            return match.group(1)
    match = _BARE_URL_RE.search(text)
    return match.group(0) if match else None


def normalize_publish_cell(raw: Any) -> str:
    text = _as_text(raw)
    if not text:
        return ""
    return extract_url_from_hyperlink(text) or text


def is_published_status(raw: Any) -> bool:
    """True when the publish cell holds a post id, a post URL, or says posted/published."""
    text = normalize_publish_cell(raw)
    if not text:
        return False
    tokens = [token for token in _PUBLISH_TOKEN_SPLIT_RE.split(text) if token]
    return any(
        pattern.search(token) for token in tokens for pattern in _PUBLISHED_PATTERNS
    )


# -----------------------------------------------------------------------
# Duplicate markers
# -----------------------------------------------------------------------

@dataclass(frozen=True)
class DupInfo:
    tag: str
    reason: str


def dup_info(item: Mapping[str, Any]) -> DupInfo:
    """YES when the duplicate link or keyword (camel or snake case) is set."""
    link = _as_text(_coalesce(item.get("duplicateLink"), item.get("duplicate_link")))
    keyword = _as_text(_coalesce(item.get("duplicateKeyword"), item.get("duplicate_keyword")))
    if link or keyword:
        return DupInfo("YES", " | ".join(part for part in (link, keyword) if part))
    return DupInfo("NO", "")


# -----------------------------------------------------------------------
# Caption length
# -----------------------------------------------------------------------

def caption_length(text: Optional[str]) -> int:
    """Length in Unicode code points (emoji count once)."""
    return len(text) if text else 0


def caption_level(
    length: int,
    max_length: int = CAPTION_MAX_LENGTH,
    warn_at: int = CAPTION_WARN_LENGTH,
) -> str:
    if length > max_length:
        return "over"
    if length > warn_at:
        return "warning"
    return "ok"

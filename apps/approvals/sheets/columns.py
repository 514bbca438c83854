"""
Per-category column table.

Each review queue reads a different worksheet with its own layout. Every
column index a queue uses lives in exactly one :class:`CategoryConfig`
record. The application builds the table once from :class:`AppConfig` at
startup. Indices are 0-based (column A = 0).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from apps.approvals.config import AppConfig
from apps.approvals.models import ContentType, parse_content_type


class StatusRule(str, Enum):
    """How the row status is derived from ``status_column``."""

    APPROVAL_YES_NO = "approval_yes_no"   # YES -> Approved, NO -> Rejected
    PUBLISH_YES_NO = "publish_yes_no"     # Column H, compared case-insensitively
    RSS_STATE = "rss_state"               # approved/posted -> Approved, rejected -> Rejected


class PendingRule(str, Enum):
    """Which rows are still waiting for an operator."""

    PENDING_APPROVAL = "pending_approval"  # publish cell reads "pending approval"
    STATUS_PENDING = "status_pending"      # derived status is Pending
    RSS_SUCCESS = "rss_success"            # Column S reads RSS_Success


@dataclass(frozen=True)
class CategoryConfig:
    content_type: ContentType
    spreadsheet_id: str
    sheet_name: str
    id_prefix: str
    fields: Mapping[str, int]
    status_column: int
    status_rule: StatusRule
    pending_rule: PendingRule
    dup_column: int
    dup_as_flag: bool = True
    publish_column: Optional[int] = None
    raw_status_field: Optional[str] = None
    keep_raw_publish_cell: bool = False
    required_any: Tuple[str, ...] = field(default_factory=tuple)
    tail_limit: Optional[int] = None


CONTENT_FIELDS: Dict[str, int] = {
    "inputText": 0,
    "caption": 2,
    "approval": 3,
    "feedback": 4,
    "imageGenerated": 5,
    "imageQuery": 9,
    "regeneratedImage": 10,
    "uid": 13,
    "link": 14,
    "priority": 15,
    "truthScore": 16,
    "category": 17,
    "keywords": 18,
    "headline": 20,
    "pubDate": 26,
}

NEWS_FIELDS: Dict[str, int] = {
    "articleTitle": 0,
    "link": 1,
    "pubDate": 2,
    "articleAuthors": 3,
    "creator": 3,
    "imageGenerated": 6,
    "caption": 8,
    "approval": 9,
    "source": 11,
    "keywords": 18,
    "priority": 19,
    "category": 20,
    "truthScore": 21,
}

RSS_FIELDS: Dict[str, int] = {
    "uid": 2,
    "date": 3,
    "link": 5,
    "source": 7,
    "creator": 8,
    "title": 9,
    "contentSnippet": 11,
    "type": 12,
    "truthScore": 13,
    "keywords": 16,
    "category": 19,
    "priority": 20,
}

DENTISTRY_FIELDS: Dict[str, int] = {
    "caption": 2,
    "imageGenerated": 5,
    "source": 11,
    "link": 14,
    "priority": 15,
    "truthScore": 16,
    "category": 17,
    "keywords": 18,
    "headline": 20,
    "pubDate": 26,
}

RSS_STATUS_COLUMN = 18   # Column S, written by n8n
PUBLISH_COLUMN = 7       # Column H

PENDING_RULES: Dict[ContentType, PendingRule] = {
    ContentType.CONTENT: PendingRule.PENDING_APPROVAL,
    ContentType.NEWS: PendingRule.STATUS_PENDING,
    ContentType.RSS: PendingRule.RSS_SUCCESS,
    ContentType.RSS_NEWS: PendingRule.RSS_SUCCESS,
    ContentType.RSS_DENTISTRY: PendingRule.RSS_SUCCESS,
    ContentType.DENTISTRY: PendingRule.PENDING_APPROVAL,
}


def _rss_config(
    content_type: ContentType,
    spreadsheet_id: str,
    sheet_name: str,
    id_prefix: str,
    tail_limit: int,
) -> CategoryConfig:
    return CategoryConfig(
        content_type=content_type,
        spreadsheet_id=spreadsheet_id,
        sheet_name=sheet_name,
        id_prefix=id_prefix,
        fields=RSS_FIELDS,
        status_column=RSS_STATUS_COLUMN,
        status_rule=StatusRule.RSS_STATE,
        pending_rule=PENDING_RULES[content_type],
        dup_column=17,
        dup_as_flag=False,
        raw_status_field="proceedToProduction",
        tail_limit=tail_limit,
    )


def build_category_table(config: AppConfig) -> Dict[ContentType, CategoryConfig]:
    """Build the authoritative column table for every content type."""
    limit = config.queue_limit
    return {
        ContentType.CONTENT: CategoryConfig(
            content_type=ContentType.CONTENT,
            spreadsheet_id=config.content_spreadsheet_id,
            sheet_name="text/image",
            id_prefix="content",
            fields=CONTENT_FIELDS,
            status_column=3,
            status_rule=StatusRule.APPROVAL_YES_NO,
            pending_rule=PENDING_RULES[ContentType.CONTENT],
            dup_column=21,
            publish_column=PUBLISH_COLUMN,
        ),
        ContentType.NEWS: CategoryConfig(
            content_type=ContentType.NEWS,
            spreadsheet_id=config.news_spreadsheet_id,
            sheet_name="HEALTH NEWS USA- THUMBNAILS",
            id_prefix="news",
            fields=NEWS_FIELDS,
            status_column=9,
            status_rule=StatusRule.APPROVAL_YES_NO,
            pending_rule=PENDING_RULES[ContentType.NEWS],
            dup_column=27,
            required_any=("articleTitle", "caption"),
            tail_limit=limit,
        ),
        ContentType.RSS: _rss_config(
            ContentType.RSS, config.rss_spreadsheet_id, "Thumbnail System", "rss", limit
        ),
        ContentType.RSS_NEWS: _rss_config(
            ContentType.RSS_NEWS, config.rss_spreadsheet_id, "HNN RSS", "hnn", limit
        ),
        ContentType.RSS_DENTISTRY: _rss_config(
            ContentType.RSS_DENTISTRY, config.rss_spreadsheet_id, "Dental RSS", "rss-dent", limit
        ),
        ContentType.DENTISTRY: CategoryConfig(
            content_type=ContentType.DENTISTRY,
            spreadsheet_id=config.content_spreadsheet_id,
            sheet_name="DENTAL",
            id_prefix="dent",
            fields=DENTISTRY_FIELDS,
            status_column=PUBLISH_COLUMN,
            status_rule=StatusRule.PUBLISH_YES_NO,
            pending_rule=PENDING_RULES[ContentType.DENTISTRY],
            dup_column=21,
            publish_column=PUBLISH_COLUMN,
            keep_raw_publish_cell=True,
            required_any=(
                "headline", "caption", "link", "pubDate",
                "keywords", "priority", "category", "truthScore",
            ),
        ),
    }


def category_config(
    content_type: Any, table: Mapping[ContentType, CategoryConfig]
) -> CategoryConfig:
    """Column record for *content_type* (any accepted alias) from a built table."""
    return table[parse_content_type(content_type)]

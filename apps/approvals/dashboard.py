"""Queue filtering and dashboard counters over mapped row items."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from apps.approvals.decisions import DecisionRegistry
from apps.approvals.models import parse_content_type
from apps.approvals.sheets.columns import PENDING_RULES, PendingRule
from apps.approvals.sheets.status import (
    PENDING,
    is_pending_approval,
    is_published_status,
    is_rss_success,
)


def _is_waiting(rule: PendingRule, item: Mapping[str, Any]) -> bool:
    if rule == PendingRule.PENDING_APPROVAL:
        return is_pending_approval(item.get("columnHStatus"))
    if rule == PendingRule.STATUS_PENDING:
        return item.get("status") == PENDING
    return is_rss_success(item.get("proceedToProduction"))


def filter_pending(
    rows: Iterable[Mapping[str, Any]],
    content_type: Any,
    registry: DecisionRegistry,
) -> List[Mapping[str, Any]]:
    """Rows still waiting for a decision: not processed locally and pending in the sheet."""
    rule = PENDING_RULES[parse_content_type(content_type)]
    return [
        item for item in rows
        if not registry.is_processed(item) and _is_waiting(rule, item)
    ]


def approved_rows(rows: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    return [item for item in rows if item.get("columnHStatus") == "YES"]


def published_rows(rows: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    return [item for item in rows if is_published_status(item.get("columnHStatus"))]


def dashboard_stats(content_rows: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Counters for the content queue, bucketed by the Column H publish cell.

    Only rows with a caption count. ``YES`` is approved, a post id or post URL
    is published, everything else lands in one pending bucket.
    """
    total = approved = published = 0
    no = regenerated = pending_approval = empty = 0

    for item in content_rows:
        caption = item.get("caption") or ""
        if not caption.strip():
            continue
        total += 1

        h = item.get("columnHStatus") or ""
        h_lower = h.lower()
        if h == "YES":
            approved += 1
        elif is_published_status(h):
            published += 1
        elif h_lower == "no":
            no += 1
        elif h_lower == "regenerated":
            regenerated += 1
        elif h_lower == "pending approval":
            pending_approval += 1
        elif h_lower == "":
            empty += 1

    return {
        "total": total,
        "pending": pending_approval,
        "approved": approved,
        "published": published,
        "pendingBreakdown": {
            "no": no,
            "regenerated": regenerated,
            "pendingApproval": pending_approval,
            "empty": empty,
        },
        "tracking": {
            "approved": approved,
            "sentForRegeneration": no + regenerated,
            "pendingApproval": pending_approval,
            "published": published,
        },
    }

"""Turn GViz table rows into row items for the review queues."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

from apps.approvals.sheets.columns import CategoryConfig, StatusRule
from apps.approvals.sheets.gviz import Cell, cell_text
from apps.approvals.sheets.status import (
    APPROVED,
    PENDING,
    REJECTED,
    normalize_key,
    normalize_publish_cell,
)

HEADER_ROWS = 1


def derive_status(rule: StatusRule, raw: str) -> str:
    """Pending / Approved / Rejected for a status cell under *rule*."""
    if rule == StatusRule.APPROVAL_YES_NO:
        value = raw.strip().upper()
        if value == "YES":
            return APPROVED
        if value == "NO":
            return REJECTED
        return PENDING
    value = normalize_key(raw)
    if rule == StatusRule.PUBLISH_YES_NO:
        return {"yes": APPROVED, "no": REJECTED}.get(value, PENDING)
    if value in ("approved", "posted"):
        return APPROVED
    if value == "rejected":
        return REJECTED
    return PENDING


def map_row(
    config: CategoryConfig,
    idx: int,
    cells: Sequence[Cell],
    now_ms: int,
) -> Optional[Dict[str, Any]]:
    """Map one table row, or return None when the row should be skipped."""
    fields = {name: cell_text(cells, column) for name, column in config.fields.items()}
    if not any(fields.values()):
        return None
    if config.required_any and not any(fields[name] for name in config.required_any):
        return None

    status_raw = cell_text(cells, config.status_column)
    item: Dict[str, Any] = {
        "id": f"{config.id_prefix}-{idx}",
        "rowNumber": idx + HEADER_ROWS + 1,
        "actualArrayIndex": idx,
        "sheet": config.sheet_name,
        "timestamp": now_ms - idx * 1000,
        "status": derive_status(config.status_rule, status_raw),
    }
    item.update(fields)

    dup_raw = cell_text(cells, config.dup_column)
    item["dup"] = ("YES" if dup_raw else "NO") if config.dup_as_flag else dup_raw

    if config.publish_column is not None:
        publish_raw = cell_text(cells, config.publish_column)
        item["columnHStatus"] = normalize_publish_cell(publish_raw)
        if config.keep_raw_publish_cell:
            item["hCell"] = publish_raw
    if config.raw_status_field:
        item[config.raw_status_field] = status_raw
    return item


def map_rows(
    config: CategoryConfig,
    rows: Sequence[Sequence[Cell]],
    now: Optional[float] = None,
) -> List[Dict[str, Any]]:
    """Map a whole worksheet: skip empty rows, keep the tail, newest first.

    *now* is a POSIX timestamp in seconds; row timestamps are epoch
    milliseconds, one second apart per row.
    """
    now_ms = int((time.time() if now is None else now) * 1000)
    items = []
    for idx, cells in enumerate(rows):
        item = map_row(config, idx, cells or [], now_ms)
        if item is not None:
            items.append(item)
    if config.tail_limit:
        items = items[-config.tail_limit:]
    items.reverse()
    return items

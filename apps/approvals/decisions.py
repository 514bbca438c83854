"""In-memory ledger of operator decisions, keyed by sheet, row and item id.

A row with a recorded decision is hidden from its queue until the decision
is undone or the ledger is reset.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Dict, List, Mapping

DECISION_STATUSES = frozenset({"approved", "rejected"})


class DecisionRegistry:
    """Thread-safe map of item key -> ``{"status", "timestamp"}``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._decisions: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def item_key(item: Mapping[str, Any]) -> str:
        row = item.get("rowNumber")
        if row is None:
            row = item.get("row")
        if row is None:
            row = 0
        return f"{item.get('sheet', '')}-{row}-{item.get('id', '')}"

    def record(self, item: Mapping[str, Any], status: str) -> Dict[str, Any]:
        """Record *status* for *item*, replacing any earlier decision."""
        if status not in DECISION_STATUSES:
            raise ValueError(f"Invalid decision status: {status!r}")
        key = self.item_key(item)
        entry = {"key": key, "status": status, "timestamp": int(time.time() * 1000)}
        with self._lock:
            self._decisions[key] = entry
        return dict(entry)

    def is_processed(self, item: Mapping[str, Any]) -> bool:
        with self._lock:
            return self.item_key(item) in self._decisions

    def undo(self, item: Mapping[str, Any]) -> bool:
        """Forget the decision for *item*. Returns False when there was none."""
        with self._lock:
            return self._decisions.pop(self.item_key(item), None) is not None

    def list_decisions(self) -> List[Dict[str, Any]]:
        with self._lock:
            entries = [dict(entry) for entry in self._decisions.values()]
        return sorted(entries, key=lambda e: e["timestamp"], reverse=True)

    def reset(self) -> None:
        """Clear all decisions (for testing)."""
        with self._lock:
            self._decisions.clear()

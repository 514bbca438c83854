"""Google Sheets GViz client (uses httpx.AsyncClient)."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence

import httpx

from apps.approvals.errors import SheetFetchError

if TYPE_CHECKING:
    from apps.approvals.sheets.columns import CategoryConfig

logger = logging.getLogger(__name__)

DEFAULT_SHEETS_BASE_URL = "https://docs.google.com/spreadsheets/d"
DEFAULT_SHEETS_TIMEOUT = 30.0

Cell = Optional[Mapping[str, Any]]


def parse_gviz(text: str) -> Dict[str, Any]:
    """Strip the ``google.visualization.Query.setResponse(...)`` wrapper and parse the JSON."""
    start = text.find("{") if text else -1
    end = text.rfind("}") if text else -1
    if start < 0 or end <= start:
        raise SheetFetchError("Invalid GViz payload")
    try:
        doc = json.loads(text[start:end + 1])
    except json.JSONDecodeError as exc:
        raise SheetFetchError("Invalid GViz payload") from exc
    if not isinstance(doc, dict):
        raise SheetFetchError("Invalid GViz payload")
    return doc


def table_rows(doc: Mapping[str, Any]) -> List[List[Cell]]:
    table = doc.get("table") or {}
    return [list((row or {}).get("c") or []) for row in table.get("rows") or []]


def _format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def cell_text(cells: Sequence[Cell], idx: int) -> str:
    """Text of cell *idx*: formatted value ``f`` first, raw ``v`` second."""
    if idx < 0 or idx >= len(cells):
        return ""
    cell = cells[idx]
    if not cell:
        return ""
    value = cell.get("f")
    if value is None:
        value = cell.get("v")
    return _format_value(value).strip()


class SheetsClient:
    """Reads worksheets through the public GViz endpoint.

    Usage::

        async with SheetsClient() as sheets:
            rows = await sheets.fetch_table(spreadsheet_id, "text/image")
    """

    def __init__(
        self,
        base_url: str = DEFAULT_SHEETS_BASE_URL,
        timeout: float = DEFAULT_SHEETS_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "SheetsClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def gviz_url(self, spreadsheet_id: str, sheet_name: str) -> str:
        url = httpx.URL(
            f"{self.base_url}/{spreadsheet_id}/gviz/tq",
            params={"tqx": "out:json", "sheet": sheet_name},
        )
        return str(url)

    async def _get(self, url: str) -> httpx.Response:
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise SheetFetchError(f"Request to {url} failed: {exc}") from exc
        if resp.status_code >= 400:
            raise SheetFetchError(f"HTTP {resp.status_code} from {url}")
        return resp

    async def fetch_table(self, spreadsheet_id: str, sheet_name: str) -> List[List[Cell]]:
        """Fetch one worksheet and return its rows as lists of GViz cells."""
        resp = await self._get(self.gviz_url(spreadsheet_id, sheet_name))
        return table_rows(parse_gviz(resp.text))

    async def fetch_category(self, config: "CategoryConfig") -> List[Dict[str, Any]]:
        """Fetch and map the rows of one review queue, newest first."""
        from apps.approvals.sheets.rows import map_rows

        try:
            rows = await self.fetch_table(config.spreadsheet_id, config.sheet_name)
        except SheetFetchError as exc:
            logger.error(f"Error fetching {config.content_type.value}: {exc}")
            raise
        return map_rows(config, rows)

    async def fetch_timeline(self, url: str) -> List[Dict[str, Any]]:
        """GET the schedule feed; anything other than a JSON list reads as empty."""
        resp = await self._get(url)
        try:
            data = resp.json()
        except ValueError as exc:
            logger.error(f"Error fetching timeline: {exc}")
            raise SheetFetchError("Timeline response is not JSON") from exc
        if not isinstance(data, list):
            return []
        return [entry for entry in data if isinstance(entry, dict)]

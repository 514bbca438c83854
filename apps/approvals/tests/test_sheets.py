"""Tests for GViz parsing, the column table, row mapping and the sheets client."""

import json

import httpx
import pytest

from apps.approvals.config import AppConfig
from apps.approvals.errors import SheetFetchError, UnknownContentType
from apps.approvals.models import ContentType
from apps.approvals.sheets import (
    PendingRule,
    SheetsClient,
    StatusRule,
    build_category_table,
    category_config,
    cell_text,
    derive_status,
    map_rows,
    parse_gviz,
    table_rows,
)

NOW = 1_700_000_000.0


def _cells(values, width=30):
    cells = [None] * width
    for idx, value in values.items():
        cells[idx] = {"v": value}
    return cells


def _gviz(rows):
    doc = {
        "version": "0.6",
        "status": "ok",
        "table": {"cols": [], "rows": [{"c": cells} for cells in rows]},
    }
    return f"/*O_o*/\ngoogle.visualization.Query.setResponse({json.dumps(doc)});"


@pytest.fixture
def table():
    return build_category_table(AppConfig())


# ---------------------------------------------------------------------------
# GViz parsing
# ---------------------------------------------------------------------------


def test_parse_gviz_strips_wrapper():
    doc = parse_gviz(_gviz([_cells({0: "a"}, width=2)]))
    assert table_rows(doc) == [[{"v": "a"}, None]]


@pytest.mark.parametrize("text", ["", "no json at all", "setResponse({not json});"])
def test_parse_gviz_invalid_payload(text):
    with pytest.raises(SheetFetchError, match="Invalid GViz payload"):
        parse_gviz(text)


def test_table_rows_tolerates_missing_cells():
    assert table_rows({"table": {"rows": [{}, {"c": None}]}}) == [[], []]
    assert table_rows({}) == []


def test_cell_text_prefers_formatted_value():
    cells = [{"v": 45000.0, "f": "3/15/2023"}, {"v": 3.0}, {"v": 3.5}, {"v": "  padded "}, None]
    assert cell_text(cells, 0) == "3/15/2023"
    assert cell_text(cells, 1) == "3"
    assert cell_text(cells, 2) == "3.5"
    assert cell_text(cells, 3) == "padded"
    assert cell_text(cells, 4) == ""
    assert cell_text(cells, 99) == ""


# ---------------------------------------------------------------------------
# Column table
# ---------------------------------------------------------------------------


def test_category_table_covers_every_content_type(table):
    assert set(table) == set(ContentType)
    assert table[ContentType.RSS_NEWS].sheet_name == "HNN RSS"
    assert table[ContentType.RSS_DENTISTRY].id_prefix == "rss-dent"
    assert table[ContentType.DENTISTRY].pending_rule == PendingRule.PENDING_APPROVAL
    assert table[ContentType.NEWS].status_rule == StatusRule.APPROVAL_YES_NO


def test_category_table_uses_configured_spreadsheets(monkeypatch):
    monkeypatch.setenv("RSS_SPREADSHEET_ID", "rss-sheet")
    monkeypatch.setenv("QUEUE_LIMIT", "25")
    table = build_category_table(AppConfig())
    assert table[ContentType.RSS].spreadsheet_id == "rss-sheet"
    assert table[ContentType.RSS].tail_limit == 25
    assert table[ContentType.CONTENT].tail_limit is None


def test_category_config_resolves_aliases(table):
    assert category_config("rssMedia", table) is table[ContentType.RSS]
    assert category_config("regenerated", table) is table[ContentType.CONTENT]
    with pytest.raises(UnknownContentType):
        category_config("podcasts", table)


@pytest.mark.parametrize(
    "rule,raw,expected",
    [
        (StatusRule.APPROVAL_YES_NO, "yes", "Approved"),
        (StatusRule.APPROVAL_YES_NO, "NO", "Rejected"),
        (StatusRule.APPROVAL_YES_NO, "maybe", "Pending"),
        (StatusRule.PUBLISH_YES_NO, " Yes ", "Approved"),
        (StatusRule.PUBLISH_YES_NO, "pending approval", "Pending"),
        (StatusRule.RSS_STATE, "posted", "Approved"),
        (StatusRule.RSS_STATE, "Rejected", "Rejected"),
        (StatusRule.RSS_STATE, "RSS_Success", "Pending"),
    ],
)
def test_derive_status(rule, raw, expected):
    assert derive_status(rule, raw) == expected


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def test_map_content_rows(table):
    rows = [
        _cells({2: "First caption", 3: "NO", 7: "YES", 13: "uid-0", 20: "First"}),
        [],
        _cells({
            0: "input",
            2: "Second caption",
            7: "Pending Approval",
            13: "uid-2",
            14: "https://news.example/2",
            16: 8.0,
            20: "Second",
            21: "https://dup.example",
            26: "2024-05-01",
        }),
    ]
    items = map_rows(table[ContentType.CONTENT], rows, now=NOW)

    assert [item["id"] for item in items] == ["content-2", "content-0"]
    newest = items[0]
    assert newest["rowNumber"] == 4
    assert newest["actualArrayIndex"] == 2
    assert newest["sheet"] == "text/image"
    assert newest["timestamp"] == int(NOW * 1000) - 2000
    assert newest["status"] == "Pending"
    assert newest["columnHStatus"] == "Pending Approval"
    assert newest["truthScore"] == "8"
    assert newest["dup"] == "YES"
    assert newest["pubDate"] == "2024-05-01"
    assert items[1]["status"] == "Rejected"
    assert items[1]["dup"] == "NO"
    assert "hCell" not in newest


def test_map_news_rows_drops_untitled_and_keeps_tail(monkeypatch):
    monkeypatch.setenv("QUEUE_LIMIT", "2")
    config = build_category_table(AppConfig())[ContentType.NEWS]
    rows = [
        _cells({0: f"Title {idx}", 9: "yes" if idx == 4 else ""}) for idx in range(5)
    ]
    rows.append(_cells({1: "https://link.only"}))
    items = map_rows(config, rows, now=NOW)

    assert [item["id"] for item in items] == ["news-4", "news-3"]
    assert items[0]["status"] == "Approved"
    assert items[1]["status"] == "Pending"
    assert items[0]["articleTitle"] == "Title 4"


def test_map_rss_rows_keeps_raw_status(table):
    rows = [
        _cells({2: "u-0", 9: "Title 0", 17: "maybe dup", 18: "RSS_Success"}),
        _cells({2: "u-1", 9: "Title 1", 18: "posted"}),
    ]
    items = map_rows(table[ContentType.RSS_NEWS], rows, now=NOW)

    by_id = {item["id"]: item for item in items}
    assert by_id["hnn-0"]["proceedToProduction"] == "RSS_Success"
    assert by_id["hnn-0"]["status"] == "Pending"
    assert by_id["hnn-0"]["dup"] == "maybe dup"
    assert by_id["hnn-1"]["status"] == "Approved"
    assert by_id["hnn-1"]["sheet"] == "HNN RSS"
    assert "columnHStatus" not in by_id["hnn-1"]


def test_map_dentistry_rows(table):
    rows = [
        _cells({5: "https://img.example/only-image.png"}),
        _cells({2: "Dental caption", 7: '=HYPERLINK("https://fb.me/post")', 20: "Smile"}),
        _cells({2: "Other caption", 7: "yes"}),
    ]
    items = map_rows(table[ContentType.DENTISTRY], rows, now=NOW)

    assert [item["id"] for item in items] == ["dent-2", "dent-1"]
    assert items[0]["status"] == "Approved"
    assert items[1]["columnHStatus"] == "https://fb.me/post"
    assert items[1]["hCell"] == '=HYPERLINK("https://fb.me/post")'
    assert items[1]["status"] == "Pending"


# ---------------------------------------------------------------------------
# SheetsClient
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_fetch_table_requests_gviz_json():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, text=_gviz([_cells({0: "x"}, width=1)]))

    async with SheetsClient(transport=httpx.MockTransport(handler)) as sheets:
        rows = await sheets.fetch_table("sheet-id", "text/image")

    assert rows == [[{"v": "x"}]]
    request = seen[0]
    assert request.url.path == "/spreadsheets/d/sheet-id/gviz/tq"
    assert request.url.params["tqx"] == "out:json"
    assert request.url.params["sheet"] == "text/image"


@pytest.mark.asyncio
async def test_fetch_table_http_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(404, text="missing"))
    async with SheetsClient(transport=transport) as sheets:
        with pytest.raises(SheetFetchError, match="HTTP 404"):
            await sheets.fetch_table("sheet-id", "DENTAL")


@pytest.mark.asyncio
async def test_fetch_table_network_error():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    async with SheetsClient(transport=httpx.MockTransport(handler)) as sheets:
        with pytest.raises(SheetFetchError):
            await sheets.fetch_table("sheet-id", "DENTAL")


@pytest.mark.asyncio
async def test_fetch_category_maps_rows(table):
    rows = [_cells({2: "u-1", 9: "A title", 18: "RSS_Success"})]
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text=_gviz(rows)))
    async with SheetsClient(transport=transport) as sheets:
        items = await sheets.fetch_category(table[ContentType.RSS])

    assert len(items) == 1
    assert items[0]["id"] == "rss-0"
    assert items[0]["title"] == "A title"


@pytest.mark.asyncio
async def test_fetch_timeline():
    entries = [{"date": "2024-05-01", "title": "Post"}, "junk"]
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=entries))
    async with SheetsClient(transport=transport) as sheets:
        timeline = await sheets.fetch_timeline("https://automation.example/approvalschedule")
    assert timeline == [{"date": "2024-05-01", "title": "Post"}]


@pytest.mark.asyncio
async def test_fetch_timeline_non_list_is_empty():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"message": "ok"}))
    async with SheetsClient(transport=transport) as sheets:
        assert await sheets.fetch_timeline("https://automation.example/t") == []


@pytest.mark.asyncio
async def test_fetch_timeline_invalid_json():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
    async with SheetsClient(transport=transport) as sheets:
        with pytest.raises(SheetFetchError):
            await sheets.fetch_timeline("https://automation.example/t")


@pytest.mark.asyncio
async def test_close_releases_http_client():
    sheets = SheetsClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    await sheets.close()
    assert sheets._client.is_closed

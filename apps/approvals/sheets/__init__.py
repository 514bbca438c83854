"""Row source: GViz fetching, per-category column table and status helpers."""

from .columns import (
    CategoryConfig,
    PendingRule,
    StatusRule,
    build_category_table,
    category_config,
)
from .gviz import SheetsClient, cell_text, parse_gviz, table_rows
from .rows import derive_status, map_rows

__all__ = [
    "CategoryConfig",
    "PendingRule",
    "SheetsClient",
    "StatusRule",
    "build_category_table",
    "category_config",
    "cell_text",
    "derive_status",
    "map_rows",
    "parse_gviz",
    "table_rows",
]

"""
dupsmith: find rows that break key uniqueness in tabular data.

Current submodules:
- dupsmith.sources (CSV / Parquet row sources)
- dupsmith.fields (key field resolution)
- dupsmith.hints (primary-key hint files)
- dupsmith.duplicates (digesting and grouping)
- dupsmith.report (text rendering)
- dupsmith.cli (CLI entrypoint)
"""

from .duplicates import (
    count_duplicates_sorted,
    row_digest,
    group_rows,
    find_duplicate_groups,
    summarize,
    limit_groups,
)
from .fields import resolve_key_fields
from .model import DuplicateGroup, Field, Row, Schema, SelectionRequest
from .sources import open_tabular_input

__all__ = [
    "count_duplicates_sorted",
    "row_digest",
    "group_rows",
    "find_duplicate_groups",
    "summarize",
    "limit_groups",
    "resolve_key_fields",
    "open_tabular_input",
    "DuplicateGroup",
    "Field",
    "Row",
    "Schema",
    "SelectionRequest",
]

"""
Run options and shared constants for dupsmith.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

# Hard cut applied to every displayed value; no ellipsis marker is added.
DISPLAY_WIDTH = 36

NULL_LITERAL = "NULL"

# ASCII "Unit Separator" between canonicalized key values.
FIELD_SEPARATOR = "\x1f"

DEFAULT_HINT_FILE = "pklist.json"

GROUP_ORDERS = ("first-seen", "digest")


@dataclass(frozen=True)
class RunOptions:
    """Everything the CLI collected for a single run."""

    path: Path
    force_csv: bool = False
    delimiter: str = ","
    has_header: bool = True
    fields: tuple[str, ...] = ()
    column_indices: tuple[int, ...] = ()
    config_path: Optional[Path] = None
    verbose: bool = False
    limit: int = -1
    find_duplicates: bool = False
    print_data: bool = False
    row_limit: int = -1
    show_stats: bool = False
    workers: Optional[int] = None
    group_order: str = "first-seen"
    ignore_schema_mismatch: bool = False


def resolve_hint_path(explicit: Optional[str], cwd: Optional[Path] = None) -> Optional[Path]:
    """
    Return the hint file to use, or None.

    An explicit path always wins (even if it is missing, so the loader can
    warn about it). Otherwise ``pklist.json`` in the working directory is
    picked up when present.
    """
    if explicit:
        return Path(explicit)
    default = (cwd or Path.cwd()) / DEFAULT_HINT_FILE
    if default.is_file():
        return default
    return None


def parse_delimiter(raw: str) -> str:
    if raw in ("\\t", "tab"):
        return "\t"
    if not raw:
        raise ValueError("delimiter must not be empty")
    return raw[0]

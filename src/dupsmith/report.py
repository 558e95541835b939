"""
Text rendering for dupsmith.

All functions return lists of lines; the CLI decides where they go.
Displayed values are hard-cut to DISPLAY_WIDTH characters with no marker.
"""

from __future__ import annotations

from decimal import ROUND_HALF_EVEN, Decimal
from pathlib import Path
from typing import Sequence

from .config import DISPLAY_WIDTH, RunOptions
from .duplicates import count_duplicates_sorted, limit_groups, summarize
from .model import DuplicateGroup, Row, Schema
from .sources import TabularInput

RULE_CHAR = "─"
BANNER_CHAR = "═"


def truncate(text: str, width: int = DISPLAY_WIDTH) -> str:
    return text[:width]


def _cells(row: Row, columns: Sequence[str], width: int) -> list[str]:
    return [truncate(row.display(c), width) for c in columns]


def render_group(
    number: int,
    group: DuplicateGroup,
    *,
    columns: Sequence[str],
    key_fields: Sequence[str],
    verbose: bool,
    width: int = DISPLAY_WIDTH,
) -> list[str]:
    """
    One duplicate group.

    Verbose: every column of every member. Otherwise: the key fields of the
    first member; the header line carries the member count.
    """
    lines = ["", f"Duplicate Group #{number} - {group.count} records"]
    if verbose:
        lines.append(f"{'#####':>5} | " + " | ".join(columns))
        for n, row in enumerate(group.members, start=1):
            lines.append(f"{n:>5} | " + " | ".join(_cells(row, columns, width)))
    else:
        lines.append(" | ".join(key_fields))
        lines.append(" | ".join(_cells(group.first, key_fields, width)))
    return lines


def render_duplicate_report(
    groups: Sequence[DuplicateGroup],
    *,
    columns: Sequence[str],
    key_fields: Sequence[str],
    verbose: bool = False,
    limit: int = -1,
    width: int = DISPLAY_WIDTH,
) -> list[str]:
    """
    Full duplicate report: count, (limited) groups, aggregate line.

    The aggregate line always covers every group found, including those
    elided by ``limit``.
    """
    if not groups:
        return ["No duplicates found."]

    summary = summarize(groups)
    lines = [f"Found {summary.group_count} duplicate groups."]

    shown, elided = limit_groups(groups, limit)
    if elided:
        lines.append(
            f"Showing first {len(shown)} duplicate groups "
            f"({elided} more not shown; use --limit to adjust)."
        )

    for number, group in enumerate(shown, start=1):
        lines.extend(
            render_group(
                number,
                group,
                columns=columns,
                key_fields=key_fields,
                verbose=verbose,
                width=width,
            )
        )

    lines.append("")
    lines.append(render_summary_line(groups))
    return lines


def render_summary_line(groups: Sequence[DuplicateGroup]) -> str:
    summary = summarize(groups)
    return (
        f"Summary: Found {summary.total_duplicate_records} duplicate records "
        f"in {summary.group_count} groups."
    )


def render_data(
    columns: Sequence[str],
    rows: Sequence[Row],
    *,
    row_limit: int = -1,
    width: int = DISPLAY_WIDTH,
) -> list[str]:
    """Plain listing, fixed-width columns. ``row_limit`` <= 0 means all rows."""
    lines = [" | ".join(f"{name:<{width}}" for name in columns).rstrip()]
    lines.append(RULE_CHAR * max(0, len(columns) * (width + 3) - 1))
    shown = rows if row_limit <= 0 else rows[:row_limit]
    for row in shown:
        lines.append(" | ".join(f"{cell:<{width}}" for cell in _cells(row, columns, width)).rstrip())
    return lines


def render_columns(schema: Schema) -> list[str]:
    lines = [f"{BANNER_CHAR * 5} COLUMN DETAILS {BANNER_CHAR * 5}", "All Available Columns:"]
    for i, name in enumerate(schema.names):
        lines.append(f"  {i:2}. {name}")
    lines.append(BANNER_CHAR * 25)
    return lines


def format_file_size(size: int) -> str:
    """Human readable size, e.g. ``1.50 KB``."""
    suffixes = ["B", "KB", "MB", "GB", "TB"]
    counter = 0
    number = Decimal(size)
    while counter < len(suffixes) - 1 and (number / 1024).quantize(
        Decimal(1), rounding=ROUND_HALF_EVEN
    ) >= 1:
        number = number / 1024
        counter += 1
    return f"{number:,.2f} {suffixes[counter]}"


def _total_size(files: Sequence[Path]) -> int:
    return sum(f.stat().st_size for f in files if f.is_file())


def render_statistics(tab: TabularInput) -> list[str]:
    """Record count, column details, type summary and on-disk size."""
    schema = tab.schema
    title = f"{BANNER_CHAR * 5} {tab.format.upper()} FILE STATISTICS {BANNER_CHAR * 5}"
    lines = [
        title,
        f"Type: {'Folder' if tab.is_directory else 'File'}",
        f"Path: {tab.path}",
        f"Total Records: {len(tab.rows):,}",
        f"Columns: {len(schema)}",
        "Column Details:",
        "-" * 80,
        f"{'Position':<8} | {'Name':<30} | {'SchemaType':<20}",
        "-" * 80,
    ]
    for i, f in enumerate(schema):
        lines.append(f"{i:<8} | {f.name:<30} | {f.type_tag:<20}")
    lines.append("-" * 80)

    lines.append("Schema Type Summary:")
    for type_tag, count in count_duplicates_sorted((f.type_tag for f in schema), threshold=1):
        lines.append(f"  {type_tag:<20}: {count} column(s)")

    if tab.is_directory:
        lines.append(f"Total Size of {tab.format.capitalize()} Files: {format_file_size(_total_size(tab.files))}")
        lines.append(f"Number of {tab.format.capitalize()} Files: {len(tab.files)}")
    elif tab.path.is_file():
        lines.append(f"File Size: {format_file_size(tab.path.stat().st_size)}")

    if tab.skipped:
        lines.append(f"Skipped Files: {len(tab.skipped)}")
    lines.append(BANNER_CHAR * len(title))
    return lines


def render_configuration(options: RunOptions) -> list[str]:
    is_csv = options.force_csv or (
        options.path.suffix.lower() != ".parquet" and not options.path.is_dir()
    )
    delimiter = "\\t" if options.delimiter == "\t" else options.delimiter
    lines = [
        f"{BANNER_CHAR * 6} Command Line Configuration {BANNER_CHAR * 6}",
        f"File: {options.path}",
        f"Mode: {'CSV' if is_csv else 'Parquet'}",
    ]
    if is_csv:
        lines.append(f"Delimiter: '{delimiter}' | Header: {options.has_header}")
    lines.append(f"Fields: {', '.join(options.fields) if options.fields else 'All Columns'}")
    lines.append(
        f"Columns: {', '.join(str(i) for i in options.column_indices) if options.column_indices else 'N/A'}"
    )
    lines.append(f"Config: {options.config_path if options.config_path else 'N/A'}")
    lines.append(
        f"Verbose: {options.verbose} | Duplicates: {options.find_duplicates} | "
        f"Limit: {options.limit if options.limit > 0 else 'Unlimited'}"
    )
    lines.append(
        f"Print Data: {options.print_data} | "
        f"Row Limit: {options.row_limit if options.row_limit > 0 else 'All'}"
    )
    lines.append(BANNER_CHAR * 40)
    return lines

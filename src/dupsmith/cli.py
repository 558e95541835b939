#!/usr/bin/env python3
"""
dupsmith CLI

Find rows that share the same key in a CSV file, a Parquet file, or a
directory of Parquet files.

    dupsmith data.parquet -f id,region -v
    dupsmith export.csv --delimiter ';' -c 0,2 --limit 10
    dupsmith warehouse/ --config pklist.json
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .config import GROUP_ORDERS, RunOptions, parse_delimiter, resolve_hint_path
from .duplicates import group_rows, summarize
from .errors import NoValidFieldsError, SourceError
from .fields import resolve_key_fields
from .hints import load_hint_file
from .log import log_summary, setup_logging
from .model import SelectionRequest
from .report import (
    render_columns,
    render_configuration,
    render_data,
    render_duplicate_report,
    render_statistics,
)
from .sources import TabularInput, open_tabular_input

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FATAL = 1


def _parse_names(raw: Optional[str]) -> List[str]:
    """
    Normalize a comma-separated column list from the CLI.

    ``"id, name,,ts"`` -> ``["id", "name", "ts"]``
    """
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def _parse_indices(raw: Optional[str]) -> List[int]:
    """Comma-separated integers; tokens that are not integers are dropped."""
    indices: List[int] = []
    rejected: List[str] = []
    for token in _parse_names(raw):
        try:
            indices.append(int(token))
        except ValueError:
            rejected.append(token)
    if rejected:
        logger.warning("Ignoring non-integer column indices: %s", ", ".join(rejected))
    return indices


def _emit(lines: Sequence[str]) -> None:
    for line in lines:
        print(line)


def options_from_args(args: argparse.Namespace) -> RunOptions:
    return RunOptions(
        path=Path(args.input),
        force_csv=args.csv,
        delimiter=parse_delimiter(args.delimiter),
        has_header=args.has_header,
        fields=tuple(_parse_names(args.fields)),
        column_indices=tuple(_parse_indices(args.columns)),
        config_path=resolve_hint_path(args.config),
        verbose=args.verbose,
        limit=args.limit,
        find_duplicates=args.find_duplicates,
        print_data=args.print_data is not None,
        row_limit=args.print_data if args.print_data is not None else -1,
        show_stats=args.stats,
        workers=args.workers,
        group_order=args.order,
        ignore_schema_mismatch=args.ignore_schema_mismatch,
    )


def _open_input(options: RunOptions) -> TabularInput:
    tab = open_tabular_input(
        options.path,
        force_csv=options.force_csv,
        delimiter=options.delimiter,
        has_header=options.has_header,
        ignore_schema_mismatch=options.ignore_schema_mismatch,
    )
    for skipped in tab.skipped:
        logger.warning("Skipped %s: %s", skipped.path, skipped.reason)
    logger.info("Total rows loaded: %d", len(tab.rows))
    return tab


def find_duplicates(tab: TabularInput, options: RunOptions, selection: SelectionRequest) -> int:
    key_fields = resolve_key_fields(
        tab.schema,
        selection,
        source_name=tab.source_name,
        wildcard=tab.wildcard,
    )
    logger.debug(
        "Fields used for duplicate check [%d]: %s", len(key_fields), ", ".join(key_fields)
    )
    logger.info("Searching for duplicates...[%d]", len(tab.rows))

    result = group_rows(
        tab.rows,
        key_fields,
        workers=options.workers,
        order=options.group_order,
    )

    _emit(
        render_duplicate_report(
            result.groups,
            columns=tab.schema.names,
            key_fields=key_fields,
            verbose=options.verbose,
            limit=options.limit,
        )
    )

    summary = summarize(result.groups)
    log_summary(
        f"rows={result.total_rows} distinct_keys={result.distinct_keys} "
        f"groups={summary.group_count} duplicates={summary.total_duplicate_records}"
    )
    return EXIT_SUCCESS


def run(options: RunOptions) -> int:
    if options.verbose or options.show_stats:
        _emit(render_configuration(options))

    hints = load_hint_file(options.config_path)
    selection = SelectionRequest(
        explicit_fields=options.fields,
        explicit_indices=options.column_indices,
        config_hints=hints or {},
    )

    try:
        tab = _open_input(options)
    except SourceError as e:
        logger.error("%s", e)
        return EXIT_FATAL

    if options.show_stats:
        _emit(render_statistics(tab))
        _emit(render_columns(tab.schema))
        return EXIT_SUCCESS

    if options.print_data:
        _emit(render_data(tab.schema.names, tab.rows, row_limit=options.row_limit))

    if options.find_duplicates or not options.print_data:
        try:
            return find_duplicates(tab, options, selection)
        except NoValidFieldsError as e:
            logger.error("%s", e)
            return EXIT_FATAL

    return EXIT_SUCCESS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dupsmith",
        description="Find duplicate records in Parquet or CSV files.",
    )
    parser.add_argument("input", help="CSV file, Parquet file, or directory of Parquet files.")
    parser.add_argument(
        "--config",
        help="JSON/YAML file with primary-key columns per file name. "
             "Defaults to ./pklist.json when present.",
    )
    parser.add_argument(
        "--csv",
        action="store_true",
        help="Treat the input as delimited text regardless of its extension.",
    )
    parser.add_argument(
        "--delimiter",
        default=",",
        help="CSV delimiter (default: ','). Use '\\t' for tab.",
    )
    parser.set_defaults(has_header=True)
    parser.add_argument(
        "--header",
        dest="has_header",
        action="store_const",
        const=True,
        help="First CSV row is a header (default).",
    )
    parser.add_argument(
        "--no-header",
        dest="has_header",
        action="store_const",
        const=False,
        help="CSV has no header row; columns are named Column1..ColumnN.",
    )
    parser.add_argument(
        "-f",
        "--fields",
        help="Comma-separated field names to check for duplicates.",
    )
    parser.add_argument(
        "-c",
        "--columns",
        help="Comma-separated zero-based column indices to check for duplicates.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show all fields for duplicate records.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log at DEBUG level (resolved key fields, per-file reads).",
    )
    parser.add_argument(
        "-l",
        "--limit",
        type=int,
        default=-1,
        help="Limit number of duplicate groups to display (<= 0: unlimited).",
    )
    parser.add_argument(
        "-d",
        "--find-duplicates",
        "--findDuplicates",
        dest="find_duplicates",
        action="store_true",
        help="Find and display duplicates (default when no other action is given).",
    )
    parser.add_argument(
        "-pf",
        "--print-data",
        "--printData",
        dest="print_data",
        nargs="?",
        type=int,
        const=-1,
        default=None,
        metavar="N",
        help="Display the data; optionally only the first N rows.",
    )
    parser.add_argument(
        "-s",
        "--stats",
        action="store_true",
        help="Display file statistics and column positions.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Digest worker threads (default: CPU count; 1 = single-threaded).",
    )
    parser.add_argument(
        "--order",
        choices=GROUP_ORDERS,
        default="first-seen",
        help='Duplicate group order. Default: "first-seen".',
    )
    parser.add_argument(
        "--ignore-schema-mismatch",
        action="store_true",
        help="Skip Parquet files whose schema differs instead of aborting.",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.debug)

    try:
        options = options_from_args(args)
    except ValueError as e:
        parser.error(str(e))

    return run(options)


if __name__ == "__main__":
    raise SystemExit(main())

from pathlib import Path

import pytest

from conftest import make_rows
from dupsmith.config import DISPLAY_WIDTH, RunOptions
from dupsmith.duplicates import find_duplicate_groups
from dupsmith.model import Field, Schema
from dupsmith.report import (
    format_file_size,
    render_columns,
    render_configuration,
    render_data,
    render_duplicate_report,
    render_statistics,
    truncate,
)
from dupsmith.sources import TabularInput

LONG = "x" * 50


# -------------------------------------------------------------------
# truncate
# -------------------------------------------------------------------


@pytest.mark.parametrize("length", [0, 1, 35, 36])
def test_truncate_short_values_unchanged(length):
    text = "a" * length
    assert truncate(text) == text


@pytest.mark.parametrize("length", [37, 100])
def test_truncate_long_values_hard_cut(length):
    text = "".join(str(i % 10) for i in range(length))
    assert truncate(text) == text[:DISPLAY_WIDTH]
    assert len(truncate(text)) == 36


# -------------------------------------------------------------------
# duplicate report
# -------------------------------------------------------------------


@pytest.fixture()
def dup_rows():
    return make_rows(
        [
            {"id": "1", "name": "a", "note": LONG},
            {"id": "1", "name": "a", "note": None},
            {"id": "2", "name": "b", "note": "n"},
            {"id": "3", "name": "c", "note": "n"},
            {"id": "3", "name": "c", "note": "m"},
            {"id": "3", "name": "c", "note": "o"},
        ]
    )


def test_report_summary_mode(dup_rows):
    groups = find_duplicate_groups(dup_rows, ["id", "name"], workers=1)
    lines = render_duplicate_report(
        groups, columns=["id", "name", "note"], key_fields=["id", "name"]
    )
    assert lines == [
        "Found 2 duplicate groups.",
        "",
        "Duplicate Group #1 - 2 records",
        "id | name",
        "1 | a",
        "",
        "Duplicate Group #2 - 3 records",
        "id | name",
        "3 | c",
        "",
        "Summary: Found 3 duplicate records in 2 groups.",
    ]


def test_report_verbose_mode_prints_all_columns_truncated(dup_rows):
    groups = find_duplicate_groups(dup_rows, ["id"], workers=1)
    lines = render_duplicate_report(
        groups[:1], columns=["id", "name", "note"], key_fields=["id"], verbose=True
    )
    assert lines[3] == "##### | id | name | note"
    assert lines[4] == "    1 | 1 | a | " + "x" * 36
    assert lines[5] == "    2 | 1 | a | NULL"


def test_report_limit_keeps_summary_over_all_groups(dup_rows):
    groups = find_duplicate_groups(dup_rows, ["id"], workers=1)
    lines = render_duplicate_report(groups, columns=["id"], key_fields=["id"], limit=1)
    assert lines[1] == "Showing first 1 duplicate groups (1 more not shown; use --limit to adjust)."
    assert "Duplicate Group #2 - 3 records" not in lines
    assert lines[-1] == "Summary: Found 3 duplicate records in 2 groups."


def test_report_no_duplicates():
    assert render_duplicate_report([], columns=["id"], key_fields=["id"]) == [
        "No duplicates found."
    ]


# -------------------------------------------------------------------
# data listing
# -------------------------------------------------------------------


def test_render_data_fixed_width_and_row_limit(dup_rows):
    lines = render_data(["id", "note"], dup_rows, row_limit=2)
    assert lines[0] == f"{'id':<36} | note"
    assert lines[1] == "─" * (2 * 39 - 1)
    assert len(lines) == 4
    assert lines[2] == f"{'1':<36} | " + "x" * 36
    assert lines[3] == f"{'1':<36} | NULL"


@pytest.mark.parametrize("row_limit", [0, -1])
def test_render_data_all_rows(dup_rows, row_limit):
    lines = render_data(["id"], dup_rows, row_limit=row_limit)
    assert len(lines) == 2 + len(dup_rows)


# -------------------------------------------------------------------
# stats / configuration
# -------------------------------------------------------------------


@pytest.mark.parametrize(
    "size,expected",
    [
        (0, "0.00 B"),
        (512, "512.00 B"),
        (1536, "1.50 KB"),
        (5 * 1024 * 1024, "5.00 MB"),
    ],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


def test_render_columns():
    lines = render_columns(Schema.from_names(["id", "name"]))
    assert lines[1] == "All Available Columns:"
    assert lines[2] == "   0. id"
    assert lines[3] == "   1. name"


def test_render_statistics_single_file(tmp_path):
    path = tmp_path / "t.parquet"
    path.write_bytes(b"x" * 2048)
    schema = Schema((Field("id", "int64"), Field("a", "string"), Field("b", "string")))
    tab = TabularInput(path, "parquet", schema, make_rows([{"id": 1}] * 3), files=[path])
    lines = render_statistics(tab)
    assert lines[0] == "═════ PARQUET FILE STATISTICS ═════"
    assert "Type: File" in lines
    assert "Total Records: 3" in lines
    assert "Columns: 3" in lines
    summary_at = lines.index("Schema Type Summary:")
    assert lines[summary_at + 1] == f"  {'string':<20}: 2 column(s)"
    assert lines[summary_at + 2] == f"  {'int64':<20}: 1 column(s)"
    assert "File Size: 2.00 KB" in lines


def test_render_statistics_directory(tmp_path):
    files = []
    for name in ("a.parquet", "b.parquet"):
        p = tmp_path / name
        p.write_bytes(b"x" * 100)
        files.append(p)
    tab = TabularInput(tmp_path, "parquet", Schema.from_names(["id"]), [], files=files)
    lines = render_statistics(tab)
    assert "Type: Folder" in lines
    assert "Total Size of Parquet Files: 200.00 B" in lines
    assert "Number of Parquet Files: 2" in lines


def test_render_configuration_csv():
    opts = RunOptions(path=Path("data.csv"), delimiter="\t", fields=("id",), limit=5)
    lines = render_configuration(opts)
    assert "Mode: CSV" in lines
    assert "Delimiter: '\\t' | Header: True" in lines
    assert "Fields: id" in lines
    assert "Columns: N/A" in lines
    assert "Verbose: False | Duplicates: False | Limit: 5" in lines
    assert "Print Data: False | Row Limit: All" in lines


def test_render_configuration_parquet():
    lines = render_configuration(RunOptions(path=Path("data.parquet"), column_indices=(0, 2)))
    assert "Mode: Parquet" in lines
    assert "Columns: 0, 2" in lines
    assert "Fields: All Columns" in lines
    assert not any(line.startswith("Delimiter") for line in lines)

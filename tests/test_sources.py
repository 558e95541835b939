import logging

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from dupsmith.errors import (
    InputNotFoundError,
    NoReadableInputError,
    SchemaMismatchError,
    UnsupportedInputError,
)
from dupsmith.model import render_value
from dupsmith.sources import (
    CsvSource,
    ParquetSource,
    create_source,
    detect_format,
    open_tabular_input,
    unique_names,
)


def _write_parquet(path, data: dict):
    pq.write_table(pa.table(data), path)
    return path


# -------------------------------------------------------------------
# format detection
# -------------------------------------------------------------------


def test_detect_format_by_extension(tmp_path):
    csv_path = tmp_path / "a.csv"
    csv_path.write_text("x\n1\n", encoding="utf-8")
    pq_path = _write_parquet(tmp_path / "a.parquet", {"x": [1]})
    assert detect_format(csv_path) == "csv"
    assert detect_format(pq_path) == "parquet"


def test_detect_format_force_csv(tmp_path):
    path = tmp_path / "export.dat"
    path.write_text("x\n1\n", encoding="utf-8")
    assert detect_format(path, force_csv=True) == "csv"
    assert isinstance(create_source(path, force_csv=True), CsvSource)


def test_detect_format_directory_with_parquet(tmp_path):
    sub = tmp_path / "part=1"
    sub.mkdir()
    _write_parquet(sub / "a.parquet", {"x": [1]})
    assert detect_format(tmp_path) == "parquet"
    assert isinstance(create_source(tmp_path), ParquetSource)


def test_detect_format_errors(tmp_path):
    with pytest.raises(InputNotFoundError):
        detect_format(tmp_path / "missing.csv")
    odd = tmp_path / "data.xlsx"
    odd.write_bytes(b"")
    with pytest.raises(UnsupportedInputError):
        detect_format(odd)
    empty_dir = tmp_path / "empty"
    empty_dir.mkdir()
    with pytest.raises(UnsupportedInputError):
        detect_format(empty_dir)


# -------------------------------------------------------------------
# CSV
# -------------------------------------------------------------------


def test_csv_reads_strings_trimmed_in_order(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text("id, name ,ts\n1,  a ,2024\n\n1,a,2024\n2,b,\n", encoding="utf-8")
    tab = open_tabular_input(path)

    assert tab.format == "csv"
    assert tab.schema.names == ["id", "name", "ts"]
    assert [r.position for r in tab.rows] == [0, 1, 2]
    assert tab.rows[0].values == {"id": "1", "name": "a", "ts": "2024"}
    assert tab.rows[2].get("ts") == ""
    assert tab.source_name == "people.csv"
    assert tab.wildcard == "*.csv"


def test_csv_values_like_na_stay_text(tmp_path):
    path = tmp_path / "codes.csv"
    path.write_text("code\nNA\nnull\n", encoding="utf-8")
    tab = open_tabular_input(path)
    assert [r.get("code") for r in tab.rows] == ["NA", "null"]


def test_csv_short_rows_have_null_fields(tmp_path):
    path = tmp_path / "short.csv"
    path.write_text("a,b,c\n1,2\n", encoding="utf-8")
    tab = open_tabular_input(path)
    assert render_value(tab.rows[0].get("c")) == "NULL"


def test_csv_bad_lines_skipped_and_counted(tmp_path, caplog):
    caplog.set_level(logging.WARNING)
    path = tmp_path / "bad.csv"
    path.write_text("id,name\n1,a\n2,b,extra,more\n3,c\n1,a\n", encoding="utf-8")
    tab = open_tabular_input(path)
    assert [r.values for r in tab.rows] == [
        {"id": "1", "name": "a"},
        {"id": "3", "name": "c"},
        {"id": "1", "name": "a"},
    ]
    assert [r.position for r in tab.rows] == [0, 1, 2]
    assert tab.bad_lines == 1
    assert any("Skipped 1 malformed line(s)" in r.getMessage() for r in caplog.records)


def test_csv_header_names_unique_after_trim(tmp_path):
    path = tmp_path / "twice.csv"
    path.write_text("id, id,name\n1,2,a\n", encoding="utf-8")
    tab = open_tabular_input(path)
    assert tab.schema.names == ["id", "id.1", "name"]
    assert tab.rows[0].values == {"id": "1", "id.1": "2", "name": "a"}


def test_unique_names():
    assert unique_names(["a", "a", "b", "a"]) == ["a", "a.1", "b", "a.2"]
    assert unique_names(["a", "a.1", "a"]) == ["a", "a.1", "a.2"]



def test_csv_without_header(tmp_path):
    path = tmp_path / "raw.csv"
    path.write_text("1;x\n2;y\n", encoding="utf-8")
    tab = open_tabular_input(path, delimiter=";", has_header=False)
    assert tab.schema.names == ["Column1", "Column2"]
    assert tab.rows[1].get("Column2") == "y"


def test_csv_tab_delimiter(tmp_path):
    path = tmp_path / "data.tsv"
    path.write_text("a\tb\n1\t2\n", encoding="utf-8")
    tab = open_tabular_input(path, delimiter="\t")
    assert tab.rows[0].values == {"a": "1", "b": "2"}


def test_csv_empty_file(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")
    tab = open_tabular_input(path)
    assert tab.rows == []
    assert len(tab.schema) == 0


def test_csv_source_caches_load(tmp_path):
    path = tmp_path / "a.csv"
    path.write_text("x\n1\n", encoding="utf-8")
    src = CsvSource(path)
    assert src.get_rows() is src.get_rows()
    assert src.get_schema().names == ["x"]


# -------------------------------------------------------------------
# Parquet
# -------------------------------------------------------------------


def test_parquet_single_file_schema_and_values(tmp_path):
    path = _write_parquet(
        tmp_path / "t.parquet",
        {
            "id": pa.array([1, None, 3], type=pa.int64()),
            "name": ["a", "b", None],
            "tags": pa.array([[1, 2], [], None], type=pa.list_(pa.int64())),
            "blob": pa.array([b"\x01", b"\x02", b"\x03"], type=pa.binary()),
        },
    )
    tab = open_tabular_input(path)

    assert tab.format == "parquet"
    assert [(f.name, f.type_tag) for f in tab.schema] == [
        ("id", "int64"),
        ("name", "string"),
        ("tags", str(pq.read_schema(path).field("tags").type)),
        ("blob", "binary"),
    ]
    first = tab.rows[0]
    assert first.display("id") == "1"
    assert first.display("tags") == "[1, 2]"
    assert first.display("blob") == "01"
    assert tab.rows[1].display("id") == "NULL"
    assert tab.rows[2].display("name") == "NULL"
    assert tab.rows[2].display("tags") == "NULL"


def test_parquet_directory_concatenates_sorted_files(tmp_path):
    _write_parquet(tmp_path / "b.parquet", {"id": [3, 4]})
    _write_parquet(tmp_path / "a.parquet", {"id": [1, 2]})
    tab = open_tabular_input(tmp_path)
    assert [r.display("id") for r in tab.rows] == ["1", "2", "3", "4"]
    assert [p.name for p in tab.files] == ["a.parquet", "b.parquet"]
    assert tab.is_directory
    assert tab.wildcard == "*.parquet"


def test_parquet_directory_skips_unreadable(tmp_path):
    _write_parquet(tmp_path / "good.parquet", {"id": [1]})
    (tmp_path / "broken.parquet").write_bytes(b"not parquet at all")
    tab = open_tabular_input(tmp_path)
    assert len(tab.rows) == 1
    assert [s.path.name for s in tab.skipped] == ["broken.parquet"]


def test_parquet_nothing_readable(tmp_path):
    (tmp_path / "broken.parquet").write_bytes(b"garbage")
    with pytest.raises(NoReadableInputError) as excinfo:
        open_tabular_input(tmp_path)
    assert len(excinfo.value.skipped) == 1


def test_parquet_schema_mismatch_is_fatal(tmp_path):
    _write_parquet(tmp_path / "a.parquet", {"id": [1]})
    _write_parquet(tmp_path / "b.parquet", {"id": ["x"], "extra": [1]})
    with pytest.raises(SchemaMismatchError):
        open_tabular_input(tmp_path)


def test_parquet_schema_mismatch_can_be_ignored(tmp_path):
    _write_parquet(tmp_path / "a.parquet", {"id": [1]})
    _write_parquet(tmp_path / "b.parquet", {"id": ["x"], "extra": [1]})
    tab = open_tabular_input(tmp_path, ignore_schema_mismatch=True)
    assert [p.name for p in tab.files] == ["a.parquet"]
    assert [s.path.name for s in tab.skipped] == ["b.parquet"]


def test_parquet_written_by_pandas(tmp_path):
    path = tmp_path / "frame.parquet"
    pd.DataFrame({"k": ["a", "a"], "v": [1.5, 2.0]}).to_parquet(path, index=False)
    tab = open_tabular_input(path)
    assert tab.schema.names == ["k", "v"]
    assert tab.rows[0].display("v") == "1.5"


def test_parquet_float_nan_and_null_display_the_same(tmp_path):
    path = _write_parquet(
        tmp_path / "f.parquet",
        {"x": pa.array([float("nan"), None, 1.5], type=pa.float64())},
    )
    tab = open_tabular_input(path)
    assert [r.display("x") for r in tab.rows] == ["NULL", "NULL", "1.5"]


def test_parquet_list_of_timestamps(tmp_path):
    path = _write_parquet(
        tmp_path / "ts.parquet",
        {"ts": pa.array([[pd.Timestamp("2024-01-01")]], type=pa.list_(pa.timestamp("ns")))},
    )
    tab = open_tabular_input(path)
    assert tab.rows[0].display("ts") == f"[{pd.Timestamp('2024-01-01')}]"

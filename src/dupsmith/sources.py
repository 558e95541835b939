"""
Row sources: uniform (schema, rows) view over CSV files and Parquet
files or directories of Parquet files.

Everything is materialized in memory; rows keep their input order and their
position in that order is their identity downstream.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from .errors import (
    InputNotFoundError,
    NoReadableInputError,
    SchemaMismatchError,
    UnsupportedInputError,
)
from .model import Field, Row, Schema

logger = logging.getLogger(__name__)

CSV_SUFFIXES = (".csv", ".tsv", ".txt")
PARQUET_SUFFIX = ".parquet"


@dataclass(frozen=True)
class SkippedInput:
    path: Path
    reason: str


@dataclass
class TabularInput:
    """Result of opening a tabular input."""

    path: Path
    format: str
    schema: Schema
    rows: list[Row]
    files: list[Path] = field(default_factory=list)
    skipped: list[SkippedInput] = field(default_factory=list)
    bad_lines: int = 0

    @property
    def source_name(self) -> str:
        return self.path.name

    @property
    def wildcard(self) -> str:
        return "*.parquet" if self.format == "parquet" else "*.csv"

    @property
    def is_directory(self) -> bool:
        return self.path.is_dir()


def frame_to_rows(df: pd.DataFrame) -> list[Row]:
    names = [str(c) for c in df.columns]
    return [
        Row(i, dict(zip(names, values)))
        for i, values in enumerate(df.itertuples(index=False, name=None))
    ]


def unique_names(names: Iterable[str]) -> list[str]:
    """
    Make column names unique the way pandas mangles duplicate headers.

    ``["id", "id", "id"]`` -> ``["id", "id.1", "id.2"]``
    """
    seen: set[str] = set()
    out: list[str] = []
    for name in names:
        candidate, n = name, 0
        while candidate in seen:
            n += 1
            candidate = f"{name}.{n}"
        seen.add(candidate)
        out.append(candidate)
    return out


class RowSource:
    """
    Base class for tabular inputs.

    Subclasses implement :meth:`_read`; the result is loaded once and cached.
    """

    format_name = ""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._loaded: Optional[TabularInput] = None

    def load(self) -> TabularInput:
        if self._loaded is None:
            self._loaded = self._read()
        return self._loaded

    def get_schema(self) -> Schema:
        return self.load().schema

    def get_rows(self) -> list[Row]:
        return self.load().rows

    def _read(self) -> TabularInput:
        raise NotImplementedError


class CsvSource(RowSource):
    """
    Delimited text file.

    Values are read as strings and trimmed; blank lines are ignored. Lines
    with more fields than the header are skipped and counted. Missing
    trailing fields are null.
    """

    format_name = "csv"

    def __init__(
        self,
        path: str | Path,
        *,
        delimiter: str = ",",
        has_header: bool = True,
        encoding: str = "utf-8-sig",
    ) -> None:
        super().__init__(path)
        self.delimiter = delimiter
        self.has_header = has_header
        self.encoding = encoding

    def _read(self) -> TabularInput:
        try:
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always", pd.errors.ParserWarning)
                df = pd.read_csv(
                    self.path,
                    sep=self.delimiter,
                    header=0 if self.has_header else None,
                    dtype=str,
                    keep_default_na=False,
                    skip_blank_lines=True,
                    on_bad_lines="warn",
                    encoding=self.encoding,
                )
        except pd.errors.EmptyDataError:
            logger.warning("No data in %s", self.path)
            return TabularInput(self.path, self.format_name, Schema(()), [], files=[self.path])
        except (OSError, UnicodeDecodeError, pd.errors.ParserError) as e:
            skipped = [SkippedInput(self.path, str(e))]
            raise NoReadableInputError(f"could not read {self.path}: {e}", skipped) from e

        # the C parser reports skipped lines as ParserWarnings, possibly
        # several "Skipping line N: ..." entries in one message
        bad_lines = [
            line.strip()
            for w in caught
            if issubclass(w.category, pd.errors.ParserWarning)
            for line in str(w.message).splitlines()
            if line.strip().startswith("Skipping line")
        ]

        if self.has_header:
            df.columns = unique_names(str(c).strip() for c in df.columns)
        else:
            df.columns = [f"Column{i + 1}" for i in range(len(df.columns))]

        for col in df.columns:
            df[col] = df[col].map(lambda v: v.strip() if isinstance(v, str) else v)

        if bad_lines:
            logger.warning(
                "Skipped %d malformed line(s) in %s", len(bad_lines), self.path.name
            )
            for line in bad_lines:
                logger.debug("%s", line)

        return TabularInput(
            path=self.path,
            format=self.format_name,
            schema=Schema.from_names(list(df.columns)),
            rows=frame_to_rows(df),
            files=[self.path],
            bad_lines=len(bad_lines),
        )


def discover_parquet_files(path: Path) -> list[Path]:
    if path.is_dir():
        return sorted(p for p in path.rglob(f"*{PARQUET_SUFFIX}") if p.is_file())
    return [path]


class ParquetSource(RowSource):
    """
    A Parquet file, or a directory searched recursively for Parquet files.

    Files are read independently. Unreadable files are skipped (reported on
    the result); files whose schema differs from the first readable one
    abort the load unless ``ignore_schema_mismatch`` is set, in which case
    they are skipped too.
    """

    format_name = "parquet"

    def __init__(self, path: str | Path, *, ignore_schema_mismatch: bool = False) -> None:
        super().__init__(path)
        self.ignore_schema_mismatch = ignore_schema_mismatch

    def _read(self) -> TabularInput:
        files = discover_parquet_files(self.path)
        tables: list[pa.Table] = []
        used: list[Path] = []
        skipped: list[SkippedInput] = []
        reference: Optional[pa.Schema] = None

        for f in files:
            logger.debug("Opening %s...", f)
            try:
                table = pq.read_table(f)
            except (pa.ArrowException, OSError) as e:
                skipped.append(SkippedInput(f, str(e)))
                continue

            schema = table.schema.remove_metadata()
            if reference is None:
                reference = schema
            elif not schema.equals(reference):
                if not self.ignore_schema_mismatch:
                    raise SchemaMismatchError(
                        f"Multiple schemas found: {f.name} differs from {used[0].name}",
                        [used[0], f],
                    )
                skipped.append(SkippedInput(f, f"schema differs from {used[0].name}"))
                continue

            tables.append(table.replace_schema_metadata(None))
            used.append(f)

        if not tables:
            raise NoReadableInputError(
                f"No readable Parquet files under {self.path}", skipped
            )

        table = pa.concat_tables(tables) if len(tables) > 1 else tables[0]
        df = table.to_pandas(integer_object_nulls=True, date_as_object=True)

        return TabularInput(
            path=self.path,
            format=self.format_name,
            schema=Schema(tuple(Field(f.name, str(f.type)) for f in table.schema)),
            rows=frame_to_rows(df),
            files=used,
            skipped=skipped,
        )


def detect_format(path: Path, *, force_csv: bool = False) -> str:
    if not path.exists():
        raise InputNotFoundError(f"input not found: {path}")
    if path.is_dir():
        if force_csv:
            raise UnsupportedInputError(f"CSV input must be a file, got directory: {path}")
        if any(path.rglob(f"*{PARQUET_SUFFIX}")):
            return "parquet"
        raise UnsupportedInputError(f"No Parquet files found in directory: {path}")
    if force_csv:
        return "csv"
    suffix = path.suffix.lower()
    if suffix == PARQUET_SUFFIX:
        return "parquet"
    if suffix in CSV_SUFFIXES:
        return "csv"
    raise UnsupportedInputError(f"File type not supported: {suffix or path.name}")


def create_source(
    path: str | Path,
    *,
    force_csv: bool = False,
    delimiter: str = ",",
    has_header: bool = True,
    ignore_schema_mismatch: bool = False,
) -> RowSource:
    path = Path(path)
    if detect_format(path, force_csv=force_csv) == "csv":
        return CsvSource(path, delimiter=delimiter, has_header=has_header)
    return ParquetSource(path, ignore_schema_mismatch=ignore_schema_mismatch)


def open_tabular_input(path: str | Path, **kwargs) -> TabularInput:
    """
    Open ``path`` and materialize its schema and rows.

    Raises:
        InputNotFoundError, UnsupportedInputError, NoReadableInputError,
        SchemaMismatchError
    """
    return create_source(path, **kwargs).load()

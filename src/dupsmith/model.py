"""
Core data model for dupsmith.

Includes:
- Field / Schema: ordered, uniquely named columns with a type tag
- Row: one materialized record, addressed by field name
- SelectionRequest: the three ways a user can name the key columns
- DuplicateGroup: rows sharing one key digest
- display_value / render_value: the display-string projection of a value
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Sequence

import pandas as pd

from .config import NULL_LITERAL


@dataclass(frozen=True)
class Field:
    name: str
    type_tag: str = "string"


@dataclass(frozen=True)
class Schema:
    """
    Ordered column list of a tabular input.

    Order is the source's natural column order; it drives positional
    selection and display. Names must be unique.
    """

    fields: tuple[Field, ...]

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for f in self.fields:
            if f.name in seen:
                raise ValueError(f"duplicate column name in schema: {f.name!r}")
            seen.add(f.name)

    @classmethod
    def from_names(cls, names: Sequence[str], type_tag: str = "string") -> "Schema":
        return cls(tuple(Field(str(n), type_tag) for n in names))

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def __len__(self) -> int:
        return len(self.fields)

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    def lookup(self, name: str) -> Optional[str]:
        """
        Case-insensitive name lookup.

        Returns the schema's own spelling of the column, or None. An exact
        match is preferred over a case-folded one.
        """
        for f in self.fields:
            if f.name == name:
                return f.name
        folded = name.casefold()
        for f in self.fields:
            if f.name.casefold() == folded:
                return f.name
        return None


@dataclass(frozen=True)
class Row:
    """
    One record. ``position`` is the row's index in the originating
    sequence and is its identity for grouping and ordering.
    """

    position: int
    values: Mapping[str, Any]

    def get(self, name: str) -> Any:
        return self.values.get(name)

    def display(self, name: str) -> str:
        return render_value(self.values.get(name))


@dataclass(frozen=True)
class SelectionRequest:
    """
    User intent for the duplicate key.

    ``config_hints`` maps a file-name pattern to the columns flagged as
    primary key for matching files.
    """

    explicit_fields: tuple[str, ...] = ()
    explicit_indices: tuple[int, ...] = ()
    config_hints: Mapping[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class DuplicateGroup:
    digest: str
    members: tuple[Row, ...]

    @property
    def count(self) -> int:
        return len(self.members)

    @property
    def first(self) -> Row:
        return self.members[0]

    @property
    def positions(self) -> list[int]:
        return [r.position for r in self.members]


def _unwrap(value: Any) -> Any:
    # numpy scalars (0-d) expose .item(); arrays are handled as sequences.
    if getattr(value, "shape", None) == () and hasattr(value, "item"):
        kind = getattr(getattr(value, "dtype", None), "kind", "")
        # .item() on datetime64[ns]/timedelta64[ns] yields plain integers
        if kind == "M":
            return pd.Timestamp(value)
        if kind == "m":
            return pd.Timedelta(value)
        return value.item()
    return value


def is_null(value: Any) -> bool:
    value = _unwrap(value)
    if value is None or value is pd.NA or value is pd.NaT:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def display_value(value: Any) -> Optional[str]:
    """
    Canonical display string of a value, or None for null.

    Composite values (lists, arrays, structs, maps, raw bytes) are projected
    recursively so that equal contents always render identically.
    """
    value = _unwrap(value)
    if is_null(value):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if isinstance(value, Mapping):
        inner = ", ".join(f"{k}: {render_value(v)}" for k, v in value.items())
        return "{" + inner + "}"
    if hasattr(value, "tolist"):
        kind = getattr(getattr(value, "dtype", None), "kind", "")
        value = list(value) if kind in ("M", "m") else value.tolist()
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(render_value(v) for v in value) + "]"
    return str(value)


def render_value(value: Any) -> str:
    text = display_value(value)
    return NULL_LITERAL if text is None else text

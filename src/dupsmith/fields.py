"""
Key field resolution.

``resolve_key_fields`` is the single place where explicit field names,
explicit column positions and primary-key hints are reconciled into one
ordered key field list. Precedence, most specific first:

1. explicit field names
2. explicit column indices
3. primary-key hints matched by input file name
4. every column in schema order
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from .errors import NoValidFieldsError
from .hints import match_hint
from .model import Schema, SelectionRequest

logger = logging.getLogger(__name__)


def _dedupe(names: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for n in names:
        if n not in seen:
            seen.add(n)
            out.append(n)
    return out


def validate_field_names(schema: Schema, names: Sequence[str], *, origin: str = "fields") -> list[str]:
    """
    Map requested names onto the schema's spelling, case-insensitively.

    Unknown names are dropped with one warning listing all of them.
    """
    valid: list[str] = []
    invalid: list[str] = []
    for name in names:
        canonical = schema.lookup(name)
        if canonical is None:
            invalid.append(name)
        else:
            valid.append(canonical)
    if invalid:
        logger.warning(
            "The following %s do not exist in the input: %s", origin, ", ".join(invalid)
        )
    return _dedupe(valid)


def fields_from_indices(schema: Schema, indices: Sequence[int]) -> list[str]:
    """
    Map column positions to names in the order they were supplied.

    Out-of-range positions are dropped with a warning.
    """
    names = schema.names
    picked: list[str] = []
    out_of_range: list[int] = []
    for i in indices:
        if 0 <= i < len(names):
            picked.append(names[i])
        else:
            out_of_range.append(i)
    if out_of_range:
        logger.warning(
            "Column indices out of range (0..%d): %s",
            len(names) - 1,
            ", ".join(str(i) for i in out_of_range),
        )
    return _dedupe(picked)


def _report_conflicts(selection: SelectionRequest) -> None:
    if selection.explicit_fields:
        ignored = []
        if selection.explicit_indices:
            ignored.append("'--columns'")
        if selection.config_hints:
            ignored.append("'--config'")
        if ignored:
            logger.warning(
                "'--fields' specified; ignoring %s for column selection.", " and ".join(ignored)
            )
    elif selection.explicit_indices and selection.config_hints:
        logger.warning("'--columns' specified; ignoring '--config' for column selection.")


def _fields_from_hints(
    schema: Schema,
    selection: SelectionRequest,
    source_name: str,
    wildcard: Optional[str],
) -> Optional[list[str]]:
    found = match_hint(selection.config_hints, source_name, wildcard)
    if found is None:
        logger.info("No config entry found for '%s'.", source_name)
        return None
    pattern, columns = found
    if not columns:
        logger.warning(
            "Config entry '%s' declares no primary key columns; ignoring it.", pattern
        )
        return None
    logger.info(
        "Primary Key Columns for %s (from '%s'): %s", source_name, pattern, ", ".join(columns)
    )
    return validate_field_names(schema, columns, origin="primary key columns")


def resolve_key_fields(
    schema: Schema,
    selection: SelectionRequest,
    *,
    source_name: str = "",
    wildcard: Optional[str] = None,
) -> tuple[str, ...]:
    """
    Resolve the duplicate key for one run.

    Args:
        schema:
            Schema of the loaded input.
        selection:
            All selection mechanisms the user supplied.
        source_name:
            File (or directory) name used to look up primary-key hints.
        wildcard:
            Catch-all hint pattern for the input's format, e.g. ``*.parquet``.

    Returns:
        The ordered, de-duplicated key field list, spelled as in the schema.

    Raises:
        NoValidFieldsError:
            If nothing valid remains. Callers must not go on to hash or group.
    """
    _report_conflicts(selection)

    fields: Optional[list[str]] = None
    if selection.explicit_fields:
        fields = validate_field_names(schema, selection.explicit_fields)
    elif selection.explicit_indices:
        fields = fields_from_indices(schema, selection.explicit_indices)
        if not fields:
            logger.warning("No valid column indices provided.")
    elif selection.config_hints:
        fields = _fields_from_hints(schema, selection, source_name, wildcard)

    if fields is None:
        logger.info("No fields specified. Using all columns.")
        fields = schema.names

    if not fields:
        raise NoValidFieldsError("No valid fields to check for duplicates.")
    return tuple(fields)

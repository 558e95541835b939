"""
Primary-key hint files.

A hint file declares, per file-name pattern, which columns form the
uniqueness key of matching inputs::

    {
      "parquetFiles": {
        "orders.parquet": {"columns": [{"name": "order_id", "isPrimaryKey": true}]},
        "*.parquet":      {"columns": [{"name": "id", "isPrimaryKey": true}]}
      }
    }

Property names are matched case-insensitively; ``files`` is accepted as an
alias of ``parquetFiles``. Files ending in ``.yml``/``.yaml`` are read as
YAML. A hint file that cannot be used degrades to "no hints" with a warning.
"""

from __future__ import annotations

import json
import logging
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any, Mapping, Optional

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from .errors import HintFileError

logger = logging.getLogger(__name__)

# Applied after property names have been lower-cased.
HINT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "parquetfiles": {"$ref": "#/definitions/files"},
        "files": {"$ref": "#/definitions/files"},
    },
    "anyOf": [{"required": ["parquetfiles"]}, {"required": ["files"]}],
    "definitions": {
        "files": {
            "type": "object",
            "additionalProperties": {
                "type": "object",
                "properties": {
                    "columns": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "properties": {
                                "name": {"type": "string", "minLength": 1},
                                "isprimarykey": {"type": "boolean"},
                            },
                            "required": ["name"],
                        },
                    }
                },
                "required": ["columns"],
            },
        }
    },
}


def _lower_keys(node: Any, *, pattern_level: bool = False) -> Any:
    """
    Lower-case property names recursively.

    File-name patterns are data, not property names, so the mapping directly
    under ``parquetFiles`` keeps its keys as written.
    """
    if isinstance(node, dict):
        out: dict[Any, Any] = {}
        for k, v in node.items():
            key = k if pattern_level or not isinstance(k, str) else k.lower()
            out[key] = _lower_keys(v, pattern_level=key in ("parquetfiles", "files") and not pattern_level)
        return out
    if isinstance(node, list):
        return [_lower_keys(v) for v in node]
    return node


def parse_hint_document(text: str, *, yaml_format: bool = False) -> dict[str, tuple[str, ...]]:
    """
    Parse and validate hint file contents.

    Returns a mapping of file pattern -> primary-key column names in
    declaration order. Raises HintFileError on any problem.
    """
    try:
        data = yaml.safe_load(text) if yaml_format else json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise HintFileError(f"could not parse hint file: {e}") from e

    data = _lower_keys(data or {})
    try:
        jsonschema.validate(data, HINT_SCHEMA)
    except ValidationError as e:
        raise HintFileError(f"hint file validation failed: {e.message}") from e

    files = data.get("parquetfiles")
    if files is None:
        files = data["files"]

    hints: dict[str, tuple[str, ...]] = {}
    for pattern, entry in files.items():
        hints[str(pattern)] = tuple(
            col["name"] for col in entry["columns"] if col.get("isprimarykey", False)
        )
    return hints


def read_hint_file(path: Path) -> dict[str, tuple[str, ...]]:
    if not path.is_file():
        raise HintFileError(f"config file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise HintFileError(f"could not read config file '{path}': {e}") from e
    yaml_format = path.suffix.lower() in (".yml", ".yaml")
    return parse_hint_document(text, yaml_format=yaml_format)


def load_hint_file(path: Optional[Path]) -> Optional[dict[str, tuple[str, ...]]]:
    """
    Load a hint file, turning every failure into a warning.

    Returns None when there is no usable hint file.
    """
    if path is None:
        return None
    try:
        hints = read_hint_file(path)
    except HintFileError as e:
        logger.warning("%s; primary-key hints ignored", e)
        return None
    logger.debug("Loaded primary-key hints for %d pattern(s) from %s", len(hints), path)
    return hints


def match_hint(
    hints: Mapping[str, tuple[str, ...]],
    file_name: str,
    wildcard: Optional[str] = None,
) -> Optional[tuple[str, tuple[str, ...]]]:
    """
    Find the hint entry for ``file_name``.

    Lookup order: exact name, other glob patterns in declaration order,
    then the format wildcard (e.g. ``*.parquet``) which also covers inputs
    such as directories whose own name carries no extension.

    Returns ``(pattern, columns)`` or None.
    """
    if file_name in hints:
        return file_name, hints[file_name]
    for pattern, columns in hints.items():
        if pattern == wildcard:
            continue
        if fnmatchcase(file_name, pattern):
            return pattern, columns
    if wildcard is not None and wildcard in hints:
        return wildcard, hints[wildcard]
    return None

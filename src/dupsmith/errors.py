"""
Exception hierarchy for dupsmith.

Fatal conditions are raised; recoverable ones (invalid field names,
unreadable hint files, some unreadable inputs) are logged and dropped
where they occur.
"""

from __future__ import annotations


class DupsmithError(Exception):
    """Base class for all dupsmith errors."""


class SourceError(DupsmithError):
    """The tabular input could not be turned into a schema and rows."""


class InputNotFoundError(SourceError):
    pass


class UnsupportedInputError(SourceError):
    pass


class NoReadableInputError(SourceError):
    """Every candidate input failed to open or decode."""

    def __init__(self, message: str, skipped: list | None = None) -> None:
        super().__init__(message)
        self.skipped = list(skipped or [])


class SchemaMismatchError(SourceError):
    """Inputs of a multi-file source do not share one schema."""

    def __init__(self, message: str, paths: list | None = None) -> None:
        super().__init__(message)
        self.paths = list(paths or [])


class NoValidFieldsError(DupsmithError):
    """Field resolution produced an empty key field list."""


class HintFileError(DupsmithError):
    """Primary-key hint file is missing, unparsable or invalid."""

from __future__ import annotations

import pytest

from dupsmith.log import reset_logging
from dupsmith.model import Row, Schema


@pytest.fixture(autouse=True)
def clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def people_schema() -> Schema:
    return Schema.from_names(["id", "name", "ts"])


def make_rows(records: list[dict]) -> list[Row]:
    return [Row(i, dict(rec)) for i, rec in enumerate(records)]


@pytest.fixture()
def scenario_rows() -> list[Row]:
    return make_rows(
        [
            {"id": "1", "name": "a"},
            {"id": "1", "name": "a"},
            {"id": "2", "name": "b"},
        ]
    )

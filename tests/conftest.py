"""Pytest configuration for local package import resolution and shared fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    # Ensure tests can import `stockcheck` and `check_stock` without package installation.
    sys.path.insert(0, project_root_str)

from stockcheck.models import Dataset, FieldMapping  # noqa: E402

STOCK_LIST_CSV = (
    "Stock Number,Condition,Make,Model,Calibre\n"
    "R100,New,Tikka,T3x Lite,.308 Win\n"
    "R101,new,Tikka,T3x Lite,6.5 Creedmoor\n"
    "R102,Used,Sako,85 Hunter,.270 Win\n"
    "R103,New,Sako,85 Hunter,.308 Win\n"
    "R104,New,Howa,1500,.223 Rem\n"
    ",New,Howa,1500,.243 Win\n"
)


@pytest.fixture
def stock_list_csv() -> str:
    return STOCK_LIST_CSV


@pytest.fixture
def mapping() -> FieldMapping:
    return FieldMapping(stock="Stock Number", condition="Condition", model="Model", make="Make", calibre="Calibre")


def make_dataset(rows: list[dict[str, str]], *, headers: tuple[str, ...] | None = None) -> Dataset:
    """Build a small in-memory dataset for targeted tests."""

    if headers is None:
        headers = tuple(rows[0]) if rows else ()
    return Dataset(
        id="test",
        name="unit-test.csv",
        loaded_at="2026-01-01T00:00:00+00:00",
        headers=headers,
        rows=tuple(dict(row) for row in rows),
    )


@pytest.fixture
def dataset() -> Dataset:
    header = ("Stock Number", "Condition", "Make", "Model", "Calibre")
    rows = [
        ("R100", "New", "Tikka", "T3x Lite", ".308 Win"),
        ("R101", "new", "Tikka", "T3x Lite", "6.5 Creedmoor"),
        ("R102", "Used", "Sako", "85 Hunter", ".270 Win"),
        ("R103", "New", "Sako", "85 Hunter", ".308 Win"),
        ("R104", "New", "Howa", "1500", ".223 Rem"),
        ("", "New", "Howa", "1500", ".243 Win"),
    ]
    return make_dataset([dict(zip(header, row)) for row in rows], headers=header)

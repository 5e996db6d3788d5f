"""Export serializer tests."""

from __future__ import annotations

import pytest

from stockcheck.errors import IncompleteMappingError
from stockcheck.export import (
    STATUS_COLUMN,
    escape_field,
    export_all,
    export_filename,
    export_filtered,
    to_csv,
)
from stockcheck.models import FieldMapping, FilterSelection
from stockcheck.tabular import parse

from conftest import make_dataset


def test_escape_field_quotes_only_when_needed() -> None:
    assert escape_field("plain") == "plain"
    assert escape_field("a,b") == '"a,b"'
    assert escape_field('say "hi"') == '"say ""hi"""'
    assert escape_field("two\nlines") == '"two\nlines"'
    assert escape_field(None) == ""


def test_to_csv_joins_lines_without_trailing_newline() -> None:
    text = to_csv(["Stock", "Note"], [{"Stock": "A1", "Note": "ok, fine"}, {"Stock": "A2"}])
    assert text == 'Stock,Note\nA1,"ok, fine"\nA2,'


def test_export_filtered_marks_scanned_and_missing(dataset, mapping) -> None:
    text = export_filtered(dataset, mapping, FilterSelection(condition="Used"), {"R102": True})
    assert text.splitlines() == [
        "Stock Number,Condition,Make,Model,Calibre,StockCheckStatus",
        "R102,Used,Sako,85 Hunter,.270 Win,SCANNED",
    ]

    text = export_filtered(dataset, mapping, FilterSelection(condition="New", make="Sako"), {})
    assert text.splitlines()[1:] == ["R103,New,Sako,85 Hunter,.308 Win,MISSING"]


def test_export_all_leaves_unscanned_status_blank(dataset, mapping) -> None:
    lines = export_all(dataset, mapping, {"R100": True}).splitlines()
    assert len(lines) == 1 + len(dataset.rows)
    assert lines[1].endswith(",SCANNED")
    assert lines[2].endswith(",")
    assert lines[-1] == ",New,Howa,1500,.243 Win,"


def test_existing_status_column_is_reused_not_duplicated() -> None:
    dataset = make_dataset(
        [{"Stock": "A1", "Condition": "New", "Model": "X", STATUS_COLUMN: "stale"}],
    )
    mapping = FieldMapping(stock="Stock", condition="Condition", model="Model")
    lines = export_filtered(dataset, mapping, FilterSelection(condition="All"), {}).splitlines()
    assert lines == ["Stock,Condition,Model,StockCheckStatus", "A1,New,X,MISSING"]


def test_export_parses_back_with_the_same_quoting_rules() -> None:
    dataset = make_dataset([{"Stock": "A1", "Condition": "New", "Model": 'Model "7", Deluxe'}])
    mapping = FieldMapping(stock="Stock", condition="Condition", model="Model")
    table = parse(export_all(dataset, mapping, {"A1": True}))
    assert table.rows[1] == ["A1", "New", 'Model "7", Deluxe', "SCANNED"]


def test_filtered_export_requires_complete_mapping(dataset) -> None:
    with pytest.raises(IncompleteMappingError):
        export_filtered(dataset, FieldMapping(stock="Stock Number"), FilterSelection(), {})


def test_export_filename_pattern() -> None:
    assert export_filename("filtered", "abc123") == "stockcheck_filtered_abc123.csv"
    assert export_filename("all", "abc123") == "stockcheck_all_abc123.csv"

"""Filter engine and facet index tests."""

from __future__ import annotations

import pytest

from stockcheck.errors import IncompleteMappingError
from stockcheck.facets import make_options, model_options, settle_selection, unique_values
from stockcheck.filtering import field_value, filter_records
from stockcheck.models import FieldMapping, FilterSelection

from conftest import make_dataset


def _stocks(records: list[dict[str, str]]) -> list[str]:
    return [record["Stock Number"] for record in records]


def test_condition_matches_case_insensitively_and_all_is_wildcard(dataset, mapping) -> None:
    """`New` matches `new`; records without a stock id are never eligible."""
    assert _stocks(filter_records(dataset.rows, mapping, FilterSelection(condition="NEW"))) == [
        "R100",
        "R101",
        "R103",
        "R104",
    ]
    assert _stocks(filter_records(dataset.rows, mapping, FilterSelection(condition="All"))) == [
        "R100",
        "R101",
        "R102",
        "R103",
        "R104",
    ]


def test_make_and_model_match_exactly(dataset, mapping) -> None:
    """Make/model comparisons are case-sensitive; empty values are wildcards."""
    selection = FilterSelection(condition="All", make="Sako", model="85 Hunter")
    assert _stocks(filter_records(dataset.rows, mapping, selection)) == ["R102", "R103"]

    lowercase = FilterSelection(condition="All", model="85 hunter")
    assert filter_records(dataset.rows, mapping, lowercase) == []


def test_filter_requires_complete_mapping(dataset) -> None:
    with pytest.raises(IncompleteMappingError):
        filter_records(dataset.rows, FieldMapping(stock="Stock Number", condition="Condition"), FilterSelection())


def test_filter_requires_make_in_extended_variant(dataset) -> None:
    mapping = FieldMapping(stock="Stock Number", condition="Condition", model="Model")
    with pytest.raises(IncompleteMappingError, match="make"):
        filter_records(dataset.rows, mapping, FilterSelection(), require_make=True)


def test_field_value_handles_unbound_and_absent_columns() -> None:
    record = {"Stock": " A1 "}
    assert field_value(record, "Stock") == "A1"
    assert field_value(record, None) == ""
    assert field_value(record, "Model") == ""


def test_unique_values_sorted_distinct_and_condition_scoped(dataset) -> None:
    models = unique_values(dataset.rows, "Model", "Condition", "New")
    assert models == ["1500", "85 Hunter", "T3x Lite"]
    used = unique_values(dataset.rows, "Model", "Condition", "used")
    assert used == ["85 Hunter"]


def test_unique_values_sorts_case_insensitively() -> None:
    rows = [{"Model": "beta", "Condition": "New"}, {"Model": "Alpha", "Condition": "New"}, {"Model": "", "Condition": "New"}]
    assert unique_values(rows, "Model", "Condition", "All") == ["Alpha", "beta"]


def test_unique_values_applies_predicate_before_condition(dataset) -> None:
    values = unique_values(
        dataset.rows,
        "Model",
        "Condition",
        "All",
        predicate=lambda record: record["Make"] == "Tikka",
    )
    assert values == ["T3x Lite"]


def test_model_options_follow_selected_make(dataset, mapping) -> None:
    selection = FilterSelection(condition="New", make="Sako")
    assert make_options(dataset.rows, mapping, selection) == ["Howa", "Sako", "Tikka"]
    assert model_options(dataset.rows, mapping, selection) == ["85 Hunter"]


def test_condition_change_clears_stale_model(dataset, mapping) -> None:
    """A model absent under the new condition resets to the wildcard."""
    selection = FilterSelection(condition="New", make="Howa", model="1500")
    changed = FilterSelection(condition="Used", make="Howa", model="1500")
    assert settle_selection(dataset.rows, mapping, selection) == selection
    assert settle_selection(dataset.rows, mapping, changed) == FilterSelection(condition="Used")


def test_settle_selection_keeps_model_valid_without_make(dataset, mapping) -> None:
    selection = FilterSelection(condition="Used", model="85 Hunter")
    assert settle_selection(dataset.rows, mapping, selection) == selection


def test_with_condition_clears_downstream_facets() -> None:
    selection = FilterSelection(condition="New", make="Sako", model="85 Hunter")
    assert selection.with_condition("Used") == FilterSelection(condition="Used")
    assert selection.with_make("Tikka") == FilterSelection(condition="New", make="Tikka")


def test_make_filter_is_ignored_only_when_blank() -> None:
    dataset = make_dataset(
        [
            {"Stock": "A1", "Condition": "New", "Model": "X"},
            {"Stock": "A2", "Condition": "New", "Model": "Y"},
        ]
    )
    mapping = FieldMapping(stock="Stock", condition="Condition", model="Model")
    assert len(filter_records(dataset.rows, mapping, FilterSelection(make=""))) == 2
    assert filter_records(dataset.rows, mapping, FilterSelection(make="Tikka")) == []

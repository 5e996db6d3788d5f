"""Distinct facet values for populating the make/model selectors."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from .filtering import condition_matches, field_value
from .models import FieldMapping, FilterSelection, Record

RecordPredicate = Callable[[Record], bool]


def collation_key(value: str) -> tuple[str, str]:
    """Sort key that orders case-insensitively, then by exact text."""

    return (value.casefold(), value)


def unique_values(
    records: Sequence[Record],
    value_column: str | None,
    condition_column: str | None,
    condition_filter: str,
    predicate: RecordPredicate | None = None,
) -> list[str]:
    """Return sorted distinct non-empty values of `value_column`.

    `predicate` is applied before the condition check; `condition_filter`
    of `All` admits every row.
    """

    if not value_column:
        return []

    values: set[str] = set()
    for record in records:
        if predicate is not None and not predicate(record):
            continue
        if not condition_matches(field_value(record, condition_column), condition_filter):
            continue
        value = field_value(record, value_column)
        if value:
            values.add(value)
    return sorted(values, key=collation_key)


def _equals(column: str, expected: str) -> RecordPredicate:
    """Build a predicate matching records whose `column` equals `expected` exactly."""

    def predicate(record: Record) -> bool:
        return field_value(record, column) == expected

    return predicate


def make_options(records: Sequence[Record], mapping: FieldMapping, selection: FilterSelection) -> list[str]:
    """Return the makes available under the selected condition."""

    return unique_values(records, mapping.make, mapping.condition, selection.condition)


def model_options(records: Sequence[Record], mapping: FieldMapping, selection: FilterSelection) -> list[str]:
    """Return the models available under the selected condition and make."""

    predicate: RecordPredicate | None = None
    if selection.make and mapping.make:
        predicate = _equals(mapping.make, selection.make)
    return unique_values(records, mapping.model, mapping.condition, selection.condition, predicate)


def settle_selection(
    records: Sequence[Record],
    mapping: FieldMapping,
    selection: FilterSelection,
) -> FilterSelection:
    """Clear any make/model choice that is absent from its recomputed facet index.

    Clearing a stale make also clears the model below it.
    """

    settled = selection
    if settled.make and settled.make not in make_options(records, mapping, settled):
        settled = settled.with_make("")
    if settled.model and settled.model not in model_options(records, mapping, settled):
        settled = settled.with_model("")
    return settled

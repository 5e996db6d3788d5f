"""Selection-driven filtering of dataset records."""

from __future__ import annotations

from collections.abc import Sequence

from .errors import IncompleteMappingError
from .mapping import missing_fields
from .models import ALL_CONDITIONS, FieldMapping, FilterSelection, Record


def field_value(record: Record, column: str | None) -> str:
    """Return the trimmed value of `column`, or an empty string when unbound or absent."""

    if not column:
        return ""
    value = record.get(column)
    if value is None:
        return ""
    return str(value).strip()


def normalize_condition(value: str | None) -> str:
    """Normalize a condition value for case-insensitive comparison."""

    return (value or "").strip().lower()


def condition_matches(value: str, condition_filter: str) -> bool:
    """Return True when `value` satisfies the condition facet (`All` is a wildcard)."""

    if condition_filter == ALL_CONDITIONS:
        return True
    return normalize_condition(value) == normalize_condition(condition_filter)


def matches(record: Record, mapping: FieldMapping, selection: FilterSelection) -> bool:
    """Return whether one record belongs to the filtered set.

    Condition compares normalized text. Make and model compare exactly, so
    values that differ only by case are distinct facets.
    """

    if not field_value(record, mapping.stock):
        return False
    if not condition_matches(field_value(record, mapping.condition), selection.condition):
        return False
    if selection.make and field_value(record, mapping.make) != selection.make:
        return False
    if selection.model and field_value(record, mapping.model) != selection.model:
        return False
    return True


def filter_records(
    records: Sequence[Record],
    mapping: FieldMapping,
    selection: FilterSelection,
    *,
    require_make: bool = False,
) -> list[Record]:
    """Return records matching `selection`, preserving their original order.

    Raises `IncompleteMappingError` when a required field is unbound.
    """

    missing = missing_fields(mapping, require_make=require_make)
    if missing:
        raise IncompleteMappingError(missing)
    return [record for record in records if matches(record, mapping, selection)]

"""Comma-delimited export of records with a synthesized scan status column."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Literal, TypeAlias

from .filtering import field_value, filter_records
from .ledger import scanned_ids
from .models import Dataset, FieldMapping, FilterSelection, Ledger

ExportKind: TypeAlias = Literal["filtered", "all"]

STATUS_COLUMN = "StockCheckStatus"
_NEEDS_QUOTES = (",", '"', "\n")


def escape_field(value: object) -> str:
    """Quote a field containing a comma, quote, or newline, doubling inner quotes."""

    text = "" if value is None else str(value)
    if any(char in text for char in _NEEDS_QUOTES):
        return '"' + text.replace('"', '""') + '"'
    return text


def to_csv(headers: Sequence[str], rows: Sequence[Mapping[str, object]]) -> str:
    """Render a header line plus one line per row, joined with LF."""

    lines = [",".join(escape_field(header) for header in headers)]
    for row in rows:
        lines.append(",".join(escape_field(row.get(header)) for header in headers))
    return "\n".join(lines)


def _with_status_column(headers: Sequence[str], status_column: str) -> list[str]:
    columns = list(headers)
    if status_column not in columns:
        columns.append(status_column)
    return columns


def export_filtered(
    dataset: Dataset,
    mapping: FieldMapping,
    selection: FilterSelection,
    ledger: Ledger,
    *,
    status_column: str = STATUS_COLUMN,
    require_make: bool = False,
) -> str:
    """Export the filtered set, marking each row SCANNED or MISSING."""

    observed = scanned_ids(ledger)
    rows = []
    for record in filter_records(dataset.rows, mapping, selection, require_make=require_make):
        row = dict(record)
        row[status_column] = "SCANNED" if field_value(record, mapping.stock) in observed else "MISSING"
        rows.append(row)
    return to_csv(_with_status_column(dataset.headers, status_column), rows)


def export_all(
    dataset: Dataset,
    mapping: FieldMapping,
    ledger: Ledger,
    *,
    status_column: str = STATUS_COLUMN,
) -> str:
    """Export every row, marking scanned rows SCANNED and leaving the rest blank."""

    observed = scanned_ids(ledger)
    rows = []
    for record in dataset.rows:
        row = dict(record)
        stock = field_value(record, mapping.stock)
        row[status_column] = "SCANNED" if stock and stock in observed else ""
        rows.append(row)
    return to_csv(_with_status_column(dataset.headers, status_column), rows)


def export_filename(kind: ExportKind, dataset_id: str) -> str:
    """Return the download filename for an export of `kind`."""

    return f"stockcheck_{kind}_{dataset_id}.csv"

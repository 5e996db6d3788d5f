"""Scan ledger updates and reconciliation of the filtered set against it."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from .filtering import field_value, filter_records
from .models import (
    Dataset,
    FieldMapping,
    FilterSelection,
    Ledger,
    ListItem,
    Partition,
    ReconciliationCounts,
    Record,
    ScanOutcome,
    ScanResult,
)

logger = logging.getLogger(__name__)

META_SEPARATOR = " • "


def scanned_ids(ledger: Ledger) -> set[str]:
    """Return the stock ids whose ledger flag is true."""

    return {code for code, observed in ledger.items() if observed}


def _first_match(records: Sequence[Record], column: str | None, code: str) -> Record | None:
    for record in records:
        if field_value(record, column) == code:
            return record
    return None


def record_scan(
    code: str,
    dataset: Dataset,
    mapping: FieldMapping,
    selection: FilterSelection,
    ledger: Ledger,
    *,
    require_make: bool = False,
) -> ScanResult:
    """Classify one scanned or typed stock id and record it when eligible.

    Only a RECORDED outcome returns a new ledger; every other outcome hands
    back the ledger object it was given. Blank input is NOT_FOUND. When a
    stock id appears on several rows the first occurrence is the match.
    """

    code = (code or "").strip()
    if not code:
        return ScanResult(code=code, outcome=ScanOutcome.NOT_FOUND, ledger=ledger)

    filtered = filter_records(dataset.rows, mapping, selection, require_make=require_make)
    record = _first_match(dataset.rows, mapping.stock, code)

    if record is None:
        outcome = ScanOutcome.NOT_FOUND
    else:
        in_filter = _first_match(filtered, mapping.stock, code)
        if in_filter is None:
            outcome = ScanOutcome.OUT_OF_FILTER
        elif ledger.get(code):
            outcome = ScanOutcome.ALREADY_SCANNED
            record = in_filter
        else:
            updated = dict(ledger)
            updated[code] = True
            logger.info("Recorded scan %s", code)
            return ScanResult(code=code, outcome=ScanOutcome.RECORDED, ledger=updated, record=in_filter)

    logger.warning("Scan %s not recorded: %s", code, outcome.value)
    return ScanResult(code=code, outcome=outcome, ledger=ledger, record=record)


def reconcile(filtered: Sequence[Record], ledger: Ledger, stock_column: str | None) -> ReconciliationCounts:
    """Count expected, scanned, and missing records in the filtered set."""

    observed = scanned_ids(ledger)
    expected = len(filtered)
    scanned = sum(1 for record in filtered if field_value(record, stock_column) in observed)
    return {"expected": expected, "scanned": scanned, "missing": expected - scanned}


def format_row_line(record: Record, mapping: FieldMapping) -> tuple[str, str]:
    """Return the stock id and the make/model/calibre summary for a record."""

    parts = [
        value
        for value in (
            field_value(record, mapping.make),
            field_value(record, mapping.model),
            field_value(record, mapping.calibre),
        )
        if value
    ]
    return field_value(record, mapping.stock), META_SEPARATOR.join(parts)


def partition(
    filtered: Sequence[Record],
    ledger: Ledger,
    mapping: FieldMapping,
    query: str = "",
) -> Partition:
    """Split the search-matching filtered records into scanned and missing lists.

    The query matches case-insensitively as a substring of the stock id or
    the summary line; a blank query matches everything. All lists keep the
    filtered set's order.
    """

    needle = (query or "").strip().lower()
    observed = scanned_ids(ledger)

    all_items: list[ListItem] = []
    for record in filtered:
        stock, meta = format_row_line(record, mapping)
        if needle and needle not in stock.lower() and needle not in meta.lower():
            continue
        all_items.append(ListItem(stock=stock, meta=meta, scanned=stock in observed, record=record))

    return Partition(
        all=all_items,
        scanned=[item for item in all_items if item.scanned],
        missing=[item for item in all_items if not item.scanned],
    )

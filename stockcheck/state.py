"""Explicit application state and the pure transitions each user action applies."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from .facets import make_options, model_options, settle_selection
from .filtering import filter_records
from .ingest import IngestResult, find_duplicate_stock_ids
from .ledger import partition, reconcile, record_scan
from .mapping import auto_map, ensure_complete, missing_fields, revalidate
from .models import (
    LIST_TABS,
    DataIssue,
    Dataset,
    FieldMapping,
    FilterSelection,
    ListItem,
    ListTab,
    ReconciliationCounts,
    ScanResult,
)

DEFAULT_TAB: ListTab = "missing"


@dataclass(frozen=True, slots=True)
class AppState:
    """Snapshot of (dataset, mapping, selection, ledger, tab); never mutated in place."""

    dataset: Dataset | None = None
    mapping: FieldMapping = field(default_factory=FieldMapping)
    selection: FilterSelection = field(default_factory=FilterSelection)
    ledger: Mapping[str, bool] = field(default_factory=dict)
    tab: ListTab = DEFAULT_TAB

    @property
    def has_dataset(self) -> bool:
        return self.dataset is not None


@dataclass(frozen=True, slots=True)
class StockView:
    """Everything a screen needs after a recompute.

    `counts` is None and `items` is empty while `missing_fields` is non-empty.
    """

    dataset: Dataset | None
    selection: FilterSelection
    tab: ListTab
    query: str
    missing_fields: list[str]
    make_options: list[str]
    model_options: list[str]
    counts: ReconciliationCounts | None
    items: list[ListItem]

    @property
    def needs_mapping(self) -> bool:
        return self.dataset is not None and bool(self.missing_fields)

    @property
    def complete(self) -> bool:
        """Return True when every expected record of the filter has been scanned."""

        return self.counts is not None and self.counts["missing"] == 0 and self.counts["expected"] > 0


def _coerce_tab(value: Any) -> ListTab:
    return value if value in LIST_TABS else DEFAULT_TAB


def state_from_blobs(
    *,
    dataset: Mapping[str, Any] | None,
    ledger: Mapping[str, Any] | None,
    mapping: Mapping[str, Any] | None,
    ui: Mapping[str, Any] | None,
    default_condition: str = "New",
) -> AppState:
    """Rebuild state from the four stored blobs, tolerating missing ones."""

    ui = ui or {}
    selection = FilterSelection(
        condition=str(ui.get("condition") or default_condition),
        make=str(ui.get("make") or ""),
        model=str(ui.get("model") or ""),
    )
    return AppState(
        dataset=Dataset.from_dict(dataset) if dataset else None,
        mapping=FieldMapping.from_dict(mapping),
        selection=selection,
        ledger={str(code): bool(flag) for code, flag in (ledger or {}).items()},
        tab=_coerce_tab(ui.get("tab")),
    )


def ui_blob(state: AppState) -> dict[str, str]:
    """Serialize the selection and tab into the stored UI blob shape."""

    return {
        "condition": state.selection.condition,
        "make": state.selection.make,
        "model": state.selection.model,
        "tab": state.tab,
    }


def apply_import(state: AppState, result: IngestResult, *, default_condition: str = "New") -> AppState:
    """Replace the dataset wholesale, auto-map it, and reset ledger and selection."""

    return AppState(
        dataset=result.dataset,
        mapping=auto_map(result.dataset.headers),
        selection=FilterSelection(condition=default_condition),
        ledger={},
        tab=DEFAULT_TAB,
    )


def import_issues(state: AppState, result: IngestResult) -> list[DataIssue]:
    """Return ingest issues plus duplicate stock ids under the current mapping."""

    rows = result.dataset.rows
    return [*result.issues, *find_duplicate_stock_ids(rows, state.mapping.stock)]


def apply_mapping(state: AppState, mapping: FieldMapping, *, require_make: bool = False) -> AppState:
    """Install a user-chosen mapping after checking it against the dataset headers."""

    if state.dataset is None:
        raise ValueError("No dataset loaded")
    headers = state.dataset.headers
    ensure_complete(mapping, headers, require_make=require_make)
    mapping = revalidate(mapping, headers)
    selection = settle_selection(state.dataset.rows, mapping, state.selection)
    return replace(state, mapping=mapping, selection=selection)


def _with_selection(state: AppState, selection: FilterSelection) -> AppState:
    if state.dataset is not None:
        selection = settle_selection(state.dataset.rows, state.mapping, selection)
    return replace(state, selection=selection)


def apply_condition(state: AppState, condition: str) -> AppState:
    """Select a condition; make and model fall back to the wildcard."""

    return _with_selection(state, state.selection.with_condition(condition))


def apply_make(state: AppState, make: str) -> AppState:
    return _with_selection(state, state.selection.with_make(make))


def apply_model(state: AppState, model: str) -> AppState:
    return _with_selection(state, state.selection.with_model(model))


def apply_tab(state: AppState, tab: str) -> AppState:
    if tab not in LIST_TABS:
        raise ValueError(f"Unknown list tab: {tab}")
    return replace(state, tab=tab)


def apply_scan(state: AppState, code: str, *, require_make: bool = False) -> tuple[AppState, ScanResult]:
    """Run one scan against the current state; only RECORDED changes the ledger."""

    if state.dataset is None:
        raise ValueError("No dataset loaded")
    result = record_scan(
        code,
        state.dataset,
        state.mapping,
        state.selection,
        state.ledger,
        require_make=require_make,
    )
    if not result.recorded:
        return state, result
    return replace(state, ledger=result.ledger), result


def apply_reset(state: AppState) -> AppState:
    """Clear the ledger; the dataset and mapping stay."""

    return replace(state, ledger={})


def build_view(state: AppState, *, query: str = "", require_make: bool = False) -> StockView:
    """Recompute facets, counters, and the active list from the current state.

    A selection left dangling on a facet value that no longer exists is
    settled back to the wildcard first.
    """

    dataset = state.dataset
    if dataset is None:
        return StockView(
            dataset=None,
            selection=state.selection,
            tab=state.tab,
            query=query,
            missing_fields=[],
            make_options=[],
            model_options=[],
            counts=None,
            items=[],
        )

    missing = missing_fields(state.mapping, dataset.headers, require_make=require_make)
    if missing:
        return StockView(
            dataset=dataset,
            selection=state.selection,
            tab=state.tab,
            query=query,
            missing_fields=missing,
            make_options=[],
            model_options=[],
            counts=None,
            items=[],
        )

    selection = settle_selection(dataset.rows, state.mapping, state.selection)
    filtered = filter_records(dataset.rows, state.mapping, selection, require_make=require_make)
    lists = partition(filtered, state.ledger, state.mapping, query)
    return StockView(
        dataset=dataset,
        selection=selection,
        tab=state.tab,
        query=query,
        missing_fields=[],
        make_options=make_options(dataset.rows, state.mapping, selection),
        model_options=model_options(dataset.rows, state.mapping, selection),
        counts=reconcile(filtered, state.ledger, state.mapping.stock),
        items=lists.for_tab(state.tab),
    )

"""Owned session context that runs user actions against a key/value store."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from .config import StockCheckConfig
from .errors import IncompleteMappingError
from .export import ExportKind, export_all, export_filename, export_filtered
from .ingest import IngestResult, import_text
from .mapping import missing_fields
from .models import DataIssue, FieldMapping, FilterSelection, ScanResult
from .state import (
    AppState,
    StockView,
    apply_condition,
    apply_import,
    apply_make,
    apply_mapping,
    apply_model,
    apply_reset,
    apply_scan,
    apply_tab,
    build_view,
    import_issues,
    state_from_blobs,
    ui_blob,
)
from .storage import KEYS, KeyValueStore

logger = logging.getLogger(__name__)

ViewListener = Callable[[StockView], None]


@dataclass(slots=True)
class ImportReport:
    """Outcome of a successful import."""

    result: IngestResult
    issues: list[DataIssue] = field(default_factory=list)
    missing_fields: list[str] = field(default_factory=list)

    @property
    def needs_mapping(self) -> bool:
        return bool(self.missing_fields)


class StockCheckSession:
    """Runs one user action at a time: transition, persist, then redraw.

    The in-memory state is only replaced after every blob the action touches
    has been written, so a storage failure leaves it as it was.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: StockCheckConfig | None = None,
        *,
        on_change: ViewListener | None = None,
    ) -> None:
        self.store = store
        self.config = config or StockCheckConfig()
        self.on_change = on_change
        self.state = self._empty_state()
        self.query = ""

    def _empty_state(self) -> AppState:
        return AppState(selection=FilterSelection(condition=self.config.default_condition))

    def _require_mapping(self) -> None:
        missing = self.missing_fields
        if missing:
            raise IncompleteMappingError(missing)

    async def load(self) -> StockView:
        """Read all four blobs and redraw."""

        self.state = state_from_blobs(
            dataset=await self.store.get(KEYS["dataset"]),
            ledger=await self.store.get(KEYS["scanned"]),
            mapping=await self.store.get(KEYS["mapping"]),
            ui=await self.store.get(KEYS["ui"]),
            default_condition=self.config.default_condition,
        )
        return await self.refresh()

    async def _commit(self, state: AppState, *parts: str) -> None:
        for part in parts:
            if part == "dataset":
                value = state.dataset.to_dict() if state.dataset else None
            elif part == "scanned":
                value = dict(state.ledger)
            elif part == "mapping":
                value = state.mapping.to_dict()
            elif part == "ui":
                value = ui_blob(state)
            else:
                raise ValueError(f"Unknown state part: {part}")
            await self.store.set(KEYS[part], value)
        self.state = state

    @property
    def missing_fields(self) -> list[str]:
        if self.state.dataset is None:
            return []
        return missing_fields(
            self.state.mapping,
            self.state.dataset.headers,
            require_make=self.config.require_make,
        )

    @property
    def needs_mapping(self) -> bool:
        return bool(self.missing_fields)

    async def refresh(self) -> StockView:
        """Recompute the view from current state and notify the listener."""

        view = build_view(self.state, query=self.query, require_make=self.config.require_make)
        if view.counts is not None and view.selection != self.state.selection:
            logger.info("Cleared stale facet selection: %s", view.selection.describe())
            await self._commit(replace(self.state, selection=view.selection), "ui")
        if self.on_change is not None:
            self.on_change(view)
        return view

    async def import_csv(self, text: str, name: str) -> ImportReport:
        """Import raw CSV text; raises `ImportRejected` without touching the store."""

        result = import_text(
            text,
            name=name,
            detect_header_row=self.config.detect_header_row,
        )
        state = apply_import(self.state, result, default_condition=self.config.default_condition)
        await self._commit(state, "dataset", "mapping", "scanned", "ui")

        report = ImportReport(
            result=result,
            issues=import_issues(state, result),
            missing_fields=self.missing_fields,
        )
        if report.needs_mapping:
            logger.warning("Mapping incomplete after import; missing %s", ", ".join(report.missing_fields))
        else:
            logger.info("Auto-mapped columns: %s", state.mapping.to_dict())
        await self.refresh()
        return report

    async def save_mapping(self, mapping: FieldMapping) -> StockView:
        """Store a user-corrected mapping; raises `IncompleteMappingError` if unusable."""

        state = apply_mapping(self.state, mapping, require_make=self.config.require_make)
        await self._commit(state, "mapping", "ui")
        logger.info("Mapping saved: %s", state.mapping.to_dict())
        return await self.refresh()

    async def select_condition(self, condition: str) -> StockView:
        await self._commit(apply_condition(self.state, condition), "ui")
        return await self.refresh()

    async def select_make(self, make: str) -> StockView:
        await self._commit(apply_make(self.state, make), "ui")
        return await self.refresh()

    async def select_model(self, model: str) -> StockView:
        await self._commit(apply_model(self.state, model), "ui")
        return await self.refresh()

    async def select_tab(self, tab: str) -> StockView:
        await self._commit(apply_tab(self.state, tab), "ui")
        return await self.refresh()

    async def search(self, query: str) -> StockView:
        self.query = query
        return await self.refresh()

    async def scan(self, code: str) -> ScanResult:
        """Run one scan or manual entry; only RECORDED writes the ledger."""

        self._require_mapping()
        state, result = apply_scan(self.state, code, require_make=self.config.require_make)
        if result.recorded:
            await self._commit(state, "scanned")
            await self.refresh()
        return result

    async def reset(self) -> StockView:
        """Clear every scan; the dataset stays."""

        await self._commit(apply_reset(self.state), "scanned")
        logger.info("Stock check reset")
        return await self.refresh()

    async def clear(self) -> StockView:
        """Delete the dataset together with its mapping, ledger and UI selection."""

        for part in ("dataset", "scanned", "mapping", "ui"):
            await self.store.delete(KEYS[part])
        self.state = self._empty_state()
        self.query = ""
        logger.info("Dataset cleared")
        return await self.refresh()

    def export(self, kind: ExportKind) -> tuple[str, str]:
        """Return `(filename, csv_text)` for the filtered or full export."""

        dataset = self.state.dataset
        if dataset is None:
            raise ValueError("No dataset loaded")
        if kind == "filtered":
            self._require_mapping()
            text = export_filtered(
                dataset,
                self.state.mapping,
                self.state.selection,
                self.state.ledger,
                status_column=self.config.status_column,
                require_make=self.config.require_make,
            )
        elif kind == "all":
            text = export_all(
                dataset,
                self.state.mapping,
                self.state.ledger,
                status_column=self.config.status_column,
            )
        else:
            raise ValueError(f"Unsupported export kind: {kind}")
        return export_filename(kind, dataset.id), text

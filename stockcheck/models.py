"""Core typed models shared by the ingestion, filtering and ledger modules."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, TypedDict, TypeAlias

Record: TypeAlias = dict[str, str]
Ledger: TypeAlias = Mapping[str, bool]
ListTab: TypeAlias = Literal["missing", "scanned", "all"]

ALL_CONDITIONS = "All"
FIELD_KEYS = ("stock", "condition", "model", "make", "calibre")
LIST_TABS: tuple[ListTab, ...] = ("missing", "scanned", "all")


@dataclass(frozen=True, slots=True)
class DataIssue:
    """Structured data-quality issue emitted during ingestion or mapping."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True, slots=True)
class Dataset:
    """Immutable snapshot of one imported inventory."""

    id: str
    name: str
    loaded_at: str
    headers: tuple[str, ...]
    rows: tuple[Record, ...]

    @property
    def total_rows(self) -> int:
        """Return the number of records in the snapshot."""

        return len(self.rows)

    def to_dict(self) -> dict[str, Any]:
        """Serialize into the blob shape stored under the dataset key."""

        return {
            "id": self.id,
            "name": self.name,
            "loadedAt": self.loaded_at,
            "headers": list(self.headers),
            "rows": [dict(row) for row in self.rows],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Dataset:
        """Rebuild a dataset from a stored blob."""

        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            loaded_at=str(data.get("loadedAt", "")),
            headers=tuple(str(header) for header in data.get("headers", [])),
            rows=tuple(
                {str(key): "" if value is None else str(value) for key, value in row.items()}
                for row in data.get("rows", [])
            ),
        )


@dataclass(frozen=True, slots=True)
class FieldMapping:
    """Binding of semantic field keys to dataset column names.

    `None` means the field is unset.
    """

    stock: str | None = None
    condition: str | None = None
    model: str | None = None
    make: str | None = None
    calibre: str | None = None

    def column(self, key: str) -> str | None:
        """Return the column bound to `key`, or None when unset."""

        if key not in FIELD_KEYS:
            raise ValueError(f"Unknown mapping field: {key}")
        return getattr(self, key)

    def to_dict(self) -> dict[str, str | None]:
        return {key: getattr(self, key) for key in FIELD_KEYS}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> FieldMapping:
        if not data:
            return cls()
        values = {}
        for key in FIELD_KEYS:
            value = data.get(key)
            values[key] = str(value) if value else None
        return cls(**values)


@dataclass(frozen=True, slots=True)
class FilterSelection:
    """Current facet choices; empty make/model values are wildcards."""

    condition: str = "New"
    make: str = ""
    model: str = ""

    def with_condition(self, condition: str) -> FilterSelection:
        """Select a condition and clear the downstream make/model facets."""

        return FilterSelection(condition=condition, make="", model="")

    def with_make(self, make: str) -> FilterSelection:
        """Select a make and clear the downstream model facet."""

        return FilterSelection(condition=self.condition, make=make, model="")

    def with_model(self, model: str) -> FilterSelection:
        return FilterSelection(condition=self.condition, make=self.make, model=model)

    def describe(self) -> str:
        """Return the one-line summary shown above the counters."""

        parts = [f"Condition: {self.condition}"]
        if self.make:
            parts.append(f"Make: {self.make}")
        parts.append(f"Model: {self.model or 'All'}")
        return " • ".join(parts)


class ScanOutcome(str, Enum):
    """Result category of one scan or manual entry."""

    NOT_FOUND = "NOT_FOUND"
    OUT_OF_FILTER = "OUT_OF_FILTER"
    ALREADY_SCANNED = "ALREADY_SCANNED"
    RECORDED = "RECORDED"


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Outcome of `record_scan`; `ledger` is the original object unless RECORDED."""

    code: str
    outcome: ScanOutcome
    ledger: Ledger
    record: Record | None = None

    @property
    def recorded(self) -> bool:
        return self.outcome is ScanOutcome.RECORDED


class ReconciliationCounts(TypedDict):
    """Counter values for the current filtered set."""

    expected: int
    scanned: int
    missing: int


@dataclass(frozen=True, slots=True)
class ListItem:
    """One row of a list tab: stock id plus its make/model/calibre summary."""

    stock: str
    meta: str
    scanned: bool
    record: Record = field(compare=False, repr=False)

    @property
    def status(self) -> str:
        return "SCANNED" if self.scanned else "MISSING"


@dataclass(frozen=True, slots=True)
class Partition:
    """Search-filtered list tabs derived from the filtered set and ledger."""

    all: list[ListItem]
    scanned: list[ListItem]
    missing: list[ListItem]

    def for_tab(self, tab: ListTab) -> list[ListItem]:
        """Return the list shown on `tab`."""

        if tab == "scanned":
            return self.scanned
        if tab == "all":
            return self.all
        return self.missing

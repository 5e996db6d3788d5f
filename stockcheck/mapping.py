"""Synonym-driven binding of semantic fields to dataset columns."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .errors import IncompleteMappingError
from .models import FIELD_KEYS, FieldMapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FieldSynonyms:
    """Priority-ordered header aliases for one semantic field."""

    field: str
    synonyms: tuple[str, ...]


# Earlier synonyms win over later ones regardless of header order.
SYNONYM_TABLE: tuple[FieldSynonyms, ...] = (
    FieldSynonyms(
        field="stock",
        synonyms=(
            "stocknumber",
            "stock number",
            "stock no",
            "stockno",
            "stock",
            "stock#",
            "stock #",
            "stock_num",
            "stock num",
            "stockid",
            "stock id",
            "item",
            "item number",
            "item no",
        ),
    ),
    FieldSynonyms(field="condition", synonyms=("condition", "cond", "state", "status")),
    FieldSynonyms(field="model", synonyms=("model", "rifle model", "product model")),
    FieldSynonyms(field="make", synonyms=("make", "brand", "manufacturer")),
    FieldSynonyms(field="calibre", synonyms=("calibre", "caliber", "cal", "caliber/ga", "calibre/ga")),
)

BASE_REQUIRED_FIELDS: tuple[str, ...] = ("stock", "condition", "model")
EXTENDED_REQUIRED_FIELDS: tuple[str, ...] = ("stock", "condition", "model", "make")


def normalize_header(header: str | None) -> str:
    """Normalize header text so synonym matching ignores case and padding."""

    if header is None:
        return ""
    return str(header).strip().lower()


def required_fields(*, require_make: bool = False) -> tuple[str, ...]:
    """Return the required field keys for the base or extended variant."""

    return EXTENDED_REQUIRED_FIELDS if require_make else BASE_REQUIRED_FIELDS


def auto_map(headers: Sequence[str]) -> FieldMapping:
    """Propose a mapping by exact synonym match against normalized headers.

    For each field the synonym table is walked in priority order and the first
    synonym equal to some normalized header binds that header. Fields without
    a match stay unset.
    """

    normalized = [normalize_header(header) for header in headers]
    bound: dict[str, str | None] = {key: None for key in FIELD_KEYS}

    for entry in SYNONYM_TABLE:
        for synonym in entry.synonyms:
            if synonym in normalized:
                bound[entry.field] = headers[normalized.index(synonym)]
                break

    mapping = FieldMapping(**bound)
    logger.debug("Auto-mapped headers %s to %s", list(headers), mapping.to_dict())
    return mapping


def missing_fields(
    mapping: FieldMapping,
    headers: Sequence[str] | None = None,
    *,
    require_make: bool = False,
) -> list[str]:
    """Return required fields that are unset, blank, or not among `headers`."""

    available = set(headers) if headers is not None else None
    missing: list[str] = []
    for key in required_fields(require_make=require_make):
        column = mapping.column(key)
        if not column or not column.strip():
            missing.append(key)
        elif available is not None and column not in available:
            missing.append(key)
    return missing


def is_complete(
    mapping: FieldMapping,
    headers: Sequence[str] | None = None,
    *,
    require_make: bool = False,
) -> bool:
    """Return whether every required field is bound (to a known header when given)."""

    return not missing_fields(mapping, headers, require_make=require_make)


def ensure_complete(
    mapping: FieldMapping,
    headers: Sequence[str] | None = None,
    *,
    require_make: bool = False,
) -> FieldMapping:
    """Return `mapping` unchanged or raise `IncompleteMappingError`."""

    missing = missing_fields(mapping, headers, require_make=require_make)
    if missing:
        raise IncompleteMappingError(missing)
    return mapping


def revalidate(mapping: FieldMapping, headers: Sequence[str]) -> FieldMapping:
    """Unset any binding whose column is no longer among `headers`."""

    available = set(headers)
    values = {}
    for key in FIELD_KEYS:
        column = mapping.column(key)
        values[key] = column if column in available else None
    return FieldMapping(**values)

"""Grid-to-dataset ingestion: header location, record building, fingerprinting."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .errors import ImportRejected
from .models import DataIssue, Dataset, Record
from .tabular import parse

logger = logging.getLogger(__name__)

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193

HEADER_SCAN_LIMIT = 10
MIN_HEADER_NAMES = 3

# Substring weights used to recognize the header row below report preambles.
HEADER_KEYWORD_WEIGHTS: tuple[tuple[str, int], ...] = (
    ("stock", 3),
    ("condition", 3),
    ("model", 2),
    ("make", 2),
)


@dataclass(slots=True)
class IngestResult:
    """Dataset built from one import plus parse metadata and issues."""

    dataset: Dataset
    delimiter: str
    header_row: int
    issues: list[DataIssue] = field(default_factory=list)


def fingerprint(text: str) -> str:
    """Return a 32-bit FNV-1a hash of `text` as lowercase hex.

    The hash walks UTF-16 code units so identical text always yields the same
    id regardless of platform.
    """

    value = FNV_OFFSET_BASIS
    encoded = text.encode("utf-16-le", errors="surrogatepass")
    for offset in range(0, len(encoded), 2):
        value ^= encoded[offset] | (encoded[offset + 1] << 8)
        value = (value * FNV_PRIME) & 0xFFFFFFFF
    return format(value, "x")


def score_header_row(cells: Sequence[str]) -> int:
    """Sum keyword weights found anywhere in the row's joined, lowercased text."""

    joined = " ".join(str(cell).strip().lower() for cell in cells)
    return sum(weight for keyword, weight in HEADER_KEYWORD_WEIGHTS if keyword in joined)


def locate_header_row(grid: Sequence[Sequence[str]], *, limit: int = HEADER_SCAN_LIMIT) -> int:
    """Return the index of the best-scoring header candidate in the first rows.

    Ties keep the earliest row. An empty grid yields 0.
    """

    best_index = 0
    best_score = -1
    for index, cells in enumerate(grid[:limit]):
        score = score_header_row(cells)
        if score > best_score:
            best_index = index
            best_score = score
    return best_index


def rows_to_records(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> list[Record]:
    """Zip data rows against headers; missing trailing cells become empty strings.

    When headers repeat, the right-most column wins for that key.
    """

    records: list[Record] = []
    for cells in rows:
        record: Record = {}
        for position, header in enumerate(headers):
            value = cells[position] if position < len(cells) else ""
            record[header] = "" if value is None else str(value).strip()
        records.append(record)
    return records


def _header_issues(headers: Sequence[str]) -> list[DataIssue]:
    issues: list[DataIssue] = []
    seen: set[str] = set()
    for position, header in enumerate(headers, start=1):
        if header == "":
            issues.append(DataIssue(code="blank_header", message=f"Column {position} has no header name"))
            continue
        if header in seen:
            issues.append(
                DataIssue(
                    code="duplicate_header",
                    message=f"Header {header!r} appears more than once; the last column wins",
                    field=header,
                )
            )
        seen.add(header)
    return issues


def ingest(
    grid: Sequence[Sequence[str]],
    *,
    source_text: str,
    name: str,
    detect_header_row: bool = True,
    loaded_at: str | None = None,
    delimiter: str = ",",
) -> IngestResult:
    """Build a dataset from a parsed grid.

    Raises `ImportRejected` for grids with fewer than two rows, or, when
    header detection is on, when the chosen header row has fewer than three
    non-empty names.
    """

    if len(grid) < 2:
        raise ImportRejected("empty_csv", "CSV looks empty or invalid.")

    header_row = locate_header_row(grid) if detect_header_row else 0
    headers = [str(cell).strip() for cell in grid[header_row]]
    if detect_header_row and sum(1 for header in headers if header) < MIN_HEADER_NAMES:
        raise ImportRejected("header_not_detected", "Could not detect header row.")

    issues = _header_issues(headers)
    if header_row > 0:
        issues.append(
            DataIssue(
                code="preamble_rows_skipped",
                message=f"{header_row} row(s) above the header were skipped",
            )
        )

    data_rows = grid[header_row + 1 :]
    for offset, cells in enumerate(data_rows, start=header_row + 2):
        if len(cells) > len(headers):
            issues.append(
                DataIssue(
                    code="row_has_extra_columns",
                    message=f"Row {offset} has more columns than the header",
                )
            )

    dataset = Dataset(
        id=fingerprint(source_text),
        name=name,
        loaded_at=loaded_at or datetime.now(timezone.utc).isoformat(),
        headers=tuple(headers),
        rows=tuple(rows_to_records(headers, data_rows)),
    )
    return IngestResult(dataset=dataset, delimiter=delimiter, header_row=header_row, issues=issues)


def import_text(
    text: str,
    *,
    name: str,
    detect_header_row: bool = True,
    loaded_at: str | None = None,
) -> IngestResult:
    """Parse raw delimited text and ingest it into a dataset."""

    text = text.removeprefix("\ufeff")
    table = parse(text)
    try:
        result = ingest(
            table.rows,
            source_text=text,
            name=name,
            detect_header_row=detect_header_row,
            loaded_at=loaded_at,
            delimiter=table.delimiter,
        )
    except ImportRejected as exc:
        logger.warning("Rejected import of %s: %s", name, exc.message)
        raise

    logger.info(
        "Imported %s: id=%s rows=%d delimiter=%r header_row=%d",
        name,
        result.dataset.id,
        result.dataset.total_rows,
        result.delimiter,
        result.header_row,
    )
    return result


def find_duplicate_stock_ids(rows: Sequence[Record], stock_column: str | None) -> list[DataIssue]:
    """Report stock ids shared by more than one row.

    Scan lookup resolves duplicates to the first occurrence; every duplicated
    row still shares the id's scanned status.
    """

    if not stock_column:
        return []

    counts: defaultdict[str, int] = defaultdict(int)
    for row in rows:
        stock = (row.get(stock_column) or "").strip()
        if stock:
            counts[stock] += 1

    return [
        DataIssue(
            code="duplicate_stock_id",
            message=f"Stock id {stock!r} appears on {count} rows; scans match the first",
            field=stock_column,
        )
        for stock, count in sorted(counts.items())
        if count > 1
    ]

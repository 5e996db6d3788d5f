"""Public API exports for the stock check reconciliation engine."""

from .config import StockCheckConfig, load_config
from .errors import ImportRejected, IncompleteMappingError, StorageError
from .export import export_all, export_filename, export_filtered, to_csv
from .facets import settle_selection, unique_values
from .filtering import filter_records
from .ingest import fingerprint, import_text, ingest, locate_header_row
from .ledger import partition, reconcile, record_scan
from .mapping import auto_map, is_complete
from .models import (
    DataIssue,
    Dataset,
    FieldMapping,
    FilterSelection,
    ListItem,
    Partition,
    ReconciliationCounts,
    ScanOutcome,
    ScanResult,
)
from .scanner import QueueBarcodeSource, ScanLoop
from .session import ImportReport, StockCheckSession
from .storage import JsonFileStore, MemoryStore
from .tabular import detect_delimiter, parse

__all__ = [
    "DataIssue",
    "Dataset",
    "FieldMapping",
    "FilterSelection",
    "ImportRejected",
    "ImportReport",
    "IncompleteMappingError",
    "JsonFileStore",
    "ListItem",
    "MemoryStore",
    "Partition",
    "QueueBarcodeSource",
    "ReconciliationCounts",
    "ScanLoop",
    "ScanOutcome",
    "ScanResult",
    "StockCheckConfig",
    "StockCheckSession",
    "StorageError",
    "auto_map",
    "detect_delimiter",
    "export_all",
    "export_filename",
    "export_filtered",
    "filter_records",
    "fingerprint",
    "import_text",
    "ingest",
    "is_complete",
    "load_config",
    "locate_header_row",
    "parse",
    "partition",
    "reconcile",
    "record_scan",
    "settle_selection",
    "to_csv",
    "unique_values",
]

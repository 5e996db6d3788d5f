"""Command-line runner for a stock check.

Imports a CSV stock list, records scans or typed stock ids, and prints or
exports the reconciliation for the current filter. State persists between
runs as JSON blobs under the configured `state_dir`.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from stockcheck import (
    FieldMapping,
    ImportRejected,
    IncompleteMappingError,
    JsonFileStore,
    QueueBarcodeSource,
    ScanLoop,
    StockCheckSession,
    StorageError,
    load_config,
)
from stockcheck.config import StockCheckConfig
from stockcheck.models import ScanResult
from stockcheck.state import StockView

logger = logging.getLogger("check_stock")

EXIT_OK = 0
EXIT_STORAGE = 1
EXIT_REJECTED = 2


def build_status_report(view: StockView) -> dict[str, Any]:
    """Build a JSON-friendly summary of the current view."""

    dataset = view.dataset
    return {
        "metadata": {
            "generated_at_utc": datetime.now(timezone.utc).isoformat(),
            "dataset_id": dataset.id if dataset else None,
            "dataset_name": dataset.name if dataset else None,
            "loaded_at": dataset.loaded_at if dataset else None,
        },
        "selection": {
            "condition": view.selection.condition,
            "make": view.selection.make,
            "model": view.selection.model,
        },
        "missing_mapping_fields": view.missing_fields,
        "counts": view.counts,
        "complete": view.complete,
        "tab": view.tab,
        "query": view.query,
        "items": [{"stock": item.stock, "meta": item.meta, "status": item.status} for item in view.items],
    }


def write_report(report: dict[str, Any], *, output_path: Path) -> None:
    """Write report JSON to disk."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(report, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def render_view(view: StockView) -> str:
    """Format a view as plain text for the terminal."""

    if view.dataset is None:
        return "No CSV loaded yet."
    lines = [f"Loaded: {view.dataset.name} ({view.dataset.total_rows} rows, id {view.dataset.id})"]
    if view.needs_mapping:
        lines.append(f"Mapping incomplete; missing fields: {', '.join(view.missing_fields)}. Run `map` to set them.")
        return "\n".join(lines)

    counts = view.counts or {"expected": 0, "scanned": 0, "missing": 0}
    lines.append(view.selection.describe())
    lines.append(f"Expected: {counts['expected']}  Scanned: {counts['scanned']}  Missing: {counts['missing']}")
    if view.complete:
        lines.append("Complete for this filter")
    lines.append(f"-- {view.tab} --")
    if not view.items:
        lines.append("Nothing to show.")
    for item in view.items:
        meta = f"  {item.meta}" if item.meta else ""
        lines.append(f"{item.status:<8} {item.stock}{meta}")
    return "\n".join(lines)


def _describe_scan(result: ScanResult) -> str:
    messages = {
        "RECORDED": "Scanned",
        "ALREADY_SCANNED": "Already scanned",
        "OUT_OF_FILTER": "Not in current filter",
        "NOT_FOUND": "Not found",
    }
    return f"{messages[result.outcome.value]}: {result.code}"


async def _replay(session: StockCheckSession, codes: list[str], config: StockCheckConfig) -> list[ScanResult]:
    """Feed decoded codes through the debounced scan loop and collect outcomes."""

    results: list[ScanResult] = []

    async def on_code(code: str) -> None:
        results.append(await session.scan(code))

    expected = sum(1 for code in codes if code.strip())
    source = QueueBarcodeSource(codes, wait=config.poll_interval or 0.01)
    loop = ScanLoop(
        source,
        on_code,
        debounce_seconds=config.debounce_seconds,
        poll_interval=config.poll_interval,
    )
    async with loop:
        while loop.processed < expected and loop.running:
            await asyncio.sleep(config.poll_interval or 0.01)
    return results


async def run(args: argparse.Namespace, config: StockCheckConfig) -> int:
    """Dispatch one sub-command against the persisted session."""

    session = StockCheckSession(JsonFileStore(config.state_dir), config)
    view = await session.load()

    if args.command == "import":
        text = args.path.read_text(encoding="utf-8-sig")
        report = await session.import_csv(text, args.name or args.path.name)
        print(f"CSV loaded: {report.result.dataset.total_rows} rows (id {report.result.dataset.id})")
        for issue in report.issues:
            print(f"warning [{issue.code}] {issue.message}")
        if report.needs_mapping:
            print(f"Mapping incomplete; missing fields: {', '.join(report.missing_fields)}. Run `map` to set them.")
            return EXIT_REJECTED
        return EXIT_OK

    if args.command == "map":
        if view.dataset is None:
            print("No CSV loaded yet.")
            return EXIT_REJECTED
        mapping = FieldMapping(
            stock=args.stock,
            condition=args.condition,
            model=args.model,
            make=args.make,
            calibre=args.calibre,
        )
        view = await session.save_mapping(mapping)
        print("Mapping saved.")
        print(render_view(view))
        return EXIT_OK

    if args.command == "filter":
        if args.condition is not None:
            view = await session.select_condition(args.condition)
        if args.make is not None:
            view = await session.select_make(args.make)
        if args.model is not None:
            view = await session.select_model(args.model)
        print(render_view(view))
        return EXIT_OK

    if args.command in ("scan", "replay"):
        if view.dataset is None:
            print("No CSV loaded yet.")
            return EXIT_REJECTED
        if args.command == "scan":
            results = [await session.scan(code) for code in args.codes]
        else:
            codes = args.path.read_text(encoding="utf-8").splitlines()
            results = await _replay(session, codes, config)
        for result in results:
            print(_describe_scan(result))
        print(render_view(await session.refresh()))
        return EXIT_OK

    if args.command == "status":
        if args.tab:
            view = await session.select_tab(args.tab)
        if args.search is not None:
            view = await session.search(args.search)
        if args.json:
            write_report(build_status_report(view), output_path=args.json)
            print(f"Wrote status report: {args.json}")
        else:
            print(render_view(view))
        return EXIT_OK

    if args.command == "export":
        if view.dataset is None:
            print("No CSV loaded yet.")
            return EXIT_REJECTED
        filename, text = session.export(args.kind)
        output_path = args.output_dir / filename
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text, encoding="utf-8")
        print(f"Wrote export: {output_path}")
        return EXIT_OK

    if args.command == "reset":
        print(render_view(await session.reset()))
        return EXIT_OK

    if args.command == "clear":
        await session.clear()
        print("CSV removed.")
        return EXIT_OK

    raise ValueError(f"Unknown command: {args.command}")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(description="Reconcile a physical stock check against a CSV stock list.")
    parser.add_argument("--config", type=Path, default=None, help="Path to a YAML settings file")
    parser.add_argument("--state-dir", type=Path, default=None, help="Override the state directory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    import_cmd = sub.add_parser("import", help="Import a CSV stock list")
    import_cmd.add_argument("path", type=Path)
    import_cmd.add_argument("--name", default=None, help="Display name (defaults to the file name)")

    map_cmd = sub.add_parser("map", help="Bind semantic fields to CSV columns")
    map_cmd.add_argument("--stock", required=True)
    map_cmd.add_argument("--condition", required=True)
    map_cmd.add_argument("--model", required=True)
    map_cmd.add_argument("--make", default=None)
    map_cmd.add_argument("--calibre", default=None)

    filter_cmd = sub.add_parser("filter", help="Choose condition/make/model facets")
    filter_cmd.add_argument("--condition", default=None, help="Condition value or 'All'")
    filter_cmd.add_argument("--make", default=None, help="Exact make ('' for any)")
    filter_cmd.add_argument("--model", default=None, help="Exact model ('' for any)")

    scan_cmd = sub.add_parser("scan", help="Record stock ids typed by hand")
    scan_cmd.add_argument("codes", nargs="+")

    replay_cmd = sub.add_parser("replay", help="Replay decoded barcodes from a file, one per line")
    replay_cmd.add_argument("path", type=Path)

    status_cmd = sub.add_parser("status", help="Show counters and the active list")
    status_cmd.add_argument("--tab", choices=["missing", "scanned", "all"], default=None)
    status_cmd.add_argument("--search", default=None, help="Free-text filter on stock id or summary")
    status_cmd.add_argument("--json", type=Path, default=None, help="Write the view as JSON to this path")

    export_cmd = sub.add_parser("export", help="Export rows with a scan status column")
    export_cmd.add_argument("kind", choices=["filtered", "all"])
    export_cmd.add_argument("--output-dir", type=Path, default=Path("."))

    sub.add_parser("reset", help="Clear all scans but keep the CSV")
    sub.add_parser("clear", help="Remove the CSV, mapping, scans and selection")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for command-line execution."""

    args = _parse_args(argv)
    config = load_config(args.config)
    if args.state_dir is not None:
        config.state_dir = args.state_dir

    level = logging.DEBUG if args.verbose else getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s [%(levelname)s] %(message)s")

    try:
        return asyncio.run(run(args, config))
    except ImportRejected as exc:
        print(f"Import rejected: {exc.message}")
        return EXIT_REJECTED
    except IncompleteMappingError as exc:
        print(str(exc))
        return EXIT_REJECTED
    except StorageError as exc:
        logger.error("Storage failure: %s", exc)
        return EXIT_STORAGE


if __name__ == "__main__":
    raise SystemExit(main())

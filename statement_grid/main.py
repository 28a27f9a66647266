#!/usr/bin/env python3
"""Command line entry point: PDF (+ saved guides) to per-page JSON and rows."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .api import ExtractionError, export_rows, extract_document
from .config import ColumnMode, GridConfig
from .export import ALL_FIELDS, DEFAULT_FIELDS, rows_to_markdown
from .logging_config import configure_logging, get_logger
from .selections import load_guides

logger = get_logger(__name__)


def _parse_fields(value: str) -> List[str]:
    fields = [f.strip() for f in value.split(",") if f.strip()]
    unknown = [f for f in fields if f not in ALL_FIELDS]
    if unknown:
        raise argparse.ArgumentTypeError(
            f"unknown field(s) {', '.join(unknown)}; choose from {', '.join(ALL_FIELDS)}"
        )
    return fields


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statement-grid",
        description="Rebuild statement tables from a PDF and export their rows.",
    )
    parser.add_argument("pdf", type=Path, help="input PDF")
    parser.add_argument(
        "selections", type=Path, nargs="?", help="saved guides (JSON); omit for smart detect"
    )
    parser.add_argument("-o", "--output-dir", type=Path, help="default: <pdf stem>_grid")
    parser.add_argument("--zoom", type=float, default=1.0, help="page scale (default 1.0)")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in ColumnMode],
        help="column detection when a table has no column guides",
    )
    parser.add_argument(
        "--structured", action="store_true", help="parse rows into transactions"
    )
    parser.add_argument(
        "--fields",
        type=_parse_fields,
        default=list(DEFAULT_FIELDS),
        help="comma separated export fields for --structured",
    )
    parser.add_argument(
        "--markdown", action="store_true", help="print the exported rows as a table"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for producing per-page JSON artefacts and rows."""
    args = build_parser().parse_args(sys.argv[1:] if argv is None else argv)

    overrides = {}
    if args.mode:
        overrides["column_mode"] = ColumnMode(args.mode)
    if args.verbose:
        overrides["verbose"] = True
    config = GridConfig.from_env(**overrides)
    configure_logging(config.verbose)

    output_dir = args.output_dir or args.pdf.with_name(f"{args.pdf.stem}_grid")

    try:
        selections, links = load_guides(args.selections) if args.selections else ({}, {})
        results = extract_document(args.pdf, selections, links, config=config, zoom=args.zoom)
        rows = export_rows(
            results, structured=args.structured, fields=args.fields, config=config
        )
    except (FileNotFoundError, ExtractionError, ValueError) as exc:
        logger.error(f"error: {exc}")
        return 1

    output_dir.mkdir(parents=True, exist_ok=True)
    for result in results:
        path = output_dir / f"page_{result.page:03d}.json"
        path.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
    rows_path = output_dir / "rows.json"
    rows_path.write_text(json.dumps(rows, indent=2, default=str), encoding="utf-8")

    failed = [r.page for r in results if not r.ok]
    tables = sum(len(r.tables) for r in results)
    logger.info(f"Extracted {tables} tables from {len(results)} pages to {output_dir}")
    logger.info(f"  • {rows_path} ({len(rows)} rows)")
    if failed:
        logger.warning(f"pages without glyphs: {', '.join(map(str, failed))}")

    if args.markdown and rows:
        if args.structured:
            header, body = rows[0], rows[1:]
        else:
            width = max(len(r) for r in rows)
            header, body = [f"Col {i + 1}" for i in range(width)], rows
        sys.stdout.write(rows_to_markdown(header, body))
    return 0


if __name__ == "__main__":  # pragma: no cover - manual usage
    raise SystemExit(main())

"""Table reconstruction and transaction extraction for statement PDFs."""

from __future__ import annotations

from importlib import metadata

from .ai_fallback import parse_with_fallback
from .api import (
    ExtractionError,
    GlyphExtractionError,
    PageResult,
    export_rows,
    extract_document,
    extract_page,
)
from .config import ColumnMode, GridConfig
from .glyphs import GlyphBox, PyMuPDFRenderer
from .ordering import OrderingStore
from .selections import ManualLink, Selection, SelectionKind, load_guides
from .transactions import ParsedTransaction, parse_row

__all__ = [
    "ColumnMode",
    "ExtractionError",
    "GlyphBox",
    "GlyphExtractionError",
    "GridConfig",
    "ManualLink",
    "OrderingStore",
    "PageResult",
    "ParsedTransaction",
    "PyMuPDFRenderer",
    "Selection",
    "SelectionKind",
    "export_rows",
    "extract_document",
    "extract_page",
    "load_guides",
    "parse_row",
    "parse_with_fallback",
    "__version__",
]

try:  # pragma: no cover - metadata only available when installed
    __version__ = metadata.version("statement-grid")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for local dev
    __version__ = "0.1.0"

"""Public facing API: glyphs in, tables and rows out."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Any,
    Dict,
    Iterable,
    List,
    Literal,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
    overload,
)

from .cache import GlyphCache, LayoutCache
from .cells import CellMatrix, collect_cells
from .config import GridConfig
from .export import (
    DEFAULT_FIELDS,
    dedupe_transactions,
    flatten_tables,
    project_fields,
    structured_rows,
)
from .geometry_utils import Rect
from .glyphs import (
    ExtractionError,
    GlyphExtractionError,
    PageRenderer,
    PyMuPDFRenderer,
    map_glyphs,
)
from .logging_config import get_logger
from .ordering import OrderingStore
from .selections import LooseSelection, ManualLink, Selection, Table
from .table import assemble_page
from .transactions import ParsedTransaction

logger = get_logger(__name__)

Source = Union[str, Path, PageRenderer, Any]


@dataclass
class PageResult:
    """Everything derived for one page. ``error`` is set when it failed."""

    page: int
    tables: List[Table] = field(default_factory=list)
    loose: List[LooseSelection] = field(default_factory=list)
    matrices: List[CellMatrix] = field(default_factory=list)
    viewport: Tuple[float, float] = (0.0, 0.0)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready form, as written to ``page_NNN.json`` by the CLI."""
        return {
            "page": self.page,
            "viewport": list(self.viewport),
            "error": self.error,
            "tables": [
                {
                    "rect": _rect_list(t.rect),
                    "rows": [_rect_list(r) for r in t.rows],
                    "cols": [_rect_list(c) for c in t.cols],
                    "synthesized": t.synthesized,
                    "inferred_rows": t.inferred_rows,
                    "inferred_cols": t.inferred_cols,
                    "cells": matrix,
                }
                for t, matrix in zip(self.tables, self.matrices)
            ],
            "loose": [
                {
                    "index": ls.index,
                    "type": ls.selection.kind.value,
                    "rect": _rect_list(ls.rect),
                }
                for ls in self.loose
            ],
        }


def _rect_list(rect: Rect) -> List[float]:
    return [round(v, 3) for v in rect]


def extract_page(
    renderer: PageRenderer,
    page: int,
    selections: Sequence[Selection] = (),
    links: Sequence[ManualLink] = (),
    *,
    zoom: float = 1.0,
    viewport: Optional[Tuple[float, float]] = None,
    config: Optional[GridConfig] = None,
    ordering: Optional[OrderingStore] = None,
    glyph_cache: Optional[GlyphCache] = None,
    layout_cache: Optional[LayoutCache] = None,
) -> PageResult:
    """Assemble the tables of one page and read their cells.

    ``viewport`` defaults to the page size at ``zoom``. Stored row and column
    orders in ``ordering`` are reconciled with the detected table shapes.

    Raises:
        GlyphExtractionError: if the renderer fails for this page.
    """
    config = (config or GridConfig()).validate()
    try:
        page_matrix = renderer.page_transform(page, zoom)
        if glyph_cache is not None:
            glyphs = glyph_cache.get(renderer, page, page_matrix)
        else:
            glyphs = map_glyphs(renderer.glyphs(page), page_matrix)
        if viewport is None:
            width, height = renderer.page_size(page)
            viewport = (width * zoom, height * zoom)
    except GlyphExtractionError:
        raise
    except Exception as exc:
        # any renderer failure is scoped to this page
        raise GlyphExtractionError(page, f"{type(exc).__name__}: {exc}") from exc

    if layout_cache is not None:
        layout = layout_cache.get(page, zoom, selections, glyphs, viewport, links, config)
    else:
        layout = assemble_page(page, selections, glyphs, viewport, links, config)

    matrices = [collect_cells(t, glyphs, config) for t in layout.tables]
    if ordering is not None:
        for ti, table in enumerate(layout.tables):
            ordering.sync(page, ti, table.shape)

    logger.debug(
        f"page {page}: {len(layout.tables)} tables "
        f"{[t.shape for t in layout.tables]}, {len(layout.loose)} loose guides"
    )
    return PageResult(
        page=page,
        tables=layout.tables,
        loose=layout.loose,
        matrices=matrices,
        viewport=layout.viewport,
    )


def _open(source: Source) -> Tuple[PageRenderer, bool]:
    if hasattr(source, "page_transform") and hasattr(source, "glyphs"):
        return source, False
    return PyMuPDFRenderer(source), True


def _pages(
    renderer: PageRenderer,
    selections_by_page: Mapping[int, Sequence[Selection]],
    pages: Optional[Iterable[int]],
) -> List[int]:
    if pages is not None:
        return sorted(set(pages))
    if selections_by_page:
        return sorted(selections_by_page)
    return list(range(1, renderer.page_count + 1))


@overload
def extract_document(
    source: Source,
    selections_by_page: Optional[Mapping[int, Sequence[Selection]]] = None,
    links_by_page: Optional[Mapping[int, Sequence[ManualLink]]] = None,
    *,
    config: Optional[GridConfig] = None,
    zoom: float = 1.0,
    pages: Optional[Iterable[int]] = None,
    ordering: Optional[OrderingStore] = None,
    structured: Literal[False] = False,
) -> List[PageResult]: ...


@overload
def extract_document(
    source: Source,
    selections_by_page: Optional[Mapping[int, Sequence[Selection]]] = None,
    links_by_page: Optional[Mapping[int, Sequence[ManualLink]]] = None,
    *,
    config: Optional[GridConfig] = None,
    zoom: float = 1.0,
    pages: Optional[Iterable[int]] = None,
    ordering: Optional[OrderingStore] = None,
    structured: Literal[True],
) -> List[ParsedTransaction]: ...


def extract_document(
    source: Source,
    selections_by_page: Optional[Mapping[int, Sequence[Selection]]] = None,
    links_by_page: Optional[Mapping[int, Sequence[ManualLink]]] = None,
    *,
    config: Optional[GridConfig] = None,
    zoom: float = 1.0,
    pages: Optional[Iterable[int]] = None,
    ordering: Optional[OrderingStore] = None,
    structured: bool = False,
) -> Union[List[PageResult], List[ParsedTransaction]]:
    """Extract every requested page of ``source``.

    ``source`` is a PDF path, a ``pymupdf.Document`` or any ``PageRenderer``.
    Pages default to those with selections, or the whole document when no
    selections are given. A page whose glyphs cannot be read gets a
    ``PageResult`` with ``error`` set; the other pages are unaffected.

    With ``structured=True`` the parsed, de-duplicated transactions are
    returned instead of the page results.

    Raises:
        FileNotFoundError: if ``source`` is a path that does not exist.
        ExtractionError: if the document cannot be opened.
        ValueError: if ``config`` is invalid.
    """
    config = (config or GridConfig()).validate()
    selections_by_page = selections_by_page or {}
    links_by_page = links_by_page or {}
    renderer, owned = _open(source)
    glyph_cache = GlyphCache()
    results: List[PageResult] = []
    try:
        for page in _pages(renderer, selections_by_page, pages):
            try:
                result = extract_page(
                    renderer,
                    page,
                    selections_by_page.get(page, ()),
                    links_by_page.get(page, ()),
                    zoom=zoom,
                    config=config,
                    ordering=ordering,
                    glyph_cache=glyph_cache,
                )
            except GlyphExtractionError as exc:
                logger.warning(f"page {page} skipped: {exc}")
                result = PageResult(page=page, error=str(exc))
            results.append(result)
    finally:
        if owned:
            renderer.close()

    if structured:
        return dedupe_transactions(structured_rows(results, ordering, config))
    return results


def export_rows(
    page_results: Iterable[PageResult],
    *,
    ordering: Optional[OrderingStore] = None,
    structured: bool = False,
    fields: Optional[Sequence[str]] = None,
    dedupe: bool = True,
    config: Optional[GridConfig] = None,
) -> List[List[Any]]:
    """Rows ready for a spreadsheet writer.

    Plain mode returns the ordered cell rows of every table. Structured mode
    parses them into transactions and returns a header row of ``fields``
    followed by one row per transaction.
    ``config`` carries the transaction parsing settings.
    """
    results = [r for r in page_results if r.ok]
    if not structured:
        return flatten_tables(results, ordering)
    transactions = structured_rows(results, ordering, config)
    if dedupe:
        transactions = dedupe_transactions(transactions)
    return project_fields(transactions, fields or DEFAULT_FIELDS)


__all__ = [
    "ExtractionError",
    "GlyphExtractionError",
    "PageResult",
    "export_rows",
    "extract_document",
    "extract_page",
]

"""Resolve a page's guides into tables.

``assemble_page`` is a pure function of the page's selections, manual links,
glyph boxes and viewport size. Callers memoize it (see ``cache.LayoutCache``)
instead of patching previous results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from .config import GridConfig
from .geometry_utils import Rect, attaches_to, bounding_rect, overlap_ratio, to_pixels
from .glyphs import GlyphBox
from .grid_inference import infer_grid, is_noise
from .logging_config import get_logger
from .selections import LooseSelection, ManualLink, Selection, SelectionKind, Table

logger = get_logger(__name__)


@dataclass
class PageLayout:
    """Tables and unattached guides for one page."""

    page: int
    viewport: Tuple[float, float]
    tables: List[Table] = field(default_factory=list)
    loose: List[LooseSelection] = field(default_factory=list)


def _best_table(
    guide: Rect, tables: Sequence[Rect], config: GridConfig
) -> Optional[int]:
    """Index of the table a guide attaches to, preferring the largest overlap."""
    best, best_ratio = None, -1.0
    for i, table in enumerate(tables):
        if not attaches_to(table, guide, config.overlap_threshold, config.eps):
            continue
        ratio = overlap_ratio(table, guide)
        if ratio > best_ratio:
            best, best_ratio = i, ratio
    return best


def _same_rect(a: Rect, b: Rect, tol: float = 1e-6) -> bool:
    return all(abs(p - q) <= tol for p, q in zip(a, b))


def _claimed_by_links(
    loose: Sequence[LooseSelection], linked: Dict[int, List[ManualLink]]
) -> Dict[int, int]:
    """Map loose guide index to the table a manual link attached it to."""
    claimed: Dict[int, int] = {}
    for ti in sorted(linked):
        for link in linked[ti]:
            for kind, rects in ((SelectionKind.ROW, link.rows), (SelectionKind.COLUMN, link.cols)):
                for rect in rects:
                    for ls in loose:
                        if ls.selection.kind == kind and _same_rect(ls.selection.rect, rect):
                            claimed.setdefault(ls.index, ti)
    return claimed


def assemble_page(
    page: int,
    selections: Sequence[Selection],
    glyphs: Sequence[GlyphBox],
    viewport: Tuple[float, float],
    links: Sequence[ManualLink] = (),
    config: Optional[GridConfig] = None,
) -> PageLayout:
    """Build the page's tables from its guides, inferring missing axes.

    Table selections keep their drawing order, which is also the index used
    by ``ManualLink.table_index``. Without any table selection, one table is
    synthesized from the row and column guides (``auto_build``) or from the
    extent of all glyphs on the page (``smart_mode``).
    """
    config = config or GridConfig()
    vw, vh = viewport
    pixel = [to_pixels(s.rect, vw, vh) for s in selections]

    table_ids = [i for i, s in enumerate(selections) if s.kind == SelectionKind.TABLE]
    guide_ids = [i for i, s in enumerate(selections) if s.kind != SelectionKind.TABLE]
    table_rects = [pixel[i] for i in table_ids]
    synthesized = False

    if not table_rects and config.auto_build:
        row_rects = [pixel[i] for i in guide_ids if selections[i].kind == SelectionKind.ROW]
        col_rects = [pixel[i] for i in guide_ids if selections[i].kind == SelectionKind.COLUMN]
        if row_rects and col_rects:
            table_rects = [bounding_rect(row_rects + col_rects)]
            synthesized = True
            logger.debug(f"page {page}: built a table from {len(guide_ids)} loose guides")

    if not table_rects and config.smart_mode:
        extent = bounding_rect(g.rect for g in glyphs if not is_noise(g.text))
        if extent is not None and extent.area > 0:
            table_rects = [extent]
            synthesized = True
            logger.debug(f"page {page}: smart detect over {len(glyphs)} glyphs")

    members: Dict[int, List[int]] = {i: [] for i in range(len(table_rects))}
    loose: List[LooseSelection] = []
    for gid in guide_ids:
        owner = _best_table(pixel[gid], table_rects, config)
        if owner is None:
            loose.append(LooseSelection(index=gid, selection=selections[gid], rect=pixel[gid]))
        else:
            members[owner].append(gid)

    linked: Dict[int, List[ManualLink]] = {}
    for link in links:
        if 0 <= link.table_index < len(table_rects):
            linked.setdefault(link.table_index, []).append(link)
        else:
            logger.debug(f"page {page}: link to missing table {link.table_index} ignored")

    # a linked guide belongs to its table, not to the loose list
    claimed = _claimed_by_links(loose, linked)
    if claimed:
        loose = [ls for ls in loose if ls.index not in claimed]
        for gid, ti in claimed.items():
            members[ti].append(gid)

    tables: List[Table] = []
    for ti, rect in enumerate(table_rects):
        row_ids = [g for g in members[ti] if selections[g].kind == SelectionKind.ROW]
        col_ids = [g for g in members[ti] if selections[g].kind == SelectionKind.COLUMN]
        rows = [pixel[g] for g in row_ids if g not in claimed]
        cols = [pixel[g] for g in col_ids if g not in claimed]
        for link in linked.get(ti, ()):
            rows.extend(to_pixels(r, vw, vh) for r in link.rows)
            cols.extend(to_pixels(c, vw, vh) for c in link.cols)
        rows.sort(key=lambda r: (r.y, r.x))
        cols.sort(key=lambda r: (r.x, r.y))

        table = Table(
            rect=rect,
            rows=rows,
            cols=cols,
            row_guides=sorted(row_ids, key=lambda g: (pixel[g].y, pixel[g].x)),
            col_guides=sorted(col_ids, key=lambda g: (pixel[g].x, pixel[g].y)),
            synthesized=synthesized,
        )
        if not rows or not cols:
            grid = infer_grid(rect, glyphs, config, rows=rows, cols=cols)
            table.inferred_rows = not rows
            table.inferred_cols = not cols
            table.rows, table.cols = grid.rows, grid.cols
        tables.append(table)

    if loose:
        logger.debug(f"page {page}: {len(loose)} loose guides")
    return PageLayout(page=page, viewport=(vw, vh), tables=tables, loose=loose)


__all__ = ["PageLayout", "assemble_page"]

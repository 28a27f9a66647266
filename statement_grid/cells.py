"""Cell text: intersect rows with columns and read the glyphs inside."""

from __future__ import annotations

from typing import List, Optional, Sequence

from .config import GridConfig
from .geometry_utils import Rect, boxes_to_array, centers_inside, intersection
from .glyphs import GlyphBox
from .selections import Table

CellMatrix = List[List[str]]


def cell_rect(table: Rect, row: Rect, col: Rect) -> Optional[Rect]:
    """``table & row & col``, or ``None`` when the three do not overlap."""
    inner = intersection(table, row)
    if inner is None:
        return None
    return intersection(inner, col)


def reading_order(glyphs: Sequence[GlyphBox], line_tolerance: float = 0.75) -> List[GlyphBox]:
    """Sort glyphs top to bottom, then left to right within a line.

    Glyphs whose baselines differ by at most ``line_tolerance`` pixels from
    the first glyph of a line are read as part of that line.
    """
    by_baseline = sorted(glyphs, key=lambda g: (g.y + g.height, g.x))
    ordered: List[GlyphBox] = []
    line: List[GlyphBox] = []
    anchor = 0.0
    for g in by_baseline:
        baseline = g.y + g.height
        if line and baseline - anchor > line_tolerance:
            ordered.extend(sorted(line, key=lambda b: b.x))
            line = []
        if not line:
            anchor = baseline
        line.append(g)
    ordered.extend(sorted(line, key=lambda b: b.x))
    return ordered


def _in_cell(
    rect: Rect, g: GlyphBox, last_col: bool = False, last_row: bool = False, eps: float = 0.0
) -> bool:
    # half-open so a center on a shared edge lands in exactly one cell;
    # the table's right and bottom edges are closed, within eps
    in_x = rect.x <= g.cx < rect.x1 or (last_col and rect.x1 <= g.cx <= rect.x1 + eps)
    in_y = rect.y <= g.cy < rect.y1 or (last_row and rect.y1 <= g.cy <= rect.y1 + eps)
    return in_x and in_y


def cell_text(
    rect: Optional[Rect],
    glyphs: Sequence[GlyphBox],
    line_tolerance: float = 0.75,
    *,
    last_col: bool = False,
    last_row: bool = False,
    eps: float = 0.0,
) -> str:
    """Join the glyphs centred in ``rect`` in reading order.

    ``last_col``/``last_row`` mark a cell on the table's right/bottom edge,
    which also claims centers lying on that edge.
    """
    if rect is None:
        return ""
    inside = [g for g in glyphs if _in_cell(rect, g, last_col, last_row, eps)]
    return " ".join(g.text for g in reading_order(inside, line_tolerance) if g.text)


def collect_cells(
    table: Table, glyphs: Sequence[GlyphBox], config: Optional[GridConfig] = None
) -> CellMatrix:
    """Text for every row x column of ``table``; shape is ``table.shape``."""
    config = config or GridConfig()
    boxes = boxes_to_array(g.rect for g in glyphs)
    mask = centers_inside(boxes, table.rect, config.eps)
    candidates = [g for g, keep in zip(glyphs, mask.tolist()) if keep]
    n_rows, n_cols = table.shape
    return [
        [
            cell_text(
                cell_rect(table.rect, row, col),
                candidates,
                config.same_line_tolerance,
                last_col=ci == n_cols - 1,
                last_row=ri == n_rows - 1,
                eps=config.eps,
            )
            for ci, col in enumerate(table.cols)
        ]
        for ri, row in enumerate(table.rows)
    ]


__all__ = ["CellMatrix", "cell_rect", "cell_text", "collect_cells", "reading_order"]

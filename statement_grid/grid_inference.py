"""Infer row and column rectangles for a table from its glyphs.

Used when a table has no explicit row guides, no column guides, or
neither. Rows come from clustering glyph vertical centers; columns from
one of three strategies selected by ``GridConfig.column_mode``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .clustering import best_kmeans, greedy_clusters
from .config import ColumnMode, GridConfig
from .geometry_utils import Rect, bounding_rect, center_inside
from .glyphs import GlyphBox
from .logging_config import get_logger

logger = get_logger(__name__)

# Table rules and leaders often come through as runs of dots or dashes.
NOISE_RE = re.compile(r"^[\s.\-–—·•]*$")


@dataclass
class GridResult:
    """Rows and columns for one table, each sorted by position."""

    rows: List[Rect]
    cols: List[Rect]
    band: Rect
    column_strategy: Optional[str] = None
    k: Optional[int] = None
    rejected_rows: List[str] = field(default_factory=list)


def is_noise(text: str) -> bool:
    return bool(NOISE_RE.match(text or ""))


def table_glyphs(table: Rect, glyphs: Sequence[GlyphBox], eps: float = 0.0) -> List[GlyphBox]:
    """Glyphs whose center lies in ``table``, minus rule/leader noise."""
    return [g for g in glyphs if center_inside(table, g.rect, eps) and not is_noise(g.text)]


def is_paragraph(text: str, config: GridConfig) -> bool:
    """Heuristic for prose lines that must not become table rows."""
    return (
        len(text) > config.paragraph_max_chars
        or len(text.split()) > config.paragraph_max_tokens
    )


def _line_text(glyphs: Sequence[GlyphBox]) -> str:
    return " ".join(g.text for g in sorted(glyphs, key=lambda g: (g.x, g.y)) if g.text.strip())


def _separate(spans: List[Tuple[float, float]]) -> List[Tuple[float, float]]:
    """Split overlapping neighbouring spans at the midpoint of the overlap."""
    spans = sorted(spans)
    out = [list(s) for s in spans]
    for i in range(len(out) - 1):
        if out[i][1] > out[i + 1][0]:
            mid = (out[i][1] + out[i + 1][0]) / 2.0
            out[i][1] = mid
            out[i + 1][0] = mid
    return [(a, b) for a, b in out]


def detect_rows(
    table: Rect,
    glyphs: Sequence[GlyphBox],
    config: GridConfig,
    *,
    filter_paragraphs: bool = True,
) -> Tuple[List[List[GlyphBox]], List[str]]:
    """Cluster glyphs into text lines and drop prose-like lines.

    Returns the kept clusters (top to bottom) and the rejected line texts.
    """
    if not glyphs:
        return [], []
    mean_h = float(np.mean([g.height for g in glyphs]))
    tolerance = max(config.row_tolerance_min_px, config.row_factor * mean_h)
    clusters = greedy_clusters([g.cy for g in glyphs], tolerance)

    kept: List[List[GlyphBox]] = []
    rejected: List[str] = []
    for idx in clusters:
        members = [glyphs[i] for i in idx]
        text = _line_text(members)
        if filter_paragraphs and is_paragraph(text, config):
            rejected.append(text)
            continue
        kept.append(members)
    logger.debug(
        f"rows: {len(clusters)} clusters, {len(kept)} kept, tolerance {tolerance:.2f}px"
    )
    return kept, rejected


def _row_rects(table: Rect, clusters: List[List[GlyphBox]]) -> List[Rect]:
    spans = [
        (
            max(table.y, min(g.y for g in c)),
            min(table.y1, max(g.y + g.height for g in c)),
        )
        for c in clusters
    ]
    return [
        Rect(table.x, y0, table.width, max(0.0, y1 - y0)) for y0, y1 in _separate(spans)
    ]


def _col_rects(table: Rect, band: Rect, spans: List[Tuple[float, float]]) -> List[Rect]:
    out = []
    for x0, x1 in _separate(spans):
        x0 = max(table.x, x0)
        x1 = min(table.x1, x1)
        if x1 > x0:
            out.append(Rect(x0, band.y, x1 - x0, band.height))
    return out


def _kmeans_columns(
    table: Rect, band: Rect, glyphs: Sequence[GlyphBox], config: GridConfig
) -> Tuple[List[Rect], Optional[int]]:
    mids = [g.cx for g in glyphs]
    fit = best_kmeans(
        mids,
        config.max_cols,
        small_size=config.small_cluster_size,
        penalty=config.small_cluster_penalty,
        gap=config.kmeans_gap,
    )
    if fit is None:
        return [], None
    spans = []
    for idx in fit.members():
        if not idx:
            continue
        spans.append(
            (min(glyphs[i].x for i in idx), max(glyphs[i].x + glyphs[i].width for i in idx))
        )
    logger.debug(f"columns: k-means chose k={fit.k} (score {fit.score:.2f})")
    return _col_rects(table, band, spans), fit.k


def _form_split(glyphs: Sequence[GlyphBox], config: GridConfig) -> Optional[float]:
    """x position of the label/value split, or ``None`` if no gap is wide enough."""
    mids = sorted(g.cx for g in glyphs)
    if len(mids) < 2:
        return None
    gaps = np.diff(np.asarray(mids, dtype=np.float64))
    i = int(np.argmax(gaps))
    mean_w = float(np.mean([g.width for g in glyphs]))
    if gaps[i] <= max(config.form_gap_min_px, config.form_gap_factor * mean_w):
        return None
    return (mids[i] + mids[i + 1]) / 2.0


def _proportional_columns(
    table: Rect, band: Rect, glyphs: Sequence[GlyphBox], config: GridConfig
) -> List[Rect]:
    if not glyphs:
        return []
    mean_w = float(np.mean([g.width for g in glyphs]))
    tolerance = max(config.column_gap_min_px, config.column_tolerance_factor * mean_w)
    clusters = greedy_clusters([g.cx for g in glyphs], tolerance)
    spans = [
        (min(glyphs[i].x for i in c), max(glyphs[i].x + glyphs[i].width for i in c))
        for c in clusters
    ]
    return _col_rects(table, band, spans)


def _filter_form_rows(
    clusters: List[List[GlyphBox]], split: float, config: GridConfig
) -> Tuple[List[List[GlyphBox]], List[str]]:
    """Keep rows with usable content on at least one side of the split."""
    kept, rejected = [], []
    for members in clusters:
        sides = (
            _line_text([g for g in members if g.cx < split]),
            _line_text([g for g in members if g.cx >= split]),
        )
        if any(s and not is_paragraph(s, config) for s in sides):
            kept.append(members)
        else:
            rejected.append(_line_text(members))
    return kept, rejected


def infer_grid(
    table: Rect,
    glyphs: Sequence[GlyphBox],
    config: Optional[GridConfig] = None,
    *,
    rows: Optional[Sequence[Rect]] = None,
    cols: Optional[Sequence[Rect]] = None,
) -> GridResult:
    """Fill in whichever of ``rows``/``cols`` is empty.

    Explicit guides passed in are kept as they are. An axis that cannot be
    determined falls back to a single rectangle spanning the table.
    """
    config = config or GridConfig()
    rows = sorted(rows or [], key=lambda r: (r.y, r.x))
    cols = sorted(cols or [], key=lambda r: (r.x, r.y))
    if rows and cols:
        return GridResult(rows=list(rows), cols=list(cols), band=table)

    content = table_glyphs(table, glyphs, config.eps)
    rejected: List[str] = []
    clusters: List[List[GlyphBox]] = []

    if rows:
        row_glyphs = [g for g in content if any(center_inside(r, g.rect) for r in rows)]
        band = bounding_rect(rows) or table
    else:
        # form mode judges each side of the split separately
        deferred = config.column_mode == ColumnMode.FORM and not cols
        clusters, rejected = detect_rows(
            table, content, config, filter_paragraphs=not deferred
        )
        row_glyphs = [g for c in clusters for g in c]

    result = GridResult(rows=list(rows), cols=list(cols), band=table, rejected_rows=rejected)

    if not cols:
        split = None
        if config.column_mode == ColumnMode.FORM:
            split = _form_split(row_glyphs, config)
            if split is not None and clusters:
                clusters, dropped = _filter_form_rows(clusters, split, config)
                result.rejected_rows.extend(dropped)
                row_glyphs = [g for c in clusters for g in c]
            elif split is None and clusters:
                # no label/value gap: the line-length filter still applies
                kept = [c for c in clusters if not is_paragraph(_line_text(c), config)]
                result.rejected_rows.extend(
                    _line_text(c) for c in clusters if is_paragraph(_line_text(c), config)
                )
                clusters = kept
                row_glyphs = [g for c in clusters for g in c]

        if not rows:
            band = _clip_band(table, clusters)

        if split is not None:
            result.column_strategy = ColumnMode.FORM.value
            result.cols = [
                r
                for r in (
                    _clip(Rect(table.x, band.y, split - table.x, band.height), table),
                    _clip(Rect(split, band.y, table.x1 - split, band.height), table),
                )
                if r is not None
            ]
        elif config.column_mode == ColumnMode.AUTO:
            result.cols, result.k = _kmeans_columns(table, band, row_glyphs, config)
            result.column_strategy = ColumnMode.AUTO.value
        if not result.cols:
            result.cols = _proportional_columns(table, band, row_glyphs, config)
            result.column_strategy = ColumnMode.PROPORTIONAL.value
    elif not rows:
        band = _clip_band(table, clusters)

    if not rows:
        result.rows = _row_rects(table, clusters)

    result.band = band
    if not result.rows:
        logger.debug("no usable rows, falling back to a single row")
        result.rows = [table]
        result.band = table
    if not result.cols:
        logger.debug("no usable columns, falling back to a single column")
        result.cols = [table]
    return result


def _clip(rect: Rect, table: Rect) -> Optional[Rect]:
    x0, x1 = max(rect.x, table.x), min(rect.x1, table.x1)
    y0, y1 = max(rect.y, table.y), min(rect.y1, table.y1)
    if x1 <= x0 or y1 <= y0:
        return None
    return Rect.from_corners(x0, y0, x1, y1)


def _clip_band(table: Rect, clusters: List[List[GlyphBox]]) -> Rect:
    """Vertical extent of the detected rows, inside the table."""
    if not clusters:
        return table
    y0 = max(table.y, min(g.y for c in clusters for g in c))
    y1 = min(table.y1, max(g.y + g.height for c in clusters for g in c))
    if y1 <= y0:
        return table
    return Rect(table.x, y0, table.width, y1 - y0)


__all__ = [
    "GridResult",
    "detect_rows",
    "infer_grid",
    "is_noise",
    "is_paragraph",
    "table_glyphs",
]

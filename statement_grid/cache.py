"""Per-page derived caches.

Glyph boxes depend on the document and the page transform; layouts depend
on the glyphs, the page's guides and the viewport. Both caches are plain
dictionaries keyed by those inputs, so a change in any input simply misses.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import astuple
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import GridConfig
from .glyphs import GlyphBox, MatrixLike, PageRenderer, map_glyphs, matrix_key
from .logging_config import get_logger
from .selections import ManualLink, Selection, link_to_dict, selection_to_dict
from .table import PageLayout, assemble_page

logger = get_logger(__name__)


def _digest(records: Iterable[object]) -> str:
    payload = json.dumps(list(records), sort_keys=True, separators=(",", ":"))
    return hashlib.sha1(payload.encode("utf-8")).hexdigest()


def selection_hash(selections: Sequence[Selection]) -> str:
    return _digest(selection_to_dict(s) for s in selections)


def link_hash(links: Sequence[ManualLink]) -> str:
    return _digest(link_to_dict(ln) for ln in links)


def glyph_hash(glyphs: Sequence[GlyphBox]) -> str:
    return _digest(
        [g.text, round(g.x, 3), round(g.y, 3), round(g.width, 3), round(g.height, 3)]
        for g in glyphs
    )


def config_key(config: Optional[GridConfig]) -> Tuple[object, ...]:
    return astuple(config or GridConfig())


class GlyphCache:
    """Glyph boxes keyed by ``(page, page transform)``.

    The whole cache is dropped when the renderer reports a different
    ``document_id``.
    """

    def __init__(self) -> None:
        self.document_id: Optional[str] = None
        self._boxes: Dict[Tuple[int, Tuple[float, ...]], List[GlyphBox]] = {}

    def __len__(self) -> int:
        return len(self._boxes)

    def get(self, renderer: PageRenderer, page: int, page_matrix: MatrixLike) -> List[GlyphBox]:
        doc_id = getattr(renderer, "document_id", None)
        if doc_id != self.document_id:
            if self._boxes:
                logger.debug("document changed, dropping cached glyphs")
            self.invalidate()
            self.document_id = doc_id

        key = (page, matrix_key(page_matrix))
        boxes = self._boxes.get(key)
        if boxes is None:
            boxes = map_glyphs(renderer.glyphs(page), page_matrix)
            self._boxes[key] = boxes
            logger.debug(f"page {page}: cached {len(boxes)} glyph boxes")
        return boxes

    def invalidate(self, page: Optional[int] = None) -> None:
        if page is None:
            self._boxes.clear()
            return
        for key in [k for k in self._boxes if k[0] == page]:
            del self._boxes[key]


LayoutKey = Tuple[int, float, str, str, str, Tuple[float, float], Tuple[object, ...]]


class LayoutCache:
    """Memoized ``assemble_page`` results.

    Keys are ``(page, zoom, selection hash, link hash, glyph hash, viewport,
    config)``, so new glyphs (another document, a reload) or a changed config
    miss instead of returning a stale layout.
    """

    def __init__(self) -> None:
        self._layouts: Dict[LayoutKey, PageLayout] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._layouts)

    def get(
        self,
        page: int,
        zoom: float,
        selections: Sequence[Selection],
        glyphs: Sequence[GlyphBox],
        viewport: Tuple[float, float],
        links: Sequence[ManualLink] = (),
        config: Optional[GridConfig] = None,
    ) -> PageLayout:
        key: LayoutKey = (
            page,
            float(zoom),
            selection_hash(selections),
            link_hash(links),
            glyph_hash(glyphs),
            (float(viewport[0]), float(viewport[1])),
            config_key(config),
        )
        layout = self._layouts.get(key)
        if layout is not None:
            self.hits += 1
            return layout
        self.misses += 1
        layout = assemble_page(page, selections, glyphs, viewport, links, config)
        self._layouts[key] = layout
        return layout

    def discard_page(self, page: int) -> int:
        """Forget every layout of ``page``; returns how many were dropped."""
        stale = [k for k in self._layouts if k[0] == page]
        for key in stale:
            del self._layouts[key]
        return len(stale)

    def clear(self) -> None:
        self._layouts.clear()


__all__ = [
    "GlyphCache",
    "LayoutCache",
    "config_key",
    "glyph_hash",
    "link_hash",
    "selection_hash",
]

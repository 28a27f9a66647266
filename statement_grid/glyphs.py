"""Glyph boxes: map renderer text items into page pixel rectangles.

Renderers report text items baseline-anchored, each with its own local
transform, plus one page transform for the active zoom. The boxes produced
here are top-left anchored so they compose with the rest of the geometry.
"""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Tuple, TypedDict, Union

import pymupdf  # type: ignore

from .geometry_utils import Rect
from .logging_config import get_logger

logger = get_logger(__name__)

MatrixLike = Union["pymupdf.Matrix", Sequence[float]]


class ExtractionError(RuntimeError):
    """Raised when a document cannot be read."""


class GlyphExtractionError(ExtractionError):
    """Raised when the renderer fails for one page."""

    def __init__(self, page_number: int, message: str) -> None:
        super().__init__(f"page {page_number}: {message}")
        self.page_number = page_number


class RawGlyph(TypedDict, total=False):
    """Text item as reported by a renderer."""

    text: str
    transform: Tuple[float, float, float, float, float, float]
    width: float
    height: float


@dataclass(frozen=True, slots=True)
class GlyphBox:
    """Pixel box of one rendered text unit, top-left origin."""

    text: str
    x: float
    y: float
    width: float
    height: float

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def cx(self) -> float:
        return self.x + self.width / 2.0

    @property
    def cy(self) -> float:
        return self.y + self.height / 2.0


class PageRenderer(Protocol):
    """What the core needs from a document renderer."""

    document_id: str

    @property
    def page_count(self) -> int: ...

    def page_size(self, page_number: int) -> Tuple[float, float]: ...

    def page_transform(self, page_number: int, zoom: float) -> "pymupdf.Matrix": ...

    def glyphs(self, page_number: int) -> List[RawGlyph]: ...


def as_matrix(value: MatrixLike) -> "pymupdf.Matrix":
    if isinstance(value, pymupdf.Matrix):
        return value
    return pymupdf.Matrix(*[float(v) for v in value])


def matrix_key(value: MatrixLike) -> Tuple[float, ...]:
    """Hashable form of a transform, used as a cache key."""
    m = as_matrix(value)
    return (m.a, m.b, m.c, m.d, m.e, m.f)


def map_glyph(glyph: RawGlyph, page_matrix: MatrixLike) -> Optional[GlyphBox]:
    """Project one raw glyph into pixel space.

    Returns ``None`` for items without a usable transform.
    """
    transform = glyph.get("transform")
    if transform is None or len(transform) != 6:
        return None
    page_m = as_matrix(page_matrix)
    tx = pymupdf.Matrix(*[float(v) for v in transform]) * page_m

    height = glyph.get("height") or 0.0
    if height > 0:
        height = height * math.hypot(page_m.c, page_m.d)
    else:
        height = math.hypot(tx.c, tx.d)

    width = glyph.get("width") or 0.0
    if width > 0:
        width = width * math.hypot(page_m.a, page_m.b)
    else:
        width = math.hypot(tx.a, tx.b)

    baseline = tx.f
    return GlyphBox(
        text=str(glyph.get("text", "")),
        x=float(tx.e),
        y=float(baseline - height),
        width=float(width),
        height=float(height),
    )


def map_glyphs(glyphs: Sequence[RawGlyph], page_matrix: MatrixLike) -> List[GlyphBox]:
    """Project a page's raw glyphs, keeping renderer order."""
    page_m = as_matrix(page_matrix)
    boxes: List[GlyphBox] = []
    skipped = 0
    for glyph in glyphs:
        box = map_glyph(glyph, page_m)
        if box is None:
            skipped += 1
            continue
        boxes.append(box)
    if skipped:
        logger.debug(f"skipped {skipped} glyphs without a transform")
    return boxes


class PyMuPDFRenderer:
    """Renderer boundary backed by PyMuPDF.

    Words are reported in PDF space (y up) with a baseline-anchored local
    transform, and the page transform flips and scales them into pixels,
    which is the same shape a browser PDF viewport produces.
    """

    def __init__(self, source: Union[str, Path, "pymupdf.Document"]) -> None:
        if isinstance(source, pymupdf.Document):
            self.doc = source
            self._owns_doc = False
            self.document_id = hashlib.sha256(source.tobytes()).hexdigest()
            return

        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Input PDF not found: {path}")
        data = path.read_bytes()
        try:
            self.doc = pymupdf.open(stream=data, filetype="pdf")
        except Exception as exc:  # pymupdf raises its own FileDataError types
            raise ExtractionError(f"cannot open {path}: {exc}") from exc
        self._owns_doc = True
        self.document_id = hashlib.sha256(data).hexdigest()

    @property
    def page_count(self) -> int:
        return self.doc.page_count

    def _page(self, page_number: int) -> "pymupdf.Page":
        if not 1 <= page_number <= self.doc.page_count:
            raise GlyphExtractionError(page_number, "page out of range")
        return self.doc[page_number - 1]

    def page_size(self, page_number: int) -> Tuple[float, float]:
        rect = self._page(page_number).rect
        return float(rect.width), float(rect.height)

    def page_transform(self, page_number: int, zoom: float) -> "pymupdf.Matrix":
        _, height = self.page_size(page_number)
        return pymupdf.Matrix(zoom, 0, 0, -zoom, 0, height * zoom)

    def glyphs(self, page_number: int) -> List[RawGlyph]:
        page = self._page(page_number)
        page_height = float(page.rect.height)
        try:
            words = page.get_text("words", sort=False)
        except Exception as exc:
            raise GlyphExtractionError(page_number, str(exc)) from exc

        result: List[RawGlyph] = []
        for x0, y0, x1, y1, text, *_ in words:
            h = float(y1 - y0)
            result.append(
                RawGlyph(
                    text=text,
                    transform=(h, 0.0, 0.0, h, float(x0), page_height - float(y1)),
                    width=float(x1 - x0),
                    height=h,
                )
            )
        return result

    def close(self) -> None:
        if self._owns_doc:
            self.doc.close()

    def __enter__(self) -> "PyMuPDFRenderer":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


__all__ = [
    "ExtractionError",
    "GlyphBox",
    "GlyphExtractionError",
    "PageRenderer",
    "PyMuPDFRenderer",
    "RawGlyph",
    "map_glyph",
    "map_glyphs",
]

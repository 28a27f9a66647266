"""PDF and glyph fixtures for test setup and teardown.

Statement PDFs are drawn with ``pymupdf`` so the tests need no bundled
binary files. Glyph helpers build pixel boxes directly for the pure tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pymupdf

from statement_grid.geometry_utils import Rect, to_unit
from statement_grid.glyphs import GlyphBox, GlyphExtractionError, RawGlyph
from statement_grid.selections import Selection, SelectionKind

PAGE_SIZE = (600.0, 400.0)

STATEMENT_ROWS = [
    ("17/02/2025", "Coffee", "-12.50", "987.50"),
    ("18/02/2025", "Salary", "2500.00", "3487.50"),
    ("19/02/2025", "Rent", "-800.00", "2687.50"),
]
COLUMN_X = (50.0, 150.0, 350.0, 450.0)
ROW_BASELINES = (100.0, 130.0, 160.0)

# pixel guides at zoom 1 for the table above
TABLE_PX = Rect.from_corners(40, 80, 560, 175)
ROW_PX = [Rect.from_corners(40, y - 15, 560, y + 8) for y in ROW_BASELINES]
COL_PX = [
    Rect.from_corners(40, 80, 140, 175),
    Rect.from_corners(140, 80, 340, 175),
    Rect.from_corners(340, 80, 440, 175),
    Rect.from_corners(440, 80, 560, 175),
]


def glyph(text: str, x: float, y: float, width: float = 10.0, height: float = 12.0) -> GlyphBox:
    """Pixel glyph box with a top-left origin."""
    return GlyphBox(text=text, x=x, y=y, width=width, height=height)


def raw_glyph(text: str, x: float, baseline: float, width: float, height: float = 12.0) -> RawGlyph:
    """Renderer glyph whose transform maps straight to pixels under identity."""
    return RawGlyph(
        text=text,
        transform=(height, 0.0, 0.0, height, x, baseline),
        width=width,
        height=height,
    )


def selection(kind: SelectionKind, px: Rect, viewport: Tuple[float, float] = PAGE_SIZE) -> Selection:
    """Selection drawn at ``px`` pixels, stored normalized like the viewer does."""
    return Selection(kind=kind, rect=to_unit(px, *viewport))


def statement_selections(viewport: Tuple[float, float] = PAGE_SIZE) -> List[Selection]:
    sels = [selection(SelectionKind.TABLE, TABLE_PX, viewport)]
    sels += [selection(SelectionKind.ROW, r, viewport) for r in ROW_PX]
    sels += [selection(SelectionKind.COLUMN, c, viewport) for c in COL_PX]
    return sels


class FakeRenderer:
    """In-memory renderer; pages listed in ``broken`` fail on ``glyphs``."""

    def __init__(
        self,
        pages: Dict[int, List[RawGlyph]],
        size: Tuple[float, float] = (400.0, 200.0),
        broken: Sequence[int] = (),
        document_id: str = "fake-doc",
    ) -> None:
        self.pages = pages
        self.size = size
        self.broken = set(broken)
        self.document_id = document_id
        self.glyph_calls = 0

    @property
    def page_count(self) -> int:
        return max(self.pages) if self.pages else 0

    def page_size(self, page_number: int) -> Tuple[float, float]:
        return self.size

    def page_transform(self, page_number: int, zoom: float) -> pymupdf.Matrix:
        return pymupdf.Matrix(zoom, 0, 0, zoom, 0, 0)

    def glyphs(self, page_number: int) -> List[RawGlyph]:
        self.glyph_calls += 1
        if page_number in self.broken:
            raise GlyphExtractionError(page_number, "renderer crashed")
        return list(self.pages.get(page_number, []))


class PDFTestFixtures:
    """Class for creating and managing test PDF files."""

    def __init__(self, test_data_dir: Path):
        """Initialize the fixtures manager with an output directory."""
        self.test_data_dir = Path(test_data_dir)
        self.created_files: List[Path] = []

    def _save(self, doc: "pymupdf.Document", filename: str) -> Path:
        self.test_data_dir.mkdir(parents=True, exist_ok=True)
        target = self.test_data_dir / filename
        doc.save(str(target))
        doc.close()
        self.created_files.append(target)
        return target

    def statement_document(self, pages: int = 1) -> "pymupdf.Document":
        """Open an in-memory statement with the same table on every page."""
        doc = pymupdf.open()
        for _ in range(pages):
            page = doc.new_page(width=PAGE_SIZE[0], height=PAGE_SIZE[1])
            for baseline, cells in zip(ROW_BASELINES, STATEMENT_ROWS):
                for x, text in zip(COLUMN_X, cells):
                    page.insert_text((x, baseline), text, fontsize=10)
        return doc

    def create_statement_pdf(self, pages: int = 1, filename: Optional[str] = None) -> Path:
        """Create a statement PDF with one 3 x 4 transaction table per page."""
        return self._save(self.statement_document(pages), filename or f"statement_{pages}.pdf")

    def create_blank_pdf(self) -> Path:
        doc = pymupdf.open()
        doc.new_page(width=PAGE_SIZE[0], height=PAGE_SIZE[1])
        return self._save(doc, "blank.pdf")

    def cleanup(self) -> None:
        for path in self.created_files:
            path.unlink(missing_ok=True)
        self.created_files.clear()

"""Tests for row and column inference inside a table rectangle."""

from __future__ import annotations

import pytest

from statement_grid.cells import collect_cells
from statement_grid.config import ColumnMode, GridConfig
from statement_grid.geometry_utils import Rect
from statement_grid.grid_inference import detect_rows, infer_grid, is_noise, is_paragraph
from statement_grid.selections import Table
from tests.pdf_fixtures import glyph

TABLE = Rect(0.0, 0.0, 400.0, 200.0)
ROW_TOPS = (20.0, 90.0, 160.0)


def grid_glyphs():
    """3 rows x 4 columns, two words per cell, column centers 100px apart."""
    out = []
    for r, top in enumerate(ROW_TOPS):
        for c in range(4):
            left = 30.0 + 100.0 * c
            # second word first: renderer order is not reading order
            out.append(glyph(f"r{r}c{c}b", left + 25.0, top, width=15.0))
            out.append(glyph(f"r{r}c{c}a", left, top, width=15.0))
    return out


@pytest.mark.smoke
class TestEndToEnd:
    def test_three_by_four_grid(self):
        """k-means settles on four columns and every cell reads its two words."""
        glyphs = grid_glyphs()
        result = infer_grid(TABLE, glyphs, GridConfig())

        assert result.column_strategy == "auto"
        assert result.k == 4
        assert len(result.rows) == 3
        assert len(result.cols) == 4

        table = Table(rect=TABLE, rows=result.rows, cols=result.cols)
        matrix = collect_cells(table, glyphs)
        assert len(matrix) == 3
        assert all(len(row) == 4 for row in matrix)
        for r in range(3):
            for c in range(4):
                assert matrix[r][c] == f"r{r}c{c}a r{r}c{c}b"

    def test_band_clipped_to_detected_rows(self):
        result = infer_grid(TABLE, grid_glyphs(), GridConfig())
        assert result.band.y == pytest.approx(20.0)
        assert result.band.y1 == pytest.approx(172.0)
        for col in result.cols:
            assert col.y == pytest.approx(20.0)
            assert TABLE.x <= col.x and col.x1 <= TABLE.x1


@pytest.mark.smoke
class TestRows:
    def test_paragraph_cluster_rejected(self):
        words = ["statement"] * 8  # 79 characters, 8 tokens
        long_line = [glyph(w, 10 + 45 * i, 100, width=40) for i, w in enumerate(words)]
        short = [glyph("Fee", 10, 20), glyph("5.00", 300, 20), glyph("Tax", 10, 160)]
        cols = [Rect(0, 0, 200, 200), Rect(200, 0, 200, 200)]

        result = infer_grid(TABLE, short + long_line, GridConfig(), cols=cols)

        assert len(result.rows) == 2
        assert all(not (r.y <= 106 <= r.y1) for r in result.rows)
        assert result.rejected_rows == [" ".join(words)]
        assert result.cols == cols

    def test_token_limit(self):
        config = GridConfig()
        assert is_paragraph(" ".join(["a"] * 13), config)
        assert not is_paragraph(" ".join(["a"] * 12), config)

    def test_relaxed_tolerance_merges_loose_lines(self):
        glyphs = [glyph("a", 10, 10), glyph("b", 50, 20)]
        strict, _ = detect_rows(TABLE, glyphs, GridConfig())
        relaxed, _ = detect_rows(TABLE, glyphs, GridConfig(relaxed_rows=True))
        assert len(strict) == 2
        assert len(relaxed) == 1

    def test_noise_glyphs_ignored(self):
        assert is_noise("....")
        assert is_noise(" – — ")
        assert not is_noise("12.00")
        glyphs = [glyph("Fee", 10, 20), glyph("........", 100, 100, width=80)]
        result = infer_grid(TABLE, glyphs, GridConfig(), cols=[TABLE])
        assert len(result.rows) == 1


@pytest.mark.smoke
class TestColumnModes:
    def test_form_mode_splits_at_largest_gap(self):
        glyphs = [
            glyph("Name", 10, 10, width=60),
            glyph("Jan", 300, 10, width=60),
            glyph("IBAN", 10, 40, width=60),
            glyph("PL00", 300, 40, width=60),
        ]
        config = GridConfig(column_mode=ColumnMode.FORM)
        result = infer_grid(TABLE, glyphs, config)

        assert result.column_strategy == "form"
        assert len(result.cols) == 2
        left, right = result.cols
        assert left.x1 == pytest.approx(185.0)
        assert right.x == pytest.approx(185.0)
        assert right.x1 == pytest.approx(400.0)
        assert len(result.rows) == 2

    def test_form_mode_without_gap_falls_back(self):
        glyphs = [glyph("a", 10, 10), glyph("b", 15, 40)]
        result = infer_grid(TABLE, glyphs, GridConfig(column_mode=ColumnMode.FORM))
        assert result.column_strategy == "proportional"
        assert len(result.cols) == 1

    def test_proportional_mode(self):
        glyphs = [glyph("a", 35, 10), glyph("b", 40, 40), glyph("c", 195, 10)]
        config = GridConfig(column_mode=ColumnMode.PROPORTIONAL)
        result = infer_grid(TABLE, glyphs, config)
        assert result.column_strategy == "proportional"
        assert len(result.cols) == 2


@pytest.mark.smoke
class TestFallbacks:
    def test_empty_table_is_one_cell(self):
        result = infer_grid(TABLE, [], GridConfig())
        assert result.rows == [TABLE]
        assert result.cols == [TABLE]

    def test_explicit_guides_kept(self):
        rows = [Rect(0, 100, 400, 50), Rect(0, 0, 400, 50)]
        cols = [Rect(0, 0, 200, 200)]
        result = infer_grid(TABLE, grid_glyphs(), GridConfig(), rows=rows, cols=cols)
        assert result.rows == sorted(rows, key=lambda r: r.y)
        assert result.cols == cols

    def test_all_rows_rejected(self):
        words = [glyph(f"word{i:05d}", 10 + 40 * i, 50, width=35) for i in range(9)]
        result = infer_grid(TABLE, words, GridConfig(), cols=[TABLE])
        assert result.rows == [TABLE]

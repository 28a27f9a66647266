"""Configuration for controlling grid inference and row extraction."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Mapping, Optional

from .logging_config import get_logger

logger = get_logger(__name__)

ENV_PREFIX = "STATEMENT_GRID_"
_TRUTHY = ("1", "true", "yes", "on")
_FALSY = ("0", "false", "no", "off")


class ColumnMode(str, Enum):
    """Column detection strategy used when a table has no column guides."""

    AUTO = "auto"
    FORM = "form"
    PROPORTIONAL = "proportional"


@dataclass(slots=True)
class GridConfig:
    """Tunable thresholds for table assembly and grid inference.

    Attributes:
        eps: Absolute pixel tolerance used by containment and intersection.
        overlap_threshold: Minimum ``area(guide & table) / area(guide)`` for a
            guide straddling a table edge to be attached to that table.
        paragraph_max_chars: Row clusters whose joined text is longer than
            this are treated as prose and never offered as rows.
        paragraph_max_tokens: Same cutoff expressed in whitespace tokens.
        row_tolerance_min_px: Lower bound of the row merge distance.
        row_tolerance_factor: Row merge distance as a multiple of the mean
            glyph height.
        relaxed_row_tolerance_factor: Factor used instead of
            ``row_tolerance_factor`` when ``relaxed_rows`` is set.
        relaxed_rows: Use the relaxed factor for sparse statement layouts.
        max_cols: Largest k tried by automatic column selection.
        small_cluster_size: Clusters with fewer members are penalised.
        small_cluster_penalty: Score penalty per small cluster.
        kmeans_gap: How cluster separation is measured when scoring k,
            ``"edge"`` (member to member) or ``"centroid"``.
        form_gap_min_px: Lower bound of the label/value split gap.
        form_gap_factor: Split gap as a multiple of the mean glyph width.
        column_gap_min_px: Lower bound of the proportional column merge gap.
        column_tolerance_factor: Proportional column merge distance as a
            multiple of the mean glyph width.
        same_line_tolerance: Baseline difference under which two glyphs in a
            cell are read as one line.
        column_mode: Column detection strategy.
        auto_build: Synthesize a table from loose row and column guides.
        smart_mode: Synthesize a page-wide table when no guides exist.
        merge_value_dates: Read a date followed directly by another date as
            one transaction (booking and value date) instead of two.
        description_cut: Where a transaction description ends, at the
            ``"amount"`` or at the ``"last_number"`` of the row.
        verbose: Enable debug logging.
    """

    eps: float = 0.75
    overlap_threshold: float = 0.35
    paragraph_max_chars: int = 60
    paragraph_max_tokens: int = 12
    row_tolerance_min_px: float = 6.0
    row_tolerance_factor: float = 0.7
    relaxed_row_tolerance_factor: float = 1.5
    relaxed_rows: bool = False
    max_cols: int = 6
    small_cluster_size: int = 3
    small_cluster_penalty: float = 5.0
    kmeans_gap: str = "edge"
    form_gap_min_px: float = 12.0
    form_gap_factor: float = 0.8
    column_gap_min_px: float = 10.0
    column_tolerance_factor: float = 1.0
    same_line_tolerance: float = 0.75
    column_mode: ColumnMode = ColumnMode.AUTO
    auto_build: bool = True
    smart_mode: bool = True
    merge_value_dates: bool = False
    description_cut: str = "amount"
    verbose: bool = False

    @property
    def row_factor(self) -> float:
        """Row merge factor in effect for the current layout setting."""
        if self.relaxed_rows:
            return self.relaxed_row_tolerance_factor
        return self.row_tolerance_factor

    def validate(self) -> "GridConfig":
        """Raise ``ValueError`` for settings no detector can work with."""
        if self.max_cols < 2:
            raise ValueError("max_cols must be >= 2")
        if not 0.0 < self.overlap_threshold <= 1.0:
            raise ValueError("overlap_threshold must be in (0, 1]")
        for name in (
            "eps",
            "row_tolerance_min_px",
            "row_tolerance_factor",
            "relaxed_row_tolerance_factor",
            "form_gap_min_px",
            "form_gap_factor",
            "column_gap_min_px",
            "column_tolerance_factor",
            "same_line_tolerance",
            "small_cluster_penalty",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.paragraph_max_chars <= 0 or self.paragraph_max_tokens <= 0:
            raise ValueError("paragraph limits must be positive")
        if self.kmeans_gap not in ("edge", "centroid"):
            raise ValueError(f"unknown kmeans_gap: {self.kmeans_gap!r}")
        if self.description_cut not in ("amount", "last_number"):
            raise ValueError(f"unknown description_cut: {self.description_cut!r}")
        if not isinstance(self.column_mode, ColumnMode):
            raise ValueError(f"unknown column mode: {self.column_mode!r}")
        return self

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, **overrides
    ) -> "GridConfig":
        """Build a config from ``STATEMENT_GRID_*`` variables.

        ``STATEMENT_GRID_MAX_COLS=8`` sets ``max_cols`` and so on. Values that
        cannot be parsed are skipped with a warning. Keyword overrides win
        over the environment.
        """
        env = os.environ if environ is None else environ
        base = cls()
        values = {}
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None:
                continue
            current = getattr(base, f.name)
            try:
                values[f.name] = _coerce(raw, current)
            except ValueError:
                logger.warning(f"ignoring {ENV_PREFIX}{f.name.upper()}={raw!r}")
        values.update(overrides)
        return replace(base, **values)


def _coerce(raw: str, current):
    text = raw.strip().lower()
    if isinstance(current, bool):
        if text in _TRUTHY:
            return True
        if text in _FALSY:
            return False
        raise ValueError(raw)
    if isinstance(current, ColumnMode):
        return ColumnMode(text)
    if isinstance(current, str):
        return text
    if isinstance(current, int):
        return int(text)
    return float(text)


__all__ = ["ColumnMode", "GridConfig"]

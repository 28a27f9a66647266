"""Rectangle geometry for guides, tables and glyph boxes.

All rectangles are ``(x, y, width, height)`` with a top-left origin. The hot
predicates are compiled with numba and work on plain floats; the ``Rect``
helpers below unpack into them.
"""

from typing import Any, Iterable, NamedTuple, Optional, Tuple

# the below ignores are due to `numba` constraints
# pyright: reportUnknownMemberType=false
# pyright: reportUntypedFunctionDecorator=false
import numba  # type: ignore
import numpy as np
import pymupdf  # type: ignore

DEFAULT_EPS = 0.75


class Rect(NamedTuple):
    """Axis-aligned rectangle in pixel or unit-normalized space."""

    x: float
    y: float
    width: float
    height: float

    @property
    def x1(self) -> float:
        return self.x + self.width

    @property
    def y1(self) -> float:
        return self.y + self.height

    @property
    def cx(self) -> float:
        return self.x + self.width / 2.0

    @property
    def cy(self) -> float:
        return self.y + self.height / 2.0

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def corners(self) -> Tuple[float, float, float, float]:
        """Return ``(x0, y0, x1, y1)``."""
        x0 = float(self.x)
        y0 = float(self.y)
        return (x0, y0, x0 + float(self.width), y0 + float(self.height))

    @classmethod
    def from_corners(cls, x0: float, y0: float, x1: float, y1: float) -> "Rect":
        return cls(float(x0), float(y0), float(x1) - float(x0), float(y1) - float(y0))

    def to_pymupdf(self) -> Any:
        """Convert to ``pymupdf.Rect``."""
        return pymupdf.Rect(*self.corners())  # type: ignore[attr-defined]

    @classmethod
    def from_pymupdf(cls, rect: Any) -> "Rect":
        """Convert a ``pymupdf.Rect`` or a 4-tuple of corners."""
        if isinstance(rect, tuple):
            return cls.from_corners(*rect)
        return cls.from_corners(rect.x0, rect.y0, rect.x1, rect.y1)  # type: ignore[attr-defined]


# Numba-optimized geometric operations
@numba.jit(nopython=True, cache=True)
def rect_intersects_numba(
    x0_1: float,
    y0_1: float,
    x1_1: float,
    y1_1: float,
    x0_2: float,
    y0_2: float,
    x1_2: float,
    y1_2: float,
    eps: float,
) -> bool:  # type: ignore
    """Check if two rectangles touch or overlap, allowing ``eps`` of slack."""
    return not (
        x1_1 + eps < x0_2 or x1_2 + eps < x0_1 or y1_1 + eps < y0_2 or y1_2 + eps < y0_1
    )


@numba.jit(nopython=True, cache=True)
def rect_contains_numba(
    x0_o: float,
    y0_o: float,
    x1_o: float,
    y1_o: float,
    x0_i: float,
    y0_i: float,
    x1_i: float,
    y1_i: float,
    eps: float,
) -> bool:  # type: ignore
    """Check if outer rectangle contains inner rectangle, allowing ``eps``."""
    return (
        x0_o - eps <= x0_i
        and y0_o - eps <= y0_i
        and x1_o + eps >= x1_i
        and y1_o + eps >= y1_i
    )


@numba.jit(nopython=True, cache=True)
def rect_intersection_numba(
    x0_1: float,
    y0_1: float,
    x1_1: float,
    y1_1: float,
    x0_2: float,
    y0_2: float,
    x1_2: float,
    y1_2: float,
) -> Tuple[float, float, float, float]:  # type: ignore
    """Calculate the intersection corners; an empty result has x1 <= x0."""
    x0 = max(x0_1, x0_2)
    y0 = max(y0_1, y0_2)
    x1 = min(x1_1, x1_2)
    y1 = min(y1_1, y1_2)
    if x0 < x1 and y0 < y1:
        return x0, y0, x1, y1
    else:
        return 0.0, 0.0, 0.0, 0.0  # Empty rectangle


@numba.jit(nopython=True, cache=True)
def centers_inside_numba(
    boxes: np.ndarray, x0: float, y0: float, x1: float, y1: float, eps: float
) -> np.ndarray:  # type: ignore
    """Mask of ``(x, y, w, h)`` rows whose center lies inside the corners."""
    n = boxes.shape[0]
    out = np.zeros(n, dtype=np.bool_)
    for i in range(n):
        cx = boxes[i, 0] + boxes[i, 2] / 2.0
        cy = boxes[i, 1] + boxes[i, 3] / 2.0
        inside_x = cx >= x0 - eps and cx <= x1 + eps
        inside_y = cy >= y0 - eps and cy <= y1 + eps
        out[i] = inside_x and inside_y
    return out


def contains(outer: Rect, inner: Rect, eps: float = DEFAULT_EPS) -> bool:
    """True if ``inner`` lies inside ``outer`` within ``eps`` pixels."""
    return bool(rect_contains_numba(*outer.corners(), *inner.corners(), float(eps)))


def intersects(a: Rect, b: Rect, eps: float = DEFAULT_EPS) -> bool:
    """True if ``a`` and ``b`` overlap or come within ``eps`` of touching."""
    return bool(rect_intersects_numba(*a.corners(), *b.corners(), float(eps)))


def intersection(a: Rect, b: Rect) -> Optional[Rect]:
    """Return the overlap of ``a`` and ``b`` or ``None`` if it has no area."""
    x0, y0, x1, y1 = rect_intersection_numba(*a.corners(), *b.corners())
    if x1 <= x0 or y1 <= y0:
        return None
    return Rect.from_corners(x0, y0, x1, y1)


def overlap_ratio(container: Rect, candidate: Rect) -> float:
    """Share of ``candidate``'s area that lies inside ``container``."""
    if candidate.area <= 0:
        return 0.0
    inter = intersection(container, candidate)
    if inter is None:
        return 0.0
    return inter.area / candidate.area


def center_inside(rect: Rect, box: Rect, eps: float = DEFAULT_EPS) -> bool:
    """True if the center of ``box`` lies inside ``rect``."""
    return (
        rect.x - eps <= box.cx <= rect.x1 + eps
        and rect.y - eps <= box.cy <= rect.y1 + eps
    )


def attaches_to(
    table: Rect, guide: Rect, threshold: float, eps: float = DEFAULT_EPS
) -> bool:
    """Decide whether a row/column guide belongs to ``table``.

    A guide attaches when its center is inside the table or when at least
    ``threshold`` of its area overlaps it. The second test catches guides
    drawn slightly across the table edge.
    """
    return center_inside(table, guide, eps) or overlap_ratio(table, guide) >= threshold


def bounding_rect(rects: Iterable[Rect]) -> Optional[Rect]:
    """Smallest rectangle covering all ``rects``, ``None`` when empty."""
    items = list(rects)
    if not items:
        return None
    return Rect.from_corners(
        min(r.x for r in items),
        min(r.y for r in items),
        max(r.x1 for r in items),
        max(r.y1 for r in items),
    )


def to_pixels(rect: Rect, width: float, height: float) -> Rect:
    """Scale a unit-normalized rect to a ``width`` x ``height`` viewport."""
    return Rect(rect.x * width, rect.y * height, rect.width * width, rect.height * height)


def to_unit(rect: Rect, width: float, height: float) -> Rect:
    """Scale a pixel rect down to unit-normalized coordinates."""
    if width <= 0 or height <= 0:
        raise ValueError("viewport dimensions must be positive")
    return Rect(rect.x / width, rect.y / height, rect.width / width, rect.height / height)


def boxes_to_array(rects: Iterable[Rect]) -> np.ndarray:
    """Pack rects into an ``(n, 4)`` float64 array of ``x, y, w, h``."""
    data = [tuple(r) for r in rects]
    if not data:
        return np.empty((0, 4), dtype=np.float64)
    return np.asarray(data, dtype=np.float64)


def centers_inside(boxes: np.ndarray, rect: Rect, eps: float = 0.0) -> np.ndarray:
    """Boolean mask over ``boxes`` (see ``boxes_to_array``) for centers in ``rect``."""
    if boxes.shape[0] == 0:
        return np.zeros(0, dtype=np.bool_)
    return centers_inside_numba(boxes, *rect.corners(), float(eps))

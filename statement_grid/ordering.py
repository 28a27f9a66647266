"""User-controlled row and column order per table, applied at export."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple, TypeVar

from .logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def move_element(items: Sequence[T], src: int, dst: int) -> List[T]:
    """Return a copy of ``items`` with the element at ``src`` moved to ``dst``.

    Out-of-range indices leave the order unchanged.
    """
    out = list(items)
    if not (0 <= src < len(out) and 0 <= dst < len(out)) or src == dst:
        return out
    out.insert(dst, out.pop(src))
    return out


def _is_permutation(order: Sequence[int], size: int) -> bool:
    return len(order) == size and sorted(order) == list(range(size))


@dataclass
class TableOrder:
    rows: List[int] = field(default_factory=list)
    cols: List[int] = field(default_factory=list)


@dataclass
class OrderingStore:
    """Row and column permutations keyed by ``(page, table_index)``.

    Permutations survive recomputation as long as the table keeps its shape;
    anything that no longer fits is reset to identity by ``sync``.
    """

    orders: Dict[Tuple[int, int], TableOrder] = field(default_factory=dict)

    def sync(self, page: int, table_index: int, shape: Tuple[int, int]) -> TableOrder:
        """Make the stored order match a freshly detected table shape."""
        n_rows, n_cols = shape
        key = (page, table_index)
        order = self.orders.get(key)
        if order is None:
            order = self.orders[key] = TableOrder()
        if not _is_permutation(order.rows, n_rows):
            if order.rows:
                logger.debug(f"table {key}: row order reset, {len(order.rows)} != {n_rows}")
            order.rows = list(range(n_rows))
        if not _is_permutation(order.cols, n_cols):
            if order.cols:
                logger.debug(f"table {key}: column order reset, {len(order.cols)} != {n_cols}")
            order.cols = list(range(n_cols))
        return order

    def get(self, page: int, table_index: int, shape: Tuple[int, int]) -> TableOrder:
        return self.sync(page, table_index, shape)

    def move_row(self, page: int, table_index: int, src: int, dst: int) -> List[int]:
        order = self.orders.setdefault((page, table_index), TableOrder())
        order.rows = move_element(order.rows, src, dst)
        return order.rows

    def move_col(self, page: int, table_index: int, src: int, dst: int) -> List[int]:
        order = self.orders.setdefault((page, table_index), TableOrder())
        order.cols = move_element(order.cols, src, dst)
        return order.cols

    def set_order(
        self, page: int, table_index: int, rows: Sequence[int], cols: Sequence[int]
    ) -> None:
        """Store explicit permutations; invalid ones are reset on the next sync."""
        self.orders[(page, table_index)] = TableOrder(rows=list(rows), cols=list(cols))

    def reset(self, page: int, table_index: int) -> None:
        self.orders.pop((page, table_index), None)

    def apply(
        self, page: int, table_index: int, matrix: Sequence[Sequence[str]]
    ) -> List[List[str]]:
        """Reordered copy of ``matrix``; the input is never modified."""
        n_rows = len(matrix)
        n_cols = len(matrix[0]) if n_rows else 0
        order = self.sync(page, table_index, (n_rows, n_cols))
        return [[matrix[r][c] for c in order.cols] for r in order.rows]


__all__ = ["OrderingStore", "TableOrder", "move_element"]

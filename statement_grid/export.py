"""Flatten page results into export rows.

Serialization to a concrete file format stays with the caller; this module
only produces ordered rows of strings or ``ParsedTransaction`` records and
a markdown preview for the command line.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Iterator, List, Optional, Sequence, Tuple

from .config import GridConfig
from .logging_config import get_logger
from .ordering import OrderingStore
from .transactions import (
    EXPORT_NAMES,
    FIELD_BY_EXPORT_NAME,
    ParsedTransaction,
    parse_row,
    transaction_key,
)

if TYPE_CHECKING:  # pragma: no cover
    from .api import PageResult

logger = get_logger(__name__)

ALL_FIELDS: Tuple[str, ...] = tuple(EXPORT_NAMES.values())
DEFAULT_FIELDS: Tuple[str, ...] = ("Date", "Description", "Debit", "Balance")


def _ordered_rows(
    page_results: Iterable["PageResult"], ordering: Optional[OrderingStore]
) -> Iterator[Tuple[int, List[str]]]:
    store = ordering if ordering is not None else OrderingStore()
    for result in page_results:
        for ti, matrix in enumerate(result.matrices):
            for row in store.apply(result.page, ti, matrix):
                yield result.page, row


def flatten_tables(
    page_results: Iterable["PageResult"], ordering: Optional[OrderingStore] = None
) -> List[List[str]]:
    """Every table row of every page, pages and tables in order.

    Row and column permutations from ``ordering`` are applied; the page
    results themselves are left untouched.
    """
    return [row for _, row in _ordered_rows(page_results, ordering)]


def structured_rows(
    page_results: Iterable["PageResult"],
    ordering: Optional[OrderingStore] = None,
    config: Optional[GridConfig] = None,
) -> List[ParsedTransaction]:
    """Parse each flattened row into transactions tagged with their page.

    ``config`` supplies the row splitting and description settings.
    """
    config = config or GridConfig()
    out: List[ParsedTransaction] = []
    for page, row in _ordered_rows(page_results, ordering):
        text = " ".join(cell for cell in row if cell)
        txs = parse_row(
            text,
            merge_value_dates=config.merge_value_dates,
            cut_at_last_number=config.description_cut == "last_number",
        )
        out.extend(tx.with_page(page) for tx in txs)
    return out


def dedupe_transactions(transactions: Iterable[ParsedTransaction]) -> List[ParsedTransaction]:
    """Drop repeats by date, amount and description; the first one wins."""
    seen = set()
    out = []
    for tx in transactions:
        key = transaction_key(tx)
        if key in seen:
            continue
        seen.add(key)
        out.append(tx)
    return out


def _cell(value: Any) -> Any:
    return "" if value is None else value


def project_fields(
    transactions: Iterable[ParsedTransaction], fields: Sequence[str] = DEFAULT_FIELDS
) -> List[List[Any]]:
    """Header row followed by one row per transaction, columns as ``fields``.

    Raises:
        ValueError: if a field name is not one of ``ALL_FIELDS``.
    """
    unknown = [f for f in fields if f not in FIELD_BY_EXPORT_NAME]
    if unknown:
        raise ValueError(f"unknown export fields: {', '.join(unknown)}")
    names = [FIELD_BY_EXPORT_NAME[f] for f in fields]
    rows: List[List[Any]] = [list(fields)]
    for tx in transactions:
        rows.append([_cell(getattr(tx, name)) for name in names])
    return rows


def _md_cell(value: Any) -> str:
    return str(_cell(value)).strip().replace("\n", " ").replace("|", "\\|")


def rows_to_markdown(header: Sequence[Any], rows: Iterable[Sequence[Any]]) -> str:
    """Render rows as a GitHub-flavoured markdown table."""
    head = [_md_cell(h) for h in header]
    lines: List[str] = []
    if head:
        lines.append("| " + " | ".join(head) + " |")
        lines.append("| " + " | ".join("---" for _ in head) + " |")
    for row in rows:
        cells = [_md_cell(c) for c in row]
        if head and len(cells) < len(head):
            cells.extend("" for _ in range(len(head) - len(cells)))
        lines.append("| " + " | ".join(cells) + " |")
    lines.append("")
    return "\n".join(lines)


__all__ = [
    "ALL_FIELDS",
    "DEFAULT_FIELDS",
    "dedupe_transactions",
    "flatten_tables",
    "project_fields",
    "rows_to_markdown",
    "structured_rows",
]

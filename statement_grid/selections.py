"""User guides (selections), manual links and their JSON persistence."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from .geometry_utils import Rect
from .logging_config import get_logger

logger = get_logger(__name__)


class SelectionKind(str, Enum):
    TABLE = "table"
    ROW = "row"
    COLUMN = "column"


@dataclass(frozen=True)
class Selection:
    """A guide drawn on one page. ``rect`` is unit-normalized."""

    kind: SelectionKind
    rect: Rect
    color: Optional[str] = None


@dataclass(frozen=True)
class ManualLink:
    """Row/column rects the user attached to a table by hand (normalized)."""

    table_index: int
    rows: Tuple[Rect, ...] = ()
    cols: Tuple[Rect, ...] = ()


@dataclass
class Table:
    """Table geometry in pixels, rows sorted by y and columns by x."""

    rect: Rect
    rows: List[Rect] = field(default_factory=list)
    cols: List[Rect] = field(default_factory=list)
    row_guides: List[int] = field(default_factory=list)
    col_guides: List[int] = field(default_factory=list)
    synthesized: bool = False
    inferred_rows: bool = False
    inferred_cols: bool = False

    @property
    def shape(self) -> Tuple[int, int]:
        return len(self.rows), len(self.cols)


@dataclass(frozen=True)
class LooseSelection:
    """A row/column guide that no table absorbed.

    ``index`` points into the page's selection list so the caller can offer
    it for manual attachment.
    """

    index: int
    selection: Selection
    rect: Rect


def _parse_kind(value: Any) -> SelectionKind:
    text = str(value or "").strip().lower()
    aliases = {"col": "column", "columns": "column", "rows": "row", "tables": "table"}
    return SelectionKind(aliases.get(text, text))


def _parse_rect(value: Any) -> Rect:
    if isinstance(value, Mapping):
        w = value.get("w", value.get("width"))
        h = value.get("h", value.get("height"))
        return Rect(float(value["x"]), float(value["y"]), float(w), float(h))
    x, y, w, h = value
    return Rect(float(x), float(y), float(w), float(h))


def _rect_record(rect: Rect) -> Dict[str, float]:
    return {
        "x": round(rect.x, 6),
        "y": round(rect.y, 6),
        "w": round(rect.width, 6),
        "h": round(rect.height, 6),
    }


def selection_from_dict(data: Mapping[str, Any]) -> Optional[Selection]:
    """Parse ``{type, rect:{x,y,w,h}, color?}``; ``None`` if malformed."""
    if not isinstance(data, Mapping):
        logger.debug(f"skipping selection that is not an object: {data!r}")
        return None
    try:
        kind = _parse_kind(data.get("type", data.get("kind")))
        rect = _parse_rect(data["rect"])
    except (KeyError, TypeError, ValueError) as exc:
        logger.debug(f"skipping malformed selection {data!r}: {exc}")
        return None
    if rect.width <= 0 or rect.height <= 0:
        logger.debug(f"skipping empty selection {data!r}")
        return None
    return Selection(kind=kind, rect=rect, color=data.get("color"))


def selection_to_dict(selection: Selection) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": selection.kind.value, "rect": _rect_record(selection.rect)}
    if selection.color:
        out["color"] = selection.color
    return out


def selections_to_records(
    selections_by_page: Mapping[int, Iterable[Selection]],
) -> List[Dict[str, Any]]:
    """Flatten to ``{page, type, x, y, w, h, color?}`` records, pages ascending."""
    records = []
    for page in sorted(selections_by_page):
        for sel in selections_by_page[page]:
            record = {"page": int(page), "type": sel.kind.value, **_rect_record(sel.rect)}
            if sel.color:
                record["color"] = sel.color
            records.append(record)
    return records


def selections_from_records(records: Iterable[Mapping[str, Any]]) -> Dict[int, List[Selection]]:
    """Inverse of ``selections_to_records``; malformed records are skipped."""
    pages: Dict[int, List[Selection]] = {}
    for rec in records:
        if not isinstance(rec, Mapping):
            logger.debug(f"skipping record that is not an object: {rec!r}")
            continue
        try:
            page = int(rec["page"])
        except (KeyError, TypeError, ValueError):
            logger.debug(f"skipping record without page: {rec!r}")
            continue
        sel = selection_from_dict({"type": rec.get("type"), "rect": rec, "color": rec.get("color")})
        if sel is not None:
            pages.setdefault(page, []).append(sel)
    return pages


def link_from_dict(data: Mapping[str, Any]) -> Optional[ManualLink]:
    if not isinstance(data, Mapping):
        logger.debug(f"skipping link that is not an object: {data!r}")
        return None
    try:
        return ManualLink(
            table_index=int(data["table"]),
            rows=tuple(_parse_rect(r) for r in data.get("rows", ())),
            cols=tuple(_parse_rect(r) for r in data.get("cols", ())),
        )
    except (KeyError, TypeError, ValueError) as exc:
        logger.debug(f"skipping malformed link {data!r}: {exc}")
        return None


def link_to_dict(link: ManualLink) -> Dict[str, Any]:
    return {
        "table": link.table_index,
        "rows": [_rect_record(r) for r in link.rows],
        "cols": [_rect_record(r) for r in link.cols],
    }


def _page_items(
    section: Mapping[str, Any], skip: Tuple[str, ...] = ()
) -> Iterator[Tuple[int, List[Any]]]:
    for key, items in section.items():
        if key in skip:
            continue
        try:
            page = int(key)
        except (TypeError, ValueError):
            logger.debug(f"ignoring non-page key {key!r}")
            continue
        if items is None:
            items = []
        if not isinstance(items, list):
            logger.debug(f"ignoring page {page}: expected a list, got {type(items).__name__}")
            continue
        yield page, items


def parse_guides(
    data: Mapping[str, Any],
) -> Tuple[Dict[int, List[Selection]], Dict[int, List[ManualLink]]]:
    """Read ``{"<page>": [selection...], "links": {"<page>": [link...]}}``.

    Keys that are not page numbers, page entries that are not lists and
    malformed items are skipped.
    """
    selections: Dict[int, List[Selection]] = {}
    links: Dict[int, List[ManualLink]] = {}
    if not isinstance(data, Mapping):
        logger.debug(f"ignoring guides that are not an object: {type(data).__name__}")
        return selections, links
    for page, items in _page_items(data, skip=("links",)):
        parsed = [selection_from_dict(item) for item in items]
        selections[page] = [s for s in parsed if s is not None]
    link_section = data.get("links")
    if isinstance(link_section, Mapping):
        for page, items in _page_items(link_section):
            parsed_links = [link_from_dict(item) for item in items]
            links[page] = [ln for ln in parsed_links if ln is not None]
    elif link_section is not None:
        logger.debug("ignoring links section that is not an object")
    return selections, links


def load_guides(
    path: str | Path,
) -> Tuple[Dict[int, List[Selection]], Dict[int, List[ManualLink]]]:
    """Load selections and manual links from a JSON file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return parse_guides(data)


def dump_guides(
    path: str | Path,
    selections_by_page: Mapping[int, Iterable[Selection]],
    links_by_page: Optional[Mapping[int, Iterable[ManualLink]]] = None,
) -> Path:
    """Write selections (and links, if any) in the format ``load_guides`` reads."""
    data: Dict[str, Any] = {
        str(page): [selection_to_dict(s) for s in sels]
        for page, sels in sorted(selections_by_page.items())
    }
    if links_by_page:
        data["links"] = {
            str(page): [link_to_dict(ln) for ln in links]
            for page, links in sorted(links_by_page.items())
        }
    target = Path(path)
    target.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return target


__all__ = [
    "LooseSelection",
    "ManualLink",
    "Selection",
    "SelectionKind",
    "Table",
    "dump_guides",
    "load_guides",
    "parse_guides",
    "selections_from_records",
    "selections_to_records",
]

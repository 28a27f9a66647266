"""Optional hand-off of raw page text to an external transaction parser.

The collaborator is anything with a ``complete(text)`` method returning
JSON-like data: a list of transaction objects, ``{"transactions": [...]}``,
or a string holding either (optionally inside a fenced code block).
Whatever comes back is coerced into the same ``ParsedTransaction`` shape
the deterministic parser produces.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Protocol, Tuple

from .export import dedupe_transactions
from .logging_config import get_logger
from .transactions import ParsedTransaction, coerce_transaction, parse_row

logger = get_logger(__name__)

MAX_PAYLOAD_CHARS = 60_000

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


class TransactionCompleter(Protocol):
    def complete(self, text: str) -> Any: ...


@dataclass(frozen=True)
class PageFailure:
    page: int
    error: str


@dataclass
class FallbackResult:
    transactions: List[ParsedTransaction] = field(default_factory=list)
    failures: List[PageFailure] = field(default_factory=list)


def minify_text(text: str) -> str:
    """Drop trailing spaces, squeeze space runs and blank-line runs."""
    lines = [line.rstrip() for line in str(text or "").splitlines()]
    squeezed = re.sub(r"[ \t]{2,}", " ", "\n".join(lines))
    return re.sub(r"\n{3,}", "\n\n", squeezed).strip("\n")


def page_payloads(
    page_texts: Mapping[int, str], max_chars: int = MAX_PAYLOAD_CHARS
) -> List[Tuple[int, str]]:
    """One ``(page, payload)`` per non-empty page, pages ascending."""
    out = []
    for page in sorted(page_texts):
        text = page_texts[page]
        if not text or not text.strip():
            continue
        payload = minify_text(f"(Page {page})\n{text}")
        if len(payload) > max_chars:
            logger.debug(f"page {page}: payload truncated to {max_chars} chars")
            payload = payload[:max_chars]
        out.append((page, payload))
    return out


def parse_completion(response: Any) -> List[Mapping[str, Any]]:
    """Pull the list of transaction objects out of a completer response.

    Raises:
        ValueError: if the response holds no list of objects.
    """
    data = response
    if isinstance(data, (bytes, bytearray)):
        data = data.decode("utf-8")
    if isinstance(data, str):
        text = data.strip()
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            m = _FENCE_RE.search(text)
            if m is None:
                raise ValueError("completer returned no JSON") from None
            data = json.loads(m.group(1))
    if isinstance(data, Mapping):
        data = data.get("transactions")
    if not isinstance(data, list):
        raise ValueError("completer did not return a list of transactions")
    return [item for item in data if isinstance(item, Mapping)]


def _parse_lines(page: int, text: str) -> List[ParsedTransaction]:
    out = []
    for line in text.splitlines():
        for tx in parse_row(line):
            if tx.date is None and tx.amount is None and tx.balance is None:
                continue
            out.append(tx.with_page(page))
    return out


def parse_with_fallback(
    page_texts: Mapping[int, str],
    completer: Optional[TransactionCompleter] = None,
    *,
    max_chars: int = MAX_PAYLOAD_CHARS,
) -> FallbackResult:
    """Parse raw page text, one completer call per page.

    A page whose call fails is recorded in ``failures`` and the remaining
    pages are still processed. Without a completer the deterministic parser
    reads the text line by line instead.
    """
    result = FallbackResult()
    collected: List[ParsedTransaction] = []
    for page, payload in page_payloads(page_texts, max_chars):
        if completer is None:
            collected.extend(_parse_lines(page, minify_text(page_texts[page])))
            continue
        try:
            items = parse_completion(completer.complete(payload))
        except Exception as exc:  # the collaborator may fail in any way
            logger.warning(f"page {page}: completer failed: {exc}")
            result.failures.append(PageFailure(page=page, error=str(exc)))
            continue
        for item in items:
            tx = coerce_transaction(item)
            collected.append(tx if tx.source_page is not None else tx.with_page(page))

    result.transactions = dedupe_transactions(collected)
    logger.debug(
        f"fallback: {len(result.transactions)} transactions, {len(result.failures)} failed pages"
    )
    return result


__all__ = [
    "FallbackResult",
    "PageFailure",
    "TransactionCompleter",
    "minify_text",
    "page_payloads",
    "parse_completion",
    "parse_with_fallback",
]

"""Deterministic transaction parsing for assembled statement rows.

Every step is best effort: a field that cannot be determined is ``None``
and the row is still returned. Nothing in here raises on bad input.
"""

from __future__ import annotations

import datetime as dt
import re
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}

MONTH_DATE_RE = re.compile(r"\b([A-Za-z]{3,9})\.?\s+(\d{1,2}),?\s+(\d{4})\b")
DMY_DATE_RE = re.compile(r"\b(\d{1,2})[./\-](\d{1,2})[./\-](\d{4}|\d{2})\b")
ISO_DATE_RE = re.compile(r"\b(\d{4})-(\d{1,2})-(\d{1,2})\b")

# Digits with separators; a single space joins thousands groups ("1 234,56").
NUMBER_RE = re.compile(
    r"(?:-\s?|\()?(?:[$€£]\s?)?"
    r"(?:\d{1,3}(?:[ \xa0]\d{3})+(?:[.,]\d+)?(?!\d)|\d[\d.,]*)\)?"
)
CURRENCY_RE = re.compile(r"\b(PLN|USD|EUR)\b|(€)|(\$)|(zł)", re.IGNORECASE)
CURRENCY_CODES = {"pln": "PLN", "zł": "PLN", "usd": "USD", "$": "USD", "eur": "EUR", "€": "EUR"}
REFERENCE_RE = r"(?=[A-Z0-9/\-]*\d)[A-Z0-9][A-Z0-9/\-]{5,}"

EXPORT_NAMES = {
    "date": "Date",
    "source_date": "Source Date",
    "description": "Description",
    "credit": "Credit",
    "debit": "Debit",
    "amount": "Amount",
    "balance": "Balance",
    "currency": "Currency",
    "reference_number": "Reference Number",
    "reference_1": "Reference 1",
    "reference_2": "Reference 2",
    "transaction_type": "Transaction Type",
    "category": "Transaction Category",
    "branch": "Branch",
    "counterparty": "Sender/Receiver Name",
    "source_page": "Source Statement Page",
}
FIELD_BY_EXPORT_NAME = {v: k for k, v in EXPORT_NAMES.items()}


@dataclass(frozen=True)
class ParsedTransaction:
    """One transaction. ``date`` is ISO-8601 (``YYYY-MM-DD``) or ``None``."""

    date: Optional[str] = None
    description: str = ""
    credit: Optional[float] = None
    debit: Optional[float] = None
    amount: Optional[float] = None
    balance: Optional[float] = None
    currency: Optional[str] = None
    source_date: Optional[str] = None
    reference_number: Optional[str] = None
    reference_1: Optional[str] = None
    reference_2: Optional[str] = None
    transaction_type: Optional[str] = None
    category: Optional[str] = None
    branch: Optional[str] = None
    counterparty: Optional[str] = None
    source_page: Optional[int] = None

    def with_page(self, page: int) -> "ParsedTransaction":
        return replace(self, source_page=page)

    def as_record(self) -> Dict[str, Any]:
        """Dict keyed by the export column names."""
        return {EXPORT_NAMES[k]: v for k, v in asdict(self).items()}


@dataclass(frozen=True)
class DateMatch:
    start: int
    end: int
    iso: str
    raw: str


def _iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return dt.date(year, month, day).isoformat()
    except ValueError:
        return None


def _month_match(m: re.Match) -> Optional[str]:
    month = MONTHS.get(m.group(1)[:3].lower())
    if month is None:
        return None
    return _iso(int(m.group(3)), month, int(m.group(2)))


def _dmy_match(m: re.Match) -> Optional[str]:
    year = m.group(3)
    full_year = int(year) + 2000 if len(year) == 2 else int(year)
    return _iso(full_year, int(m.group(2)), int(m.group(1)))


def _iso_match(m: re.Match) -> Optional[str]:
    return _iso(int(m.group(1)), int(m.group(2)), int(m.group(3)))


DATE_PATTERNS = (
    (MONTH_DATE_RE, _month_match),
    (DMY_DATE_RE, _dmy_match),
    (ISO_DATE_RE, _iso_match),
)


def find_dates(text: str) -> List[DateMatch]:
    """All non-overlapping dates in ``text``, left to right.

    Where matches overlap, the earlier pattern in ``DATE_PATTERNS`` wins.
    """
    found: List[DateMatch] = []
    for pattern, convert in DATE_PATTERNS:
        for m in pattern.finditer(text):
            iso = convert(m)
            if iso is None:
                continue
            if any(m.start() < d.end and d.start < m.end() for d in found):
                continue
            found.append(DateMatch(m.start(), m.end(), iso, m.group(0)))
    return sorted(found, key=lambda d: d.start)


def parse_date(text: str) -> Optional[DateMatch]:
    """First date by pattern priority: month name, then D/M/Y, then ISO."""
    for pattern, convert in DATE_PATTERNS:
        for m in pattern.finditer(text or ""):
            iso = convert(m)
            if iso is not None:
                return DateMatch(m.start(), m.end(), iso, m.group(0))
    return None


def normalize_number(token: str) -> Optional[float]:
    """Turn a statement amount into a float.

    Parentheses or a leading minus make it negative. With both ``,`` and
    ``.`` present the later one is the decimal separator. A lone comma
    followed by exactly two digits is a decimal comma and a lone dot is a
    decimal point; any other separators group thousands and are dropped.
    """
    if not token:
        return None
    s = token.strip()
    negative = s.startswith("-") or (s.startswith("(") and s.endswith(")"))
    digits = re.sub(r"[^\d.,]", "", s)
    digits = digits.strip(".,")
    if not digits or not any(c.isdigit() for c in digits):
        return None

    commas, dots = digits.count(","), digits.count(".")
    if commas and dots:
        decimal = "," if digits.rfind(",") > digits.rfind(".") else "."
        thousands = "." if decimal == "," else ","
        digits = digits.replace(thousands, "")
        if digits.count(decimal) > 1:
            head, _, tail = digits.rpartition(decimal)
            digits = head.replace(decimal, "") + decimal + tail
        digits = digits.replace(decimal, ".")
    elif commas:
        tail = digits.rsplit(",", 1)[1]
        if commas == 1 and len(tail) == 2:
            digits = digits.replace(",", ".")
        else:
            digits = digits.replace(",", "")
    elif dots > 1:
        digits = digits.replace(".", "")

    try:
        value = float(digits)
    except ValueError:
        return None
    return -value if negative else value


def find_numbers(text: str, masked: Sequence[Tuple[int, int]] = ()) -> List[Tuple[int, int, float]]:
    """Numeric tokens as ``(start, end, value)``, skipping masked spans."""
    chars = list(text)
    for start, end in masked:
        for i in range(start, min(end, len(chars))):
            chars[i] = " "
    blanked = "".join(chars)
    out = []
    for m in NUMBER_RE.finditer(blanked):
        raw = m.group(0).rstrip(" \u00a0.,")
        value = normalize_number(raw)
        if value is not None:
            out.append((m.start(), m.start() + len(raw), value))
    return out


def detect_currency(text: str) -> Optional[str]:
    m = CURRENCY_RE.search(text or "")
    if m is None:
        return None
    return CURRENCY_CODES[m.group(0).lower()]


def route_amount(amount: Optional[float]) -> Tuple[Optional[float], Optional[float]]:
    """``(credit, debit)`` for a signed amount; debits are stored positive."""
    if amount is None:
        return None, None
    if amount >= 0:
        return amount, None
    return None, abs(amount)


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def parse_transaction(
    text: str, *, lone_number_is_amount: bool = False, cut_at_last_number: bool = False
) -> ParsedTransaction:
    """Parse one segment holding at most one transaction.

    The last number is the balance and the one before it the amount. With
    ``lone_number_is_amount`` a single number is read as the amount instead,
    which is how split rows print their transactions.

    The description ends where the amount starts, or with
    ``cut_at_last_number`` where the last number starts, keeping the amount
    text in the description.
    """
    text = text or ""
    date = parse_date(text)
    # value dates next to the booking date are not amounts
    masked = [(d.start, d.end) for d in find_dates(text)]
    numbers = find_numbers(text, masked)

    if len(numbers) == 1 and lone_number_is_amount:
        balance, amount = None, numbers[0][2]
    else:
        balance = numbers[-1][2] if numbers else None
        amount = numbers[-2][2] if len(numbers) >= 2 else None
    credit, debit = route_amount(amount)

    # description stops where the trailing amount/balance run begins
    cut = len(text)
    if numbers:
        if len(numbers) >= 2 and not cut_at_last_number:
            cut = numbers[-2][0]
        else:
            cut = numbers[-1][0]
    chars = list(text[:cut])
    for start, end in masked:
        for i in range(start, min(end, cut)):
            chars[i] = " "
    description = _collapse("".join(chars))

    return ParsedTransaction(
        date=date.iso if date else None,
        source_date=date.raw if date else None,
        description=description,
        credit=credit,
        debit=debit,
        amount=amount,
        balance=balance,
        currency=detect_currency(text),
    )


def _date_alternation() -> str:
    return "|".join(p.pattern.replace("\\b", "") for p, _ in DATE_PATTERNS)


_NUM = r"(?:-\s?|\()?(?:[$€£]\s?)?\d[\d.,]*\)?"
PAIR_LAYOUT_RE = re.compile(
    rf"^\s*(?P<d1>{_date_alternation()})\s+(?P<desc1>.+?)\s+(?P<amt1>{_NUM})"
    rf"\s+(?P<d2>{_date_alternation()})\s+(?P<desc2>.+?)\s+(?P<ref>{REFERENCE_RE})"
    rf"\s+(?P<amt2>{_NUM})\s*$"
)


def _parse_pair_layout(text: str) -> Optional[List[ParsedTransaction]]:
    """Recognise ``date desc amount date desc reference amount`` rows."""
    m = PAIR_LAYOUT_RE.match(text)
    if m is None:
        return None
    d1, d2 = parse_date(m.group("d1")), parse_date(m.group("d2"))
    if d1 is None or d2 is None:
        return None
    currency = detect_currency(text)
    out = []
    for date, desc, amt, ref in (
        (d1, m.group("desc1"), m.group("amt1"), None),
        (d2, m.group("desc2"), m.group("amt2"), m.group("ref")),
    ):
        amount = normalize_number(amt)
        credit, debit = route_amount(amount)
        out.append(
            ParsedTransaction(
                date=date.iso,
                source_date=date.raw,
                description=_collapse(desc),
                credit=credit,
                debit=debit,
                amount=amount,
                currency=currency,
                reference_number=ref,
            )
        )
    return out


def split_segments(text: str, *, merge_value_dates: bool = False) -> List[str]:
    """Cut a row at every date, one segment per date.

    With ``merge_value_dates`` a segment holding nothing but its date is
    merged into the next one, so a booking date followed by a value date
    stays one transaction.
    """
    dates = find_dates(text)
    if len(dates) < 2:
        return [text]
    bounds = [0] + [d.start for d in dates[1:]] + [len(text)]
    segments = [text[a:b] for a, b in zip(bounds, bounds[1:])]
    if not merge_value_dates:
        return segments
    merged: List[str] = []
    carry = ""
    last = len(segments) - 1
    for i, (seg, date) in enumerate(zip(segments, dates)):
        rest = seg.replace(date.raw, "", 1)
        if not rest.strip() and i < last:
            carry += seg
            continue
        merged.append(carry + seg)
        carry = ""
    if carry:
        merged.append(carry)
    return merged


def parse_row(
    text: str, *, merge_value_dates: bool = False, cut_at_last_number: bool = False
) -> List[ParsedTransaction]:
    """Parse an assembled row, splitting rows that pack several transactions.

    Each date starts a new transaction unless ``merge_value_dates`` is set.
    """
    text = _collapse(text or "")
    if not text:
        return []
    if len(find_dates(text)) >= 2:
        pair = _parse_pair_layout(text)
        if pair is not None:
            return pair
        return [
            parse_transaction(
                seg, lone_number_is_amount=True, cut_at_last_number=cut_at_last_number
            )
            for seg in split_segments(text, merge_value_dates=merge_value_dates)
        ]
    return [parse_transaction(text, cut_at_last_number=cut_at_last_number)]


def transaction_key(tx: ParsedTransaction) -> str:
    """Identity used to drop duplicates: date, amount and description."""
    amount = next((v for v in (tx.amount, tx.debit, tx.credit) if v is not None), "")
    desc = _collapse(tx.description or "")
    return f"{tx.date or ''}||{amount}||{desc}".lower()


def _text_field(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = _collapse(str(value))
    return text or None


def _number_field(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return normalize_number(str(value))


def coerce_transaction(data: Mapping[str, Any]) -> ParsedTransaction:
    """Build a ``ParsedTransaction`` from loosely shaped JSON.

    Accepts export column names ("Date", "Debit", ...) or field names
    ("date", "debit", ...). Unknown keys are ignored; unparseable values
    become ``None``.
    """
    values: Dict[str, Any] = {}
    for key, value in data.items():
        name = FIELD_BY_EXPORT_NAME.get(key, key)
        if name in EXPORT_NAMES:
            values[name] = value

    raw_date = _text_field(values.get("date"))
    date = parse_date(raw_date) if raw_date else None
    amount = _number_field(values.get("amount"))
    credit = _number_field(values.get("credit"))
    debit = _number_field(values.get("debit"))
    if credit is None and debit is None:
        credit, debit = route_amount(amount)
    elif debit is not None:
        debit = abs(debit)

    page = values.get("source_page")
    try:
        source_page = int(page) if page is not None and str(page).strip() else None
    except (TypeError, ValueError):
        source_page = None

    currency = _text_field(values.get("currency"))
    return ParsedTransaction(
        date=date.iso if date else None,
        source_date=_text_field(values.get("source_date")) or raw_date,
        description=_text_field(values.get("description")) or "",
        credit=credit,
        debit=debit,
        amount=amount,
        balance=_number_field(values.get("balance")),
        currency=detect_currency(currency) or currency if currency else None,
        reference_number=_text_field(values.get("reference_number")),
        reference_1=_text_field(values.get("reference_1")),
        reference_2=_text_field(values.get("reference_2")),
        transaction_type=_text_field(values.get("transaction_type")),
        category=_text_field(values.get("category")),
        branch=_text_field(values.get("branch")),
        counterparty=_text_field(values.get("counterparty")),
        source_page=source_page,
    )


__all__ = [
    "EXPORT_NAMES",
    "ParsedTransaction",
    "coerce_transaction",
    "detect_currency",
    "find_dates",
    "find_numbers",
    "normalize_number",
    "parse_date",
    "parse_row",
    "parse_transaction",
    "route_amount",
    "split_segments",
    "transaction_key",
]

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import re
from typing import Any, Iterable, Optional


ISO_TS = "%Y-%m-%dT%H:%M:%S.%fZ"

ZERO = Decimal("0")

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")
_DATE_PATTERNS = [
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
]


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime(ISO_TS)


def to_amount(value: Any) -> Decimal:
    """Coerce a raw amount; missing, unparseable or negative values count as zero."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).replace(",", "").strip())
        except (InvalidOperation, ValueError):
            return ZERO
    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


def to_date(value: Any) -> Optional[date]:
    """Resolve a transaction date, or None when it cannot be resolved."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    raw = value.strip()
    match = _ISO_DATE_RE.match(raw)
    if match:
        year, month, day = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None

    head = raw.split(" ")[0].split("T")[0]
    for fmt in _DATE_PATTERNS:
        try:
            return datetime.strptime(head, fmt).date()
        except ValueError:
            continue
    return None


def money(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def total(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def normalize_label(label: Optional[str]) -> str:
    return re.sub(r"\s+", " ", (label or "").strip().lower())

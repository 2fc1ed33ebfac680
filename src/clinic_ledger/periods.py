from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from clinic_ledger.core import to_date
from clinic_ledger.models import DateLike

PERIOD_TYPES = ("day", "month", "year")


class PeriodSelectionError(ValueError):
    """Raised when a caller asks for a period the engine cannot resolve."""


@dataclass(frozen=True)
class DateWindow:
    """Half-open date range; an open bound means unbounded on that side."""

    start: Optional[date] = None
    end: Optional[date] = None

    def contains(self, value: DateLike) -> bool:
        resolved = to_date(value)
        if resolved is None:
            return False
        if self.start is not None and resolved < self.start:
            return False
        if self.end is not None and resolved >= self.end:
            return False
        return True

    def label(self) -> str:
        start = self.start.isoformat() if self.start else "..."
        end = self.end.isoformat() if self.end else "..."
        return f"[{start}, {end})"


def period_window(period_type: str, reference: DateLike) -> DateWindow:
    ref = to_date(reference)
    if ref is None:
        raise PeriodSelectionError(f"Unresolvable reference date: {reference!r}")

    if period_type == "day":
        return DateWindow(ref, ref + timedelta(days=1))
    if period_type == "month":
        start = ref.replace(day=1)
        if start.month == 12:
            end = date(start.year + 1, 1, 1)
        else:
            end = date(start.year, start.month + 1, 1)
        return DateWindow(start, end)
    if period_type == "year":
        return DateWindow(date(ref.year, 1, 1), date(ref.year + 1, 1, 1))
    raise PeriodSelectionError(
        f"Unsupported period type {period_type!r}; expected one of {', '.join(PERIOD_TYPES)}."
    )


def prior_window(period_start: DateLike) -> DateWindow:
    start = to_date(period_start)
    if start is None:
        raise PeriodSelectionError(f"Unresolvable period start: {period_start!r}")
    return DateWindow(None, start)


def in_period(value: DateLike, period_type: str, reference: DateLike) -> bool:
    return period_window(period_type, reference).contains(value)


def resolve_reference(
    period_type: str,
    reference: DateLike = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
    today: Optional[date] = None,
) -> date:
    """
    Turn a period selector into a reference date.

    Accepts an explicit date (or ISO string), a month index 0-11 with a
    four-digit year, or a year alone. Falls back to `today`.
    """
    if period_type not in PERIOD_TYPES:
        raise PeriodSelectionError(f"Unsupported period type {period_type!r}.")

    if reference is not None:
        resolved = to_date(reference)
        if resolved is None:
            raise PeriodSelectionError(f"Unresolvable reference date: {reference!r}")
        return resolved

    if year is not None and not 1000 <= int(year) <= 9999:
        raise PeriodSelectionError(f"Year must have four digits, got {year!r}.")
    if month is not None and not 0 <= int(month) <= 11:
        raise PeriodSelectionError(f"Month index must be within 0-11, got {month!r}.")

    base = today or date.today()
    if month is not None:
        return date(int(year) if year is not None else base.year, int(month) + 1, 1)
    if year is not None:
        if period_type == "year":
            return date(int(year), 1, 1)
        return date(int(year), base.month, 1 if period_type == "month" else _clamp_day(int(year), base))
    return base


def _clamp_day(year: int, base: date) -> int:
    if base.month == 2 and base.day == 29:
        try:
            date(year, 2, 29)
        except ValueError:
            return 28
    return base.day

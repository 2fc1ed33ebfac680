from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from clinic_ledger.aggregation import SOURCE_LEDGERS, PeriodAggregator, ensure_ledger
from clinic_ledger.classifiers import EXCLUDED, MEDICINE_SALES, CategoryClassifier, Rulebook
from clinic_ledger.core import ZERO, money, to_amount, to_date, total
from clinic_ledger.models import DateLike, Invoice, LedgerSnapshot
from clinic_ledger.periods import PeriodSelectionError, period_window

# Dues at or below this amount are not listed as outstanding.
DUE_THRESHOLD = Decimal("1")


@dataclass(frozen=True)
class DailyLedgerRow:
    day: date
    collection: Decimal
    due_recovery: Decimal
    day_total: Decimal
    upto_total: Decimal
    expense: Decimal
    upto_expense: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {
            "day": self.day.isoformat(),
            "collection": str(money(self.collection)),
            "due_recovery": str(money(self.due_recovery)),
            "day_total": str(money(self.day_total)),
            "upto_total": str(money(self.upto_total)),
            "expense": str(money(self.expense)),
            "upto_expense": str(money(self.upto_expense)),
        }


def month_days(year: int, month_index: int) -> List[date]:
    if not 0 <= month_index <= 11:
        raise PeriodSelectionError(f"Month index must be within 0-11, got {month_index!r}.")
    month = month_index + 1
    return [date(year, month, day) for day in range(1, calendar.monthrange(year, month)[1] + 1)]


def daily_ledger_rows(
    snapshot: LedgerSnapshot,
    ledger: str,
    year: int,
    month_index: int,
    rulebook: Optional[Rulebook] = None,
) -> List[DailyLedgerRow]:
    """One row per calendar day of the month with running totals."""
    ensure_ledger(ledger)
    aggregator = PeriodAggregator(CategoryClassifier(rulebook))
    rows: List[DailyLedgerRow] = []
    upto_total = upto_expense = ZERO
    for day in month_days(year, month_index):
        buckets = aggregator.aggregate_window(snapshot, ledger, period_window("day", day))
        collection = total(buckets.collection.values())
        upto_total += buckets.total_collection
        upto_expense += buckets.total_expense
        rows.append(
            DailyLedgerRow(
                day=day,
                collection=collection,
                due_recovery=buckets.due_recovery,
                day_total=buckets.total_collection,
                upto_total=upto_total,
                expense=buckets.total_expense,
                upto_expense=upto_expense,
            )
        )
    return rows


def expense_sheet(
    snapshot: LedgerSnapshot,
    year: int,
    month_index: int,
    ledger: str = "consolidated",
    rulebook: Optional[Rulebook] = None,
) -> Dict[str, object]:
    """Day by expense-category matrix for one month."""
    ensure_ledger(ledger)
    aggregator = PeriodAggregator(CategoryClassifier(rulebook))
    categories = list(aggregator.expense_tags(ledger))
    column_totals = {category: ZERO for category in categories}

    rows: List[Dict[str, object]] = []
    for day in month_days(year, month_index):
        expense = aggregator.aggregate_window(snapshot, ledger, period_window("day", day)).expense
        cells = {category: expense.get(category, ZERO) for category in categories}
        for category, amount in cells.items():
            column_totals[category] += amount
        rows.append({"day": day.isoformat(), "cells": cells, "total": total(cells.values())})

    return {
        "ledger": ledger,
        "categories": categories,
        "rows": rows,
        "column_totals": column_totals,
        "grand_total": total(column_totals.values()),
    }


def category_invoice_counts(
    snapshot: LedgerSnapshot,
    ledger: str,
    period_type: str,
    reference: DateLike,
    rulebook: Optional[Rulebook] = None,
) -> Dict[str, int]:
    """
    Number of non-void invoices touching each collection category.

    An invoice with lines in several categories counts once in each of them;
    one without any classifiable line counts under the ledger's catch-all.
    Indoor invoices carrying medicine lines also count as pharmacy sales.
    """
    ensure_ledger(ledger)
    window = period_window(period_type, reference)
    aggregator = PeriodAggregator(CategoryClassifier(rulebook))
    consolidated = ledger == "consolidated"

    counts: Dict[str, int] = {}
    for part in SOURCE_LEDGERS if consolidated else (ledger,):
        prefix = f"{part}." if consolidated else ""
        for tag in aggregator.collection_tags(part):
            counts[prefix + tag] = 0
        for invoice in aggregator.revenue_invoices(snapshot, part):
            if invoice.is_void or not window.contains(invoice.invoice_date):
                continue
            tags = {aggregator.classifier.classify(line, invoice) for line in invoice.items}
            tags.discard(EXCLUDED)
            if not tags:
                tags = {aggregator.netter.fallback_tag(invoice)}
            for tag in tags:
                counts[prefix + tag] = counts.get(prefix + tag, 0) + 1
        if part == "pharmacy":
            counts[prefix + MEDICINE_SALES] += sum(
                1
                for invoice in snapshot.indoor_invoices
                if window.contains(invoice.invoice_date) and aggregator.netter.indoor_medicine(invoice) > 0
            )
    return counts


def outstanding_dues(
    snapshot: LedgerSnapshot,
    ledger: str,
    threshold: Decimal = DUE_THRESHOLD,
) -> List[Invoice]:
    """Non-void invoices still owing more than `threshold`, newest first; undated ones go last."""
    ensure_ledger(ledger)
    parts = SOURCE_LEDGERS if ledger == "consolidated" else (ledger,)
    owing = [
        invoice
        for part in parts
        for invoice in PeriodAggregator.revenue_invoices(snapshot, part)
        if not invoice.is_void and to_amount(invoice.due_amount) > threshold
    ]
    dated = sorted(
        (invoice for invoice in owing if to_date(invoice.invoice_date) is not None),
        key=lambda invoice: to_date(invoice.invoice_date),
        reverse=True,
    )
    return dated + [invoice for invoice in owing if to_date(invoice.invoice_date) is None]

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional

from clinic_ledger.classifiers import CategoryClassifier, Rulebook
from clinic_ledger.core import money, to_amount, to_date, total, utc_now
from clinic_ledger.distribution import allocate_profit
from clinic_ledger.models import AmountLike, DateLike, InvoiceLineItem
from clinic_ledger.reports import category_invoice_counts, daily_ledger_rows, expense_sheet, outstanding_dues
from clinic_ledger.repositories import SnapshotRepository
from clinic_ledger.summary import SummaryComposer

logger = logging.getLogger(__name__)


class StatementService:
    """Composes statements, distributions and reports from a fresh snapshot on every call."""

    def __init__(self, repository: SnapshotRepository, rulebook: Optional[Rulebook] = None):
        self.repository = repository
        self.rulebook = rulebook or Rulebook()
        self.classifier = CategoryClassifier(self.rulebook)
        self.composer = SummaryComposer(self.rulebook)

    def statement(
        self,
        ledger: str,
        period_type: str,
        reference: DateLike,
        distributable: AmountLike = 0,
        inventory_value: AmountLike = 0,
        manual_loan_installment: AmountLike = 0,
        house_rent_deduction: AmountLike = 0,
    ) -> Dict[str, object]:
        snapshot = self.repository.load_snapshot()
        statement = self.composer.compose(
            snapshot,
            ledger,
            period_type,
            reference,
            distributable=distributable,
            inventory_value=inventory_value,
            manual_loan_installment=manual_loan_installment,
            house_rent_deduction=house_rent_deduction,
        )
        logger.info(
            "Composed %s %s statement for %s: net_balance=%s",
            ledger,
            period_type,
            statement.window.label(),
            money(statement.net_balance),
        )
        payload = statement.to_dict()
        payload["generated_at"] = utc_now()
        return payload

    def distribution(self, amount: AmountLike) -> Dict[str, object]:
        snapshot = self.repository.load_snapshot()
        result = allocate_profit(amount, snapshot.shareholders)
        logger.info("Distributing %s over %s shares", money(result.amount), result.total_shares)
        return {
            "amount": str(money(result.amount)),
            "total_shares": str(result.total_shares),
            "per_share": str(money(result.per_share)),
            "rows": [
                {
                    "shareholder_id": row.shareholder_id,
                    "name": row.name,
                    "shares": str(row.shares),
                    "payout": str(money(row.payout)),
                }
                for row in result.rows
            ],
        }

    def classify_label(
        self,
        kind: str,
        label: str,
        service_category: Optional[str] = None,
        sub_category: Optional[str] = None,
        is_clinic_fund: bool = True,
    ) -> str:
        if kind == "expense":
            return self.classifier.classify_expense(label)
        if kind == "test":
            return self.classifier.classify_test(label)
        if kind == "service":
            line = InvoiceLineItem(label=label, is_clinic_fund=is_clinic_fund)
            return self.classifier.classify_service_line(line, service_category, sub_category)
        raise ValueError(f"Unsupported classification kind {kind!r}; expected expense, test or service.")

    def daily_report(self, ledger: str, year: int, month_index: int) -> Dict[str, Any]:
        snapshot = self.repository.load_snapshot()
        rows = daily_ledger_rows(snapshot, ledger, year, month_index, rulebook=self.rulebook)
        return {
            "ledger": ledger,
            "year": year,
            "month_index": month_index,
            "rows": [row.to_dict() for row in rows],
        }

    def expense_sheet(self, year: int, month_index: int, ledger: str = "consolidated") -> Dict[str, Any]:
        snapshot = self.repository.load_snapshot()
        sheet = expense_sheet(snapshot, year, month_index, ledger=ledger, rulebook=self.rulebook)
        return {
            "ledger": sheet["ledger"],
            "categories": sheet["categories"],
            "rows": [
                {
                    "day": row["day"],
                    "cells": {k: str(money(v)) for k, v in row["cells"].items()},
                    "total": str(money(row["total"])),
                }
                for row in sheet["rows"]
            ],
            "column_totals": {k: str(money(v)) for k, v in sheet["column_totals"].items()},
            "grand_total": str(money(sheet["grand_total"])),
        }

    def category_counts(self, ledger: str, period_type: str, reference: DateLike) -> Dict[str, int]:
        snapshot = self.repository.load_snapshot()
        return category_invoice_counts(snapshot, ledger, period_type, reference, rulebook=self.rulebook)

    def outstanding_dues(self, ledger: str) -> Dict[str, Any]:
        snapshot = self.repository.load_snapshot()
        invoices = outstanding_dues(snapshot, ledger)
        owed = total(to_amount(invoice.due_amount) for invoice in invoices)
        logger.info("%d %s invoices still owe %s", len(invoices), ledger, money(owed))
        return {
            "ledger": ledger,
            "total_due": str(money(owed)),
            "invoices": [
                {
                    "invoice_id": invoice.invoice_id,
                    "kind": invoice.kind,
                    "invoice_date": _iso(to_date(invoice.invoice_date)),
                    "total": str(money(to_amount(invoice.total))),
                    "paid_amount": str(money(to_amount(invoice.paid_amount))),
                    "due_amount": str(money(to_amount(invoice.due_amount))),
                }
                for invoice in invoices
            ],
        }


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None

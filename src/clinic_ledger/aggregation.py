from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, Optional, Tuple

from clinic_ledger.classifiers import MEDICINE_PURCHASE, MEDICINE_SALES, CategoryClassifier, Rulebook
from clinic_ledger.commission import CommissionNetter
from clinic_ledger.core import ZERO, to_amount, total
from clinic_ledger.loans import LoanLedger
from clinic_ledger.models import LEDGERS, DateLike, Invoice, LedgerSnapshot, normalize_status
from clinic_ledger.periods import DateWindow, period_window

logger = logging.getLogger(__name__)

SOURCE_LEDGERS: Tuple[str, ...] = ("diagnostic", "clinic", "pharmacy")
LOAN_BEARING_LEDGERS = frozenset({"consolidated"})
UNPOSTED_PURCHASE_STATUSES = frozenset({"initial"})
COMPANY = "company"


class UnknownLedgerError(ValueError):
    """Raised when a caller names a ledger the engine does not keep."""


@dataclass(frozen=True)
class PeriodBuckets:
    ledger: str
    window: DateWindow
    collection: Dict[str, Decimal] = field(default_factory=dict)
    due_recovery: Decimal = ZERO
    expense: Dict[str, Decimal] = field(default_factory=dict)
    loan_repayment: Decimal = ZERO
    gross_paid: Decimal = ZERO
    commission_paid: Decimal = ZERO
    pass_through_fees: Decimal = ZERO
    agreed_commission: Decimal = ZERO

    @property
    def total_collection(self) -> Decimal:
        return total(self.collection.values()) + self.due_recovery

    @property
    def total_expense(self) -> Decimal:
        return total(self.expense.values()) + self.loan_repayment

    @property
    def net_balance(self) -> Decimal:
        return self.total_collection - self.total_expense


def ensure_ledger(ledger: str) -> None:
    if ledger not in LEDGERS:
        raise UnknownLedgerError(f"Unknown ledger {ledger!r}; expected one of {', '.join(LEDGERS)}.")


class PeriodAggregator:
    """Walks one snapshot through classification and netting for a date window."""

    def __init__(self, classifier: Optional[CategoryClassifier] = None) -> None:
        self.classifier = classifier or CategoryClassifier()
        self.netter = CommissionNetter(self.classifier)

    def aggregate(
        self,
        snapshot: LedgerSnapshot,
        period_type: str,
        reference: DateLike,
        ledger: str = "consolidated",
    ) -> PeriodBuckets:
        ensure_ledger(ledger)
        return self.aggregate_window(snapshot, ledger, period_window(period_type, reference))

    def aggregate_window(self, snapshot: LedgerSnapshot, ledger: str, window: DateWindow) -> PeriodBuckets:
        ensure_ledger(ledger)
        consolidated = ledger == "consolidated"
        parts = SOURCE_LEDGERS if consolidated else (ledger,)

        collection: Dict[str, Decimal] = {}
        gross_paid = commission = fees = agreed = ZERO
        for part in parts:
            prefix = f"{part}." if consolidated else ""
            for tag in self.collection_tags(part):
                collection[prefix + tag] = ZERO
            for invoice in self.revenue_invoices(snapshot, part):
                if invoice.is_void or not window.contains(invoice.invoice_date):
                    continue
                result = self.netter.breakdown(invoice)
                for tag, amount in result.by_category.items():
                    collection[prefix + tag] = collection.get(prefix + tag, ZERO) + amount
                gross_paid += result.paid
                commission += result.commission
                fees += result.pass_through
                agreed += result.agreed_commission
            if part == "pharmacy":
                collection[prefix + MEDICINE_SALES] += self._indoor_medicine_sales(snapshot, window)

        if consolidated:
            collection[COMPANY] = total(
                to_amount(entry.amount) for entry in snapshot.company_collections if window.contains(entry.date)
            )

        due_recovery = total(
            to_amount(dc.amount_collected)
            for dc in snapshot.due_collections
            if window.contains(dc.collection_date) and self._due_belongs_to(ledger, dc.invoice_id)
        )

        expense = self._expenses(snapshot, ledger, window)

        loan_repayment = ZERO
        if ledger in LOAN_BEARING_LEDGERS:
            loan_repayment = LoanLedger(snapshot.loans, snapshot.repayments).repaid_in(window)

        buckets = PeriodBuckets(
            ledger=ledger,
            window=window,
            collection=collection,
            due_recovery=due_recovery,
            expense=expense,
            loan_repayment=loan_repayment,
            gross_paid=gross_paid,
            commission_paid=commission,
            pass_through_fees=fees,
            agreed_commission=agreed,
        )
        logger.debug(
            "Aggregated %s over %s: collection=%s expense=%s",
            ledger,
            window.label(),
            buckets.total_collection,
            buckets.total_expense,
        )
        return buckets

    def collection_tags(self, ledger: str) -> Tuple[str, ...]:
        if ledger == "diagnostic":
            return self.classifier.diagnostic_tags()
        if ledger == "clinic":
            return self.classifier.clinic_tags()
        if ledger == "pharmacy":
            return (MEDICINE_SALES,)
        return ()

    def expense_tags(self, ledger: str) -> Tuple[str, ...]:
        if ledger == "pharmacy":
            return (MEDICINE_PURCHASE,)
        if ledger == "consolidated":
            return self.classifier.rulebook.expense_categories + (MEDICINE_PURCHASE,)
        return self.classifier.expense_tags(ledger)

    def _expenses(self, snapshot: LedgerSnapshot, ledger: str, window: DateWindow) -> Dict[str, Decimal]:
        expense = {tag: ZERO for tag in self.expense_tags(ledger)}

        if ledger != "pharmacy":
            scoped = ledger != "consolidated"
            for date_key, item in snapshot.expense_entries():
                if not window.contains(date_key):
                    continue
                if scoped and not self.classifier.expense_in_scope(ledger, item.category):
                    continue
                tag = self.classifier.classify_expense(item.category)
                expense[tag] = expense.get(tag, ZERO) + to_amount(item.paid_amount)

        if MEDICINE_PURCHASE in expense:
            expense[MEDICINE_PURCHASE] = total(
                to_amount(invoice.paid_amount)
                for invoice in snapshot.pharmacy_purchases
                if _purchase_is_posted(invoice) and window.contains(invoice.invoice_date)
            )
        return expense

    def _indoor_medicine_sales(self, snapshot: LedgerSnapshot, window: DateWindow) -> Decimal:
        return total(
            self.netter.indoor_medicine(invoice)
            for invoice in snapshot.indoor_invoices
            if window.contains(invoice.invoice_date)
        )

    def _due_belongs_to(self, ledger: str, invoice_id: str) -> bool:
        if ledger == "consolidated":
            return True
        if ledger == "diagnostic":
            return self.classifier.is_lab_due(invoice_id)
        if ledger == "clinic":
            return not self.classifier.is_lab_due(invoice_id)
        return False

    @staticmethod
    def revenue_invoices(snapshot: LedgerSnapshot, ledger: str) -> Iterable[Invoice]:
        if ledger == "diagnostic":
            return snapshot.lab_invoices
        if ledger == "clinic":
            return snapshot.indoor_invoices
        if ledger == "pharmacy":
            return snapshot.pharmacy_sales
        return ()


def _purchase_is_posted(invoice: Invoice) -> bool:
    return not invoice.is_void and normalize_status(invoice.status) not in UNPOSTED_PURCHASE_STATUSES


def aggregate(
    snapshot: LedgerSnapshot,
    period_type: str,
    reference: DateLike,
    ledger: str = "consolidated",
    rulebook: Optional[Rulebook] = None,
) -> PeriodBuckets:
    return PeriodAggregator(CategoryClassifier(rulebook)).aggregate(snapshot, period_type, reference, ledger)

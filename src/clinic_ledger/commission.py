from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Mapping, Optional

from clinic_ledger.classifiers import (
    EXCLUDED,
    MEDICINE_PURCHASE,
    MEDICINE_SALES,
    OTHERS,
    CategoryClassifier,
)
from clinic_ledger.core import ZERO, to_amount, total
from clinic_ledger.models import Invoice, InvoiceLineItem


@dataclass(frozen=True)
class InvoiceBreakdown:
    invoice_id: str
    paid: Decimal = ZERO
    pass_through: Decimal = ZERO
    commission: Decimal = ZERO
    agreed_commission: Decimal = ZERO
    indoor_medicine: Decimal = ZERO
    net: Decimal = ZERO
    by_category: Dict[str, Decimal] = field(default_factory=dict)


def line_quantity(line: InvoiceLineItem) -> Decimal:
    if line.quantity is None:
        return Decimal("1")
    return to_amount(line.quantity)


def line_gross(line: InvoiceLineItem) -> Decimal:
    if line.payable_amount is not None:
        return to_amount(line.payable_amount)
    return to_amount(line.price) * line_quantity(line)


def commission_paid(invoice: Invoice) -> Decimal:
    if invoice.is_void:
        return ZERO
    return to_amount(invoice.commission_paid)


def allocate(amount: Decimal, weights: Mapping[str, Decimal], fallback: str) -> Dict[str, Decimal]:
    """
    Split `amount` across tags in proportion to their weights.

    The last weighted tag takes the remainder so the parts always sum to
    `amount` exactly. Without any positive weight everything lands on `fallback`.
    """
    positive = {tag: weight for tag, weight in weights.items() if weight > 0}
    if not positive:
        return {fallback: amount} if amount else {}

    weight_total = total(positive.values())
    tags = list(positive)
    shares: Dict[str, Decimal] = {}
    allocated = ZERO
    for tag in tags[:-1]:
        share = amount * positive[tag] / weight_total
        shares[tag] = share
        allocated += share
    shares[tags[-1]] = amount - allocated
    return shares


class CommissionNetter:
    def __init__(self, classifier: Optional[CategoryClassifier] = None) -> None:
        self.classifier = classifier or CategoryClassifier()

    def fallback_tag(self, invoice: Invoice) -> str:
        if invoice.kind == "lab":
            return self.classifier.rulebook.test_fallback
        if invoice.kind == "indoor":
            return OTHERS
        if invoice.kind == "pharmacy_sale":
            return MEDICINE_SALES
        return MEDICINE_PURCHASE

    def line_pass_through(self, invoice: Invoice, line: InvoiceLineItem) -> Decimal:
        if invoice.kind == "indoor":
            if self.classifier.is_indoor_medicine(line):
                return ZERO
            # Indoor lines outside the clinic fund are owed to doctors in full.
            if not line.is_clinic_fund:
                return line_gross(line)
        return to_amount(line.pass_through_fee) * line_quantity(line)

    def pass_through_fees(self, invoice: Invoice) -> Decimal:
        if invoice.is_void:
            return ZERO
        return total(self.line_pass_through(invoice, line) for line in invoice.items)

    def indoor_medicine(self, invoice: Invoice) -> Decimal:
        """Billed value of the medicine lines on an indoor invoice; it belongs to the pharmacy ledger."""
        if invoice.is_void or invoice.kind != "indoor":
            return ZERO
        return total(line_gross(line) for line in invoice.items if self.classifier.is_indoor_medicine(line))

    def net_commission(self, invoice: Invoice) -> Decimal:
        """Institutional cash an invoice brought in: paid minus pass-through fees, indoor medicine and paid commission."""
        if invoice.is_void:
            return ZERO
        return (
            to_amount(invoice.paid_amount)
            - self.pass_through_fees(invoice)
            - self.indoor_medicine(invoice)
            - commission_paid(invoice)
        )

    def breakdown(self, invoice: Invoice) -> InvoiceBreakdown:
        if invoice.is_void:
            return InvoiceBreakdown(invoice_id=invoice.invoice_id)

        paid = to_amount(invoice.paid_amount)
        fees = self.pass_through_fees(invoice)
        medicine = self.indoor_medicine(invoice)
        commission = commission_paid(invoice)
        net = paid - fees - medicine - commission

        weights: Dict[str, Decimal] = {}
        for line in invoice.items:
            tag = self.classifier.classify(line, invoice)
            if tag == EXCLUDED:
                continue
            weights[tag] = weights.get(tag, ZERO) + line_gross(line)

        return InvoiceBreakdown(
            invoice_id=invoice.invoice_id,
            paid=paid,
            pass_through=fees,
            commission=commission,
            agreed_commission=to_amount(invoice.special_commission),
            indoor_medicine=medicine,
            net=net,
            by_category=allocate(net, weights, self.fallback_tag(invoice)),
        )


_default_netter = CommissionNetter()


def pass_through_fees(invoice: Invoice) -> Decimal:
    return _default_netter.pass_through_fees(invoice)


def net_commission(invoice: Invoice) -> Decimal:
    return _default_netter.net_commission(invoice)


def breakdown(invoice: Invoice) -> InvoiceBreakdown:
    return _default_netter.breakdown(invoice)

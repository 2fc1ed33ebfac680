"""
Wire schemas for the clinic application's state document.

Record shapes follow the keys the front office stores (`invoice_id`,
`usg_exam_charge`, `isClinicFund`, `detailedExpenses`, ...). Validation is
lenient: amounts go through `to_amount` and dates through `to_date`, so a
malformed figure becomes zero or an out-of-window date instead of an error.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Set

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from clinic_ledger.core import to_amount, to_date
from clinic_ledger.models import (
    CompanyCollection,
    DueCollection,
    ExpenseItem,
    Invoice,
    InvoiceLineItem,
    LedgerSnapshot,
    Loan,
    Repayment,
    Shareholder,
)

logger = logging.getLogger(__name__)


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


def _quantity(value: Any) -> Decimal:
    return Decimal("1") if value is None or value == "" else to_amount(value)


# -----------------------------
# Diagnostic
# -----------------------------


class LabInvoiceItemIn(WireModel):
    test_name: str = ""
    price: Decimal = Decimal("0")
    quantity: Decimal = Decimal("1")
    usg_exam_charge: Decimal = Decimal("0")

    @field_validator("price", "usg_exam_charge", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_amount(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, value: Any) -> Decimal:
        return _quantity(value)

    @field_validator("test_name", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    def to_domain(self) -> InvoiceLineItem:
        return InvoiceLineItem(
            label=self.test_name,
            price=self.price,
            quantity=self.quantity,
            pass_through_fee=self.usg_exam_charge,
        )


class LabInvoiceIn(WireModel):
    invoice_id: str = ""
    invoice_date: Optional[date] = None
    items: List[LabInvoiceItemIn] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    due_amount: Decimal = Decimal("0")
    status: str = "Paid"
    commission_paid: Decimal = Decimal("0")
    special_commission: Decimal = Decimal("0")

    @field_validator(
        "total_amount", "discount_amount", "paid_amount", "due_amount",
        "commission_paid", "special_commission", mode="before",
    )
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_amount(value)

    @field_validator("invoice_date", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Optional[date]:
        return to_date(value)

    @field_validator("invoice_id", "status", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    def to_domain(self) -> Invoice:
        return Invoice(
            invoice_id=self.invoice_id,
            kind="lab",
            invoice_date=self.invoice_date,
            items=tuple(item.to_domain() for item in self.items),
            total=self.total_amount,
            discount=self.discount_amount,
            paid_amount=self.paid_amount,
            due_amount=self.due_amount,
            status=self.status,
            commission_paid=self.commission_paid,
            special_commission=self.special_commission,
        )


# -----------------------------
# Clinic (indoor)
# -----------------------------


class ServiceItemIn(WireModel):
    service_type: str = ""
    service_charge: Decimal = Decimal("0")
    quantity: Decimal = Decimal("1")
    payable_amount: Optional[Decimal] = None
    is_clinic_fund: bool = Field(default=False, alias="isClinicFund")

    @field_validator("service_charge", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_amount(value)

    @field_validator("payable_amount", mode="before")
    @classmethod
    def coerce_override(cls, value: Any) -> Optional[Decimal]:
        if value is None:
            return None
        return to_amount(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, value: Any) -> Decimal:
        return _quantity(value)

    @field_validator("is_clinic_fund", mode="before")
    @classmethod
    def coerce_flag(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("service_type", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    def to_domain(self) -> InvoiceLineItem:
        return InvoiceLineItem(
            label=self.service_type,
            price=self.service_charge,
            quantity=self.quantity,
            payable_amount=self.payable_amount,
            is_clinic_fund=self.is_clinic_fund,
        )


class IndoorInvoiceIn(WireModel):
    invoice_id: str = Field(default="", validation_alias=AliasChoices("daily_id", "invoice_id"))
    invoice_date: Optional[date] = None
    service_category: str = Field(default="", alias="serviceCategory")
    sub_category: str = Field(default="", alias="subCategory")
    items: List[ServiceItemIn] = Field(default_factory=list)
    total_bill: Decimal = Decimal("0")
    total_discount: Decimal = Decimal("0")
    paid_amount: Decimal = Decimal("0")
    due_bill: Decimal = Decimal("0")
    status: str = "Paid"
    commission_paid: Decimal = Decimal("0")
    special_commission: Decimal = Decimal("0")

    @field_validator(
        "total_bill", "total_discount", "paid_amount", "due_bill",
        "commission_paid", "special_commission", mode="before",
    )
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_amount(value)

    @field_validator("invoice_date", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Optional[date]:
        return to_date(value)

    @field_validator("invoice_id", "service_category", "sub_category", "status", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    def to_domain(self) -> Invoice:
        return Invoice(
            invoice_id=self.invoice_id,
            kind="indoor",
            invoice_date=self.invoice_date,
            items=tuple(item.to_domain() for item in self.items),
            total=self.total_bill,
            discount=self.total_discount,
            paid_amount=self.paid_amount,
            due_amount=self.due_bill,
            status=self.status,
            commission_paid=self.commission_paid,
            special_commission=self.special_commission,
            service_category=self.service_category or None,
            sub_category=self.sub_category or None,
        )


# -----------------------------
# Pharmacy
# -----------------------------


class MedicineLineIn(WireModel):
    trade_name: str = Field(default="", alias="tradeName")
    unit_price: Decimal = Field(
        default=Decimal("0"), validation_alias=AliasChoices("unitPriceSell", "unitPriceBuy", "unit_price")
    )
    quantity: Decimal = Field(
        default=Decimal("1"), validation_alias=AliasChoices("qtySelling", "qtyBuying", "quantity")
    )
    line_total: Optional[Decimal] = Field(
        default=None, validation_alias=AliasChoices("lineTotalSell", "lineTotalBuy", "line_total")
    )

    @field_validator("unit_price", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_amount(value)

    @field_validator("line_total", mode="before")
    @classmethod
    def coerce_override(cls, value: Any) -> Optional[Decimal]:
        if value is None:
            return None
        return to_amount(value)

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, value: Any) -> Decimal:
        return _quantity(value)

    @field_validator("trade_name", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    def to_domain(self) -> InvoiceLineItem:
        return InvoiceLineItem(
            label=self.trade_name,
            price=self.unit_price,
            quantity=self.quantity,
            payable_amount=self.line_total,
        )


class PharmacyInvoiceIn(WireModel):
    invoice_id: str = Field(default="", alias="invoiceId")
    invoice_date: Optional[date] = Field(default=None, alias="invoiceDate")
    items: List[MedicineLineIn] = Field(default_factory=list)
    total_amount: Decimal = Field(default=Decimal("0"), alias="totalAmount")
    discount: Decimal = Decimal("0")
    paid_amount: Decimal = Field(default=Decimal("0"), alias="paidAmount")
    due_amount: Decimal = Field(default=Decimal("0"), alias="dueAmount")
    status: str = "Posted"

    @field_validator("total_amount", "discount", "paid_amount", "due_amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_amount(value)

    @field_validator("invoice_date", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Optional[date]:
        return to_date(value)

    @field_validator("invoice_id", "status", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    def to_domain(self, kind: str) -> Invoice:
        return Invoice(
            invoice_id=self.invoice_id,
            kind=kind,
            invoice_date=self.invoice_date,
            items=tuple(item.to_domain() for item in self.items),
            total=self.total_amount,
            discount=self.discount,
            paid_amount=self.paid_amount,
            due_amount=self.due_amount,
            status=self.status,
        )


# -----------------------------
# Cash book, dues, loans, shareholders
# -----------------------------


class ExpenseItemIn(WireModel):
    category: str = ""
    sub_category: str = Field(default="", alias="subCategory")
    description: str = ""
    bill_amount: Decimal = Field(default=Decimal("0"), alias="billAmount")
    paid_amount: Decimal = Field(default=Decimal("0"), alias="paidAmount")

    @field_validator("bill_amount", "paid_amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_amount(value)

    @field_validator("category", "sub_category", "description", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    def to_domain(self) -> ExpenseItem:
        return ExpenseItem(
            category=self.category,
            paid_amount=self.paid_amount,
            bill_amount=self.bill_amount,
            sub_category=self.sub_category or None,
            description=self.description,
        )


class DueCollectionIn(WireModel):
    collection_id: str = ""
    invoice_id: str = ""
    amount_collected: Decimal = Decimal("0")
    collection_date: Optional[date] = None

    @field_validator("amount_collected", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_amount(value)

    @field_validator("collection_date", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Optional[date]:
        return to_date(value)

    @field_validator("collection_id", "invoice_id", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    def to_domain(self) -> DueCollection:
        return DueCollection(
            collection_id=self.collection_id,
            invoice_id=self.invoice_id,
            amount_collected=self.amount_collected,
            collection_date=self.collection_date,
        )


class DatedAmountIn(WireModel):
    id: str = ""
    amount: Decimal = Decimal("0")
    entry_date: Optional[date] = Field(default=None, alias="date")

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_amount(value)

    @field_validator("entry_date", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Optional[date]:
        return to_date(value)

    @field_validator("id", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)


class LoanIn(DatedAmountIn):
    source: str = ""
    type: str = ""

    def to_domain(self) -> Loan:
        return Loan(loan_id=self.id, amount=self.amount, date=self.entry_date, source=self.source, loan_type=self.type)


class RepaymentIn(DatedAmountIn):
    loan_id: str = Field(default="", alias="loanId")
    type: str = "Installment"

    def to_domain(self) -> Repayment:
        return Repayment(
            repayment_id=self.id,
            loan_id=self.loan_id,
            amount=self.amount,
            date=self.entry_date,
            repayment_type=self.type,
        )


class CompanyCollectionIn(DatedAmountIn):
    company_name: str = Field(default="", alias="companyName")

    def to_domain(self) -> CompanyCollection:
        return CompanyCollection(
            collection_id=self.id,
            company_name=self.company_name,
            amount=self.amount,
            date=self.entry_date,
        )


class ShareholderIn(WireModel):
    id: str = ""
    name: str = ""
    shares: Decimal = Decimal("0")
    description: str = ""

    @field_validator("shares", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        return to_amount(value)

    @field_validator("id", "name", "description", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> str:
        return _as_text(value)

    def to_domain(self, shareholder_id: Optional[str] = None) -> Shareholder:
        return Shareholder(
            shareholder_id=self.id if shareholder_id is None else shareholder_id,
            name=self.name,
            shares=self.shares,
            description=self.description,
        )


def unique_shareholder_ids(shareholders: List[ShareholderIn]) -> List[str]:
    """
    One distinct id per shareholder row, in order.

    A missing id becomes the 1-based position; a repeated one gets the
    position appended, so payouts keyed by id never overwrite each other.
    """
    seen: Set[str] = set()
    ids: List[str] = []
    for position, holder in enumerate(shareholders, start=1):
        candidate = holder.id.strip() or str(position)
        while candidate in seen:
            candidate = f"{candidate}-{position}"
        if candidate != holder.id:
            logger.warning("Shareholder %r at position %d stored with id %r", holder.name, position, candidate)
        seen.add(candidate)
        ids.append(candidate)
    return ids


# -----------------------------
# State document
# -----------------------------


class StateDocument(WireModel):
    lab_invoices: List[LabInvoiceIn] = Field(default_factory=list, alias="labInvoices")
    indoor_invoices: List[IndoorInvoiceIn] = Field(default_factory=list, alias="indoorInvoices")
    sales_invoices: List[PharmacyInvoiceIn] = Field(default_factory=list, alias="salesInvoices")
    purchase_invoices: List[PharmacyInvoiceIn] = Field(default_factory=list, alias="purchaseInvoices")
    detailed_expenses: Dict[str, List[ExpenseItemIn]] = Field(default_factory=dict, alias="detailedExpenses")
    due_collections: List[DueCollectionIn] = Field(default_factory=list, alias="dueCollections")
    loans: List[LoanIn] = Field(default_factory=list)
    repayments: List[RepaymentIn] = Field(
        default_factory=list, validation_alias=AliasChoices("repayments", "loanRepayments")
    )
    shareholders: List[ShareholderIn] = Field(default_factory=list)
    company_collections: List[CompanyCollectionIn] = Field(default_factory=list, alias="companyCollections")

    @field_validator(
        "lab_invoices", "indoor_invoices", "sales_invoices", "purchase_invoices",
        "due_collections", "loans", "repayments", "shareholders", "company_collections",
        mode="before",
    )
    @classmethod
    def coerce_list(cls, value: Any) -> Any:
        return value or []

    @field_validator("detailed_expenses", mode="before")
    @classmethod
    def coerce_book(cls, value: Any) -> Any:
        return value or {}

    def to_domain(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            lab_invoices=tuple(inv.to_domain() for inv in self.lab_invoices),
            indoor_invoices=tuple(inv.to_domain() for inv in self.indoor_invoices),
            pharmacy_sales=tuple(inv.to_domain("pharmacy_sale") for inv in self.sales_invoices),
            pharmacy_purchases=tuple(inv.to_domain("pharmacy_purchase") for inv in self.purchase_invoices),
            expenses={
                date_key: tuple(item.to_domain() for item in items)
                for date_key, items in self.detailed_expenses.items()
            },
            due_collections=tuple(dc.to_domain() for dc in self.due_collections),
            loans=tuple(loan.to_domain() for loan in self.loans),
            repayments=tuple(r.to_domain() for r in self.repayments),
            shareholders=tuple(
                holder.to_domain(shareholder_id)
                for holder, shareholder_id in zip(self.shareholders, unique_shareholder_ids(self.shareholders))
            ),
            company_collections=tuple(c.to_domain() for c in self.company_collections),
        )


def snapshot_from_state(state: Optional[Mapping[str, Any]]) -> LedgerSnapshot:
    return StateDocument.model_validate(dict(state or {})).to_domain()

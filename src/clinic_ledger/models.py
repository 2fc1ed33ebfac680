from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Iterator, Literal, Mapping, Optional, Sequence, Tuple, Union

InvoiceKind = Literal["lab", "indoor", "pharmacy_sale", "pharmacy_purchase"]

DateLike = Union[date, datetime, str, None]
AmountLike = Union[Decimal, int, float, str, None]

LEDGERS: Tuple[str, ...] = ("diagnostic", "clinic", "pharmacy", "consolidated")

VOID_STATUSES = frozenset({"cancelled", "returned"})


def normalize_status(status: Optional[str]) -> str:
    return "".join((status or "").split()).lower()


@dataclass(frozen=True)
class InvoiceLineItem:
    label: str
    price: AmountLike = Decimal("0")
    quantity: AmountLike = Decimal("1")
    payable_amount: AmountLike = None
    pass_through_fee: AmountLike = Decimal("0")
    is_clinic_fund: Optional[bool] = None
    service_category: Optional[str] = None


@dataclass(frozen=True)
class Invoice:
    invoice_id: str
    kind: InvoiceKind
    invoice_date: DateLike
    items: Tuple[InvoiceLineItem, ...] = ()
    total: AmountLike = Decimal("0")
    discount: AmountLike = Decimal("0")
    paid_amount: AmountLike = Decimal("0")
    due_amount: AmountLike = Decimal("0")
    status: str = "Paid"
    commission_paid: AmountLike = Decimal("0")
    special_commission: AmountLike = Decimal("0")
    service_category: Optional[str] = None
    sub_category: Optional[str] = None

    @property
    def is_void(self) -> bool:
        return normalize_status(self.status) in VOID_STATUSES


@dataclass(frozen=True)
class ExpenseItem:
    category: str
    paid_amount: AmountLike = Decimal("0")
    bill_amount: AmountLike = Decimal("0")
    sub_category: Optional[str] = None
    description: str = ""


@dataclass(frozen=True)
class DueCollection:
    collection_id: str
    invoice_id: str
    amount_collected: AmountLike
    collection_date: DateLike


@dataclass(frozen=True)
class Loan:
    loan_id: str
    amount: AmountLike
    date: DateLike
    source: str = ""
    loan_type: str = ""


@dataclass(frozen=True)
class Repayment:
    repayment_id: str
    loan_id: str
    amount: AmountLike
    date: DateLike
    repayment_type: str = "Installment"


@dataclass(frozen=True)
class Shareholder:
    shareholder_id: str
    name: str
    shares: AmountLike
    description: str = ""


@dataclass(frozen=True)
class CompanyCollection:
    collection_id: str
    company_name: str
    amount: AmountLike
    date: DateLike


ExpenseBook = Mapping[str, Sequence[ExpenseItem]]


@dataclass(frozen=True)
class LedgerSnapshot:
    """Read-only view of every record one computation needs."""

    lab_invoices: Tuple[Invoice, ...] = ()
    indoor_invoices: Tuple[Invoice, ...] = ()
    pharmacy_sales: Tuple[Invoice, ...] = ()
    pharmacy_purchases: Tuple[Invoice, ...] = ()
    expenses: ExpenseBook = field(default_factory=dict)
    due_collections: Tuple[DueCollection, ...] = ()
    loans: Tuple[Loan, ...] = ()
    repayments: Tuple[Repayment, ...] = ()
    shareholders: Tuple[Shareholder, ...] = ()
    company_collections: Tuple[CompanyCollection, ...] = ()

    def expense_entries(self) -> Iterator[Tuple[str, ExpenseItem]]:
        for date_key, items in self.expenses.items():
            for item in items:
                yield date_key, item

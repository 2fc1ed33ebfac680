from datetime import date
from decimal import Decimal

import pytest

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


def lab_invoice(invoice_id, invoice_date, lines, paid, commission=0, status="Paid", special=0):
    return Invoice(
        invoice_id=invoice_id,
        kind="lab",
        invoice_date=invoice_date,
        items=tuple(lines),
        total=sum((Decimal(str(line.price)) for line in lines), Decimal("0")),
        paid_amount=Decimal(str(paid)),
        status=status,
        commission_paid=Decimal(str(commission)),
        special_commission=Decimal(str(special)),
    )


def lab_line(name, price, fee=0, quantity=1):
    return InvoiceLineItem(label=name, price=Decimal(str(price)), quantity=quantity, pass_through_fee=Decimal(str(fee)))


def service_line(name, payable, fund=True):
    return InvoiceLineItem(label=name, payable_amount=Decimal(str(payable)), is_clinic_fund=fund)


@pytest.fixture
def march_snapshot():
    """A month of activity across every ledger, plus some February history."""
    return LedgerSnapshot(
        lab_invoices=(
            lab_invoice("INV-1", "2025-03-04", [lab_line("USG Whole Abdomen", 1000, fee=100)], paid=800, commission=50),
            lab_invoice("INV-2", "2025-03-10", [lab_line("CBC", 500)], paid=500),
            lab_invoice("INV-3", "2025-03-11", [lab_line("Chest X-Ray", 700)], paid=700, status="Cancelled"),
            lab_invoice("INV-0", "2025-02-20", [lab_line("CBC", 300)], paid=300),
        ),
        indoor_invoices=(
            Invoice(
                invoice_id="IND-1",
                kind="indoor",
                invoice_date="05/03/2025",
                items=(service_line("OT Charge", 6000), service_line("Surgeon Fee", 4000, fund=False)),
                paid_amount=Decimal("10000"),
                service_category="Operation",
                sub_category="LSCS",
            ),
            Invoice(
                invoice_id="IND-2",
                kind="indoor",
                invoice_date="2025-03-06T09:30:00.000Z",
                items=(service_line("Admission Fee", 500),),
                paid_amount=Decimal("500"),
                service_category="Conservative treatment",
            ),
        ),
        pharmacy_sales=(
            Invoice(invoice_id="S-1", kind="pharmacy_sale", invoice_date="2025-03-07", paid_amount=Decimal("1200"), status="Posted"),
        ),
        pharmacy_purchases=(
            Invoice(invoice_id="P-1", kind="pharmacy_purchase", invoice_date="2025-03-07", paid_amount=Decimal("700"), status="Posted"),
            Invoice(invoice_id="P-2", kind="pharmacy_purchase", invoice_date="2025-03-08", paid_amount=Decimal("300"), status="Initial"),
            Invoice(invoice_id="P-3", kind="pharmacy_purchase", invoice_date="2025-03-09", paid_amount=Decimal("100"), status="Cancelled"),
        ),
        expenses={
            "2025-03-06": (
                ExpenseItem(category="Electricity bill", paid_amount=Decimal("900")),
                ExpenseItem(category="Generator", paid_amount=Decimal("400")),
            ),
            "2025-02-10": (ExpenseItem(category="House rent", paid_amount=Decimal("2000")),),
            "not-a-date": (ExpenseItem(category="Others", paid_amount=Decimal("50")),),
        },
        due_collections=(
            DueCollection("DC-1", "INV-1", Decimal("200"), "2025-03-10"),
            DueCollection("DC-2", "IND-1", Decimal("1000"), "2025-03-12"),
            DueCollection("DC-3", "INV-0", Decimal("100"), "2025-02-25"),
        ),
        loans=(Loan("L-1", Decimal("10000"), date(2025, 1, 5), source="Bank"),),
        repayments=(
            Repayment("R-1", "L-1", Decimal("1000"), "2025-03-15"),
            Repayment("R-2", "L-1", Decimal("500"), "2025-02-15"),
        ),
        shareholders=(
            Shareholder("SH1", "Partner A", Decimal("4.5")),
            Shareholder("SH2", "Partner B", Decimal("2")),
            Shareholder("SH3", "Partner C", Decimal("1")),
        ),
        company_collections=(CompanyCollection("CC-1", "Acme Corp", Decimal("3000"), "2025-03-20"),),
    )

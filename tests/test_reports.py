from datetime import date
from decimal import Decimal

import pytest

from clinic_ledger.periods import PeriodSelectionError
from clinic_ledger.models import Invoice, InvoiceLineItem, LedgerSnapshot
from clinic_ledger.reports import category_invoice_counts, daily_ledger_rows, expense_sheet, outstanding_dues


def test_daily_rows_cover_the_month_with_running_totals(march_snapshot):
    rows = daily_ledger_rows(march_snapshot, "consolidated", 2025, 2)

    assert len(rows) == 31
    assert rows[0].day == date(2025, 3, 1)
    assert rows[3].day == date(2025, 3, 4)
    assert rows[3].collection == Decimal("650")
    assert rows[3].upto_total == Decimal("650")
    assert rows[4].upto_total == Decimal("6650")
    assert rows[9].due_recovery == Decimal("200")
    assert rows[-1].upto_total == Decimal("13050")
    assert rows[-1].upto_expense == Decimal("3000")
    assert sum((row.day_total for row in rows), Decimal("0")) == rows[-1].upto_total


def test_daily_rows_for_february_leap_years(march_snapshot):
    assert len(daily_ledger_rows(march_snapshot, "clinic", 2024, 1)) == 29
    assert len(daily_ledger_rows(march_snapshot, "clinic", 2025, 1)) == 28


def test_expense_sheet(march_snapshot):
    sheet = expense_sheet(march_snapshot, 2025, 2)

    assert sheet["categories"][-1] == "medicine_purchase"
    sixth = sheet["rows"][5]
    assert sixth["day"] == "2025-03-06"
    assert sixth["cells"]["Bills"] == Decimal("900")
    assert sixth["cells"]["Generator"] == Decimal("400")
    assert sixth["total"] == Decimal("1300")
    assert sheet["column_totals"]["medicine_purchase"] == Decimal("700")
    assert sheet["grand_total"] == Decimal("2000")


def test_expense_sheet_respects_ledger_scope(march_snapshot):
    sheet = expense_sheet(march_snapshot, 2025, 2, ledger="clinic")

    assert "Bills" not in sheet["categories"]
    assert sheet["grand_total"] == Decimal("400")


def test_month_index_out_of_range(march_snapshot):
    with pytest.raises(PeriodSelectionError):
        daily_ledger_rows(march_snapshot, "consolidated", 2025, 12)


def test_category_invoice_counts(march_snapshot):
    clinic = category_invoice_counts(march_snapshot, "clinic", "month", "2025-03-01")
    assert clinic["lscs"] == 1
    assert clinic["admission"] == 1
    assert clinic["others"] == 0

    consolidated = category_invoice_counts(march_snapshot, "consolidated", "month", "2025-03-01")
    assert consolidated["diagnostic.usg"] == 1
    assert consolidated["diagnostic.pathology"] == 1
    assert consolidated["diagnostic.xray"] == 0
    assert consolidated["pharmacy.medicine_sales"] == 1
    assert "company" not in consolidated


def test_category_counts_include_indoor_medicine_as_pharmacy_sales():
    snapshot = LedgerSnapshot(
        indoor_invoices=(
            Invoice(
                invoice_id="IND-1",
                kind="indoor",
                invoice_date="2025-03-05",
                items=(InvoiceLineItem(label="Medicine", payable_amount=Decimal("500"), is_clinic_fund=False),),
                paid_amount=Decimal("500"),
            ),
        ),
    )

    assert category_invoice_counts(snapshot, "pharmacy", "month", "2025-03-01") == {"medicine_sales": 1}


def dues_snapshot():
    def invoice(invoice_id, kind, invoice_date, due, status="Due"):
        return Invoice(
            invoice_id=invoice_id,
            kind=kind,
            invoice_date=invoice_date,
            total=Decimal("1000"),
            paid_amount=Decimal("1000") - Decimal(due),
            due_amount=Decimal(due),
            status=status,
        )

    return LedgerSnapshot(
        lab_invoices=(
            invoice("INV-1", "lab", "2025-03-04", "200"),
            invoice("INV-2", "lab", "2025-03-10", "0.50"),
            invoice("INV-3", "lab", "2025-03-12", "300", status="Cancelled"),
            invoice("INV-4", "lab", "2025-03-20", "150"),
            invoice("INV-5", "lab", "not-a-date", "75"),
        ),
        indoor_invoices=(invoice("IND-1", "indoor", "2025-03-15", "4000"),),
        pharmacy_sales=(invoice("S-1", "pharmacy_sale", "2025-03-01", "1"),),
    )


def test_outstanding_dues_newest_first():
    dues = outstanding_dues(dues_snapshot(), "diagnostic")

    assert [invoice.invoice_id for invoice in dues] == ["INV-4", "INV-1", "INV-5"]


def test_outstanding_dues_across_ledgers():
    snapshot = dues_snapshot()

    assert [invoice.invoice_id for invoice in outstanding_dues(snapshot, "consolidated")] == [
        "INV-4",
        "IND-1",
        "INV-1",
        "INV-5",
    ]
    assert outstanding_dues(snapshot, "pharmacy") == []
    assert [invoice.invoice_id for invoice in outstanding_dues(snapshot, "clinic")] == ["IND-1"]

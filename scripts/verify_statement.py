from __future__ import annotations

from decimal import Decimal
from pathlib import Path

from clinic_ledger.classifiers import Rulebook
from clinic_ledger.repositories import InMemorySnapshotRepository
from clinic_ledger.schemas import snapshot_from_state
from clinic_ledger.services import StatementService


def demo_state() -> dict:
    """Minimal state document covering every ledger for one month."""
    return {
        "labInvoices": [
            {
                "invoice_id": "INV-0001",
                "invoice_date": "2025-03-04",
                "items": [{"test_name": "USG Whole Abdomen", "price": 1000, "quantity": 1, "usg_exam_charge": 100}],
                "total_amount": 1000,
                "paid_amount": 800,
                "due_amount": 200,
                "status": "Due",
                "commission_paid": 50,
            },
        ],
        "indoorInvoices": [
            {
                "daily_id": "IND-0001",
                "invoice_date": "04/03/2025",
                "serviceCategory": "Operation",
                "subCategory": "LSCS",
                "items": [
                    {"service_type": "OT Charge", "payable_amount": 6000, "isClinicFund": True},
                    {"service_type": "Surgeon Fee", "payable_amount": 4000, "isClinicFund": False},
                ],
                "paid_amount": 10000,
            },
        ],
        "salesInvoices": [{"invoiceId": "S-1", "invoiceDate": "2025-03-05", "paidAmount": 1200, "status": "Posted"}],
        "purchaseInvoices": [{"invoiceId": "P-1", "invoiceDate": "2025-03-05", "paidAmount": 700, "status": "Posted"}],
        "detailedExpenses": {"2025-03-06": [{"category": "Electricity bill", "paidAmount": 900}]},
        "dueCollections": [
            {"collection_id": "DC-1", "invoice_id": "INV-0001", "amount_collected": 200, "collection_date": "2025-03-10"}
        ],
        "shareholders": [
            {"id": 1, "name": "Partner A", "shares": 4.5},
            {"id": 2, "name": "Partner B", "shares": 2},
            {"id": 3, "name": "Partner C", "shares": 1},
        ],
    }


def main() -> int:
    rules_path = Path("backend/config/classification_rules.yaml")
    rulebook = Rulebook.from_yaml(rules_path) if rules_path.exists() else Rulebook()
    service = StatementService(InMemorySnapshotRepository(snapshot_from_state(demo_state())), rulebook)

    statement = service.statement("consolidated", "month", "2025-03-01", distributable=Decimal("7500"))

    categorized = sum(Decimal(v) for v in statement["categorized_collection"].values())
    period_collection = Decimal(statement["period_collection"])
    due_recovery = Decimal(statement["due_recovery"])

    problems = []
    if categorized + due_recovery != period_collection:
        problems.append(f"collection {categorized} + dues {due_recovery} != {period_collection}")
    if statement["categorized_collection"]["diagnostic.usg"] != "650.00":
        problems.append(f"diagnostic.usg = {statement['categorized_collection']['diagnostic.usg']}, expected 650.00")
    if statement["per_share_value"] != "1000.00":
        problems.append(f"per share = {statement['per_share_value']}, expected 1000.00")

    if problems:
        print("Verification failed:", "; ".join(problems))
        return 1

    for step in statement["calculation_steps"]:
        print(step)
    print(f"Verification passed. Closing balance {statement['closing_balance']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

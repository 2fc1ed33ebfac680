from __future__ import annotations

import logging
import os
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Literal, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from clinic_ledger.classifiers import Rulebook
from clinic_ledger.periods import resolve_reference
from clinic_ledger.repositories import STATE_KEY, KeyValueSnapshotRepository
from clinic_ledger.schemas import StateDocument
from clinic_ledger.services import StatementService

logger = logging.getLogger(__name__)

RULES_PATH = Path(os.environ.get("CLINIC_LEDGER_RULES", "backend/config/classification_rules.yaml"))

app = FastAPI(title="Clinic Ledger API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def load_rulebook(path: Path = RULES_PATH) -> Rulebook:
    if not path.exists():
        logger.warning("Rulebook %s not found; using built-in classification rules", path)
        return Rulebook()
    return Rulebook.from_yaml(path)


state_store: dict[str, dict] = {}
service = StatementService(KeyValueSnapshotRepository(state_store, STATE_KEY), load_rulebook())


class StatementRequest(BaseModel):
    ledger: str = "consolidated"
    period_type: str = "month"
    reference: Optional[date] = None
    month: Optional[int] = None
    year: Optional[int] = None
    distributable: Decimal = Decimal("0")
    inventory_value: Decimal = Decimal("0")
    manual_loan_installment: Decimal = Decimal("0")
    house_rent_deduction: Decimal = Decimal("0")


class DistributionRequest(BaseModel):
    amount: Decimal


class ClassifyRequest(BaseModel):
    kind: Literal["expense", "test", "service"]
    label: str
    service_category: Optional[str] = None
    sub_category: Optional[str] = None
    is_clinic_fund: bool = True


class MonthlyReportRequest(BaseModel):
    ledger: str = "consolidated"
    year: int
    month_index: int


class DuesRequest(BaseModel):
    ledger: str = "consolidated"


class CategoryCountRequest(BaseModel):
    ledger: str = "consolidated"
    period_type: str = "month"
    reference: Optional[date] = None
    month: Optional[int] = None
    year: Optional[int] = None


def _unprocessable(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=422, detail=str(exc))


@app.put("/state")
def replace_state(payload: dict[str, Any]):
    try:
        document = StateDocument.model_validate(payload)
    except ValueError as exc:
        raise _unprocessable(exc) from exc
    state_store[STATE_KEY] = payload
    return {
        "lab_invoices": len(document.lab_invoices),
        "indoor_invoices": len(document.indoor_invoices),
        "sales_invoices": len(document.sales_invoices),
        "purchase_invoices": len(document.purchase_invoices),
        "expense_days": len(document.detailed_expenses),
    }


@app.post("/statements")
def create_statement(payload: StatementRequest):
    try:
        reference = resolve_reference(payload.period_type, payload.reference, payload.month, payload.year)
        return service.statement(
            payload.ledger,
            payload.period_type,
            reference,
            distributable=payload.distributable,
            inventory_value=payload.inventory_value,
            manual_loan_installment=payload.manual_loan_installment,
            house_rent_deduction=payload.house_rent_deduction,
        )
    except ValueError as exc:
        raise _unprocessable(exc) from exc


@app.post("/distributions")
def create_distribution(payload: DistributionRequest):
    return service.distribution(payload.amount)


@app.post("/classify")
def classify_label(payload: ClassifyRequest):
    tag = service.classify_label(
        payload.kind,
        payload.label,
        service_category=payload.service_category,
        sub_category=payload.sub_category,
        is_clinic_fund=payload.is_clinic_fund,
    )
    return {"kind": payload.kind, "label": payload.label, "tag": tag, "rule_version": service.rulebook.version}


@app.post("/reports/daily")
def daily_report(payload: MonthlyReportRequest):
    try:
        return service.daily_report(payload.ledger, payload.year, payload.month_index)
    except ValueError as exc:
        raise _unprocessable(exc) from exc


@app.post("/reports/expense-sheet")
def monthly_expense_sheet(payload: MonthlyReportRequest):
    try:
        return service.expense_sheet(payload.year, payload.month_index, ledger=payload.ledger)
    except ValueError as exc:
        raise _unprocessable(exc) from exc


@app.post("/reports/category-counts")
def category_counts(payload: CategoryCountRequest):
    try:
        reference = resolve_reference(payload.period_type, payload.reference, payload.month, payload.year)
        return service.category_counts(payload.ledger, payload.period_type, reference)
    except ValueError as exc:
        raise _unprocessable(exc) from exc


@app.post("/reports/dues")
def outstanding_dues(payload: DuesRequest):
    try:
        return service.outstanding_dues(payload.ledger)
    except ValueError as exc:
        raise _unprocessable(exc) from exc


@app.get("/health")
def health():
    return {"status": "ok", "rule_version": service.rulebook.version}

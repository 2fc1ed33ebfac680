from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from clinic_ledger.aggregation import LOAN_BEARING_LEDGERS, PeriodAggregator
from clinic_ledger.carry_forward import CarryForwardCalculator
from clinic_ledger.classifiers import CategoryClassifier, Rulebook
from clinic_ledger.core import ZERO, money, to_amount, total
from clinic_ledger.distribution import allocate_profit
from clinic_ledger.loans import LoanLedger
from clinic_ledger.models import AmountLike, DateLike, LedgerSnapshot
from clinic_ledger.periods import DateWindow, period_window


@dataclass(frozen=True)
class PeriodStatement:
    """Everything one ledger reports for one period."""

    ledger: str
    period_type: str
    window: DateWindow
    carry_forward: Decimal
    categorized_collection: Dict[str, Decimal]
    due_recovery: Decimal
    period_collection: Decimal
    total_collection: Decimal
    categorized_expense: Dict[str, Decimal]
    loan_repayment: Decimal
    total_expense: Decimal
    net_balance: Decimal
    distributed_profit: Decimal
    closing_balance: Decimal
    loan_outstanding: Decimal
    inventory_value: Decimal
    net_worth: Decimal
    house_rent_deduction: Decimal = ZERO
    profit_shares: Dict[str, Decimal] = field(default_factory=dict)
    per_share_value: Decimal = ZERO
    calculation_steps: List[str] = field(default_factory=list)
    rule_version: str = ""

    def to_dict(self) -> Dict[str, object]:
        def fmt(value: Decimal) -> str:
            return str(money(value))

        return {
            "rule_version": self.rule_version,
            "ledger": self.ledger,
            "period_type": self.period_type,
            "period": {
                "start": self.window.start.isoformat() if self.window.start else None,
                "end": self.window.end.isoformat() if self.window.end else None,
            },
            "carry_forward": fmt(self.carry_forward),
            "house_rent_deduction": fmt(self.house_rent_deduction),
            "categorized_collection": {k: fmt(v) for k, v in self.categorized_collection.items()},
            "due_recovery": fmt(self.due_recovery),
            "period_collection": fmt(self.period_collection),
            "total_collection": fmt(self.total_collection),
            "categorized_expense": {k: fmt(v) for k, v in self.categorized_expense.items()},
            "loan_repayment": fmt(self.loan_repayment),
            "total_expense": fmt(self.total_expense),
            "net_balance": fmt(self.net_balance),
            "distributed_profit": fmt(self.distributed_profit),
            "closing_balance": fmt(self.closing_balance),
            "loan_outstanding": fmt(self.loan_outstanding),
            "inventory_value": fmt(self.inventory_value),
            "net_worth": fmt(self.net_worth),
            "profit_shares": {k: fmt(v) for k, v in self.profit_shares.items()},
            "per_share_value": fmt(self.per_share_value),
            "calculation_steps": list(self.calculation_steps),
        }


class SummaryComposer:
    def __init__(self, rulebook: Optional[Rulebook] = None) -> None:
        self.rulebook = rulebook or Rulebook()
        self.aggregator = PeriodAggregator(CategoryClassifier(self.rulebook))
        self.carry = CarryForwardCalculator(self.aggregator)

    def compose(
        self,
        snapshot: LedgerSnapshot,
        ledger: str,
        period_type: str,
        reference: DateLike,
        distributable: AmountLike = 0,
        inventory_value: AmountLike = 0,
        manual_loan_installment: AmountLike = 0,
        house_rent_deduction: AmountLike = 0,
    ) -> PeriodStatement:
        window = period_window(period_type, reference)
        buckets = self.aggregator.aggregate_window(snapshot, ledger, window)
        steps: List[str] = [f"Applying rule version: {self.rulebook.version}"]
        steps.append(f"Ledger {ledger}, {period_type} window {window.label()}.")

        carry = self.carry.carry_forward(snapshot, window.start, ledger)
        steps.append(f"Carry forward from activity before {window.start.isoformat()} = {money(carry)}.")

        categorized = total(buckets.collection.values())
        period_collection = categorized + buckets.due_recovery
        steps.append(
            f"Period collection = categorized {money(categorized)} + due recovery "
            f"{money(buckets.due_recovery)} = {money(period_collection)}."
        )
        if buckets.gross_paid:
            steps.append(
                f"Netting: paid {money(buckets.gross_paid)} - pass-through {money(buckets.pass_through_fees)} "
                f"- commission {money(buckets.commission_paid)}."
            )
        # The house rent deduction is entered on the consolidated statement only.
        house_rent = to_amount(house_rent_deduction) if ledger == "consolidated" else ZERO
        total_collection = carry + period_collection - house_rent
        if house_rent:
            steps.append(
                f"Total collection = {money(carry)} + {money(period_collection)} - house rent deduction "
                f"{money(house_rent)} = {money(total_collection)}."
            )
        else:
            steps.append(f"Total collection = {money(carry)} + {money(period_collection)} = {money(total_collection)}.")

        bears_loans = ledger in LOAN_BEARING_LEDGERS
        manual = to_amount(manual_loan_installment) if bears_loans else ZERO
        loan_repayment = buckets.loan_repayment + manual
        categorized_expense = total(buckets.expense.values())
        total_expense = categorized_expense + loan_repayment
        steps.append(
            f"Total expense = categorized {money(categorized_expense)} + loan repayment "
            f"{money(loan_repayment)} = {money(total_expense)}."
        )

        net_balance = total_collection - total_expense
        distribution = allocate_profit(distributable, snapshot.shareholders)
        closing = net_balance - distribution.amount
        steps.append(
            f"Closing balance = net {money(net_balance)} - distributed {money(distribution.amount)} = {money(closing)}."
        )

        outstanding = LoanLedger(snapshot.loans, snapshot.repayments).outstanding() if bears_loans else ZERO
        inventory = to_amount(inventory_value)
        net_worth = closing + inventory - outstanding
        steps.append(
            f"Net worth = {money(closing)} + inventory {money(inventory)} - loans {money(outstanding)} = {money(net_worth)}."
        )

        return PeriodStatement(
            ledger=ledger,
            period_type=period_type,
            window=window,
            carry_forward=carry,
            categorized_collection=dict(buckets.collection),
            due_recovery=buckets.due_recovery,
            period_collection=period_collection,
            total_collection=total_collection,
            categorized_expense=dict(buckets.expense),
            loan_repayment=loan_repayment,
            total_expense=total_expense,
            net_balance=net_balance,
            distributed_profit=distribution.amount,
            closing_balance=closing,
            loan_outstanding=outstanding,
            inventory_value=inventory,
            net_worth=net_worth,
            house_rent_deduction=house_rent,
            profit_shares=distribution.payouts(),
            per_share_value=distribution.per_share,
            calculation_steps=steps,
            rule_version=self.rulebook.version,
        )


def compose_summary(
    snapshot: LedgerSnapshot,
    ledger: str,
    period_type: str,
    reference: DateLike,
    distributable: AmountLike = 0,
    inventory_value: AmountLike = 0,
    manual_loan_installment: AmountLike = 0,
    house_rent_deduction: AmountLike = 0,
    rulebook: Optional[Rulebook] = None,
) -> PeriodStatement:
    return SummaryComposer(rulebook).compose(
        snapshot,
        ledger,
        period_type,
        reference,
        distributable=distributable,
        inventory_value=inventory_value,
        manual_loan_installment=manual_loan_installment,
        house_rent_deduction=house_rent_deduction,
    )

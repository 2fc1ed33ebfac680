from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Sequence

from clinic_ledger.core import ZERO, to_amount, total
from clinic_ledger.models import Loan, Repayment
from clinic_ledger.periods import DateWindow


def loan_outstanding(loans: Iterable[Loan], repayments: Iterable[Repayment]) -> Decimal:
    """Borrowed minus repaid over the whole history. Over-repayment stays negative."""
    borrowed = total(to_amount(loan.amount) for loan in loans)
    repaid = total(to_amount(repayment.amount) for repayment in repayments)
    return borrowed - repaid


@dataclass(frozen=True)
class LoanLedger:
    loans: Sequence[Loan] = ()
    repayments: Sequence[Repayment] = ()

    def total_borrowed(self) -> Decimal:
        return total(to_amount(loan.amount) for loan in self.loans)

    def total_repaid(self) -> Decimal:
        return total(to_amount(repayment.amount) for repayment in self.repayments)

    def outstanding(self) -> Decimal:
        return loan_outstanding(self.loans, self.repayments)

    def repaid_in(self, window: DateWindow) -> Decimal:
        return total(to_amount(r.amount) for r in self.repayments if window.contains(r.date))

    def borrowed_in(self, window: DateWindow) -> Decimal:
        return total(to_amount(loan.amount) for loan in self.loans if window.contains(loan.date))

    def balances_by_loan(self) -> Dict[str, Decimal]:
        balances: Dict[str, Decimal] = {}
        for loan in self.loans:
            balances[loan.loan_id] = balances.get(loan.loan_id, ZERO) + to_amount(loan.amount)
        for repayment in self.repayments:
            balances[repayment.loan_id] = balances.get(repayment.loan_id, ZERO) - to_amount(repayment.amount)
        return balances

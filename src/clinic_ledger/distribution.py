from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, Iterable, List

from clinic_ledger.core import ZERO, to_amount, total
from clinic_ledger.models import AmountLike, Shareholder


@dataclass(frozen=True)
class ShareRow:
    shareholder_id: str
    name: str
    shares: Decimal
    payout: Decimal


@dataclass(frozen=True)
class DistributionResult:
    amount: Decimal
    total_shares: Decimal
    per_share: Decimal
    rows: List[ShareRow] = field(default_factory=list)

    @property
    def total_paid(self) -> Decimal:
        return total(row.payout for row in self.rows)

    def payouts(self) -> Dict[str, Decimal]:
        """Payout per shareholder id; rows sharing an id are summed so nothing is dropped."""
        paid: Dict[str, Decimal] = {}
        for row in self.rows:
            paid[row.shareholder_id] = paid.get(row.shareholder_id, ZERO) + row.payout
        return paid


def allocate_profit(amount: AmountLike, shareholders: Iterable[Shareholder]) -> DistributionResult:
    """
    Split a manager-chosen distributable amount by share count.

    Zero total shares yields a zero per-share value instead of a division fault.
    The caller is responsible for subtracting `amount` from its net balance.
    """
    holders = list(shareholders)
    distributable = to_amount(amount)
    total_shares = total(to_amount(h.shares) for h in holders)
    per_share = distributable / total_shares if total_shares > 0 else ZERO

    rows = [
        ShareRow(
            shareholder_id=h.shareholder_id,
            name=h.name,
            shares=to_amount(h.shares),
            payout=to_amount(h.shares) * per_share,
        )
        for h in holders
    ]

    # The last holder with shares takes the Decimal remainder so payouts sum to the amount.
    if total_shares > 0:
        last = max(i for i, row in enumerate(rows) if row.shares > 0)
        remainder = distributable - total(row.payout for row in rows)
        rows[last] = replace(rows[last], payout=rows[last].payout + remainder)

    return DistributionResult(amount=distributable, total_shares=total_shares, per_share=per_share, rows=rows)


def distribute_profit(amount: AmountLike, shareholders: Iterable[Shareholder]) -> Dict[str, Decimal]:
    return allocate_profit(amount, shareholders).payouts()

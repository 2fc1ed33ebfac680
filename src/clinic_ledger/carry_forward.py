from __future__ import annotations

from decimal import Decimal
from typing import Optional

from clinic_ledger.aggregation import PeriodAggregator, PeriodBuckets
from clinic_ledger.classifiers import CategoryClassifier, Rulebook
from clinic_ledger.core import ZERO
from clinic_ledger.models import DateLike, LedgerSnapshot
from clinic_ledger.periods import prior_window


def floor_at_zero(prior: PeriodBuckets) -> Decimal:
    # A ledger never carries a deficit into the next period.
    return max(ZERO, prior.total_collection - prior.total_expense)


class CarryForwardCalculator:
    def __init__(self, aggregator: Optional[PeriodAggregator] = None) -> None:
        self.aggregator = aggregator or PeriodAggregator()

    def prior_buckets(self, snapshot: LedgerSnapshot, period_start: DateLike, ledger: str) -> PeriodBuckets:
        return self.aggregator.aggregate_window(snapshot, ledger, prior_window(period_start))

    def carry_forward(self, snapshot: LedgerSnapshot, period_start: DateLike, ledger: str = "consolidated") -> Decimal:
        return floor_at_zero(self.prior_buckets(snapshot, period_start, ledger))


def carry_forward(
    snapshot: LedgerSnapshot,
    period_start: DateLike,
    ledger: str = "consolidated",
    rulebook: Optional[Rulebook] = None,
) -> Decimal:
    aggregator = PeriodAggregator(CategoryClassifier(rulebook))
    return CarryForwardCalculator(aggregator).carry_forward(snapshot, period_start, ledger)

from .aggregation import PeriodAggregator, PeriodBuckets, UnknownLedgerError, aggregate
from .carry_forward import CarryForwardCalculator, carry_forward
from .classifiers import CategoryClassifier, Rulebook, RulebookError, classify
from .commission import CommissionNetter, InvoiceBreakdown, breakdown, net_commission, pass_through_fees
from .distribution import DistributionResult, allocate_profit, distribute_profit
from .loans import LoanLedger, loan_outstanding
from .periods import DateWindow, PeriodSelectionError, in_period, period_window, resolve_reference
from .summary import PeriodStatement, SummaryComposer, compose_summary

__all__ = [
    "PeriodAggregator",
    "PeriodBuckets",
    "UnknownLedgerError",
    "aggregate",
    "CarryForwardCalculator",
    "carry_forward",
    "CategoryClassifier",
    "Rulebook",
    "RulebookError",
    "classify",
    "CommissionNetter",
    "InvoiceBreakdown",
    "breakdown",
    "net_commission",
    "pass_through_fees",
    "DistributionResult",
    "allocate_profit",
    "distribute_profit",
    "LoanLedger",
    "loan_outstanding",
    "DateWindow",
    "PeriodSelectionError",
    "in_period",
    "period_window",
    "resolve_reference",
    "PeriodStatement",
    "SummaryComposer",
    "compose_summary",
]

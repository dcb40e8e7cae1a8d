"""Data models for the loan payoff engine.

This module defines the value objects passed into and returned from the
engine: the loan parameters, one row of an amortization schedule and the
result of a payoff simulation. They are frozen dataclasses; every call builds
fresh instances and nothing is shared between calls.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional


WEEKLY = "weekly"
BIWEEKLY = "biweekly"
MONTHLY = "monthly"
QUARTERLY = "quarterly"
YEARLY = "yearly"

PAYMENTS_PER_YEAR: Dict[str, int] = {
    WEEKLY: 52,
    BIWEEKLY: 26,
    MONTHLY: 12,
    QUARTERLY: 4,
    YEARLY: 1,
}

MAX_PERIODS = 1200  # 100 years of monthly payments

FREQUENCY_LABELS: Dict[str, str] = {
    WEEKLY: "Weekly",
    BIWEEKLY: "Bi-weekly",
    MONTHLY: "Monthly",
    QUARTERLY: "Quarterly",
    YEARLY: "Yearly",
}


@dataclass(frozen=True)
class LoanParameters:
    """Inputs for a payoff simulation.

    Attributes
    ----------
    current_balance: Decimal
        Outstanding principal at ``start_date``.
    annual_rate_percent: Decimal
        Nominal annual interest rate in percent (``5`` means 5 %).
    payment_amount: Decimal
        Regular payment made every period at ``frequency``.
    frequency: str
        One of the cadence constants above. Unknown values behave as monthly.
    start_date: date
        Date of the first payment.
    extra_monthly_payment: Decimal
        Recurring extra payment, always expressed per month. It is converted
        to the payment cadence by the schedule generator.
    one_time_payment: Decimal
        Lump sum applied once, on the first period dated on or after
        ``one_time_payment_date``.
    """

    current_balance: Decimal
    annual_rate_percent: Decimal
    payment_amount: Decimal
    frequency: str
    start_date: date
    extra_monthly_payment: Decimal = Decimal("0")
    one_time_payment: Decimal = Decimal("0")
    one_time_payment_date: Optional[date] = None


@dataclass(frozen=True)
class AmortizationRow:
    """One period of an amortization schedule.

    All money fields are rounded to the cent. ``payment`` already includes
    ``extra_payment_applied``.
    """

    payment_number: int
    date: date
    payment: Decimal
    principal_portion: Decimal
    interest_portion: Decimal
    extra_payment_applied: Decimal
    remaining_balance: Decimal


AmortizationSchedule = List[AmortizationRow]


@dataclass(frozen=True)
class PayoffSimulationResult:
    """Baseline vs. accelerated repayment of the same loan."""

    baseline_payoff_date: date
    accelerated_payoff_date: date
    baseline_total_interest: Decimal
    accelerated_total_interest: Decimal
    interest_saved: Decimal
    periods_saved: int
    accelerated_schedule: AmortizationSchedule = field(default_factory=list)
    baseline_schedule: AmortizationSchedule = field(default_factory=list)

    @property
    def baseline_converged(self) -> bool:
        return is_paid_off(self.baseline_schedule)

    @property
    def accelerated_converged(self) -> bool:
        return is_paid_off(self.accelerated_schedule)


def is_paid_off(schedule: AmortizationSchedule) -> bool:
    """Return False when the schedule stopped at the iteration cap with principal owed.

    A schedule shorter than ``MAX_PERIODS`` ended by clearing the balance. At
    the cap only a last row rounded to zero counts as paid off, since a row
    showing one cent may hide up to a cent and a half still owed.
    """
    if len(schedule) < MAX_PERIODS:
        return True
    return schedule[-1].remaining_balance == 0

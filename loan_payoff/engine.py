"""Core calculation engine for the loan payoff simulator.

This module implements the financial logic behind the loan pages: the fixed
monthly payment for a new loan, the period-by-period amortization schedule
for any payment cadence (with recurring and one-time extra payments), the
baseline vs. accelerated payoff comparison, the effective annual rate and a
quick check that a payment covers at least the interest.

Everything here is a pure function of its arguments. Money is handled as
``Decimal`` and each row of a schedule is rounded to the cent while the
running balance is carried at full precision.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, Overflow, ROUND_HALF_UP, getcontext
from fractions import Fraction
from typing import Any, Dict, Optional

from .data_models import (
    MAX_PERIODS,
    MONTHLY,
    PAYMENTS_PER_YEAR,
    AmortizationRow,
    AmortizationSchedule,
    LoanParameters,
    PayoffSimulationResult,
    is_paid_off,
)
from .exceptions import InvalidInputError
from .utils import Number, add_fractional_months, round_money, to_decimal

getcontext().prec = 28  # increase precision for financial calculations

PAYOFF_THRESHOLD = Decimal("0.01")

__all__ = [
    "MAX_PERIODS",
    "PAYOFF_THRESHOLD",
    "payments_per_year",
    "monthly_payment",
    "generate_schedule",
    "total_interest",
    "total_paid",
    "simulate_payoff",
    "effective_annual_rate",
    "is_payment_sufficient",
    "is_paid_off",
    "payoff_date",
    "remaining_term_months",
    "summarize_schedule",
]


def _normalize_frequency(frequency: str) -> str:
    if isinstance(frequency, str):
        return frequency.strip().lower()
    return frequency


def payments_per_year(frequency: str) -> int:
    """Return the number of payments per year for a cadence (12 if unknown)."""
    return PAYMENTS_PER_YEAR.get(_normalize_frequency(frequency), 12)


def monthly_payment(principal: Number, annual_rate_percent: Number, term_months: int) -> Decimal:
    """Return the fixed monthly payment that amortizes a loan over its term.

    The formula is:

        payment = P * (r * (1 + r)^n) / ((1 + r)^n - 1)

    where ``P`` is the principal, ``r`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``. The result is rounded to the cent.
    """
    principal = to_decimal(principal)
    annual_rate_percent = to_decimal(annual_rate_percent)
    if term_months <= 0:
        raise InvalidInputError("Term must be positive", context={"term_months": term_months})
    if principal <= 0:
        raise InvalidInputError("Principal must be positive", context={"principal": principal})
    if annual_rate_percent < 0:
        raise InvalidInputError(
            "Interest rate cannot be negative", context={"annual_rate_percent": annual_rate_percent}
        )
    if annual_rate_percent == 0:
        return round_money(principal / Decimal(term_months))
    rate_per_month = annual_rate_percent / Decimal(100) / Decimal(12)
    try:
        factor = (1 + rate_per_month) ** term_months
    except Overflow:
        # Very long terms converge on paying only the interest
        return round_money(principal * rate_per_month)
    return round_money(principal * (rate_per_month * factor) / (factor - 1))


def generate_schedule(
    balance: Number,
    annual_rate_percent: Number,
    periodic_payment: Number,
    frequency: str,
    start_date: date,
    extra_monthly_payment: Number = 0,
    one_time_payment: Number = 0,
    one_time_payment_date: Optional[date] = None,
) -> AmortizationSchedule:
    """Simulate repayment period by period until the loan is cleared.

    Parameters
    ----------
    balance: Number
        Outstanding principal at ``start_date``.
    annual_rate_percent: Number
        Nominal annual rate in percent.
    periodic_payment: Number
        Regular payment made every period.
    frequency: str
        Payment cadence; unknown values behave as monthly.
    start_date: date
        Date of the first payment.
    extra_monthly_payment: Number
        Recurring extra payment expressed per month. For other cadences it is
        scaled by ``12 / payments_per_year``.
    one_time_payment: Number
        Lump sum added to the first period dated on or after
        ``one_time_payment_date``. If the loan is cleared before that date it
        is never applied.

    Returns
    -------
    AmortizationSchedule
        One row per period. The loop stops once the balance is at most one
        cent or after ``MAX_PERIODS`` rows, whichever comes first. A schedule
        that stopped at the cap still carries a positive balance on its last
        row (see :func:`is_paid_off`).
    """
    balance = to_decimal(balance)
    periodic_payment = to_decimal(periodic_payment)
    extra_monthly_payment = to_decimal(extra_monthly_payment)
    one_time_payment = to_decimal(one_time_payment)

    per_year = payments_per_year(frequency)
    periodic_rate = to_decimal(annual_rate_percent) / Decimal(100) / Decimal(per_year)
    months_per_period = Fraction(12, per_year)

    if _normalize_frequency(frequency) == MONTHLY:
        recurring_extra = extra_monthly_payment
    else:
        recurring_extra = extra_monthly_payment * Decimal(12) / Decimal(per_year)

    schedule: AmortizationSchedule = []
    payment_number = 0
    current_date = start_date
    one_time_applied = False

    while balance > PAYOFF_THRESHOLD and payment_number < MAX_PERIODS:
        payment_number += 1
        interest = balance * periodic_rate

        extra = Decimal("0")
        if (
            one_time_payment > 0
            and one_time_payment_date is not None
            and not one_time_applied
            and current_date >= one_time_payment_date
        ):
            extra = one_time_payment
            one_time_applied = True
        extra += recurring_extra

        total_payment = periodic_payment + extra
        # Never pay more than what is owed this period
        if total_payment > balance + interest:
            total_payment = balance + interest
            extra = max(Decimal("0"), total_payment - periodic_payment)

        principal_portion = total_payment - interest
        balance = max(Decimal("0"), balance - principal_portion)

        schedule.append(
            AmortizationRow(
                payment_number=payment_number,
                date=current_date,
                payment=round_money(total_payment),
                principal_portion=round_money(principal_portion),
                interest_portion=round_money(interest),
                extra_payment_applied=round_money(extra),
                remaining_balance=round_money(balance),
            )
        )

        # Dates are measured from the start so fractional months do not drift
        current_date = add_fractional_months(start_date, months_per_period * payment_number)

    return schedule


def total_interest(schedule: AmortizationSchedule) -> Decimal:
    """Sum of the (already rounded) interest portions."""
    return sum((row.interest_portion for row in schedule), Decimal("0"))


def total_paid(schedule: AmortizationSchedule) -> Decimal:
    """Sum of the (already rounded) payments, extras included."""
    return sum((row.payment for row in schedule), Decimal("0"))


def simulate_payoff(params: LoanParameters) -> PayoffSimulationResult:
    """Compare the loan as agreed against the loan with extra payments.

    The baseline schedule ignores every extra payment; the accelerated
    schedule applies the recurring and one-time extras from ``params``.
    Payoff dates come from the last row of each schedule, or from
    ``params.start_date`` when there is nothing left to repay.
    """
    baseline = generate_schedule(
        params.current_balance,
        params.annual_rate_percent,
        params.payment_amount,
        params.frequency,
        params.start_date,
    )
    accelerated = generate_schedule(
        params.current_balance,
        params.annual_rate_percent,
        params.payment_amount,
        params.frequency,
        params.start_date,
        params.extra_monthly_payment,
        params.one_time_payment,
        params.one_time_payment_date,
    )

    baseline_interest = total_interest(baseline)
    accelerated_interest = total_interest(accelerated)

    return PayoffSimulationResult(
        baseline_payoff_date=baseline[-1].date if baseline else params.start_date,
        accelerated_payoff_date=accelerated[-1].date if accelerated else params.start_date,
        baseline_total_interest=round_money(baseline_interest),
        accelerated_total_interest=round_money(accelerated_interest),
        interest_saved=round_money(baseline_interest - accelerated_interest),
        periods_saved=len(baseline) - len(accelerated),
        accelerated_schedule=accelerated,
        baseline_schedule=baseline,
    )


def effective_annual_rate(nominal_rate_percent: Number, frequency: str) -> Decimal:
    """Return the effective annual rate in percent, rounded to 2 decimals.

    ``EAR = ((1 + r) ** k - 1) * 100`` with ``k`` payments per year and
    ``r = nominal / 100 / k``.
    """
    periods = payments_per_year(frequency)
    periodic_rate = to_decimal(nominal_rate_percent) / Decimal(100) / Decimal(periods)
    ear = ((1 + periodic_rate) ** periods - 1) * Decimal(100)
    return ear.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def is_payment_sufficient(
    principal: Number, annual_rate_percent: Number, payment_amount: Number, frequency: str
) -> bool:
    """Return True if the payment exceeds one period's interest on ``principal``.

    This is necessary but not sufficient for a schedule to converge; combine
    it with :func:`is_paid_off` on the generated schedule.
    """
    periodic_rate = to_decimal(annual_rate_percent) / Decimal(100) / Decimal(payments_per_year(frequency))
    return to_decimal(payment_amount) > to_decimal(principal) * periodic_rate


def payoff_date(
    balance: Number,
    annual_rate_percent: Number,
    payment_amount: Number,
    frequency: str,
    start_date: date,
) -> date:
    """Date of the final payment without any extra payments."""
    schedule = generate_schedule(balance, annual_rate_percent, payment_amount, frequency, start_date)
    if not schedule:
        return start_date
    return schedule[-1].date


def remaining_term_months(
    balance: Number,
    annual_rate_percent: Number,
    payment_amount: Number,
    frequency: str,
    as_of: Optional[date] = None,
) -> int:
    """Number of months left on the loan, rounded to the nearest month."""
    schedule = generate_schedule(
        balance, annual_rate_percent, payment_amount, frequency, as_of or date.today()
    )
    months = Decimal(len(schedule) * 12) / Decimal(payments_per_year(frequency))
    return int(months.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def summarize_schedule(schedule: AmortizationSchedule, start_date: date) -> Dict[str, Any]:
    """Aggregate metrics for display and export."""
    end_date = schedule[-1].date if schedule else start_date
    return {
        "total_interest": float(total_interest(schedule)),
        "total_paid": float(total_paid(schedule)),
        "total_extra": float(sum((row.extra_payment_applied for row in schedule), Decimal("0"))),
        "payments_made": len(schedule),
        "start_date": start_date.isoformat(),
        "payoff_date": end_date.isoformat(),
        "paid_off": is_paid_off(schedule),
    }

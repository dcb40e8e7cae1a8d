"""Tests for the amortization and payoff engine."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from loan_payoff.data_models import AmortizationRow, LoanParameters
from loan_payoff.engine import (
    MAX_PERIODS,
    effective_annual_rate,
    generate_schedule,
    is_paid_off,
    is_payment_sufficient,
    monthly_payment,
    payments_per_year,
    payoff_date,
    remaining_term_months,
    simulate_payoff,
    summarize_schedule,
    total_interest,
    total_paid,
)
from loan_payoff.exceptions import InvalidInputError

CENT = Decimal("0.01")


class TestPaymentsPerYear:
    @pytest.mark.parametrize(
        "frequency, expected",
        [("weekly", 52), ("biweekly", 26), ("monthly", 12), ("quarterly", 4), ("yearly", 1)],
    )
    def test_known_frequencies(self, frequency, expected):
        assert payments_per_year(frequency) == expected

    def test_case_insensitive(self):
        assert payments_per_year("Weekly") == 52

    @pytest.mark.parametrize("frequency", ["fortnightly", "", None])
    def test_unknown_defaults_to_monthly(self, frequency):
        assert payments_per_year(frequency) == 12


class TestMonthlyPayment:
    def test_thirty_year_mortgage(self):
        assert monthly_payment(100000, 5, 360) == Decimal("536.82")

    def test_known_case_six_percent(self):
        assert monthly_payment(Decimal("200000"), Decimal("6"), 360) == Decimal("1199.10")

    def test_zero_rate_is_straight_line(self):
        assert monthly_payment(1200, 0, 12) == Decimal("100.00")

    def test_zero_rate_is_rounded_to_cent(self):
        assert monthly_payment(1000, 0, 3) == Decimal("333.33")

    @pytest.mark.parametrize(
        "principal, rate, term",
        [(100000, 5, 0), (100000, 5, -12), (0, 5, 360), (-1, 5, 360), (100000, -1, 360)],
    )
    def test_invalid_input(self, principal, rate, term):
        with pytest.raises(InvalidInputError):
            monthly_payment(principal, rate, term)

    def test_very_long_term_converges_on_interest_only(self):
        # (1 + r) ** n overflows the decimal context long before this term
        assert monthly_payment(100000, 5, 10**9) == Decimal("416.67")

    def test_invalid_input_is_a_value_error(self):
        with pytest.raises(ValueError):
            monthly_payment(100000, 5, 0)


class TestIsPaidOff:
    @staticmethod
    def _rows(count, last_balance):
        rows = [
            AmortizationRow(n, date(2024, 1, 1), Decimal("500"), Decimal("0"), Decimal("500"), Decimal("0"), Decimal("1000"))
            for n in range(1, count)
        ]
        rows.append(
            AmortizationRow(count, date(2024, 1, 1), Decimal("500"), Decimal("0"), Decimal("500"), Decimal("0"), last_balance)
        )
        return rows

    def test_empty_schedule_is_paid_off(self):
        assert is_paid_off([])

    def test_schedule_ending_before_cap_is_paid_off(self):
        assert is_paid_off(self._rows(MAX_PERIODS - 1, Decimal("0.01")))

    def test_cent_left_at_cap_is_still_owed(self):
        assert not is_paid_off(self._rows(MAX_PERIODS, Decimal("0.01")))

    def test_cleared_on_last_allowed_row(self):
        assert is_paid_off(self._rows(MAX_PERIODS, Decimal("0.00")))


class TestGenerateSchedule:
    def test_thirty_year_mortgage_pays_off(self, mortgage):
        schedule = generate_schedule(**mortgage)
        # The payment is rounded down by a fraction of a cent, which leaves
        # a small remainder for one final payment
        assert len(schedule) in (360, 361)
        assert schedule[-1].remaining_balance == 0
        assert abs(total_interest(schedule) - Decimal("93255")) < 3
        assert is_paid_off(schedule)

    def test_payment_numbers_are_consecutive(self, mortgage):
        schedule = generate_schedule(**mortgage)
        assert [row.payment_number for row in schedule] == list(range(1, len(schedule) + 1))

    def test_balance_is_non_increasing(self, mortgage):
        schedule = generate_schedule(**mortgage)
        balances = [row.remaining_balance for row in schedule]
        assert all(later <= earlier for earlier, later in zip(balances, balances[1:]))
        assert all(balance >= 0 for balance in balances)

    def test_payment_splits_into_principal_and_interest(self, mortgage):
        for row in generate_schedule(**mortgage):
            assert abs(row.payment - (row.principal_portion + row.interest_portion)) <= CENT

    def test_monthly_dates(self, mortgage):
        schedule = generate_schedule(**mortgage)
        assert schedule[0].date == date(2024, 1, 1)
        assert schedule[1].date == date(2024, 2, 1)
        assert schedule[12].date == date(2025, 1, 1)

    def test_month_end_start_does_not_drift(self):
        schedule = generate_schedule(10000, 5, 1000, "monthly", date(2024, 1, 31))
        assert [row.date for row in schedule[:3]] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]

    def test_final_payment_is_clamped(self, mortgage):
        schedule = generate_schedule(**mortgage)
        previous, last = schedule[-2], schedule[-1]
        assert last.payment < mortgage["periodic_payment"]
        assert abs(last.payment - (previous.remaining_balance + last.interest_portion)) <= CENT
        assert last.remaining_balance == 0

    def test_zero_rate_is_straight_line(self, start):
        schedule = generate_schedule(1200, 0, 100, "monthly", start)
        assert len(schedule) == 12
        for row in schedule:
            assert row.interest_portion == 0
            assert row.principal_portion == row.payment
        assert schedule[-1].remaining_balance == 0

    def test_is_deterministic(self, mortgage):
        kwargs = dict(mortgage, extra_monthly_payment=150, one_time_payment=2500, one_time_payment_date=date(2026, 3, 1))
        assert generate_schedule(**kwargs) == generate_schedule(**kwargs)

    def test_accepts_floats_and_strings(self, start):
        from_decimals = generate_schedule(Decimal("5000"), Decimal("4.5"), Decimal("250"), "monthly", start)
        assert generate_schedule(5000.0, 4.5, "250", "monthly", start) == from_decimals

    def test_already_paid_off_balance_gives_empty_schedule(self, start):
        assert generate_schedule(Decimal("0.01"), 5, 100, "monthly", start) == []

    def test_insufficient_payment_runs_to_cap(self, start):
        schedule = generate_schedule(100000, 12, 500, "monthly", start)
        assert len(schedule) == MAX_PERIODS
        assert schedule[-1].remaining_balance > 0
        assert not is_paid_off(schedule)

    @pytest.mark.parametrize("frequency", ["weekly", "biweekly", "monthly", "quarterly", "yearly"])
    def test_never_exceeds_cap(self, frequency, start):
        schedule = generate_schedule(100000, 30, 1, frequency, start)
        assert len(schedule) == MAX_PERIODS


class TestExtraPayments:
    def test_one_time_payment_applied_once(self, mortgage):
        schedule = generate_schedule(
            **mortgage, one_time_payment=Decimal("5000"), one_time_payment_date=date(2025, 6, 15)
        )
        with_extra = [row for row in schedule if row.extra_payment_applied > 0]
        assert len(with_extra) == 1
        # First period dated on or after the target date
        assert with_extra[0].date == date(2025, 7, 1)
        assert with_extra[0].extra_payment_applied == Decimal("5000.00")
        assert with_extra[0].payment == Decimal("5536.82")

    def test_one_time_payment_dated_before_start_applies_first(self, mortgage):
        schedule = generate_schedule(**mortgage, one_time_payment=1000, one_time_payment_date=date(2020, 1, 1))
        assert schedule[0].extra_payment_applied == Decimal("1000.00")
        assert all(row.extra_payment_applied == 0 for row in schedule[1:])

    def test_one_time_payment_after_payoff_has_no_effect(self, mortgage):
        baseline = generate_schedule(**mortgage)
        late = generate_schedule(**mortgage, one_time_payment=5000, one_time_payment_date=date(2100, 1, 1))
        assert late == baseline

    def test_one_time_payment_without_date_is_ignored(self, mortgage):
        assert generate_schedule(**mortgage, one_time_payment=5000) == generate_schedule(**mortgage)

    def test_monthly_extra_unconverted(self, mortgage):
        schedule = generate_schedule(**mortgage, extra_monthly_payment=200)
        assert schedule[0].extra_payment_applied == Decimal("200.00")
        assert schedule[0].payment == Decimal("736.82")

    @pytest.mark.parametrize(
        "frequency, extra_monthly, expected",
        [("quarterly", 100, Decimal("300.00")), ("weekly", 52, Decimal("12.00")), ("biweekly", 26, Decimal("12.00")),
         ("yearly", 10, Decimal("120.00"))],
    )
    def test_extra_converted_to_cadence(self, start, frequency, extra_monthly, expected):
        schedule = generate_schedule(100000, 5, 10000, frequency, start, extra_monthly_payment=extra_monthly)
        assert schedule[0].extra_payment_applied == expected

    def test_extra_is_reduced_on_final_row(self, start):
        schedule = generate_schedule(1000, 0, 300, "monthly", start, extra_monthly_payment=200)
        assert [row.payment for row in schedule] == [Decimal("500.00"), Decimal("500.00")]
        schedule = generate_schedule(1000, 0, 300, "monthly", start, extra_monthly_payment=500)
        assert len(schedule) == 2
        assert schedule[-1].payment == Decimal("200.00")
        assert schedule[-1].extra_payment_applied == 0


class TestFrequencyDates:
    def test_weekly_dates(self, start):
        schedule = generate_schedule(100000, 5, 200, "weekly", start)
        assert schedule[1].date == date(2024, 1, 8)
        assert schedule[52].date == date(2025, 1, 1)
        dates = [row.date for row in schedule]
        assert all(later > earlier for earlier, later in zip(dates, dates[1:]))

    def test_quarterly_dates(self, start):
        schedule = generate_schedule(100000, 5, 3000, "quarterly", start)
        assert [row.date for row in schedule[:3]] == [date(2024, 1, 1), date(2024, 4, 1), date(2024, 7, 1)]

    def test_yearly_interest_uses_annual_rate(self, start):
        schedule = generate_schedule(10000, 6, 2000, "yearly", start)
        assert schedule[0].interest_portion == Decimal("600.00")
        assert schedule[1].date == date(2025, 1, 1)


class TestMetrics:
    def test_empty_schedule(self):
        assert total_interest([]) == 0
        assert total_paid([]) == 0

    def test_total_paid_is_principal_plus_interest(self, mortgage):
        schedule = generate_schedule(**mortgage)
        assert abs(total_paid(schedule) - (mortgage["balance"] + total_interest(schedule))) < 1

    def test_summary(self, start):
        schedule = generate_schedule(1200, 0, 100, "monthly", start)
        summary = summarize_schedule(schedule, start)
        assert summary["total_interest"] == 0
        assert summary["total_paid"] == 1200
        assert summary["payments_made"] == 12
        assert summary["payoff_date"] == "2024-12-01"
        assert summary["paid_off"] is True

    def test_summary_of_empty_schedule(self, start):
        summary = summarize_schedule([], start)
        assert summary["payoff_date"] == "2024-01-01"
        assert summary["payments_made"] == 0


class TestSimulatePayoff:
    def _params(self, **overrides) -> LoanParameters:
        values = dict(
            current_balance=Decimal("100000"),
            annual_rate_percent=Decimal("5"),
            payment_amount=Decimal("536.82"),
            frequency="monthly",
            start_date=date(2024, 1, 1),
        )
        values.update(overrides)
        return LoanParameters(**values)

    def test_extra_monthly_saves_interest_and_time(self):
        result = simulate_payoff(self._params(extra_monthly_payment=Decimal("200")))
        assert len(result.accelerated_schedule) < 360
        assert result.accelerated_total_interest < result.baseline_total_interest
        assert result.interest_saved > 0
        assert result.periods_saved > 0
        assert result.accelerated_payoff_date < result.baseline_payoff_date

    def test_deltas_match_schedules(self):
        result = simulate_payoff(
            self._params(one_time_payment=Decimal("10000"), one_time_payment_date=date(2026, 1, 1))
        )
        assert result.interest_saved == result.baseline_total_interest - result.accelerated_total_interest
        assert result.periods_saved == len(result.baseline_schedule) - len(result.accelerated_schedule)
        assert result.baseline_total_interest == total_interest(result.baseline_schedule)
        assert result.baseline_payoff_date == result.baseline_schedule[-1].date
        assert result.accelerated_payoff_date == result.accelerated_schedule[-1].date

    def test_baseline_ignores_extras(self):
        result = simulate_payoff(self._params(extra_monthly_payment=Decimal("200")))
        assert all(row.extra_payment_applied == 0 for row in result.baseline_schedule)

    def test_no_extras_means_no_savings(self):
        result = simulate_payoff(self._params())
        assert result.interest_saved == 0
        assert result.periods_saved == 0
        assert result.accelerated_schedule == result.baseline_schedule

    def test_already_paid_off_uses_start_date(self):
        result = simulate_payoff(self._params(current_balance=Decimal("0.01"), extra_monthly_payment=Decimal("50")))
        assert result.baseline_payoff_date == date(2024, 1, 1)
        assert result.accelerated_payoff_date == date(2024, 1, 1)
        assert result.accelerated_schedule == []
        assert result.baseline_converged and result.accelerated_converged

    def test_non_convergent_is_reported_as_data(self):
        result = simulate_payoff(
            self._params(annual_rate_percent=Decimal("12"), payment_amount=Decimal("500"))
        )
        assert not result.baseline_converged
        assert not result.accelerated_converged
        assert len(result.baseline_schedule) == MAX_PERIODS

    def test_extra_payment_can_rescue_insufficient_payment(self):
        result = simulate_payoff(
            self._params(
                annual_rate_percent=Decimal("12"),
                payment_amount=Decimal("500"),
                extra_monthly_payment=Decimal("1000"),
            )
        )
        assert not result.baseline_converged
        assert result.accelerated_converged


class TestEffectiveAnnualRate:
    @pytest.mark.parametrize(
        "nominal, frequency, expected",
        [
            (12, "monthly", Decimal("12.68")),
            (6, "quarterly", Decimal("6.14")),
            (5, "yearly", Decimal("5.00")),
            (0, "weekly", Decimal("0.00")),
            (12, "unknown", Decimal("12.68")),
        ],
    )
    def test_conversion(self, nominal, frequency, expected):
        assert effective_annual_rate(nominal, frequency) == expected


class TestIsPaymentSufficient:
    def test_sufficient(self):
        assert is_payment_sufficient(100000, 5, Decimal("536.82"), "monthly")

    def test_insufficient(self):
        assert not is_payment_sufficient(100000, 12, 500, "monthly")

    def test_payment_equal_to_interest_is_insufficient(self):
        assert not is_payment_sufficient(100000, 12, 1000, "monthly")

    def test_cadence_matters(self):
        # 500 covers a week of interest but not a month
        assert is_payment_sufficient(100000, 12, 500, "weekly")

    def test_zero_rate(self):
        assert is_payment_sufficient(100000, 0, 1, "monthly")


class TestPayoffDateAndRemainingTerm:
    def test_payoff_date(self, start):
        assert payoff_date(1200, 0, 100, "monthly", start) == date(2024, 12, 1)

    def test_payoff_date_when_nothing_owed(self, start):
        assert payoff_date(0, 5, 100, "monthly", start) == start

    def test_remaining_term_monthly(self, start):
        assert remaining_term_months(1200, 0, 100, "monthly", as_of=start) == 12

    def test_remaining_term_weekly_rounds_to_month(self, start):
        # 12 weekly payments are 2.77 months
        assert remaining_term_months(1200, 0, 100, "weekly", as_of=start) == 3

    def test_remaining_term_defaults_to_today(self):
        assert remaining_term_months(1200, 0, 100, "monthly") == 12

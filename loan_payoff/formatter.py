"""Output helpers for the loan payoff calculator.

This module provides simple functions to render amortization schedules,
summaries and payoff simulations in a tabular text format using built-in
printing and string formatting.
"""

from __future__ import annotations

from typing import Dict, Iterable

from .data_models import AmortizationRow, PayoffSimulationResult


def print_summary(summary: Dict[str, object]) -> None:
    """Print a summary of schedule metrics in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Total interest     : {summary['total_interest']:.2f}")
    print(f"Total paid         : {summary['total_paid']:.2f}")
    if summary.get("total_extra"):
        print(f"Extra payments     : {summary['total_extra']:.2f}")
    print(f"First payment      : {summary['start_date']}")
    print(f"Payoff date        : {summary['payoff_date']}")
    print(f"Payments made      : {summary['payments_made']}")
    if not summary.get("paid_off", True):
        print("Warning            : payment never clears the balance")
    print("-" * 72)


def print_schedule(schedule: Iterable[AmortizationRow]) -> None:
    """Print the amortization schedule as a tab-separated table."""
    headers = ["No", "Date", "Payment", "Principal", "Interest", "Extra", "Balance"]
    print("\t".join(headers))
    for row in schedule:
        print(
            "\t".join(
                [
                    str(row.payment_number),
                    row.date.isoformat(),
                    f"{row.payment:.2f}",
                    f"{row.principal_portion:.2f}",
                    f"{row.interest_portion:.2f}",
                    f"{row.extra_payment_applied:.2f}",
                    f"{row.remaining_balance:.2f}",
                ]
            )
        )


def print_simulation(result: PayoffSimulationResult) -> None:
    """Print a baseline vs. accelerated comparison.

    The difference column is baseline minus accelerated, so positive values
    are savings.
    """
    print("Payoff simulation")
    print("=" * 72)
    print(f"{'Metric':20s} {'Baseline':>15s} {'Accelerated':>15s} {'Saved':>15s}")
    print(
        f"{'payoff_date':20s} {result.baseline_payoff_date.isoformat():>15s} "
        f"{result.accelerated_payoff_date.isoformat():>15s} {'':>15s}"
    )
    print(
        f"{'total_interest':20s} {result.baseline_total_interest:15.2f} "
        f"{result.accelerated_total_interest:15.2f} {result.interest_saved:15.2f}"
    )
    print(
        f"{'payments':20s} {len(result.baseline_schedule):15d} "
        f"{len(result.accelerated_schedule):15d} {result.periods_saved:15d}"
    )
    print("=" * 72)
    if not result.baseline_converged:
        print("Baseline payment never clears the balance.")
    if not result.accelerated_converged:
        print("Accelerated payments never clear the balance.")

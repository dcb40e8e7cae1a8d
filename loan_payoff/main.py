"""Command-line interface for the loan payoff calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute a monthly payment, print or export a full
amortization schedule, simulate the effect of extra payments, convert a
nominal rate to an effective annual rate and check whether a payment can
ever clear a loan.
"""

from __future__ import annotations

import csv
import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import click

from .data_models import FREQUENCY_LABELS, MONTHLY, AmortizationRow, LoanParameters, PayoffSimulationResult
from .engine import (
    effective_annual_rate,
    generate_schedule,
    is_paid_off,
    is_payment_sufficient,
    monthly_payment,
    simulate_payoff,
    summarize_schedule,
)
from .exceptions import InvalidInputError
from .formatter import print_schedule, print_simulation, print_summary
from .logging_config import ENV_LOG_LEVEL, configure_logging, get_logger
from .utils import decimal_from_str, parse_date

logger = get_logger(__name__)

MAX_PRINTED_ROWS = 120


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000"), thousands separators ("500,000") and
    shorthand with ``k``/``m`` suffixes (e.g., "500k" meaning 500_000).
    """
    cleaned = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if cleaned.endswith("k"):
        factor = Decimal(1_000)
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = Decimal(1_000_000)
        cleaned = cleaned[:-1]
    try:
        return decimal_from_str(cleaned) * factor
    except InvalidInputError:
        raise click.BadParameter(f"Invalid amount: {value}")


def _parse_date_option(value: str) -> date:
    try:
        return parse_date(value)
    except InvalidInputError as exc:
        raise click.BadParameter(str(exc))


def build_params_from_options(
    balance: str,
    rate: float,
    payment: Optional[str],
    term: Optional[int],
    frequency: str,
    start_date: str,
    extra_monthly: Optional[str] = None,
    one_time_payment: Optional[str] = None,
    one_time_date: Optional[str] = None,
) -> LoanParameters:
    """Turn raw option strings into ``LoanParameters``.

    Either ``payment`` or ``term`` must be given. A term derives the monthly
    payment, so it only applies to monthly loans.
    """
    balance_value = parse_amount(balance)
    if balance_value <= 0:
        raise click.BadParameter("Balance must be positive")
    rate_value = decimal_from_str(str(rate))
    if rate_value < 0:
        raise click.BadParameter("Interest rate cannot be negative")
    frequency = frequency.lower()

    if payment:
        payment_value = parse_amount(payment)
        if payment_value <= 0:
            raise click.BadParameter("Payment must be positive")
    elif term:
        if frequency != MONTHLY:
            raise click.BadParameter("--term derives a monthly payment; pass --payment for other frequencies")
        try:
            payment_value = monthly_payment(balance_value, rate_value, term)
        except InvalidInputError as exc:
            raise click.BadParameter(str(exc))
    else:
        raise click.BadParameter("Either --payment or --term is required")

    extra_value = parse_amount(extra_monthly) if extra_monthly else Decimal("0")
    if extra_value < 0:
        raise click.BadParameter("Extra monthly payment cannot be negative")
    one_time_value = parse_amount(one_time_payment) if one_time_payment else Decimal("0")
    if one_time_value < 0:
        raise click.BadParameter("One-time payment cannot be negative")
    one_time_dt = _parse_date_option(one_time_date) if one_time_date else None
    if one_time_value > 0 and one_time_dt is None:
        raise click.BadParameter("--one-time-payment needs --one-time-date")

    return LoanParameters(
        current_balance=balance_value,
        annual_rate_percent=rate_value,
        payment_amount=payment_value,
        frequency=frequency,
        start_date=_parse_date_option(start_date),
        extra_monthly_payment=extra_value,
        one_time_payment=one_time_value,
        one_time_payment_date=one_time_dt,
    )


def schedule_to_dicts(schedule: List[AmortizationRow]) -> List[Dict[str, Any]]:
    """Convert schedule rows into JSON-serialisable dictionaries."""
    return [
        {
            "payment_number": row.payment_number,
            "date": row.date.isoformat(),
            "payment": float(row.payment),
            "principal": float(row.principal_portion),
            "interest": float(row.interest_portion),
            "extra_payment": float(row.extra_payment_applied),
            "balance": float(row.remaining_balance),
        }
        for row in schedule
    ]


def simulation_to_dict(result: PayoffSimulationResult) -> Dict[str, Any]:
    """Convert a simulation result into a JSON-serialisable dictionary."""
    return {
        "baseline_payoff_date": result.baseline_payoff_date.isoformat(),
        "accelerated_payoff_date": result.accelerated_payoff_date.isoformat(),
        "baseline_total_interest": float(result.baseline_total_interest),
        "accelerated_total_interest": float(result.accelerated_total_interest),
        "interest_saved": float(result.interest_saved),
        "periods_saved": result.periods_saved,
        "baseline_converged": result.baseline_converged,
        "accelerated_converged": result.accelerated_converged,
    }


def export_to_json(path: Path, payload: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)


def export_to_csv(path: Path, schedule: List[AmortizationRow]) -> None:
    """Export schedule to a CSV file."""
    header = ["Payment_Number", "Date", "Payment", "Principal", "Interest", "Extra_Payment", "Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in schedule:
            writer.writerow(
                [
                    row.payment_number,
                    row.date.isoformat(),
                    f"{row.payment:.2f}",
                    f"{row.principal_portion:.2f}",
                    f"{row.interest_portion:.2f}",
                    f"{row.extra_payment_applied:.2f}",
                    f"{row.remaining_balance:.2f}",
                ]
            )


def loan_options(command: Callable) -> Callable:
    """Attach the options shared by ``schedule`` and ``simulate``."""
    options = [
        click.option("--balance", "-b", "balance", required=True, help="Outstanding loan balance"),
        click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)"),
        click.option("--payment", "-m", "payment", help="Regular payment per period"),
        click.option("--term", "-t", "term", type=int, help="Term in months; derives a monthly payment"),
        click.option(
            "--frequency",
            "-f",
            "frequency",
            type=click.Choice(list(FREQUENCY_LABELS), case_sensitive=False),
            default=MONTHLY,
            show_default=True,
            help="Payment frequency",
        ),
        click.option("--start-date", "-s", "start_date", required=True, help="First payment date (YYYY-MM[-DD])"),
        click.option("--extra-monthly", "extra_monthly", help="Recurring extra payment per month"),
        click.option("--one-time-payment", "one_time_payment", help="Lump sum paid once"),
        click.option("--one-time-date", "one_time_date", help="Date of the lump sum (YYYY-MM[-DD])"),
    ]
    for option in reversed(options):
        command = option(command)
    return command


@click.group()
@click.option(
    "--log-level",
    envvar=ENV_LOG_LEVEL,
    default="WARNING",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging verbosity",
)
def cli(log_level: str) -> None:
    """A command-line loan payoff calculator."""
    configure_logging(level=log_level)


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Loan amount")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months")
def payment(principal: str, rate: float, term: int) -> None:
    """Compute the fixed monthly payment for a new loan."""
    try:
        value = monthly_payment(parse_amount(principal), decimal_from_str(str(rate)), term)
    except InvalidInputError as exc:
        raise click.BadParameter(str(exc))
    logger.info("Monthly payment for %s at %s%% over %s months: %s", principal, rate, term, value)
    click.echo(f"Monthly payment: {value:.2f}")


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    balance: str,
    rate: float,
    payment: Optional[str],
    term: Optional[int],
    frequency: str,
    start_date: str,
    extra_monthly: Optional[str],
    one_time_payment: Optional[str],
    one_time_date: Optional[str],
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    params = build_params_from_options(
        balance, rate, payment, term, frequency, start_date, extra_monthly, one_time_payment, one_time_date
    )
    rows = generate_schedule(
        params.current_balance,
        params.annual_rate_percent,
        params.payment_amount,
        params.frequency,
        params.start_date,
        params.extra_monthly_payment,
        params.one_time_payment,
        params.one_time_payment_date,
    )
    logger.info("Generated schedule with %d periods", len(rows))
    if not is_paid_off(rows):
        logger.warning("Schedule stopped at %d periods with %s still owed", len(rows), rows[-1].remaining_balance)
    summary_data = summarize_schedule(rows, params.start_date)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, {"summary": summary_data, "schedule": schedule_to_dicts(rows)})
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, rows)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(summary_data)
    # Limit schedule length printed to avoid flooding the terminal
    if len(rows) > MAX_PRINTED_ROWS:
        click.echo(f"Schedule has {len(rows)} rows; showing first {MAX_PRINTED_ROWS} rows.")
        print_schedule(rows[:MAX_PRINTED_ROWS])
    else:
        print_schedule(rows)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def simulate(
    balance: str,
    rate: float,
    payment: Optional[str],
    term: Optional[int],
    frequency: str,
    start_date: str,
    extra_monthly: Optional[str],
    one_time_payment: Optional[str],
    one_time_date: Optional[str],
    output: Optional[str],
) -> None:
    """Compare the loan with and without extra payments."""
    params = build_params_from_options(
        balance, rate, payment, term, frequency, start_date, extra_monthly, one_time_payment, one_time_date
    )
    result = simulate_payoff(params)
    logger.info(
        "Simulated payoff: %d periods saved, %s interest saved", result.periods_saved, result.interest_saved
    )
    if not result.accelerated_converged:
        logger.warning("Accelerated schedule hit the iteration cap")
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Simulation export must use .json extension")
        export_to_json(
            path,
            {"simulation": simulation_to_dict(result), "schedule": schedule_to_dicts(result.accelerated_schedule)},
        )
        click.echo(f"Simulation exported to {path}")
        return
    print_simulation(result)


@cli.command()
@click.option("--rate", "-r", "rate", required=True, type=float, help="Nominal annual rate (percent)")
@click.option(
    "--frequency",
    "-f",
    "frequency",
    type=click.Choice(list(FREQUENCY_LABELS), case_sensitive=False),
    default=MONTHLY,
    show_default=True,
)
def rate(rate: float, frequency: str) -> None:
    """Convert a nominal rate into an effective annual rate."""
    ear = effective_annual_rate(decimal_from_str(str(rate)), frequency)
    click.echo(f"Effective annual rate: {ear:.2f}%")


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Outstanding balance")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--payment", "-m", "payment", required=True, help="Payment per period")
@click.option(
    "--frequency",
    "-f",
    "frequency",
    type=click.Choice(list(FREQUENCY_LABELS), case_sensitive=False),
    default=MONTHLY,
    show_default=True,
)
@click.pass_context
def check(ctx: click.Context, principal: str, rate: float, payment: str, frequency: str) -> None:
    """Check that a payment covers more than one period's interest."""
    if is_payment_sufficient(parse_amount(principal), decimal_from_str(str(rate)), parse_amount(payment), frequency):
        click.echo("Payment is sufficient.")
        return
    click.echo("Payment does not cover the interest; the balance will never decrease.")
    ctx.exit(1)


if __name__ == "__main__":
    cli()

"""Command‑line interface for the repayment calculator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can print a full amortization schedule, view only the
summary, compare two loan scenarios, or work out the fees and late penalties
on an instalment. Schedules can be exported to JSON or CSV files.
"""

from __future__ import annotations

import csv
import json
import shlex
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

import click

from .data_models import INTEREST_METHODS, REDUCING_BALANCE, LoanCalculation
from .engine import MAX_TERM_MONTHS, preview_loan
from .fees import (
    FIXED,
    PERCENTAGE,
    DAILY_RATE,
    FEE_KINDS,
    Fee,
    PenaltyConfig,
    apply_fee_to_loan,
    calculate_days_overdue,
    calculate_late_penalty,
    calculate_total_due,
    get_penalty_tier,
)
from .formatter import print_comparison, print_schedule, print_summary, schedule_to_dicts, summary_to_dict
from .logging_config import log_calculation, setup_logging
from .utils import decimal_from_str, parse_date, round_currency

MAX_PRINTED_ROWS = 120


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000"), thousands separators ("500,000") and
    shorthand with ``k``/``m`` suffixes (e.g., "500k" meaning 500_000).
    """
    cleaned = str(value).strip().lower().replace(",", "")
    factor = Decimal(1)
    if cleaned.endswith("k"):
        factor = Decimal(1_000)
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = Decimal(1_000_000)
        cleaned = cleaned[:-1]
    try:
        return decimal_from_str(cleaned) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_rate(value: str) -> Decimal:
    """Parse an annual rate in percent, with or without a trailing ``%``."""
    cleaned = str(value).strip()
    if cleaned.endswith("%"):
        cleaned = cleaned[:-1]
    try:
        return decimal_from_str(cleaned)
    except ValueError:
        raise click.BadParameter(f"Invalid interest rate: {value}")


def build_calculation_from_options(
    principal: str,
    rate: str,
    term: int,
    method: str = REDUCING_BALANCE,
    start_date: Optional[str] = None,
) -> LoanCalculation:
    """Turn raw option values into a calculation.

    Raises ``click.BadParameter`` for unparseable input and for terms the
    calculator must not be run on (non-positive principal or term, negative
    rate).
    """
    principal_value = parse_amount(principal)
    rate_value = parse_rate(rate)
    method = method.lower()
    if method not in INTEREST_METHODS:
        raise click.BadParameter(f"Interest method must be one of {', '.join(INTEREST_METHODS)}; got {method}")
    start = None
    if start_date:
        try:
            start = parse_date(start_date)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    try:
        calculation = preview_loan(principal_value, rate_value, term, method, start)
    except (ValueError, ArithmeticError) as exc:
        # due dates past year 9999 cannot be represented
        raise click.BadParameter(str(exc))
    if calculation is None:
        raise click.BadParameter(
            "Principal and term must be positive, the term at most "
            f"{MAX_TERM_MONTHS} months and the interest rate must not be negative"
        )
    return calculation


def export_to_json(path: Path, calculation: LoanCalculation) -> None:
    """Export summary and schedule to a JSON file."""
    data = {
        "summary": summary_to_dict(calculation),
        "schedule": schedule_to_dicts(calculation.schedule),
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, calculation: LoanCalculation) -> None:
    """Export the schedule to a CSV file."""
    header = ["Period", "Due_Date", "Payment", "Principal", "Interest", "Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in schedule_to_dicts(calculation.schedule):
            writer.writerow(
                [
                    row["period"],
                    row["due_date"] or "",
                    row["payment"],
                    row["principal"],
                    row["interest"],
                    row["balance"],
                ]
            )


def loan_options(func):
    """Attach the options shared by ``schedule`` and ``summary``."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount, e.g. 250000 or 250k"),
        click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months"),
        click.option(
            "--method",
            "method",
            type=click.Choice(list(INTEREST_METHODS)),
            default=REDUCING_BALANCE,
            show_default=True,
            help="Interest method",
        ),
        click.option("--start-date", "-s", "start_date", help="Disbursement date (YYYY-MM-DD); first instalment is due a month later"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--log-level", default="WARNING", show_default=True, help="Logging level")
def cli(log_level: str) -> None:
    """A loan repayment calculator for reducing-balance and flat-rate loans."""
    try:
        setup_logging(log_level)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--log-level")


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: str,
    term: int,
    method: str,
    start_date: Optional[str],
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    calculation = build_calculation_from_options(principal, rate, term, method, start_date)
    log_calculation("cli", command="schedule", principal=principal, rate=rate, term=term, method=method)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, calculation)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, calculation)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
        click.echo(f"Schedule exported to {path}")
        return

    print_summary(calculation)
    rows = calculation.schedule
    # Limit schedule length printed to avoid flooding the terminal
    if len(rows) > MAX_PRINTED_ROWS:
        click.echo(f"Schedule has {len(rows)} rows; showing first {MAX_PRINTED_ROWS} rows.")
        rows = rows[:MAX_PRINTED_ROWS]
    print_schedule(rows)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    principal: str,
    rate: str,
    term: int,
    method: str,
    start_date: Optional[str],
    output: Optional[str],
) -> None:
    """Compute and print only the summary figures for a loan."""
    calculation = build_calculation_from_options(principal, rate, term, method, start_date)
    log_calculation("cli", command="summary", principal=principal, rate=rate, term=term, method=method)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension", param_hint="--output")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary_to_dict(calculation)}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(calculation)


def parse_scenario_opts(opts: str) -> Dict[str, Any]:
    """Convert a quoted scenario option string into calculation arguments."""
    tokens = shlex.split(opts)
    params: Dict[str, Any] = {
        "principal": None,
        "rate": None,
        "term": None,
        "method": REDUCING_BALANCE,
        "start_date": None,
    }
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if i + 1 >= len(tokens):
            raise click.BadParameter(f"Option {token} in scenario needs a value")
        value = tokens[i + 1]
        if token in ("-p", "--principal"):
            params["principal"] = value
        elif token in ("-r", "--rate"):
            params["rate"] = value
        elif token in ("-t", "--term"):
            try:
                params["term"] = int(value)
            except ValueError:
                raise click.BadParameter(f"Invalid term in scenario: {value}")
        elif token == "--method":
            params["method"] = value
        elif token in ("-s", "--start-date"):
            params["start_date"] = value
        else:
            raise click.BadParameter(f"Unknown option in scenario: {token}")
        i += 2
    for required in ("principal", "rate", "term"):
        if params[required] is None:
            raise click.BadParameter(f"Scenario missing required option {required}")
    return params


@cli.command()
@click.option("--scenario1", "scenario1", required=True, help="First scenario options quoted string")
@click.option("--scenario2", "scenario2", required=True, help="Second scenario options quoted string")
def compare(scenario1: str, scenario2: str) -> None:
    """Compare two loan scenarios.

    Scenarios are provided as quoted option strings, for example:

        repayment-calc compare --scenario1 "-p 500k -r 18 -t 12" --scenario2 "-p 500k -r 18 -t 24"
    """
    calculation1 = build_calculation_from_options(**parse_scenario_opts(scenario1))
    calculation2 = build_calculation_from_options(**parse_scenario_opts(scenario2))
    log_calculation("cli", command="compare", scenario1=scenario1, scenario2=scenario2)
    print_comparison(calculation1, calculation2)


@cli.command()
@click.option("--principal", "-p", "principal", help="Loan amount the processing fee is charged on")
@click.option("--processing-fee", "processing_fee", help="Processing fee amount, or percent with --processing-fee-type PERCENTAGE")
@click.option("--processing-fee-type", type=click.Choice([FIXED, PERCENTAGE]), default=PERCENTAGE, show_default=True)
@click.option(
    "--fee-kind",
    "fee_kind",
    type=click.Choice(list(FEE_KINDS), case_sensitive=False),
    default="PROCESSING",
    show_default=True,
    help="What the fee is charged for",
)
@click.option("--due-amount", "due_amount", help="Instalment amount that fell due")
@click.option("--due-date", "due_date", help="Instalment due date (YYYY-MM-DD)")
@click.option("--paid-on", "paid_on", help="Payment date (YYYY-MM-DD); defaults to today")
@click.option("--penalty-type", type=click.Choice([FIXED, PERCENTAGE, DAILY_RATE]), default=PERCENTAGE, show_default=True)
@click.option("--penalty-value", "penalty_value", default="5", show_default=True, help="Penalty amount, percent or daily rate")
@click.option("--grace-days", type=int, default=0, show_default=True, help="Grace period in days")
def fees(
    principal: Optional[str],
    processing_fee: Optional[str],
    processing_fee_type: str,
    fee_kind: str,
    due_amount: Optional[str],
    due_date: Optional[str],
    paid_on: Optional[str],
    penalty_type: str,
    penalty_value: str,
    grace_days: int,
) -> None:
    """Work out the processing fee of a loan and the penalty on a late instalment."""
    if not (principal and processing_fee) and not (due_amount and due_date):
        raise click.UsageError("Give --principal with --processing-fee, or --due-amount with --due-date")

    if principal and processing_fee:
        value = parse_amount(processing_fee)
        fee = Fee(
            name="processing",
            calculation_type=processing_fee_type,
            amount=value if processing_fee_type == FIXED else None,
            percentage=value if processing_fee_type == PERCENTAGE else None,
            type=fee_kind.upper(),
        )
        amount = apply_fee_to_loan(parse_amount(principal), fee)
        label = fee.type.replace("_", " ").capitalize() + " fee"
        click.echo(f"{label:<19}: {round_currency(amount):.2f}")

    if due_amount and due_date:
        try:
            due = parse_date(due_date)
            current = parse_date(paid_on) if paid_on else date.today()
        except ValueError as exc:
            raise click.BadParameter(str(exc))
        value = parse_amount(penalty_value)
        config = PenaltyConfig(
            type=penalty_type,
            amount=value if penalty_type == FIXED else None,
            percentage=value if penalty_type == PERCENTAGE else None,
            daily_rate=value if penalty_type == DAILY_RATE else None,
            grace_period_days=grace_days,
        )
        due_value = parse_amount(due_amount)
        days = calculate_days_overdue(due, current)
        penalty = calculate_late_penalty(due_value, due, current, config)
        click.echo(f"Days overdue       : {days}")
        if days > 0:
            tier = get_penalty_tier(days)
            click.echo(f"Penalty tier       : {tier.tier} ({tier.label})")
        click.echo(f"Late penalty       : {round_currency(penalty):.2f}")
        click.echo(f"Total due          : {round_currency(calculate_total_due(due_value, Decimal(0), penalties=[penalty])):.2f}")


if __name__ == "__main__":
    cli()

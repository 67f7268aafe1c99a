"""Command-line interface for the loan tracker.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute full amortization schedules, view summaries with
the savings from extra payments, check where a loan stands on a given date,
and keep a collection of loans in a local database. Results can be printed
to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
import math
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional, Tuple

import click

from .data_models import (
    EarlyPayment,
    EarlyPaymentKind,
    LoanParameters,
    LoanSummary,
    PaymentRecord,
    RateAdjustment,
    TermUnit,
    term_to_months,
)
from .engine import generate_schedule, loan_snapshot, summarize
from .formatter import print_loan_totals, print_loans, print_schedule, print_snapshot, print_summary
from .loan_store import collection_totals, create_store_from_env, inputs_from_record
from .serialization import serialize_schedule, serialize_snapshot, serialize_summary
from .utils import decimal_from_str, parse_date

MAX_PRINTED_ROWS = 120


def parse_amount(value: str) -> float:
    """Parse a numeric string with optional suffixes.

    Accepts plain floats ("500000") and shorthand with ``k``/``m`` suffixes
    (e.g., "500k" meaning 500_000). Returns a float.
    """
    value = value.strip().lower()
    value = value.replace(",", "")
    factor = 1.0
    if value.endswith("k"):
        factor = 1_000.0
        value = value[:-1]
    elif value.endswith("m"):
        factor = 1_000_000.0
        value = value[:-1]
    try:
        amount = float(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")
    if not math.isfinite(amount):
        raise click.BadParameter(f"Invalid amount: {value}")
    return amount


def _parse_int(value: str, what: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise click.BadParameter(f"Invalid {what}: {value}")


def parse_early_payment_strings(values: Tuple[str, ...]) -> List[EarlyPayment]:
    """Parse ``one-time:AMOUNT:PERIOD`` and ``recurring:AMOUNT:START:FREQUENCY`` entries."""
    payments: List[EarlyPayment] = []
    for item in values:
        parts = item.split(":")
        kind = parts[0].lower()
        if kind == EarlyPaymentKind.ONE_TIME.value and len(parts) == 3:
            frequency = None
        elif kind == EarlyPaymentKind.RECURRING.value and len(parts) == 4:
            frequency = _parse_int(parts[3], "frequency")
        else:
            raise click.BadParameter(
                "Early payment must be one-time:AMOUNT:PERIOD or "
                f"recurring:AMOUNT:START:FREQUENCY; got {item}"
            )
        amount = decimal_from_str(str(parse_amount(parts[1])))
        start = _parse_int(parts[2], "period")
        try:
            payments.append(
                EarlyPayment(kind=kind, amount=amount, start_period=start, frequency_months=frequency)
            )
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    return payments


def parse_rate_adjustment_strings(values: Tuple[str, ...]) -> List[RateAdjustment]:
    """Parse ``PERIOD:RATE`` entries, e.g. ``13:4.25``."""
    adjustments: List[RateAdjustment] = []
    for item in values:
        parts = item.split(":")
        if len(parts) != 2:
            raise click.BadParameter(f"Rate adjustment must be in PERIOD:RATE format; got {item}")
        period = _parse_int(parts[0], "period")
        try:
            rate = decimal_from_str(parts[1].rstrip("%"))
            adjustments.append(RateAdjustment(effective_period=period, new_annual_rate_percent=rate))
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    return adjustments


def build_inputs_from_options(
    principal: str,
    rate: float,
    term: int,
    term_unit: str,
    start_date: str,
    early_payment: Tuple[str, ...],
    rate_adjustment: Tuple[str, ...],
) -> Tuple[LoanParameters, List[EarlyPayment], List[RateAdjustment]]:
    principal_value = decimal_from_str(str(parse_amount(principal)))
    try:
        start_dt = parse_date(start_date)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    early_payments = parse_early_payment_strings(early_payment) if early_payment else []
    rate_adjustments = parse_rate_adjustment_strings(rate_adjustment) if rate_adjustment else []
    try:
        parameters = LoanParameters(
            principal=principal_value,
            annual_rate_percent=decimal_from_str(str(rate)),
            term_in_months=term_to_months(term, term_unit),
            start_date=start_dt,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    return parameters, early_payments, rate_adjustments


def loan_options(func: Callable) -> Callable:
    """Attach the options describing a loan to a command."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount"),
        click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=int, help="Loan term"),
        click.option(
            "--term-unit",
            "term_unit",
            type=click.Choice([u.value for u in TermUnit]),
            default=TermUnit.MONTHS.value,
            help="Unit of --term",
        ),
        click.option("--start-date", "-s", "start_date", required=True, help="First payment date (YYYY-MM-DD or YYYY-MM)"),
        click.option(
            "--early-payment",
            "early_payment",
            multiple=True,
            help="Extra payment: one-time:AMOUNT:PERIOD or recurring:AMOUNT:START:FREQUENCY",
        ),
        click.option("--rate-adjustment", "rate_adjustment", multiple=True, help="Rate change in PERIOD:RATE format"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def export_to_json(path: Path, schedule: List[PaymentRecord], summary: LoanSummary) -> None:
    """Export schedule and summary to a JSON file."""
    data = {"summary": serialize_summary(summary), "schedule": serialize_schedule(schedule)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: List[PaymentRecord]) -> None:
    """Export schedule to a CSV file."""
    header = ["Period", "Date", "Payment", "Principal", "Interest", "Balance"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule:
            writer.writerow(
                [
                    e.period_number,
                    e.date.isoformat(),
                    float(e.payment_amount),
                    float(e.principal_portion),
                    float(e.interest_portion),
                    float(e.remaining_balance),
                ]
            )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log engine details to stderr")
def cli(verbose: bool) -> None:
    """A command-line loan tracker with extra payments and rate changes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: float,
    term: int,
    term_unit: str,
    start_date: str,
    early_payment: Tuple[str, ...],
    rate_adjustment: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compute and print the full amortization schedule."""
    parameters, early_payments, rate_adjustments = build_inputs_from_options(
        principal, rate, term, term_unit, start_date, early_payment, rate_adjustment
    )
    schedule_entries = generate_schedule(parameters, early_payments, rate_adjustments)
    summary_data = summarize(parameters, early_payments, rate_adjustments, schedule=schedule_entries)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, schedule_entries, summary_data)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, schedule_entries)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
    else:
        print_summary(summary_data)
        if len(schedule_entries) > MAX_PRINTED_ROWS:
            click.echo(
                f"Schedule has {len(schedule_entries)} rows; showing first {MAX_PRINTED_ROWS} rows."
            )
        print_schedule(schedule_entries[:MAX_PRINTED_ROWS])


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    principal: str,
    rate: float,
    term: int,
    term_unit: str,
    start_date: str,
    early_payment: Tuple[str, ...],
    rate_adjustment: Tuple[str, ...],
    output: Optional[str],
) -> None:
    """Compute and print only the summary metrics for a loan."""
    parameters, early_payments, rate_adjustments = build_inputs_from_options(
        principal, rate, term, term_unit, start_date, early_payment, rate_adjustment
    )
    summary_data = summarize(parameters, early_payments, rate_adjustments)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": serialize_summary(summary_data)}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(summary_data)


@cli.command()
@loan_options
@click.option("--as-of", "as_of", help="Date to report on (YYYY-MM-DD); defaults to today")
@click.option("--json", "as_json", is_flag=True, help="Print the status as JSON")
def status(
    principal: str,
    rate: float,
    term: int,
    term_unit: str,
    start_date: str,
    early_payment: Tuple[str, ...],
    rate_adjustment: Tuple[str, ...],
    as_of: Optional[str],
    as_json: bool,
) -> None:
    """Show the current payment, balance and payoff date of a loan."""
    parameters, early_payments, rate_adjustments = build_inputs_from_options(
        principal, rate, term, term_unit, start_date, early_payment, rate_adjustment
    )
    snapshot = loan_snapshot(parameters, _as_of_date(as_of), early_payments, rate_adjustments)
    if as_json:
        click.echo(json.dumps(serialize_snapshot(snapshot), indent=2))
    else:
        print_snapshot(snapshot)


def _as_of_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return parse_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


@cli.group()
@click.option(
    "--database-url",
    "database_url",
    envvar="LOAN_TRACKER_DATABASE_URL",
    help="SQLAlchemy URL of the loan database (default: sqlite:///loans.sqlite3)",
)
@click.pass_context
def loans(ctx: click.Context, database_url: Optional[str]) -> None:
    """Manage the stored loan collection."""
    ctx.obj = create_store_from_env(database_url)


@loans.command("list")
@click.pass_obj
def list_loans(store) -> None:
    """List stored loans with their cached figures."""
    records = store.list_loans()
    if not records:
        click.echo("No loans stored.")
        return
    print_loans(records)
    print_loan_totals(collection_totals(records))


@loans.command("add")
@click.option("--name", "name", required=True, help="Display name of the loan")
@click.option("--id", "loan_id", help="Update the loan with this id instead of creating one")
@loan_options
@click.option("--as-of", "as_of", help="Date the cached balance refers to; defaults to today")
@click.pass_obj
def add_loan(
    store,
    name: str,
    loan_id: Optional[str],
    principal: str,
    rate: float,
    term: int,
    term_unit: str,
    start_date: str,
    early_payment: Tuple[str, ...],
    rate_adjustment: Tuple[str, ...],
    as_of: Optional[str],
) -> None:
    """Save a loan to the collection."""
    parameters, early_payments, rate_adjustments = build_inputs_from_options(
        principal, rate, term, term_unit, start_date, early_payment, rate_adjustment
    )
    record = store.save_loan(
        name=name,
        principal=parameters.principal,
        annual_rate_percent=parameters.annual_rate_percent,
        term_value=term,
        term_unit=term_unit,
        start_date=parameters.start_date,
        early_payments=early_payments,
        rate_adjustments=rate_adjustments,
        as_of=_as_of_date(as_of),
        loan_id=loan_id,
    )
    click.echo(f"Saved loan {record['id']}")


@loans.command("show")
@click.argument("loan_id")
@click.option("--as-of", "as_of", help="Date to report on (YYYY-MM-DD); defaults to today")
@click.pass_obj
def show_loan(store, loan_id: str, as_of: Optional[str]) -> None:
    """Show the summary and status of a stored loan."""
    record = store.get_loan(loan_id)
    if record is None:
        raise click.ClickException(f"No loan with id {loan_id}")
    parameters, early_payments, rate_adjustments = inputs_from_record(record)
    schedule_entries = generate_schedule(parameters, early_payments, rate_adjustments)
    click.echo(f"{record['name']} ({record['id']})")
    print_summary(summarize(parameters, early_payments, rate_adjustments, schedule=schedule_entries))
    print_snapshot(
        loan_snapshot(parameters, _as_of_date(as_of), early_payments, rate_adjustments, schedule=schedule_entries)
    )


@loans.command("remove")
@click.argument("loan_id")
@click.pass_obj
def remove_loan(store, loan_id: str) -> None:
    """Delete a stored loan."""
    if not store.delete_loan(loan_id):
        raise click.ClickException(f"No loan with id {loan_id}")
    click.echo(f"Removed loan {loan_id}")


if __name__ == "__main__":
    cli()

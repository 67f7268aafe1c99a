"""Output helpers for the loan tracker.

This module provides simple functions to render amortization schedules,
summaries and snapshots in a tabular text format. Amounts are shown with two
decimals; currency symbols and locale formatting are left to the reader.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable

from .data_models import LoanSnapshot, LoanSummary, PaymentRecord


def print_summary(summary: LoanSummary) -> None:
    """Print a summary of loan metrics in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Monthly payment    : {summary.monthly_payment:.2f}")
    print(f"Scheduled total    : {summary.total_payment:.2f}")
    print(f"Actual total paid  : {summary.actual_total_payment:.2f}")
    print(f"Total interest     : {summary.total_interest:.2f}")
    if summary.interest_saved:
        print(f"Interest saved     : {summary.interest_saved:.2f}")
    if summary.periods_shortened:
        print(f"Term reduction     : {summary.periods_shortened} months")
    print(f"Payments           : {summary.payments_made}")
    print(f"Original end date  : {summary.original_payoff_date.isoformat()}")
    print(f"Payoff date        : {summary.payoff_date.isoformat()}")
    print("-" * 72)


def print_schedule(schedule: Iterable[PaymentRecord]) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["Period", "Date", "Payment", "Principal", "Interest", "Balance"]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period_number),
            entry.date.isoformat(),
            f"{entry.payment_amount:.2f}",
            f"{entry.principal_portion:.2f}",
            f"{entry.interest_portion:.2f}",
            f"{entry.remaining_balance:.2f}",
        ]
        print("\t".join(row))


def print_snapshot(snapshot: LoanSnapshot) -> None:
    print(f"Status as of {snapshot.as_of.isoformat()}")
    print("-" * 72)
    print(f"Payments made      : {snapshot.months_elapsed}")
    print(f"Current payment #  : {snapshot.current_payment_number}")
    print(f"Current payment    : {snapshot.current_monthly_payment:.2f}")
    print(f"Current rate       : {snapshot.current_annual_rate_percent}%")
    print(f"Remaining balance  : {snapshot.remaining_balance:.2f}")
    if snapshot.payoff_date:
        print(f"Freedom date       : {snapshot.payoff_date.isoformat()}")
    print("-" * 72)


def print_loans(loans: Iterable[Dict[str, Any]]) -> None:
    """Print stored loans, one per line, with their cached figures."""
    print(f"{'Id':34s} {'Name':20s} {'Payment':>12s} {'Balance':>14s} {'Payoff':>12s}")
    for loan in loans:
        print(
            f"{loan['id']:34s} {loan['name'][:20]:20s} "
            f"{loan['current_monthly_payment']:12.2f} {loan['remaining_balance']:14.2f} "
            f"{loan['payoff_date'] or '-':>12s}"
        )


def print_loan_totals(totals: Dict[str, Any]) -> None:
    print("-" * 72)
    print(f"Loans              : {totals['loan_count']}")
    print(f"Total borrowed     : {totals['total_borrowed']:.2f}")
    print(f"Total remaining    : {totals['total_remaining_balance']:.2f}")
    print(f"Monthly payments   : {totals['total_monthly_payment']:.2f}")

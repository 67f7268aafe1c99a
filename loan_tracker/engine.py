"""Core calculation engine for the loan tracker.

This module implements the financial logic required to build amortization
schedules for fixed-payment loans. It supports one-time and recurring extra
payments, which keep the regular payment fixed and shorten the loan, and
mid-term interest rate changes, which re-amortize the remaining balance over
the remaining term so the payoff date stays put. All functions are pure: the
same inputs always give the same schedule, and nothing reads the clock.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, getcontext
from typing import Dict, Iterable, List, Optional, Sequence

from .data_models import (
    EarlyPayment,
    LoanParameters,
    LoanSnapshot,
    LoanSummary,
    PaymentCalculation,
    PaymentRecord,
    RateAdjustment,
    SavingsSummary,
    checked_decimal,
)
from .exceptions import InvalidLoanParameters
from .utils import add_months, months_elapsed

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
# Balances this close to zero are floating residue, not debt.
BALANCE_EPSILON = Decimal("1e-9")


def _monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    return annual_rate_percent / Decimal(100) / Decimal(12)


def calculate_payment(principal, annual_rate_percent, term_in_months: int) -> PaymentCalculation:
    """Return the fixed monthly payment and the nominal total for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``. The total is ``payment * n`` and ignores
    any extra payments.

    Raises
    ------
    InvalidLoanParameters
        If the principal is not positive, the rate is negative or the term
        is not a positive whole number of months.
    """
    principal = checked_decimal(principal, InvalidLoanParameters, "Principal")
    annual_rate_percent = checked_decimal(annual_rate_percent, InvalidLoanParameters, "Interest rate")
    if principal is None or principal <= 0:
        raise InvalidLoanParameters(f"Principal must be positive; got {principal}")
    if annual_rate_percent is None or annual_rate_percent < 0:
        raise InvalidLoanParameters(f"Interest rate cannot be negative; got {annual_rate_percent}")
    if isinstance(term_in_months, bool) or not isinstance(term_in_months, int) or term_in_months <= 0:
        raise InvalidLoanParameters(f"Term must be a positive number of months; got {term_in_months}")

    rate_per_month = _monthly_rate(annual_rate_percent)
    if rate_per_month == 0:
        monthly_payment = principal / Decimal(term_in_months)
    else:
        factor = (1 + rate_per_month) ** term_in_months
        monthly_payment = principal * (rate_per_month * factor) / (factor - 1)
    return PaymentCalculation(
        monthly_payment=monthly_payment,
        total_payment=monthly_payment * term_in_months,
    )


def _prepare_rate_adjustments(adjustments: Iterable[RateAdjustment]) -> Dict[int, RateAdjustment]:
    """Index rate adjustments by period.

    When several adjustments share a period the last one in input order wins.
    """
    mapping: Dict[int, RateAdjustment] = {}
    for adj in adjustments:
        mapping[adj.effective_period] = adj
    return mapping


def _extra_for_period(period: int, early_payments: Sequence[EarlyPayment]) -> Decimal:
    return sum((ep.amount for ep in early_payments if ep.applies_to(period)), ZERO)


def generate_schedule(
    parameters: LoanParameters,
    early_payments: Iterable[EarlyPayment] = (),
    rate_adjustments: Iterable[RateAdjustment] = (),
) -> List[PaymentRecord]:
    """Compute the month-by-month amortization schedule for a loan.

    Parameters
    ----------
    parameters: LoanParameters
        Principal, rate, term and start date of the loan.
    early_payments: Iterable[EarlyPayment]
        Extra principal contributions. They are added on top of the regular
        payment, so the loan may be paid off before the end of the term.
    rate_adjustments: Iterable[RateAdjustment]
        Interest rate changes. At each change the regular payment is
        recomputed from the remaining balance, the new rate and the number of
        periods left in the original term.

    Returns
    -------
    List[PaymentRecord]
        One record per month, ending at the term or as soon as the balance
        reaches zero, whichever comes first.
    """
    early_payments = list(early_payments)
    adjustment_map = _prepare_rate_adjustments(rate_adjustments)
    term = parameters.term_in_months

    current_rate = parameters.annual_rate_percent
    rate_per_month = _monthly_rate(current_rate)
    monthly_payment = calculate_payment(parameters.principal, current_rate, term).monthly_payment

    schedule: List[PaymentRecord] = []
    balance = parameters.principal

    for period in range(1, term + 1):
        adj = adjustment_map.get(period)
        if adj is not None:
            current_rate = adj.new_annual_rate_percent
            rate_per_month = _monthly_rate(current_rate)
            # Re-amortize over what is left of the original term
            monthly_payment = calculate_payment(balance, current_rate, term - period + 1).monthly_payment
            logger.debug(
                "Rate changed to %s%% at period %d; payment now %s", current_rate, period, monthly_payment
            )

        interest_payment = balance * rate_per_month
        total_due = monthly_payment + _extra_for_period(period, early_payments)

        # The final payment never exceeds what is owed
        principal_payment = min(total_due - interest_payment, balance)
        balance -= principal_payment
        if balance < BALANCE_EPSILON:
            balance = ZERO

        schedule.append(
            PaymentRecord(
                period_number=period,
                date=add_months(parameters.start_date, period - 1),
                payment_amount=interest_payment + principal_payment,
                principal_portion=principal_payment,
                interest_portion=interest_payment,
                remaining_balance=balance,
            )
        )

        if balance == 0:
            break

    logger.debug("Generated %d of %d scheduled periods", len(schedule), term)
    return schedule


def generate_baseline_schedule(
    parameters: LoanParameters,
    rate_adjustments: Iterable[RateAdjustment] = (),
) -> List[PaymentRecord]:
    """Return the schedule the loan would follow without any extra payments.

    Rate adjustments are still honoured. The baseline is only used as a
    reference for savings and is never the loan's actual schedule.
    """
    return generate_schedule(parameters, (), rate_adjustments)


def _total_paid(schedule: Iterable[PaymentRecord]) -> Decimal:
    return sum((record.payment_amount for record in schedule), ZERO)


def _savings_from_schedules(
    parameters: LoanParameters,
    schedule: Sequence[PaymentRecord],
    baseline: Sequence[PaymentRecord],
    has_early_payments: bool,
) -> SavingsSummary:
    actual_total_payment = _total_paid(schedule)
    total_interest = actual_total_payment - parameters.principal
    if has_early_payments:
        baseline_interest = _total_paid(baseline) - parameters.principal
        interest_saved = baseline_interest - total_interest
    else:
        interest_saved = ZERO
    return SavingsSummary(
        actual_total_payment=actual_total_payment,
        total_interest=total_interest,
        interest_saved=interest_saved,
        periods_shortened=len(baseline) - len(schedule),
    )


def calculate_savings(
    parameters: LoanParameters,
    early_payments: Iterable[EarlyPayment] = (),
    rate_adjustments: Iterable[RateAdjustment] = (),
) -> SavingsSummary:
    """Compare the loan's schedule against its baseline.

    Both schedules share the same rate adjustments; only the extra payments
    differ. ``interest_saved`` is zero when there are no extra payments.
    """
    early_payments = list(early_payments)
    rate_adjustments = list(rate_adjustments)
    schedule = generate_schedule(parameters, early_payments, rate_adjustments)
    baseline = generate_baseline_schedule(parameters, rate_adjustments)
    return _savings_from_schedules(parameters, schedule, baseline, bool(early_payments))


def summarize(
    parameters: LoanParameters,
    early_payments: Iterable[EarlyPayment] = (),
    rate_adjustments: Iterable[RateAdjustment] = (),
    schedule: Optional[Sequence[PaymentRecord]] = None,
) -> LoanSummary:
    """Compute the aggregate figures shown for a loan.

    ``schedule`` may be passed when the caller already generated it for the
    same inputs; it is computed otherwise.
    """
    early_payments = list(early_payments)
    rate_adjustments = list(rate_adjustments)
    if schedule is None:
        schedule = generate_schedule(parameters, early_payments, rate_adjustments)
    baseline = generate_baseline_schedule(parameters, rate_adjustments)
    savings = _savings_from_schedules(parameters, schedule, baseline, bool(early_payments))
    payment = calculate_payment(
        parameters.principal, parameters.annual_rate_percent, parameters.term_in_months
    )
    return LoanSummary(
        monthly_payment=payment.monthly_payment,
        total_payment=payment.total_payment,
        actual_total_payment=savings.actual_total_payment,
        total_interest=savings.total_interest,
        interest_saved=savings.interest_saved,
        periods_shortened=savings.periods_shortened,
        payments_made=len(schedule),
        original_payoff_date=add_months(parameters.start_date, parameters.term_in_months - 1),
        payoff_date=schedule[-1].date,
    )


def loan_snapshot(
    parameters: LoanParameters,
    as_of: date,
    early_payments: Iterable[EarlyPayment] = (),
    rate_adjustments: Iterable[RateAdjustment] = (),
    schedule: Optional[Sequence[PaymentRecord]] = None,
) -> LoanSnapshot:
    """Describe where the loan stands on ``as_of``.

    ``as_of`` is always supplied by the caller. The number of payments made
    is the number of whole months elapsed since the start date; the remaining
    balance is the balance after the last of those payments.
    """
    rate_adjustments = list(rate_adjustments)
    if schedule is None:
        schedule = generate_schedule(parameters, early_payments, rate_adjustments)

    elapsed = months_elapsed(parameters.start_date, as_of)
    current_number = elapsed + 1
    initial_payment = calculate_payment(
        parameters.principal, parameters.annual_rate_percent, parameters.term_in_months
    ).monthly_payment

    if elapsed < len(schedule):
        current_payment = schedule[elapsed].payment_amount
    else:
        current_payment = initial_payment

    if elapsed == 0:
        remaining = parameters.principal
    elif elapsed >= len(schedule):
        remaining = ZERO
    else:
        remaining = schedule[elapsed - 1].remaining_balance

    current_rate = parameters.annual_rate_percent
    adjustment_map = _prepare_rate_adjustments(rate_adjustments)
    applied = [period for period in adjustment_map if period <= current_number]
    if applied:
        current_rate = adjustment_map[max(applied)].new_annual_rate_percent

    return LoanSnapshot(
        as_of=as_of,
        months_elapsed=elapsed,
        current_payment_number=current_number,
        current_monthly_payment=current_payment,
        current_annual_rate_percent=current_rate,
        remaining_balance=remaining,
        payoff_date=schedule[-1].date if schedule else None,
    )

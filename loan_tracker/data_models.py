"""Data models for the loan tracker.

This module defines dataclasses representing the entities used by the
amortization engine: the loan parameters, extra (early) payments, interest
rate adjustments and the records produced for each month of a schedule.
Input models validate themselves on construction so the engine never sees an
out-of-range value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from .exceptions import InvalidEarlyPayment, InvalidLoanParameters, InvalidRateAdjustment
from .utils import to_decimal


def _new_id() -> str:
    return uuid4().hex


def checked_decimal(value, error, label: str) -> Optional[Decimal]:
    """Coerce ``value`` to a finite ``Decimal`` or raise ``error``.

    ``None`` passes through so callers can report a missing value with their
    own range message.
    """
    try:
        result = to_decimal(value)
    except ValueError as exc:
        raise error(f"{label} must be a finite number; got {value!r}") from exc
    if result is not None and not isinstance(result, Decimal):
        raise error(f"{label} must be a number; got {value!r}")
    return result


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def is_whole_number(value) -> bool:
    """True for ints (not bools) and for floats/Decimals without a fraction."""
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False
    try:
        return int(value) == value
    except (ValueError, OverflowError):
        return False


class TermUnit(str, Enum):
    MONTHS = "months"
    YEARS = "years"


class EarlyPaymentKind(str, Enum):
    ONE_TIME = "one-time"
    RECURRING = "recurring"


def term_to_months(value: int, unit: TermUnit | str = TermUnit.MONTHS) -> int:
    """Convert a user-facing term value and unit into a number of months.

    This conversion must happen exactly once, before the loan parameters are
    built. A term of ``30`` years yields ``360``.
    """
    try:
        unit = TermUnit(unit)
    except ValueError as exc:
        raise InvalidLoanParameters(f"Unknown term unit: {unit}") from exc
    if not is_whole_number(value) or value <= 0:
        raise InvalidLoanParameters(f"Term must be a positive whole number; got {value}")
    return int(value) * 12 if unit is TermUnit.YEARS else int(value)


@dataclass(frozen=True)
class LoanParameters:
    """Terms of a loan as entered by the user.

    Attributes
    ----------
    principal: Decimal
        The amount borrowed.
    annual_rate_percent: Decimal
        Nominal annual interest rate in percent (``5.5`` means 5.5 %).
    term_in_months: int
        Number of scheduled monthly payments before any acceleration.
    start_date: date
        Origination date. The first payment falls on this date and every
        following payment one calendar month later.
    """

    principal: Decimal
    annual_rate_percent: Decimal
    term_in_months: int
    start_date: date

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "principal", checked_decimal(self.principal, InvalidLoanParameters, "Principal")
        )
        object.__setattr__(
            self,
            "annual_rate_percent",
            checked_decimal(self.annual_rate_percent, InvalidLoanParameters, "Interest rate"),
        )
        if self.principal is None or self.principal <= 0:
            raise InvalidLoanParameters(f"Principal must be positive; got {self.principal}")
        if self.annual_rate_percent is None or self.annual_rate_percent < 0:
            raise InvalidLoanParameters(
                f"Interest rate cannot be negative; got {self.annual_rate_percent}"
            )
        if not _is_int(self.term_in_months) or self.term_in_months <= 0:
            raise InvalidLoanParameters(f"Term must be a positive number of months; got {self.term_in_months}")
        if not isinstance(self.start_date, date):
            raise InvalidLoanParameters(f"Start date must be a date; got {self.start_date!r}")


@dataclass(frozen=True)
class EarlyPayment:
    """An extra principal contribution on top of the regular payment.

    Attributes
    ----------
    kind: EarlyPaymentKind
        ``ONE_TIME`` applies once at ``start_period``. ``RECURRING`` applies
        at ``start_period`` and every ``frequency_months`` periods after it.
    amount: Decimal
        Extra amount paid in each applicable period.
    start_period: int
        1-indexed period of the first application.
    frequency_months: Optional[int]
        Recurrence interval; required for recurring payments only.
    """

    kind: EarlyPaymentKind
    amount: Decimal
    start_period: int
    frequency_months: Optional[int] = None
    name: Optional[str] = None
    id: str = field(default_factory=_new_id)

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "kind", EarlyPaymentKind(self.kind))
        except ValueError as exc:
            raise InvalidEarlyPayment(f"Unknown early payment type: {self.kind}") from exc
        object.__setattr__(
            self, "amount", checked_decimal(self.amount, InvalidEarlyPayment, "Early payment amount")
        )
        if self.amount is None or self.amount <= 0:
            raise InvalidEarlyPayment(f"Early payment amount must be positive; got {self.amount}")
        if not _is_int(self.start_period) or self.start_period < 1:
            raise InvalidEarlyPayment(f"Early payment month must be 1 or later; got {self.start_period}")
        if self.kind is EarlyPaymentKind.RECURRING:
            if not _is_int(self.frequency_months) or self.frequency_months < 1:
                raise InvalidEarlyPayment(
                    f"Recurring payment frequency must be at least 1 month; got {self.frequency_months}"
                )

    def applies_to(self, period: int) -> bool:
        """Return True when this payment is made in ``period`` (1-indexed)."""
        if self.kind is EarlyPaymentKind.ONE_TIME:
            return period == self.start_period
        return period >= self.start_period and (period - self.start_period) % self.frequency_months == 0


@dataclass(frozen=True)
class RateAdjustment:
    """A change of the annual interest rate from ``effective_period`` onward."""

    effective_period: int
    new_annual_rate_percent: Decimal
    id: str = field(default_factory=_new_id)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "new_annual_rate_percent",
            checked_decimal(self.new_annual_rate_percent, InvalidRateAdjustment, "New interest rate"),
        )
        if not _is_int(self.effective_period) or self.effective_period < 1:
            raise InvalidRateAdjustment(
                f"Rate change month must be 1 or later; got {self.effective_period}"
            )
        if self.new_annual_rate_percent is None or self.new_annual_rate_percent < 0:
            raise InvalidRateAdjustment(
                f"New interest rate cannot be negative; got {self.new_annual_rate_percent}"
            )


@dataclass(frozen=True)
class PaymentRecord:
    """One month of an amortization schedule.

    ``payment_amount`` always equals ``principal_portion + interest_portion``.
    In the final period it may be smaller than the regular payment because
    the principal portion is capped at the outstanding balance.
    """

    period_number: int
    date: date
    payment_amount: Decimal
    principal_portion: Decimal
    interest_portion: Decimal
    remaining_balance: Decimal


@dataclass(frozen=True)
class PaymentCalculation:
    monthly_payment: Decimal
    total_payment: Decimal


@dataclass(frozen=True)
class SavingsSummary:
    """Effect of extra payments compared with the baseline schedule."""

    actual_total_payment: Decimal
    total_interest: Decimal
    interest_saved: Decimal
    periods_shortened: int


@dataclass(frozen=True)
class LoanSummary:
    """Aggregate figures for a loan and its schedule.

    ``monthly_payment`` and ``total_payment`` describe the loan as originally
    contracted; the remaining fields reflect extra payments and rate changes.
    """

    monthly_payment: Decimal
    total_payment: Decimal
    actual_total_payment: Decimal
    total_interest: Decimal
    interest_saved: Decimal
    periods_shortened: int
    payments_made: int
    original_payoff_date: date
    payoff_date: date


@dataclass(frozen=True)
class LoanSnapshot:
    """State of a loan as of a caller-supplied date."""

    as_of: date
    months_elapsed: int
    current_payment_number: int
    current_monthly_payment: Decimal
    current_annual_rate_percent: Decimal
    remaining_balance: Decimal
    payoff_date: Optional[date]

from datetime import date
from decimal import Decimal

import pytest

from loan_tracker.data_models import (
    EarlyPayment,
    EarlyPaymentKind,
    LoanParameters,
    RateAdjustment,
    TermUnit,
    term_to_months,
)
from loan_tracker.exceptions import (
    InvalidEarlyPayment,
    InvalidLoanParameters,
    InvalidRateAdjustment,
    LoanCalcError,
)


class TestTermToMonths:
    def test_years(self):
        assert term_to_months(30, TermUnit.YEARS) == 360

    def test_months(self):
        assert term_to_months(18, "months") == 18

    def test_rejects_non_positive(self):
        with pytest.raises(InvalidLoanParameters):
            term_to_months(0, TermUnit.YEARS)

    def test_rejects_unknown_unit(self):
        with pytest.raises(InvalidLoanParameters):
            term_to_months(5, "weeks")

    @pytest.mark.parametrize("value", [2.5, True, "30", float("nan"), None])
    def test_rejects_non_whole_terms(self, value):
        with pytest.raises(InvalidLoanParameters):
            term_to_months(value, TermUnit.YEARS)

    def test_accepts_whole_floats(self):
        assert term_to_months(2.0, TermUnit.YEARS) == 24


class TestLoanParameters:
    def test_coerces_numbers_to_decimal(self):
        loan = LoanParameters(200000, 5.5, 360, date(2024, 1, 1))
        assert loan.principal == Decimal("200000")
        assert loan.annual_rate_percent == Decimal("5.5")

    @pytest.mark.parametrize(
        "principal, rate, term",
        [
            (0, 5, 12),
            (1000, -0.5, 12),
            (1000, 5, 0),
            (1000, 5, 12.5),
            (1000, 5, True),
            (float("nan"), 5, 12),
            (Decimal("Infinity"), 5, 12),
            ("nan", 5, 12),
            (1000, float("inf"), 12),
        ],
    )
    def test_invalid(self, principal, rate, term):
        with pytest.raises(InvalidLoanParameters):
            LoanParameters(principal, rate, term, date(2024, 1, 1))

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            LoanParameters(-1, 5, 12, date(2024, 1, 1))
        assert issubclass(InvalidLoanParameters, LoanCalcError)


class TestEarlyPayment:
    def test_one_time_applies_only_at_start(self):
        payment = EarlyPayment(kind=EarlyPaymentKind.ONE_TIME, amount=Decimal("1000"), start_period=5)
        assert [p for p in range(1, 40) if payment.applies_to(p)] == [5]

    def test_recurring_frequency(self):
        payment = EarlyPayment(kind="recurring", amount=Decimal("100"), start_period=3, frequency_months=6)
        assert [p for p in range(1, 30) if payment.applies_to(p)] == [3, 9, 15, 21, 27]
        assert payment.kind is EarlyPaymentKind.RECURRING

    def test_ids_are_unique(self):
        a = EarlyPayment(kind="one-time", amount=Decimal("1"), start_period=1)
        b = EarlyPayment(kind="one-time", amount=Decimal("1"), start_period=1)
        assert a.id != b.id

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"kind": "one-time", "amount": Decimal("0"), "start_period": 1},
            {"kind": "one-time", "amount": Decimal("10"), "start_period": 0},
            {"kind": "recurring", "amount": Decimal("10"), "start_period": 1},
            {"kind": "recurring", "amount": Decimal("10"), "start_period": 1, "frequency_months": 0},
            {"kind": "weekly", "amount": Decimal("10"), "start_period": 1},
            {"kind": "one-time", "amount": float("nan"), "start_period": 1},
            {"kind": "one-time", "amount": Decimal("Infinity"), "start_period": 1},
            {"kind": "one-time", "amount": Decimal("10"), "start_period": True},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(InvalidEarlyPayment):
            EarlyPayment(**kwargs)


class TestRateAdjustment:
    def test_valid(self):
        adj = RateAdjustment(effective_period=12, new_annual_rate_percent=4.25)
        assert adj.new_annual_rate_percent == Decimal("4.25")

    def test_zero_rate_allowed(self):
        assert RateAdjustment(effective_period=1, new_annual_rate_percent=Decimal("0")).new_annual_rate_percent == 0

    @pytest.mark.parametrize(
        "period, rate", [(0, Decimal("5")), (3, Decimal("-1")), (3, Decimal("NaN")), (3, float("inf"))]
    )
    def test_invalid(self, period, rate):
        with pytest.raises(InvalidRateAdjustment):
            RateAdjustment(effective_period=period, new_annual_rate_percent=rate)

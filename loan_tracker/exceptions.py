"""Exceptions raised by the loan tracker.

All engine input errors derive from ``LoanCalcError`` which itself is a
``ValueError``, so callers that only care about "bad input" can catch the
built-in type.
"""


class LoanCalcError(ValueError):
    """Base class for invalid engine input."""


class InvalidLoanParameters(LoanCalcError):
    """Principal, rate or term is out of range."""


class InvalidEarlyPayment(LoanCalcError):
    """An extra payment has a non-positive amount, period or frequency."""


class InvalidRateAdjustment(LoanCalcError):
    """A rate change has a non-positive period or a negative rate."""

"""Canonical test fixtures shared by the test modules.

Fixture: $200K loan at 6% over 30 years starting 2024-01-15.
"""

from datetime import date
from decimal import Decimal

import pytest

from loan_tracker.data_models import LoanParameters
from loan_tracker.loan_store import LoanStore


@pytest.fixture
def standard_loan() -> LoanParameters:
    """$200K, 6%, 360 months; regular payment ~$1,199.10."""
    return LoanParameters(
        principal=Decimal("200000"),
        annual_rate_percent=Decimal("6"),
        term_in_months=360,
        start_date=date(2024, 1, 15),
    )


@pytest.fixture
def short_loan() -> LoanParameters:
    """$10K, 12%, one year."""
    return LoanParameters(
        principal=Decimal("10000"),
        annual_rate_percent=Decimal("12"),
        term_in_months=12,
        start_date=date(2024, 1, 31),
    )


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'loans.sqlite3'}"


@pytest.fixture
def store(database_url) -> LoanStore:
    return LoanStore(database_url)

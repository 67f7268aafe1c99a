from datetime import date
from decimal import Decimal

import pytest

from loan_tracker.data_models import EarlyPayment, RateAdjustment, TermUnit
from loan_tracker.engine import generate_schedule, summarize
from loan_tracker.exceptions import InvalidLoanParameters
from loan_tracker.loan_store import LoanStore, create_store_from_env


def save_mortgage(store, **overrides):
    kwargs = dict(
        name="Mortgage",
        principal=Decimal("200000"),
        annual_rate_percent=Decimal("6"),
        term_value=30,
        term_unit=TermUnit.YEARS,
        start_date=date(2024, 1, 15),
        as_of=date(2024, 4, 15),
    )
    kwargs.update(overrides)
    return store.save_loan(**kwargs)


class TestLoanStore:
    def test_empty(self, store):
        assert store.list_loans() == []
        assert store.get_loan("missing") is None

    def test_save_caches_derived_fields(self, store):
        loan = save_mortgage(store)
        assert loan["term_value"] == 30
        assert loan["term_unit"] == "years"
        assert loan["monthly_payment"] == pytest.approx(1199.10, abs=0.01)
        assert loan["current_monthly_payment"] == pytest.approx(1199.10, abs=0.01)
        assert loan["payoff_date"] == "2053-12-15"
        # three payments made by 2024-04-15
        assert 199000 < loan["remaining_balance"] < 200000

    def test_early_payments_round_trip(self, store):
        extra = EarlyPayment(kind="recurring", amount=Decimal("250"), start_period=1, frequency_months=1, name="Bonus")
        adjustment = RateAdjustment(effective_period=25, new_annual_rate_percent=Decimal("5.25"))
        loan = save_mortgage(store, early_payments=[extra], rate_adjustments=[adjustment])

        parameters, early_payments, rate_adjustments = store.load_inputs(loan["id"])
        assert parameters.term_in_months == 360
        assert parameters.principal == Decimal("200000")
        assert early_payments == [extra]
        assert rate_adjustments == [adjustment]

        schedule = generate_schedule(parameters, early_payments, rate_adjustments)
        summary = summarize(parameters, early_payments, rate_adjustments, schedule=schedule)
        assert loan["payoff_date"] == schedule[-1].date.isoformat()
        assert loan["actual_total_payment"] == pytest.approx(float(summary.actual_total_payment))

    def test_update_keeps_identity(self, store):
        loan = save_mortgage(store)
        updated = save_mortgage(store, loan_id=loan["id"], name="Refinanced", annual_rate_percent=Decimal("4"))
        assert updated["id"] == loan["id"]
        assert updated["created_at"] == loan["created_at"]
        assert updated["monthly_payment"] < loan["monthly_payment"]
        assert [l["name"] for l in store.list_loans()] == ["Refinanced"]

    def test_invalid_loan_is_not_written(self, store):
        with pytest.raises(InvalidLoanParameters):
            save_mortgage(store, principal=Decimal("0"))
        assert store.list_loans() == []

    def test_delete_and_clear(self, store):
        first = save_mortgage(store)
        save_mortgage(store, name="Car")
        assert store.delete_loan(first["id"]) is True
        assert store.delete_loan(first["id"]) is False
        assert len(store.list_loans()) == 1
        store.clear_loans()
        assert store.list_loans() == []

    def test_totals(self, store):
        assert store.totals() == {
            "loan_count": 0,
            "total_borrowed": 0.0,
            "total_remaining_balance": 0.0,
            "total_monthly_payment": 0.0,
        }
        home = save_mortgage(store)
        car = save_mortgage(
            store,
            name="Car",
            principal=Decimal("12000.50"),
            annual_rate_percent=Decimal("0"),
            term_value=1,
            term_unit=TermUnit.YEARS,
        )
        totals = store.totals()
        assert totals["loan_count"] == 2
        assert totals["total_borrowed"] == pytest.approx(212000.50)
        assert totals["total_remaining_balance"] == pytest.approx(
            home["remaining_balance"] + car["remaining_balance"]
        )
        assert totals["total_monthly_payment"] == pytest.approx(1199.10 + 12000.50 / 12, abs=0.01)

    def test_load_inputs_unknown(self, store):
        assert store.load_inputs("nope") is None

    def test_persists_across_instances(self, database_url):
        loan = save_mortgage(LoanStore(database_url))
        assert create_store_from_env(database_url).get_loan(loan["id"])["name"] == "Mortgage"

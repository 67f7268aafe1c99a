"""Persistence layer for the user's loan collection.

Each stored loan keeps the inputs as the user entered them (term value and
unit, extra payments, rate changes) next to a set of cached derived figures:
the regular payment, the total actually paid, the payment and balance as of
the last save, and the payoff ("freedom") date. The cached figures are
recomputed through the engine every time a loan is saved. It defaults to
SQLite for local use, but accepts any SQLAlchemy-compatible URL.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, Float, Integer, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from .data_models import EarlyPayment, LoanParameters, RateAdjustment, TermUnit, term_to_months
from .engine import generate_schedule, loan_snapshot, summarize
from .serialization import (
    early_payment_from_dict,
    early_payment_to_dict,
    rate_adjustment_from_dict,
    rate_adjustment_to_dict,
)
from .utils import decimal_from_str

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///loans.sqlite3"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class LoanModel(Base):
    __tablename__ = "loans"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    # Inputs are kept as decimal strings so they round-trip exactly
    principal = Column(String(64), nullable=False)
    annual_rate_percent = Column(String(64), nullable=False)
    term_value = Column(Integer, nullable=False)
    term_unit = Column(String(16), nullable=False, default=TermUnit.MONTHS.value)
    start_date = Column(Date, nullable=False)
    early_payments_json = Column(Text, nullable=False, default="[]")
    rate_adjustments_json = Column(Text, nullable=False, default="[]")

    monthly_payment = Column(Float, nullable=False)
    actual_total_payment = Column(Float, nullable=False)
    current_monthly_payment = Column(Float, nullable=False)
    remaining_balance = Column(Float, nullable=False)
    payoff_date = Column(Date, nullable=True)

    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, nullable=False)


class LoanStore:
    """Database-backed loan collection keyed by loan id."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def list_loans(self) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows: Iterable[LoanModel] = session.execute(
                select(LoanModel).order_by(LoanModel.created_at.asc(), LoanModel.id.asc())
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def get_loan(self, loan_id: str) -> Optional[Dict[str, Any]]:
        with self._session_factory() as session:
            row = session.get(LoanModel, loan_id)
            return self._to_dict(row) if row else None

    def save_loan(
        self,
        *,
        name: str,
        principal,
        annual_rate_percent,
        term_value: int,
        term_unit: TermUnit | str,
        start_date: date,
        early_payments: Iterable[EarlyPayment] = (),
        rate_adjustments: Iterable[RateAdjustment] = (),
        as_of: date,
        loan_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Insert or update a loan and refresh its cached figures.

        ``as_of`` is the date the current payment and remaining balance are
        computed for. When ``loan_id`` names an existing loan it is updated
        in place and keeps its creation time.

        Raises ``LoanCalcError`` subclasses for invalid inputs; nothing is
        written in that case.
        """
        term_unit = TermUnit(term_unit)
        parameters = LoanParameters(
            principal=principal,
            annual_rate_percent=annual_rate_percent,
            term_in_months=term_to_months(term_value, term_unit),
            start_date=start_date,
        )
        early_payments = list(early_payments)
        rate_adjustments = list(rate_adjustments)
        schedule = generate_schedule(parameters, early_payments, rate_adjustments)
        summary = summarize(parameters, early_payments, rate_adjustments, schedule=schedule)
        snapshot = loan_snapshot(parameters, as_of, early_payments, rate_adjustments, schedule=schedule)

        values = {
            "name": name,
            "principal": str(parameters.principal),
            "annual_rate_percent": str(parameters.annual_rate_percent),
            "term_value": int(term_value),
            "term_unit": term_unit.value,
            "start_date": parameters.start_date,
            "early_payments_json": json.dumps([early_payment_to_dict(ep) for ep in early_payments]),
            "rate_adjustments_json": json.dumps([rate_adjustment_to_dict(ra) for ra in rate_adjustments]),
            "monthly_payment": float(summary.monthly_payment),
            "actual_total_payment": float(summary.actual_total_payment),
            "current_monthly_payment": float(snapshot.current_monthly_payment),
            "remaining_balance": float(snapshot.remaining_balance),
            "payoff_date": snapshot.payoff_date,
            "updated_at": _utcnow(),
        }

        with self._session_factory() as session:
            row = session.get(LoanModel, loan_id) if loan_id else None
            if row is None:
                row = LoanModel(id=loan_id or uuid4().hex, **values)
                session.add(row)
                logger.info("Created loan %s (%s)", row.id, name)
            else:
                for key, value in values.items():
                    setattr(row, key, value)
                logger.info("Updated loan %s (%s)", row.id, name)
            session.commit()
            return self._to_dict(row)

    def delete_loan(self, loan_id: str) -> bool:
        with self._session_factory() as session:
            row = session.get(LoanModel, loan_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
        logger.info("Deleted loan %s", loan_id)
        return True

    def clear_loans(self) -> None:
        with self._session_factory() as session:
            session.execute(LoanModel.__table__.delete())
            session.commit()
        logger.info("Cleared all loans")

    def load_inputs(
        self, loan_id: str
    ) -> Optional[Tuple[LoanParameters, List[EarlyPayment], List[RateAdjustment]]]:
        """Rebuild the engine inputs of a stored loan, or ``None`` if unknown."""
        loan = self.get_loan(loan_id)
        if loan is None:
            return None
        return inputs_from_record(loan)

    def totals(self) -> Dict[str, Any]:
        """Return the collection-wide totals of all stored loans."""
        return collection_totals(self.list_loans())

    @staticmethod
    def _to_dict(row: LoanModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "name": row.name,
            "principal": row.principal,
            "annual_rate_percent": row.annual_rate_percent,
            "term_value": row.term_value,
            "term_unit": row.term_unit,
            "start_date": row.start_date.isoformat(),
            "early_payments": json.loads(row.early_payments_json),
            "rate_adjustments": json.loads(row.rate_adjustments_json),
            "monthly_payment": row.monthly_payment,
            "actual_total_payment": row.actual_total_payment,
            "current_monthly_payment": row.current_monthly_payment,
            "remaining_balance": row.remaining_balance,
            "payoff_date": row.payoff_date.isoformat() if row.payoff_date else None,
            "created_at": row.created_at.isoformat(),
            "updated_at": row.updated_at.isoformat(),
        }


def inputs_from_record(
    loan: Dict[str, Any]
) -> Tuple[LoanParameters, List[EarlyPayment], List[RateAdjustment]]:
    """Convert a stored loan dictionary back into engine inputs."""
    parameters = LoanParameters(
        principal=decimal_from_str(loan["principal"]),
        annual_rate_percent=decimal_from_str(loan["annual_rate_percent"]),
        term_in_months=term_to_months(loan["term_value"], loan["term_unit"]),
        start_date=date.fromisoformat(loan["start_date"]),
    )
    early_payments = [early_payment_from_dict(item) for item in loan["early_payments"]]
    rate_adjustments = [rate_adjustment_from_dict(item) for item in loan["rate_adjustments"]]
    return parameters, early_payments, rate_adjustments


def collection_totals(loans: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Sum stored loan records into the dashboard totals.

    Borrowed amounts are added from the exact principal strings; the balance
    and payment totals come from the figures cached at the last save.
    """
    loans = list(loans)
    borrowed = sum((decimal_from_str(loan["principal"]) for loan in loans), Decimal(0))
    return {
        "loan_count": len(loans),
        "total_borrowed": float(borrowed),
        "total_remaining_balance": sum((loan["remaining_balance"] for loan in loans), 0.0),
        "total_monthly_payment": sum((loan["current_monthly_payment"] for loan in loans), 0.0),
    }


def create_store_from_env(url: str | None) -> LoanStore:
    return LoanStore(url or DEFAULT_DATABASE_URL)

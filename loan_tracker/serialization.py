"""Conversion between engine objects and JSON-serialisable dictionaries.

Used by the CLI exports, the loan store and the web API. Dates are written as
ISO ``YYYY-MM-DD`` strings and money as floats; the inverse helpers accept
the same shapes (plus the looser strings a form submits) and rebuild the
validated dataclasses.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping

from .data_models import (
    EarlyPayment,
    EarlyPaymentKind,
    LoanSnapshot,
    LoanSummary,
    PaymentRecord,
    RateAdjustment,
    SavingsSummary,
)
from .exceptions import InvalidEarlyPayment, InvalidRateAdjustment
from .utils import decimal_from_str


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    return value


def _plain_dict(obj) -> Dict[str, Any]:
    return {key: _plain(value) for key, value in asdict(obj).items()}


def serialize_schedule(schedule: Iterable[PaymentRecord]) -> List[Dict[str, Any]]:
    """Convert schedule records into JSON-serialisable dictionaries."""
    return [_plain_dict(record) for record in schedule]


def serialize_summary(summary: LoanSummary) -> Dict[str, Any]:
    return _plain_dict(summary)


def serialize_savings(savings: SavingsSummary) -> Dict[str, Any]:
    return _plain_dict(savings)


def serialize_snapshot(snapshot: LoanSnapshot) -> Dict[str, Any]:
    return _plain_dict(snapshot)


def early_payment_to_dict(payment: EarlyPayment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "name": payment.name,
        "kind": payment.kind.value,
        "amount": str(payment.amount),
        "start_period": payment.start_period,
        "frequency_months": payment.frequency_months,
    }


def rate_adjustment_to_dict(adjustment: RateAdjustment) -> Dict[str, Any]:
    return {
        "id": adjustment.id,
        "effective_period": adjustment.effective_period,
        "new_annual_rate_percent": str(adjustment.new_annual_rate_percent),
    }


def _int_field(data: Mapping[str, Any], key: str, error) -> Any:
    value = data.get(key)
    if value is None or value == "":
        return None
    try:
        whole = int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise error(f"{key} must be a whole number; got {value!r}") from exc
    if isinstance(value, bool) or (not isinstance(value, str) and whole != value):
        raise error(f"{key} must be a whole number; got {value!r}")
    return whole


def _decimal_field(data: Mapping[str, Any], key: str, error) -> Decimal:
    try:
        return decimal_from_str(data[key])
    except KeyError as exc:
        raise error(f"{key} is required") from exc
    except ValueError as exc:
        raise error(str(exc)) from exc


def early_payment_from_dict(data: Mapping[str, Any]) -> EarlyPayment:
    """Build an ``EarlyPayment`` from a stored or submitted mapping.

    Raises ``InvalidEarlyPayment`` for missing or malformed fields.
    """
    kind = data.get("kind", EarlyPaymentKind.ONE_TIME.value)
    kwargs: Dict[str, Any] = {
        "kind": kind,
        "amount": _decimal_field(data, "amount", InvalidEarlyPayment),
        "start_period": _int_field(data, "start_period", InvalidEarlyPayment),
        "frequency_months": _int_field(data, "frequency_months", InvalidEarlyPayment),
        "name": data.get("name"),
    }
    if data.get("id"):
        kwargs["id"] = str(data["id"])
    return EarlyPayment(**kwargs)


def rate_adjustment_from_dict(data: Mapping[str, Any]) -> RateAdjustment:
    """Build a ``RateAdjustment`` from a stored or submitted mapping."""
    kwargs: Dict[str, Any] = {
        "effective_period": _int_field(data, "effective_period", InvalidRateAdjustment),
        "new_annual_rate_percent": _decimal_field(data, "new_annual_rate_percent", InvalidRateAdjustment),
    }
    if data.get("id"):
        kwargs["id"] = str(data["id"])
    return RateAdjustment(**kwargs)

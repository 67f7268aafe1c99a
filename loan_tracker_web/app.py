import logging
import os
from datetime import date

from flask import Flask, jsonify, request

from loan_tracker.data_models import LoanParameters, term_to_months
from loan_tracker.engine import calculate_payment, calculate_savings, generate_schedule, loan_snapshot, summarize
from loan_tracker.loan_store import collection_totals, create_store_from_env, inputs_from_record
from loan_tracker.serialization import (
    early_payment_from_dict,
    rate_adjustment_from_dict,
    serialize_savings,
    serialize_schedule,
    serialize_snapshot,
    serialize_summary,
)
from loan_tracker.utils import decimal_from_str, parse_date

logger = logging.getLogger(__name__)


def _as_of(payload) -> date:
    value = payload.get("as_of") or request.args.get("as_of")
    return parse_date(value) if value else date.today()


def _term_value(payload):
    """Return the submitted term, accepting whole-number strings.

    Numbers are passed through unchanged so ``term_to_months`` rejects
    fractional terms instead of truncating them.
    """
    value = payload.get("term")
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            raise ValueError(f"Invalid term: {value}")
    return value


def _payload_to_inputs(payload):
    """Build engine inputs from a JSON loan body.

    Expected keys: ``principal``, ``annual_rate_percent``, ``term``,
    ``term_unit`` (``months``/``years``), ``start_date`` and the optional
    ``early_payments`` and ``rate_adjustments`` lists.
    """
    parameters = LoanParameters(
        principal=decimal_from_str(payload.get("principal", "")),
        annual_rate_percent=decimal_from_str(payload.get("annual_rate_percent", "")),
        term_in_months=term_to_months(_term_value(payload), payload.get("term_unit", "months")),
        start_date=parse_date(payload.get("start_date", "")),
    )
    early_payments = [early_payment_from_dict(item) for item in payload.get("early_payments") or []]
    rate_adjustments = [rate_adjustment_from_dict(item) for item in payload.get("rate_adjustments") or []]
    return parameters, early_payments, rate_adjustments


def _schedule_response(parameters, early_payments, rate_adjustments, as_of: date):
    schedule = generate_schedule(parameters, early_payments, rate_adjustments)
    summary = summarize(parameters, early_payments, rate_adjustments, schedule=schedule)
    snapshot = loan_snapshot(parameters, as_of, early_payments, rate_adjustments, schedule=schedule)
    return {
        "summary": serialize_summary(summary),
        "status": serialize_snapshot(snapshot),
        "schedule": serialize_schedule(schedule),
    }


def _bad_request(exc: Exception):
    return jsonify({"error": str(exc)}), 400


def create_app(database_url: str = None) -> Flask:
    app = Flask(__name__)
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    loan_store = create_store_from_env(database_url or os.environ.get("LOAN_TRACKER_DATABASE_URL"))
    app.config["LOAN_STORE"] = loan_store

    @app.errorhandler(ValueError)
    def handle_invalid_input(exc):
        # LoanCalcError is a ValueError too
        logger.info("Rejected request: %s", exc)
        return _bad_request(exc)

    @app.post("/api/payment")
    def payment_preview():
        """Live preview of the regular payment while a form is being filled.

        Incomplete or invalid input yields zeros instead of an error.
        """
        payload = request.get_json(silent=True) or {}
        try:
            term_months = term_to_months(_term_value(payload), payload.get("term_unit", "months"))
            result = calculate_payment(
                decimal_from_str(payload.get("principal", "")),
                decimal_from_str(payload.get("annual_rate_percent", "")),
                term_months,
            )
        except (TypeError, ValueError):
            return jsonify({"monthly_payment": 0.0, "total_payment": 0.0})
        return jsonify(
            {
                "monthly_payment": float(result.monthly_payment),
                "total_payment": float(result.total_payment),
            }
        )

    @app.post("/api/schedule")
    def schedule():
        payload = request.get_json(silent=True) or {}
        parameters, early_payments, rate_adjustments = _payload_to_inputs(payload)
        return jsonify(_schedule_response(parameters, early_payments, rate_adjustments, _as_of(payload)))

    @app.post("/api/savings")
    def savings():
        payload = request.get_json(silent=True) or {}
        parameters, early_payments, rate_adjustments = _payload_to_inputs(payload)
        return jsonify(serialize_savings(calculate_savings(parameters, early_payments, rate_adjustments)))

    @app.get("/api/loans")
    def list_loans():
        return jsonify(loan_store.list_loans())

    @app.get("/api/loans/totals")
    def loan_totals():
        return jsonify(collection_totals(loan_store.list_loans()))

    def _save(payload, loan_id=None):
        parameters, early_payments, rate_adjustments = _payload_to_inputs(payload)
        name = (payload.get("name") or "").strip() or "Loan"
        return loan_store.save_loan(
            name=name,
            principal=parameters.principal,
            annual_rate_percent=parameters.annual_rate_percent,
            term_value=int(_term_value(payload)),
            term_unit=payload.get("term_unit", "months"),
            start_date=parameters.start_date,
            early_payments=early_payments,
            rate_adjustments=rate_adjustments,
            as_of=_as_of(payload),
            loan_id=loan_id,
        )

    @app.post("/api/loans")
    def create_loan():
        payload = request.get_json(silent=True) or {}
        return jsonify(_save(payload)), 201

    @app.get("/api/loans/<loan_id>")
    def get_loan(loan_id):
        loan = loan_store.get_loan(loan_id)
        if loan is None:
            return jsonify({"error": f"No loan with id {loan_id}"}), 404
        return jsonify(loan)

    @app.put("/api/loans/<loan_id>")
    def update_loan(loan_id):
        if loan_store.get_loan(loan_id) is None:
            return jsonify({"error": f"No loan with id {loan_id}"}), 404
        payload = request.get_json(silent=True) or {}
        return jsonify(_save(payload, loan_id))

    @app.delete("/api/loans/<loan_id>")
    def delete_loan(loan_id):
        if not loan_store.delete_loan(loan_id):
            return jsonify({"error": f"No loan with id {loan_id}"}), 404
        return "", 204

    @app.get("/api/loans/<loan_id>/schedule")
    def loan_schedule(loan_id):
        loan = loan_store.get_loan(loan_id)
        if loan is None:
            return jsonify({"error": f"No loan with id {loan_id}"}), 404
        parameters, early_payments, rate_adjustments = inputs_from_record(loan)
        return jsonify(_schedule_response(parameters, early_payments, rate_adjustments, _as_of({})))

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting Loan Tracker web app...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)

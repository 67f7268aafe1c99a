import pytest

from loan_tracker_web.app import create_app

MORTGAGE = {
    "name": "Mortgage",
    "principal": "200000",
    "annual_rate_percent": "6",
    "term": 30,
    "term_unit": "years",
    "start_date": "2024-01-15",
    "as_of": "2024-04-15",
}


@pytest.fixture
def client(database_url):
    app = create_app(database_url)
    app.config["TESTING"] = True
    return app.test_client()


class TestPaymentPreview:
    def test_computes_payment(self, client):
        resp = client.post("/api/payment", json=MORTGAGE)
        assert resp.status_code == 200
        assert resp.get_json()["monthly_payment"] == pytest.approx(1199.10, abs=0.01)

    def test_incomplete_input_gives_zeros(self, client):
        resp = client.post("/api/payment", json={"principal": "", "term": 12})
        assert resp.status_code == 200
        assert resp.get_json() == {"monthly_payment": 0.0, "total_payment": 0.0}


class TestComputation:
    def test_schedule(self, client):
        payload = dict(MORTGAGE, rate_adjustments=[{"effective_period": 13, "new_annual_rate_percent": "7"}])
        resp = client.post("/api/schedule", json=payload)
        assert resp.status_code == 200
        data = resp.get_json()
        assert len(data["schedule"]) == 360
        assert data["schedule"][12]["payment_amount"] > data["schedule"][11]["payment_amount"]
        assert data["status"]["months_elapsed"] == 3
        assert data["summary"]["payoff_date"] == "2053-12-15"

    def test_savings(self, client):
        payload = dict(
            MORTGAGE,
            early_payments=[{"kind": "recurring", "amount": "200", "start_period": 1, "frequency_months": 1}],
        )
        resp = client.post("/api/savings", json=payload)
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["interest_saved"] > 0
        assert data["periods_shortened"] > 0

    def test_invalid_early_payment_is_rejected(self, client):
        payload = dict(MORTGAGE, early_payments=[{"kind": "one-time", "amount": "-5", "start_period": 2}])
        resp = client.post("/api/schedule", json=payload)
        assert resp.status_code == 400
        assert "amount" in resp.get_json()["error"]

    def test_invalid_loan_is_rejected(self, client):
        resp = client.post("/api/savings", json=dict(MORTGAGE, annual_rate_percent="-1"))
        assert resp.status_code == 400

    def test_fractional_term_is_rejected(self, client):
        resp = client.post("/api/schedule", json=dict(MORTGAGE, term=2.5))
        assert resp.status_code == 400
        assert "whole number" in resp.get_json()["error"]

    def test_term_as_string(self, client):
        resp = client.post("/api/schedule", json=dict(MORTGAGE, term="15"))
        assert resp.status_code == 200
        assert len(resp.get_json()["schedule"]) == 180

    def test_fractional_early_payment_period_is_rejected(self, client):
        payload = dict(MORTGAGE, early_payments=[{"kind": "one-time", "amount": "500", "start_period": 2.9}])
        resp = client.post("/api/schedule", json=payload)
        assert resp.status_code == 400
        assert "start_period" in resp.get_json()["error"]


class TestLoansApi:
    def test_crud(self, client):
        resp = client.post("/api/loans", json=MORTGAGE)
        assert resp.status_code == 201
        loan = resp.get_json()
        assert loan["remaining_balance"] < 200000

        assert [l["id"] for l in client.get("/api/loans").get_json()] == [loan["id"]]
        assert client.get(f"/api/loans/{loan['id']}").get_json()["name"] == "Mortgage"

        resp = client.put(f"/api/loans/{loan['id']}", json=dict(MORTGAGE, name="Home", term=15))
        assert resp.status_code == 200
        updated = resp.get_json()
        assert updated["name"] == "Home"
        assert updated["payoff_date"] == "2038-12-15"

        resp = client.get(f"/api/loans/{loan['id']}/schedule")
        assert resp.status_code == 200
        assert len(resp.get_json()["schedule"]) == 180

        assert client.delete(f"/api/loans/{loan['id']}").status_code == 204
        assert client.get(f"/api/loans/{loan['id']}").status_code == 404

    def test_totals(self, client):
        client.post("/api/loans", json=MORTGAGE)
        car = dict(MORTGAGE, name="Car", principal="24000", annual_rate_percent="0", term=2)
        client.post("/api/loans", json=car)
        resp = client.get("/api/loans/totals")
        assert resp.status_code == 200
        totals = resp.get_json()
        assert totals["loan_count"] == 2
        assert totals["total_borrowed"] == pytest.approx(224000)
        assert totals["total_monthly_payment"] == pytest.approx(1199.10 + 1000, abs=0.01)
        assert 0 < totals["total_remaining_balance"] < 224000

    def test_unknown_loan(self, client):
        assert client.get("/api/loans/nope/schedule").status_code == 404
        assert client.put("/api/loans/nope", json=MORTGAGE).status_code == 404
        assert client.delete("/api/loans/nope").status_code == 404

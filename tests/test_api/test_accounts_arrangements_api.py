"""API integration tests for accounts, arrangements, and the sweep."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal

from tests.helpers import build_csv

YESTERDAY = (date.today() - timedelta(days=1)).isoformat()
NEXT_WEEK = (date.today() + timedelta(days=7)).isoformat()


def _open_account(client, number="ACC001", balance="1000.00"):
    return client.post(
        "/api/v1/accounts",
        json={
            "account_number": number,
            "current_balance": balance,
            "holder_name": "John Doe",
        },
    )


def _promise(client, amount="100.00", promised_date=NEXT_WEEK, number="ACC001"):
    return client.post(
        "/api/v1/arrangements",
        json={
            "account_number": number,
            "amount": amount,
            "promised_date": promised_date,
        },
    )


class TestAccounts:
    def test_open_and_read(self, client):
        response = _open_account(client, number=" acc001 ")
        assert response.status_code == 201, response.text
        assert response.json()["account_number"] == "ACC001"

        account = client.get("/api/v1/accounts/acc001").json()
        assert account["holder_name"] == "John Doe"
        assert Decimal(account["current_balance"]) == Decimal("1000.00")

    def test_duplicate_account(self, client):
        _open_account(client)
        assert _open_account(client).status_code == 409

    def test_negative_opening_balance(self, client):
        assert _open_account(client, balance="-1").status_code == 422

    def test_unknown_account(self, client):
        assert client.get("/api/v1/accounts/NOPE").status_code == 404

    def test_payments_and_activities(self, client):
        _open_account(client)
        content = build_csv(
            ["ACCOUNT NO", "LAST PAYMENT AMOUNT", "LAST PAYMENT DATE"],
            [["ACC001", "250.00", "20240115"]],
        )
        client.post(
            "/api/v1/payment-files/upload",
            files={"file": ("p.csv", content, "text/csv")},
        )

        payments = client.get("/api/v1/accounts/ACC001/payments").json()
        assert len(payments) == 1
        assert Decimal(payments[0]["amount"]) == Decimal("250.00")
        assert payments[0]["reference_number"] == "IMPORT-ACC001"

        activities = client.get(
            "/api/v1/accounts/ACC001/activities",
            params={"activity_type": "payment_received"},
        ).json()
        assert len(activities) == 1


class TestArrangements:
    def test_create_and_list(self, client, notifier):
        _open_account(client)
        response = _promise(client)
        assert response.status_code == 201, response.text
        assert response.json()["status"] == "pending"
        assert "ptp_created" in notifier.types()

        listed = client.get(
            "/api/v1/arrangements", params={"account_number": "acc001"}
        ).json()
        assert len(listed) == 1

    def test_unknown_account(self, client):
        assert _promise(client, number="NOPE").status_code == 404

    def test_non_positive_amount(self, client):
        _open_account(client)
        assert _promise(client, amount="0").status_code == 422

    def test_mark_paid_then_conflict(self, client):
        _open_account(client)
        arrangement_id = _promise(client).json()["id"]

        paid = client.post(
            f"/api/v1/arrangements/{arrangement_id}/paid",
            json={"confirmed_by": "agent-3"},
        )
        assert paid.status_code == 200, paid.text
        assert paid.json()["status"] == "paid"

        again = client.post(f"/api/v1/arrangements/{arrangement_id}/paid")
        assert again.status_code == 409

    def test_mark_paid_unknown(self, client):
        response = client.post(
            "/api/v1/arrangements/00000000-0000-0000-0000-000000000000/paid"
        )
        assert response.status_code == 404

    def test_sweep(self, client, notifier):
        _open_account(client)
        overdue_id = _promise(client, promised_date=YESTERDAY).json()["id"]
        _promise(client, promised_date=NEXT_WEEK)

        first = client.post("/api/v1/arrangements/sweep").json()
        second = client.post("/api/v1/arrangements/sweep").json()

        assert first == {"transitioned": 1, "failed": 0, "errors": []}
        assert second["transitioned"] == 0
        defaulted = client.get(
            "/api/v1/arrangements", params={"status": "defaulted"}
        ).json()
        assert [a["id"] for a in defaulted] == [overdue_id]
        assert notifier.types().count("ptp_defaulted") == 1

    def test_sweep_with_reference_date(self, client):
        _open_account(client)
        _promise(client, promised_date=NEXT_WEEK)
        future = (date.today() + timedelta(days=30)).isoformat()

        result = client.post("/api/v1/arrangements/sweep", json={"today": future})

        assert result.json()["transitioned"] == 1

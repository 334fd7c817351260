"""API integration tests for the payment file endpoints."""

from __future__ import annotations

import csv
import io
from decimal import Decimal

from app.services.ingestion.fingerprint import compute_fingerprint
from tests.helpers import build_csv, build_xlsx

BASE = "/api/v1/payment-files"
HEADER = ["Acc No", "Payment Amount", "Payment Date"]
XLSX_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _upload(client, content: bytes, filename: str = "payments.csv", **params):
    return client.post(
        f"{BASE}/upload",
        params=params,
        files={"file": (filename, content, "text/csv")},
    )


def _open_account(client, number: str, balance: str = "1000.00"):
    response = client.post(
        "/api/v1/accounts",
        json={"account_number": number, "current_balance": balance},
    )
    assert response.status_code == 201, response.text


class TestUpload:
    def test_upload_applies_payments(self, client):
        _open_account(client, "ACC001")
        content = build_csv(HEADER, [["acc001", "-150.00", "20240115"]])

        response = _upload(client, content)

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["status"] == "completed"
        assert data["records_count"] == 1
        assert data["applied_count"] == 1
        assert data["failed_count"] == 0

        account = client.get("/api/v1/accounts/ACC001").json()
        assert Decimal(account["current_balance"]) == Decimal("850.00")
        assert account["last_payment_date"] == "2024-01-15"

    def test_duplicate_upload_is_rejected(self, client):
        _open_account(client, "ACC001")
        content = build_csv(HEADER, [["ACC001", "100", "20240115"]])
        first = _upload(client, content).json()

        response = _upload(client, content, filename="copy.csv")

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["message"] == "File already processed"
        assert detail["existing_batch_id"] == first["batch_id"]
        account = client.get("/api/v1/accounts/ACC001").json()
        assert Decimal(account["current_balance"]) == Decimal("900.00")

    def test_partial_failure_reported(self, client):
        _open_account(client, "ACC001")
        content = build_csv(
            HEADER,
            [["ACC001", "10", "20240115"], ["GHOST", "10", "20240115"], ["", "1", ""]],
        )

        data = _upload(client, content).json()

        assert data["status"] == "completed"
        assert data["applied_count"] == 1
        assert data["failed_count"] == 1
        assert data["invalid_count"] == 1
        assert data["errors_count"] == 2
        assert len(data["errors"]) == 2

    def test_xlsx_upload(self, client):
        _open_account(client, "ACC001")
        content = build_xlsx({"Sheet1": [HEADER, ["ACC001", 200, 20240115]]})

        response = client.post(
            f"{BASE}/upload",
            files={"file": ("payments.xlsx", content, XLSX_TYPE)},
        )

        assert response.status_code == 200, response.text
        assert response.json()["applied_count"] == 1

    def test_empty_file(self, client):
        response = _upload(client, b"")
        assert response.status_code == 400
        assert "empty" in response.json()["detail"]

    def test_unsupported_format(self, client):
        response = client.post(
            f"{BASE}/upload",
            files={"file": ("payments.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert response.status_code == 400
        assert "Unsupported" in response.json()["detail"]

    def test_too_large(self, client, monkeypatch):
        from app.api.routes import payment_files

        monkeypatch.setattr(payment_files.settings, "max_upload_size_bytes", 16)
        response = _upload(client, build_csv(HEADER, [["ACC001", "1", "20240115"]]))
        assert response.status_code == 413

    def test_unparseable_file_fails_batch(self, client):
        response = _upload(client, b"ACCOUNT NO,AMOUNT\n")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "failed"

        batch = client.get(f"{BASE}/batches/{data['batch_id']}").json()
        assert batch["status"] == "failed"
        assert batch["error_detail"]

    def test_background_upload(self, client):
        _open_account(client, "ACC001")
        content = build_csv(HEADER, [["ACC001", "100", "20240115"]])

        response = _upload(client, content, background="true")

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["status"] == "pending"
        # TestClient runs background tasks before returning the response.
        batch = client.get(f"{BASE}/batches/{data['batch_id']}").json()
        assert batch["status"] == "completed"
        assert batch["applied_count"] == 1


class TestBatches:
    def test_list_and_get(self, client):
        content = build_csv(HEADER, [["ACC001", "1", "20240115"]])
        batch_id = _upload(client, content).json()["batch_id"]

        listing = client.get(f"{BASE}/batches").json()
        assert [b["id"] for b in listing] == [batch_id]

        batch = client.get(f"{BASE}/batches/{batch_id}").json()
        assert batch["file_hash"] == compute_fingerprint(content)
        assert batch["file_type"] == "csv"
        assert batch["upload_year"] is not None

    def test_unknown_batch(self, client):
        response = client.get(f"{BASE}/batches/00000000-0000-0000-0000-000000000000")
        assert response.status_code == 404


class TestCheckDuplicate:
    def test_before_and_after_upload(self, client):
        content = build_csv(HEADER, [["ACC001", "1", "20240115"]])
        fingerprint = compute_fingerprint(content)

        before = client.get(f"{BASE}/check-duplicate", params={"fingerprint": fingerprint})
        assert before.json() == {"exists": False, "existing_batch_id": None}

        batch_id = _upload(client, content).json()["batch_id"]

        after = client.get(f"{BASE}/check-duplicate", params={"fingerprint": fingerprint})
        assert after.json() == {"exists": True, "existing_batch_id": batch_id}


class TestValidate:
    def test_dry_run_does_not_touch_ledger(self, client):
        _open_account(client, "ACC001")
        content = build_csv(
            HEADER + ["Email"],
            [["ACC001", "100", "20240115", "nope"], ["", "5", "20240115", ""]],
        )

        response = client.post(
            f"{BASE}/validate", files={"file": ("check.csv", content, "text/csv")}
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["records_count"] == 2
        assert data["valid_count"] == 1
        assert data["invalid_count"] == 1
        assert data["duplicate"] is False
        assert data["header_mapping"]["Acc No"] == "ACCOUNT_NO"
        assert any(w["field"] == "EMAIL_ADDRESS" for w in data["warnings"])

        account = client.get("/api/v1/accounts/ACC001").json()
        assert Decimal(account["current_balance"]) == Decimal("1000.00")
        assert client.get(f"{BASE}/batches").json() == []

    def test_undecodable_bytes_are_summarised(self, client):
        content = b"ACCOUNT_NO,LAST_PAYMENT_AMOUNT\nAB\x81C,10\n"

        response = client.post(
            f"{BASE}/validate", files={"file": ("odd.csv", content, "text/csv")}
        )

        assert response.status_code == 200, response.text
        data = response.json()
        assert data["records_count"] == 1
        assert data["valid_count"] == 1


def test_template_download(client):
    response = client.get(f"{BASE}/template")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    rows = list(csv.reader(io.StringIO(response.text)))
    assert len(rows[0]) == 38
    assert rows[1][0] == "ACC001"

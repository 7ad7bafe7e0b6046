from __future__ import annotations

from decimal import Decimal
from email.message import EmailMessage

from fastapi.testclient import TestClient

from spendwise.main import app


def test_extract_email_endpoint():
    with TestClient(app) as client:
        resp = client.post(
            "/api/extract/email", json={"text": "Your payment of $45.00 was successful"}
        )
        assert resp.status_code == 200
        body = resp.json()
        assert Decimal(str(body["total"])) == Decimal("45.00")
        assert body["items"][0]["title"] == "Expense from email"
        assert body["items"][0]["category"] == "unknown"
        assert resp.headers["x-request-id"]


def test_extract_email_without_amount_is_422():
    with TestClient(app) as client:
        resp = client.post("/api/extract/email", json={"text": "hello world"})
        assert resp.status_code == 422
        assert "No expense amounts" in resp.text


def test_extract_bill_endpoint_distinguishes_outcomes():
    with TestClient(app) as client:
        ok = client.post(
            "/api/extract/bill",
            json={
                "completion": '{"total": 4, "items": [{"amount": 4, "title": "Tea", '
                '"category": "groceries"}]}'
            },
        )
        assert ok.status_code == 200
        assert ok.json()["items"][0]["category"] == "unknown"

        missing = client.post("/api/extract/bill", json={"completion": "nothing here"})
        assert missing.status_code == 422
        assert "No structured bill data" in missing.text

        invalid = client.post("/api/extract/bill", json={"completion": '{"total": 4, "items": []}'})
        assert invalid.status_code == 422
        assert "No line items" in invalid.text


def test_categories_endpoint_lists_vocabulary_with_ui_mapping():
    with TestClient(app) as client:
        resp = client.get("/api/categories")
        assert resp.status_code == 200
        labels = [c["label"] for c in resp.json()]
        assert labels[0] == "food"
        assert labels[-1] == "unknown"
        assert len(labels) == 12
        assert all(c["icon"] and c["color"].startswith("#") for c in resp.json())


def test_user_email_ingest_list_and_summary():
    with TestClient(app) as client:
        payload = {"message_id": "abc", "body": "Coffee $4.00 and a sandwich $6.00"}
        first = client.post("/api/users/u-1/emails", json=payload)
        assert first.status_code == 200
        assert len(first.json()) == 2

        dup = client.post("/api/users/u-1/emails", json=payload)
        assert dup.status_code == 409

        listed = client.get("/api/users/u-1/expenses")
        assert listed.status_code == 200
        assert sorted(Decimal(str(r["amount"])) for r in listed.json()) == [
            Decimal("4.00"),
            Decimal("6.00"),
        ]

        month = listed.json()[0]["month"]
        summary = client.get("/api/users/u-1/summary", params={"month": month})
        assert summary.status_code == 200
        assert sum(s["count"] for s in summary.json()) == 2


def test_user_eml_upload_is_ingested_once():
    msg = EmailMessage()
    msg["Message-ID"] = "<up-1@bank.example>"
    msg.set_content("Lunch at Cafe Rio $12.25 and coffee $3.75")
    files = {"upload": ("alert.eml", msg.as_bytes(), "message/rfc822")}

    with TestClient(app) as client:
        first = client.post("/api/users/u-2/emails/upload", files=files)
        assert first.status_code == 200
        assert [Decimal(str(r["amount"])) for r in first.json()] == [
            Decimal("12.25"),
            Decimal("3.75"),
        ]
        assert first.json()[0]["category"] == "food"

        dup = client.post("/api/users/u-2/emails/upload", files=files)
        assert dup.status_code == 409

        empty = client.post(
            "/api/users/u-2/emails/upload", files={"upload": ("e.eml", b"", "message/rfc822")}
        )
        assert empty.status_code == 400


def test_user_bill_ingest_rejects_unstructured_completion():
    with TestClient(app) as client:
        resp = client.post("/api/users/u-1/bills", json={"completion": "blurry photo"})
        assert resp.status_code == 422


def test_healthz():
    with TestClient(app) as client:
        assert client.get("/healthz").json() == {"status": "ok"}

from __future__ import annotations

import base64

from spendwise.core.db import SessionLocal
from spendwise.modules.expenses.service import list_expenses


def _gmail(message_id: str, text: str) -> dict:
    data = base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii")
    return {
        "id": message_id,
        "payload": {
            "mimeType": "multipart/alternative",
            "parts": [{"mimeType": "text/plain", "body": {"data": data}}],
        },
    }


def test_ingest_gmail_messages_task_reports_each_message():
    from spendwise.worker.tasks import ingest_gmail_messages_task

    result = ingest_gmail_messages_task(
        "user-9",
        [
            _gmail("m1", "Your payment of $45.00 was successful"),
            _gmail("m2", "Welcome to online banking"),
            {"id": "m3", "payload": {"mimeType": "image/png", "body": {}}},
        ],
    )
    assert result == {"processed": ["m1"], "skipped": ["m3"], "failed": ["m2"]}

    with SessionLocal() as session:
        assert len(list_expenses(session, user_id="user-9")) == 1

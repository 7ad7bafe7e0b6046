from __future__ import annotations

# Ensure all models are registered before any task runs
# isort: off
import spendwise.models  # noqa: F401
# isort: on

import time

from spendwise.core.db import SessionLocal
from spendwise.core.logging import get_logger, log_context, log_event, log_exception, monotonic_ms
from spendwise.modules.expenses.service import InboundMessage, ingest_messages
from spendwise.worker.celery_app import celery_app

logger = get_logger(__name__)


@celery_app.task(name="ingest_gmail_messages", bind=True)
def ingest_gmail_messages_task(self, user_id: str, messages: list[dict]) -> dict:
    """Ingest a batch of Gmail API message resources fetched by the mail poller."""
    task_id = getattr(self.request, "id", None)
    start = time.monotonic()
    with log_context(celery_task_id=task_id, task_name="ingest_gmail_messages", user_id=user_id):
        log_event(logger, "celery.task.start", message_count=len(messages))
        try:
            with SessionLocal() as session:
                report = ingest_messages(
                    session,
                    user_id=user_id,
                    messages=[InboundMessage.from_gmail(m) for m in messages],
                )
        except Exception:
            log_exception(logger, "celery.task.error", duration_ms=monotonic_ms(start))
            raise
        log_event(
            logger,
            "celery.task.finish",
            processed=len(report.processed),
            failed=len(report.failed),
            duration_ms=monotonic_ms(start),
        )
    return {
        "processed": report.processed,
        "skipped": report.skipped,
        "failed": report.failed,
    }

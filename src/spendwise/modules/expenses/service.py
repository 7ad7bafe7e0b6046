from __future__ import annotations

import hashlib
import time
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from spendwise.core.logging import get_logger, log_event, log_exception, monotonic_ms
from spendwise.modules.expenses.models import ExpenseRecord, ExpenseSource, ProcessedMessage
from spendwise.modules.extraction.categories import (
    CATEGORY_ICONS,
    CategoryLabel,
    title_classifier,
)
from spendwise.modules.extraction.errors import ExtractionError
from spendwise.modules.extraction.schemas import ExpenseData
from spendwise.modules.extraction.structured import parse_structured_response
from spendwise.modules.extraction.text import extract_expense
from spendwise.modules.mail.parts import (
    email_body_from_eml,
    eml_message_id,
    extract_email_body,
    parse_eml,
)

logger = get_logger(__name__)

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class UnstructuredResponseError(ExtractionError):
    """The bill classifier's completion contained nothing that could be parsed."""


@dataclass(frozen=True)
class InboundMessage:
    message_id: str
    body: str | None

    @classmethod
    def from_gmail(cls, message: dict[str, Any]) -> InboundMessage:
        return cls(message_id=str(message.get("id") or ""), body=extract_email_body(message))

    @classmethod
    def from_eml(cls, raw: bytes) -> InboundMessage:
        # Messages without a Message-ID header are keyed by their content.
        msg = parse_eml(raw)
        message_id = eml_message_id(msg) or hashlib.sha256(raw).hexdigest()
        return cls(message_id=message_id[:200], body=email_body_from_eml(msg) or None)


@dataclass
class IngestReport:
    processed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    records: list[ExpenseRecord] = field(default_factory=list)


@dataclass
class CategorySummary:
    category: CategoryLabel
    total_amount: Decimal = Decimal("0")
    count: int = 0
    expenses: list[ExpenseRecord] = field(default_factory=list)


def month_name(when: datetime) -> str:
    return MONTH_NAMES[when.month - 1]


def record_expense_data(
    session: Session,
    *,
    user_id: str,
    data: ExpenseData,
    source: ExpenseSource,
    source_ref: str | None = None,
    now: datetime | None = None,
) -> list[ExpenseRecord]:
    """Add one ledger record per line item. The caller commits."""
    now = now or datetime.now(UTC)
    records: list[ExpenseRecord] = []
    for item in data.items:
        category = item.category
        if category == CategoryLabel.UNKNOWN:
            category = title_classifier.classify(item.title)
        record = ExpenseRecord(
            user_id=user_id,
            month=month_name(now),
            title=item.title[:200],
            amount=item.amount,
            icon=CATEGORY_ICONS[category],
            category=category,
            source=source,
            source_ref=source_ref,
            spent_at=now,
        )
        session.add(record)
        records.append(record)
    return records


def is_message_processed(session: Session, *, user_id: str, message_id: str) -> bool:
    existing = session.scalar(
        select(ProcessedMessage.id).where(
            ProcessedMessage.user_id == user_id, ProcessedMessage.message_id == message_id
        )
    )
    return existing is not None


def ingest_email(
    session: Session,
    *,
    user_id: str,
    message_id: str,
    body: str,
    now: datetime | None = None,
) -> list[ExpenseRecord] | None:
    """
    Extract and store the expenses in one notification email.

    Returns ``None`` when the message was already ingested for this user. Extraction
    errors propagate and leave the message unmarked so a later run can retry it.
    """
    if is_message_processed(session, user_id=user_id, message_id=message_id):
        log_event(logger, "ingest.email.duplicate", message_id=message_id)
        return None

    data = extract_expense(body)
    records = record_expense_data(
        session,
        user_id=user_id,
        data=data,
        source=ExpenseSource.EMAIL,
        source_ref=message_id,
        now=now,
    )
    session.add(ProcessedMessage(message_id=message_id, user_id=user_id))
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        log_event(logger, "ingest.email.duplicate", message_id=message_id, reason="race")
        return None

    log_event(
        logger,
        "ingest.email.recorded",
        message_id=message_id,
        item_count=len(records),
        total=str(data.total),
    )
    return records


def ingest_eml(
    session: Session,
    *,
    user_id: str,
    raw: bytes,
    now: datetime | None = None,
) -> list[ExpenseRecord] | None:
    """Ingest one uploaded RFC 822 message. Same contract as ``ingest_email``."""
    msg = InboundMessage.from_eml(raw)
    log_event(
        logger,
        "ingest.eml.received",
        message_id=msg.message_id,
        byte_size=len(raw),
        has_body=bool(msg.body),
    )
    return ingest_email(
        session, user_id=user_id, message_id=msg.message_id, body=msg.body or "", now=now
    )


def ingest_messages(
    session: Session,
    *,
    user_id: str,
    messages: Iterable[InboundMessage],
    now: datetime | None = None,
) -> IngestReport:
    report = IngestReport()
    start = time.monotonic()
    for msg in messages:
        if not msg.message_id or not msg.body:
            report.skipped.append(msg.message_id)
            log_event(logger, "ingest.email.skipped", message_id=msg.message_id, reason="no_body")
            continue
        try:
            records = ingest_email(
                session, user_id=user_id, message_id=msg.message_id, body=msg.body, now=now
            )
        except Exception:  # noqa: BLE001
            session.rollback()
            report.failed.append(msg.message_id)
            log_exception(logger, "ingest.email.error", message_id=msg.message_id)
            continue
        if records is None:
            report.skipped.append(msg.message_id)
            continue
        report.processed.append(msg.message_id)
        report.records.extend(records)

    log_event(
        logger,
        "ingest.batch.finish",
        processed=len(report.processed),
        skipped=len(report.skipped),
        failed=len(report.failed),
        duration_ms=monotonic_ms(start),
    )
    return report


def ingest_bill_response(
    session: Session,
    *,
    user_id: str,
    completion: str,
    image_url: str | None = None,
    now: datetime | None = None,
) -> list[ExpenseRecord]:
    data = parse_structured_response(completion)
    if data is None:
        raise UnstructuredResponseError("Failed to extract required fields from the bill")

    records = record_expense_data(
        session,
        user_id=user_id,
        data=data,
        source=ExpenseSource.BILL,
        source_ref=image_url,
        now=now,
    )
    session.commit()
    log_event(
        logger,
        "ingest.bill.recorded",
        item_count=len(records),
        total=str(data.total),
        image_url=image_url,
    )
    return records


def list_expenses(
    session: Session, *, user_id: str, month: str | None = None
) -> list[ExpenseRecord]:
    stmt = select(ExpenseRecord).where(ExpenseRecord.user_id == user_id)
    if month:
        stmt = stmt.where(ExpenseRecord.month == month)
    return list(session.scalars(stmt.order_by(ExpenseRecord.spent_at, ExpenseRecord.created_at)))


def monthly_summary(session: Session, *, user_id: str, month: str) -> list[CategorySummary]:
    by_category: dict[CategoryLabel, CategorySummary] = {}
    for record in list_expenses(session, user_id=user_id, month=month):
        summary = by_category.setdefault(record.category, CategorySummary(category=record.category))
        summary.total_amount += Decimal(record.amount)
        summary.count += 1
        summary.expenses.append(record)
    return sorted(by_category.values(), key=lambda s: s.total_amount, reverse=True)

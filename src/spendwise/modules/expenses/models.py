from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from spendwise.core.models import Base, CreatedAt, UUIDPrimaryKey, utcnow
from spendwise.modules.extraction.categories import CategoryLabel


class ExpenseSource(str, enum.Enum):
    EMAIL = "EMAIL"
    BILL = "BILL"


class ExpenseRecord(UUIDPrimaryKey, CreatedAt, Base):
    __tablename__ = "expenses_expense_record"

    user_id: Mapped[str] = mapped_column(String(200), index=True)
    month: Mapped[str] = mapped_column(String(20), index=True)
    title: Mapped[str] = mapped_column(String(200))
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    icon: Mapped[str] = mapped_column(String(16))
    category: Mapped[CategoryLabel] = mapped_column(
        Enum(CategoryLabel, native_enum=False, values_callable=lambda e: [x.value for x in e]),
        index=True,
    )
    source: Mapped[ExpenseSource] = mapped_column(Enum(ExpenseSource, native_enum=False))
    source_ref: Mapped[str | None] = mapped_column(Text, nullable=True)
    spent_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class ProcessedMessage(UUIDPrimaryKey, Base):
    __tablename__ = "expenses_processed_message"
    __table_args__ = (
        UniqueConstraint("message_id", "user_id", name="uq_processed_message_user"),
    )

    message_id: Mapped[str] = mapped_column(String(200))
    user_id: Mapped[str] = mapped_column(String(200), index=True)
    processed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from spendwise.modules.expenses.models import ExpenseSource
from spendwise.modules.extraction.categories import CategoryLabel
from spendwise.modules.extraction.schemas import ExpenseData


class EmailTextIn(BaseModel):
    text: str


class BillResponseIn(BaseModel):
    completion: str
    image_url: str | None = None


class EmailMessageIn(BaseModel):
    message_id: str = Field(min_length=1)
    body: str


class ExpenseLineItemOut(BaseModel):
    amount: Decimal
    title: str
    category: CategoryLabel


class ExpenseDataOut(BaseModel):
    total: Decimal
    items: list[ExpenseLineItemOut]

    @classmethod
    def from_data(cls, data: ExpenseData) -> ExpenseDataOut:
        return cls(
            total=data.total,
            items=[
                ExpenseLineItemOut(amount=i.amount, title=i.title, category=i.category)
                for i in data.items
            ],
        )


class ExpenseRecordOut(BaseModel):
    id: uuid.UUID
    user_id: str
    month: str
    title: str
    amount: Decimal
    icon: str
    category: CategoryLabel
    source: ExpenseSource
    source_ref: str | None
    spent_at: datetime
    created_at: datetime


class CategoryOut(BaseModel):
    label: CategoryLabel
    icon: str
    color: str


class CategorySummaryOut(BaseModel):
    category: CategoryLabel
    total_amount: Decimal
    count: int
    expenses: list[ExpenseRecordOut]

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from spendwise.modules.extraction.categories import CategoryLabel


@dataclass(frozen=True)
class AmountCandidate:
    value: Decimal
    matched_text: str
    offset: int

    @property
    def end(self) -> int:
        return self.offset + len(self.matched_text)

    def overlaps(self, other: AmountCandidate) -> bool:
        return self.offset < other.end and other.offset < self.end


@dataclass(frozen=True)
class ExpenseLineItem:
    amount: Decimal
    title: str
    category: CategoryLabel


@dataclass(frozen=True)
class ExpenseData:
    total: Decimal
    items: tuple[ExpenseLineItem, ...]

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "items": [
                {"amount": i.amount, "title": i.title, "category": i.category.value}
                for i in self.items
            ],
        }

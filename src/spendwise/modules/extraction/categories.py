"""
Spending categories and keyword-based classification.

The category vocabulary is closed: anything that cannot be placed falls back to
``CategoryLabel.UNKNOWN``. Keyword tables are ordered, and the first rule with a
matching keyword wins, so table order decides ties.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass


class CategoryLabel(str, enum.Enum):
    FOOD = "food"
    RENT = "rent"
    TRAVEL = "travel"
    UTILITY = "utility"
    ENTERTAINMENT = "entertainment"
    SHOPPING = "shopping"
    HEALTH = "health"
    EDUCATION = "education"
    GIFT = "gift"
    FITNESS = "fitness"
    INVESTMENT = "investment"
    UNKNOWN = "unknown"


CATEGORY_VOCABULARY_VERSION = 1
CATEGORY_VOCABULARY: tuple[str, ...] = tuple(label.value for label in CategoryLabel)


def normalize_category(value: object) -> CategoryLabel:
    """Map a free-form label onto the vocabulary, ``unknown`` when it is not part of it."""
    if not isinstance(value, str):
        return CategoryLabel.UNKNOWN
    try:
        return CategoryLabel(value.strip().lower())
    except ValueError:
        return CategoryLabel.UNKNOWN


@dataclass(frozen=True)
class CategoryRule:
    label: CategoryLabel
    keywords: tuple[str, ...]


CategoryTable = tuple[CategoryRule, ...]


def make_table(rules: Iterable[tuple[CategoryLabel | str, Iterable[str]]]) -> CategoryTable:
    return tuple(
        CategoryRule(
            label=CategoryLabel(label),
            keywords=tuple(k.lower() for k in keywords if k),
        )
        for label, keywords in rules
    )


# Used on the text surrounding an amount in a notification email.
DEFAULT_CATEGORY_TABLE: CategoryTable = make_table(
    [
        (
            CategoryLabel.FOOD,
            (
                "food", "restaurant", "meal", "lunch", "dinner", "breakfast", "cafe",
                "grocery", "groceries", "takeout", "doordash", "uber eats", "grubhub",
            ),
        ),
        (
            CategoryLabel.RENT,
            ("rent", "lease", "housing", "apartment", "mortgage", "property"),
        ),
        (
            CategoryLabel.TRAVEL,
            (
                "travel", "flight", "hotel", "airfare", "airline", "booking", "trip",
                "vacation", "uber", "lyft", "taxi", "car rental",
            ),
        ),
        (
            CategoryLabel.UTILITY,
            (
                "utility", "electric", "water", "gas", "internet", "phone", "bill",
                "cable", "subscription",
            ),
        ),
        (
            CategoryLabel.ENTERTAINMENT,
            (
                "entertainment", "movie", "theatre", "concert", "show", "netflix",
                "spotify", "hulu", "disney+", "prime", "subscription",
            ),
        ),
        (
            CategoryLabel.SHOPPING,
            (
                "shopping", "purchase", "amazon", "store", "retail", "mall", "online", "buy",
                "bought",
            ),
        ),
        (
            CategoryLabel.HEALTH,
            (
                "health", "medical", "doctor", "hospital", "pharmacy", "medicine",
                "prescription", "dental", "healthcare",
            ),
        ),
        (
            CategoryLabel.EDUCATION,
            (
                "education", "tuition", "school", "college", "university", "course",
                "class", "book", "textbook",
            ),
        ),
        (CategoryLabel.GIFT, ("gift", "present", "donation", "charity")),
        (
            CategoryLabel.FITNESS,
            ("fitness", "gym", "workout", "exercise", "sport", "membership"),
        ),
        (
            CategoryLabel.INVESTMENT,
            (
                "investment", "stock", "bond", "mutual fund", "etf", "crypto", "bitcoin",
                "ethereum", "trading",
            ),
        ),
    ]
)

# Used on a stored expense's title when extraction left it uncategorised.
TITLE_CATEGORY_TABLE: CategoryTable = make_table(
    [
        (
            CategoryLabel.FOOD,
            (
                "pizza", "burger", "sandwich", "pasta", "coffee", "snack", "dinner",
                "lunch", "breakfast", "food",
            ),
        ),
        (CategoryLabel.RENT, ("rent", "lease", "mortgage")),
        (
            CategoryLabel.UTILITY,
            (
                "electricity", "water", "gas", "internet", "phone", "heating", "cooling",
                "electric bill", "water bill", "gas bill", "internet bill", "phone bill",
                "utility",
            ),
        ),
        (
            CategoryLabel.TRAVEL,
            (
                "flight", "train", "bus", "taxi", "uber", "lyft", "car rental", "airfare",
                "metro", "travel",
            ),
        ),
        (
            CategoryLabel.ENTERTAINMENT,
            (
                "movie", "netflix", "concert", "game", "party", "show", "theater",
                "cinema", "entertainment",
            ),
        ),
        (
            CategoryLabel.SHOPPING,
            (
                "clothes", "shoes", "electronics", "makeup", "accessories", "jewelry",
                "furniture", "appliances", "shopping",
            ),
        ),
        (
            CategoryLabel.HEALTH,
            (
                "medicine", "doctor", "hospital", "pharmacy", "checkup", "therapy",
                "surgery", "health",
            ),
        ),
        (
            CategoryLabel.EDUCATION,
            (
                "books", "tuition", "course", "workshop", "seminar", "study material",
                "online class", "education",
            ),
        ),
        (
            CategoryLabel.GIFT,
            ("gift", "present", "donation", "charity", "wedding", "birthday"),
        ),
        (
            CategoryLabel.FITNESS,
            ("gym", "yoga", "workout", "trainer", "sports", "exercise", "fitness"),
        ),
        (
            CategoryLabel.INVESTMENT,
            ("stocks", "shares", "mutual funds", "crypto", "savings", "bonds", "investment"),
        ),
    ]
)

CATEGORY_ICONS: dict[CategoryLabel, str] = {
    CategoryLabel.FOOD: "🍔",
    CategoryLabel.RENT: "🏠",
    CategoryLabel.TRAVEL: "✈️",
    CategoryLabel.UTILITY: "🔌",
    CategoryLabel.ENTERTAINMENT: "🎬",
    CategoryLabel.SHOPPING: "🛍️",
    CategoryLabel.HEALTH: "🏥",
    CategoryLabel.EDUCATION: "📚",
    CategoryLabel.GIFT: "🎁",
    CategoryLabel.FITNESS: "🏋️",
    CategoryLabel.INVESTMENT: "📈",
    CategoryLabel.UNKNOWN: "❓",
}

CATEGORY_COLORS: dict[CategoryLabel, str] = {
    CategoryLabel.FOOD: "#C76542",
    CategoryLabel.RENT: "#4ade80",
    CategoryLabel.TRAVEL: "#41476E",
    CategoryLabel.UTILITY: "#ef4444",
    CategoryLabel.ENTERTAINMENT: "#fed7aa",
    CategoryLabel.SHOPPING: "#c084fc",
    CategoryLabel.HEALTH: "#FFBB50",
    CategoryLabel.EDUCATION: "#E8C1B4",
    CategoryLabel.GIFT: "#564E4A",
    CategoryLabel.FITNESS: "#C03403",
    CategoryLabel.INVESTMENT: "#6b21a8",
    CategoryLabel.UNKNOWN: "#d4d4d4",
}


class CategoryClassifier:
    def __init__(self, table: CategoryTable = DEFAULT_CATEGORY_TABLE) -> None:
        self._table = table

    @property
    def table(self) -> CategoryTable:
        return self._table

    def classify(self, text: str) -> CategoryLabel:
        if not isinstance(text, str) or not text:
            return CategoryLabel.UNKNOWN
        t = text.lower()
        for rule in self._table:
            if any(k in t for k in rule.keywords):
                return rule.label
        return CategoryLabel.UNKNOWN


default_classifier = CategoryClassifier()
title_classifier = CategoryClassifier(TITLE_CATEGORY_TABLE)


def classify(text: str) -> CategoryLabel:
    return default_classifier.classify(text)

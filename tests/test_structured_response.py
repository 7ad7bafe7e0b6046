from __future__ import annotations

from decimal import Decimal

import pytest

from spendwise.modules.extraction.categories import CategoryLabel
from spendwise.modules.extraction.errors import InvalidExtractionResult
from spendwise.modules.extraction.structured import parse_structured_response

MARKDOWN = (
    "Here is the bill breakdown:\n\n"
    "**Total Bill Amount:** 45.50\n\n"
    "• **Amount:** 30.00\n"
    "  • **Title:** Pasta Carbonara\n"
    "  • **Category:** Food\n"
    "• **Amount:** 15.50\n"
    "  • **Title:** House wine\n"
    "  • **Category:** beverages\n"
)


def test_markdown_bullets_are_parsed():
    data = parse_structured_response(MARKDOWN)
    assert data is not None
    assert data.total == Decimal("45.50")
    assert [(i.amount, i.title, i.category) for i in data.items] == [
        (Decimal("30.00"), "Pasta Carbonara", CategoryLabel.FOOD),
        (Decimal("15.50"), "House wine", CategoryLabel.UNKNOWN),
    ]


def test_markdown_wins_over_fenced_json():
    text = (
        MARKDOWN
        + '\n```json\n{"total": 99, "items": '
        + '[{"amount": 99, "title": "X", "category": "rent"}]}\n```'
    )
    data = parse_structured_response(text)
    assert data is not None
    assert data.total == Decimal("45.50")
    assert len(data.items) == 2


def test_markdown_total_without_bullets_falls_through_to_fenced_json():
    text = (
        "**Total Bill Amount:** 12\n"
        '```json\n{"total": 12, "items": [{"amount": 12, "title": "Taxi", "head": "Travel"}]}\n```'
    )
    data = parse_structured_response(text)
    assert data is not None
    assert data.items[0].title == "Taxi"
    assert data.items[0].category == CategoryLabel.TRAVEL


def test_bad_fenced_block_falls_through_to_braces():
    text = (
        "```\nnot json at all\n```\n"
        'Result: {"total": "1,200.00", "items": [{"amount": "1,200.00", "title": "Laptop", '
        '"category": "shopping"}]} hope this helps'
    )
    data = parse_structured_response(text)
    assert data is not None
    assert data.total == Decimal("1200.00")
    assert data.items[0].category == CategoryLabel.SHOPPING


def test_category_outside_vocabulary_is_clamped_to_unknown():
    data = parse_structured_response(
        '{"total": 8.5, "items": [{"amount": 8.5, "title": "Apples", "category": "groceries"}]}'
    )
    assert data is not None
    assert data.items[0].category == CategoryLabel.UNKNOWN
    assert data.items[0].amount == Decimal("8.5")


def test_missing_title_gets_generic_title():
    data = parse_structured_response('{"total": 3, "items": [{"amount": 3, "category": "gift"}]}')
    assert data is not None
    assert data.items[0].title == "Expense"
    assert data.items[0].category == CategoryLabel.GIFT


@pytest.mark.parametrize(
    "text", ["no structure here at all", "", "[1, 2, 3]", "123", "```json\n[]\n```"]
)
def test_no_structure_returns_none(text):
    assert parse_structured_response(text) is None


@pytest.mark.parametrize(
    "text",
    [
        '{"items": [{"amount": 1, "title": "A", "category": "food"}]}',
        '{"total": "abc", "items": [{"amount": 1, "title": "A", "category": "food"}]}',
        '{"total": 10, "items": []}',
        '{"total": 10}',
        '{"total": 10, "items": ["nope"]}',
        '{"total": 10, "items": [{"amount": "ten", "title": "A"}]}',
        '{"total": -5, "items": [{"amount": 1, "title": "A"}]}',
    ],
)
def test_found_but_incomplete_structure_raises(text):
    with pytest.raises(InvalidExtractionResult):
        parse_structured_response(text)


def test_discount_line_keeps_its_negative_amount():
    data = parse_structured_response(
        '{"total": 18, "items": [{"amount": 20, "title": "Pizza", "category": "food"}, '
        '{"amount": -2, "title": "Coupon", "category": "unknown"}]}'
    )
    assert data is not None
    assert data.total == Decimal("18")
    assert [i.amount for i in data.items] == [Decimal("20"), Decimal("-2")]
    assert data.items[1].title == "Coupon"


def test_markdown_with_crlf_line_endings_is_parsed():
    data = parse_structured_response(MARKDOWN.replace("\n", "\r\n"))
    assert data is not None
    assert data.total == Decimal("45.50")
    assert [i.title for i in data.items] == ["Pasta Carbonara", "House wine"]


def test_markdown_discount_bullet_is_kept():
    text = (
        "**Total Bill Amount:** 9.00\n"
        "• **Amount:** 10.00\n"
        "• **Title:** Burger\n"
        "• **Category:** food\n"
        "• **Amount:** -1.00\n"
        "• **Title:** Loyalty discount\n"
        "• **Category:** unknown\n"
    )
    data = parse_structured_response(text)
    assert data is not None
    assert [i.amount for i in data.items] == [Decimal("10.00"), Decimal("-1.00")]

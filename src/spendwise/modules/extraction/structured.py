from __future__ import annotations

import json
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from spendwise.core.logging import get_logger, log_event, text_snippet
from spendwise.modules.extraction.categories import normalize_category
from spendwise.modules.extraction.errors import InvalidExtractionResult
from spendwise.modules.extraction.schemas import ExpenseData, ExpenseLineItem
from spendwise.modules.extraction.text import FALLBACK_TITLE

logger = get_logger(__name__)

_MD_TOTAL_RE = re.compile(r"\*\*Total Bill Amount:\*\*\s*([\d.,]+)")
_MD_ITEM_RE = re.compile(
    r"[•\-]\s*\*\*Amount:\*\*\s*([-\d.,]+)[ \t]*\r?\n"
    r"\s*[•\-]\s*\*\*Title:\*\*[ \t]*([^\r\n]+)\r?\n"
    r"\s*[•\-]\s*\*\*Category:\*\*[ \t]*([^\r\n]+)"
)
_FENCED_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.S | re.I)
_BRACES_RE = re.compile(r"\{.*\}", re.S)


def parse_structured_response(text: str) -> ExpenseData | None:
    """
    Interpret a classifier completion describing a bill.

    Tries a markdown bullet layout, then a fenced JSON block, then the outermost
    ``{...}`` span, then the whole text. Returns ``None`` when none of them yields a JSON
    object: valid JSON of another shape (``[]``, ``123``, ``"text"``) counts as no structure
    and falls through rather than failing.

    Raises ``InvalidExtractionResult`` when an object was found but its total is missing,
    non-numeric or negative, or its items are empty or malformed. Item amounts may be
    negative so discount and coupon lines survive.
    """
    text = text if isinstance(text, str) else ""

    method, obj = _find_structure(text)
    if obj is None:
        log_event(
            logger,
            "extraction.structured.not_found",
            text_length=len(text),
            evidence_snippet=text_snippet(text),
        )
        return None

    data = _validate(obj)
    log_event(
        logger,
        "extraction.structured.parsed",
        method=method,
        item_count=len(data.items),
        total=str(data.total),
    )
    return data


def _find_structure(text: str) -> tuple[str, dict[str, Any] | None]:
    if "**" in text:
        md = _parse_markdown(text)
        if md is not None:
            return "markdown", md

    m = _FENCED_RE.search(text)
    if m:
        obj = _loads_object(m.group(1), method="fenced")
        if obj is not None:
            return "fenced", obj

    m = _BRACES_RE.search(text)
    if m:
        obj = _loads_object(m.group(0), method="braces")
        if obj is not None:
            return "braces", obj

    return "whole_text", _loads_object(text, method="whole_text")


def _parse_markdown(text: str) -> dict[str, Any] | None:
    total = _MD_TOTAL_RE.search(text)
    if not total:
        return None
    items = [
        {"amount": amount, "title": title.strip(), "category": category.strip()}
        for amount, title, category in _MD_ITEM_RE.findall(text)
    ]
    if not items:
        return None
    return {"total": total.group(1), "items": items}


def _loads_object(raw: str, *, method: str) -> dict[str, Any] | None:
    s = (raw or "").strip()
    if not s:
        return None
    try:
        obj = json.loads(s)
    except ValueError:
        log_event(logger, "extraction.structured.json_error", level=logging.DEBUG, method=method)
        return None
    return obj if isinstance(obj, dict) else None


def _validate(obj: dict[str, Any]) -> ExpenseData:
    total = _to_amount(obj.get("total"))
    if total is None:
        raise InvalidExtractionResult("Missing or non-numeric total")
    if total < 0:
        raise InvalidExtractionResult("Total is negative")

    raw_items = obj.get("items")
    if not isinstance(raw_items, list) or not raw_items:
        raise InvalidExtractionResult("No line items")

    items: list[ExpenseLineItem] = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise InvalidExtractionResult(f"Item {idx} is not an object")
        amount = _to_amount(raw.get("amount"))
        if amount is None:
            raise InvalidExtractionResult(f"Item {idx} has a missing or non-numeric amount")
        title = raw.get("title")
        title = str(title).strip() if title is not None else ""
        category = raw.get("category", raw.get("head"))
        items.append(
            ExpenseLineItem(
                amount=amount,
                title=title or FALLBACK_TITLE,
                category=normalize_category(category),
            )
        )
    return ExpenseData(total=total, items=tuple(items))


def _to_amount(value: Any) -> Decimal | None:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        amount = Decimal(str(value).strip().replace(",", ""))
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount

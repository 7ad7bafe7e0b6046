from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from spendwise.core.config import settings
from spendwise.core.logging import get_logger, log_event, text_snippet
from spendwise.modules.extraction.categories import (
    CategoryClassifier,
    CategoryLabel,
    default_classifier,
)
from spendwise.modules.extraction.errors import NoAmountFoundError
from spendwise.modules.extraction.schemas import AmountCandidate, ExpenseData, ExpenseLineItem

logger = get_logger(__name__)

SINGLE_ITEM_TITLE = "Expense from email"
FALLBACK_TITLE = "Expense"

_NUMBER = r"(\d{1,3}(?:,\d{3})+(?:\.\d{2})?|\d+(?:\.\d{2})?)"
_LABEL_TAIL = r"\s*(?::|\s+of)?\s*\$?\s*" + _NUMBER


@dataclass(frozen=True)
class AmountMatcher:
    name: str
    pattern: re.Pattern[str]

    def scan(self, text: str) -> list[AmountCandidate]:
        out: list[AmountCandidate] = []
        for m in self.pattern.finditer(text):
            value = _parse_amount(m.group(1))
            if value is None:
                continue
            out.append(AmountCandidate(value=value, matched_text=m.group(0), offset=m.start()))
        return out


def _labelled(word: str) -> AmountMatcher:
    return AmountMatcher(f"{word}_label", re.compile(word + _LABEL_TAIL, re.I))


AMOUNT_MATCHERS: tuple[AmountMatcher, ...] = (
    AmountMatcher("dollar_prefixed", re.compile(r"\$\s*" + _NUMBER)),
    AmountMatcher("currency_suffixed", re.compile(_NUMBER + r"\s*(?:USD|dollars|dollar)", re.I)),
    AmountMatcher(
        "total_label",
        re.compile(
            r"total\s*(?:amount|payment|charge|price)?(?:\s*:|\s+of)?\s*\$?\s*" + _NUMBER, re.I
        ),
    ),
    _labelled("amount"),
    AmountMatcher("payment_label", re.compile(r"payment\s*(?:of|:)?\s*\$?\s*" + _NUMBER, re.I)),
    _labelled("charged"),
    _labelled("price"),
    _labelled("cost"),
    _labelled("bill"),
    _labelled("invoice"),
    AmountMatcher("currency_prefixed", re.compile(r"(?:USD|dollars|dollar)\s*" + _NUMBER, re.I)),
)

_NAME = r"[A-Za-z0-9&]+(?:\s+[A-Za-z0-9&]+)*"
_MERCHANT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"\b(?:purchase|payment|transaction|charge)\s+(?:at|to|from)\s+(" + _NAME + ")", re.I
    ),
    re.compile(r"\b(?:from|at|to)\s+(" + _NAME + r"?)\s+(?:on|for)\b", re.I),
    re.compile(r"(" + _NAME + r"?)\s+(?:store|restaurant|shop|market)\b", re.I),
)
_BUSINESS_NAME_RE = re.compile(r"[A-Z][A-Za-z0-9\s&]{2,20}")


def scan_amounts(
    text: str, matchers: tuple[AmountMatcher, ...] = AMOUNT_MATCHERS
) -> list[AmountCandidate]:
    """
    Run every matcher over the whole text.

    Results keep matcher order, then document order within a matcher. The same amount
    found by two matchers (e.g. "payment of $45.00" and "$45.00") is reported twice.
    """
    candidates: list[AmountCandidate] = []
    for matcher in matchers:
        candidates.extend(matcher.scan(text))
    return candidates


def extract_expense(
    text: str, *, classifier: CategoryClassifier = default_classifier
) -> ExpenseData:
    text = text if isinstance(text, str) else ""
    max_chars = int(settings.extraction_max_chars or 0)
    if max_chars > 0 and len(text) > max_chars:
        log_event(
            logger,
            "extraction.text.truncated",
            level=logging.WARNING,
            text_length=len(text),
            max_chars=max_chars,
        )
        text = text[:max_chars]

    candidates = scan_amounts(text)
    if not candidates:
        log_event(
            logger,
            "extraction.text.no_amount",
            text_length=len(text),
            evidence_snippet=text_snippet(text),
        )
        raise NoAmountFoundError("No expense amounts found in the text")

    provisional_total = max(c.value for c in candidates)

    distinct = _distinct_amounts(candidates)
    items: list[ExpenseLineItem] = []
    if len(distinct) > 1:
        skip_total = len(distinct) > 2
        for c in distinct:
            if skip_total and c.value == provisional_total:
                continue
            context = _context_window(text, c)
            items.append(
                ExpenseLineItem(
                    amount=c.value,
                    title=derive_title(context, c.matched_text),
                    category=classifier.classify(context),
                )
            )

    if not items:
        items.append(
            ExpenseLineItem(
                amount=provisional_total,
                title=SINGLE_ITEM_TITLE,
                category=CategoryLabel.UNKNOWN,
            )
        )

    calculated = sum((i.amount for i in items), Decimal("0"))
    if abs(calculated - provisional_total) < Decimal("0.01") or len(items) > 1:
        total = calculated
    else:
        total = provisional_total

    log_event(
        logger,
        "extraction.text.extracted",
        candidate_count=len(candidates),
        item_count=len(items),
        total=str(total),
    )
    return ExpenseData(total=total, items=tuple(items))


def derive_title(context: str, matched_text: str) -> str:
    cleaned = context.replace(matched_text, "", 1) if matched_text else context
    for pattern in _MERCHANT_PATTERNS:
        m = pattern.search(cleaned)
        if m and m.group(1).strip():
            return m.group(1).strip()

    m = _BUSINESS_NAME_RE.search(cleaned)
    if m and m.group(0).strip():
        return m.group(0).strip()
    return FALLBACK_TITLE


def _context_window(text: str, candidate: AmountCandidate) -> str:
    radius = int(settings.extraction_context_chars)
    start = max(0, candidate.offset - radius)
    end = min(len(text), candidate.end + radius)
    return text[start:end]


def _distinct_amounts(candidates: list[AmountCandidate]) -> list[AmountCandidate]:
    # One located amount reported by several matchers counts once.
    distinct: list[AmountCandidate] = []
    for c in candidates:
        if any(c.value == d.value and c.overlaps(d) for d in distinct):
            continue
        distinct.append(c)
    return distinct


def _parse_amount(raw: str | None) -> Decimal | None:
    s = (raw or "").replace(",", "").strip()
    if not s:
        return None
    try:
        value = Decimal(s)
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value

"""
Pull a readable body out of a notification email.

Gmail's API returns a message as a nested ``payload`` of parts, each with a MIME
type, an optional base64url ``body.data`` and optional child ``parts``. That shape
is wrapped in ``MessagePart`` so callers walk a typed tree instead of raw dicts.
Raw RFC 822 bytes (``.eml``) go through the standard library parser instead.
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Iterator
from dataclasses import dataclass, field
from email import policy
from email.message import EmailMessage
from email.parser import BytesParser
from html.parser import HTMLParser
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class MessagePart:
    mime_type: str
    data: str | None = None
    parts: tuple[MessagePart, ...] = field(default_factory=tuple)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> MessagePart:
        body = payload.get("body")
        data = body.get("data") if isinstance(body, dict) else None
        children = payload.get("parts")
        return cls(
            mime_type=str(payload.get("mimeType") or "").lower(),
            data=data if isinstance(data, str) and data else None,
            parts=tuple(
                cls.from_payload(p) for p in (children or []) if isinstance(p, dict)
            ),
        )

    @property
    def is_leaf(self) -> bool:
        return not self.parts

    def walk(self) -> Iterator[MessagePart]:
        yield self
        for child in self.parts:
            yield from child.walk()

    def accept(self, visitor: PartVisitor[T]) -> T:
        if self.is_leaf:
            return visitor.visit_leaf(self)
        return visitor.visit_parent(self, [child.accept(visitor) for child in self.parts])

    def decoded_text(self) -> str | None:
        if not self.data:
            return None
        return decode_base64url(self.data)


class PartVisitor(Generic[T]):
    def visit_leaf(self, part: MessagePart) -> T:  # pragma: no cover
        raise NotImplementedError

    def visit_parent(self, part: MessagePart, children: list[T]) -> T:  # pragma: no cover
        raise NotImplementedError


class PlainTextCollector(PartVisitor[list[str]]):
    """Collects decoded ``text/plain`` leaves in document order."""

    def visit_leaf(self, part: MessagePart) -> list[str]:
        if part.mime_type != "text/plain":
            return []
        text = part.decoded_text()
        return [text] if text else []

    def visit_parent(self, part: MessagePart, children: list[list[str]]) -> list[str]:
        out: list[str] = []
        for texts in children:
            out.extend(texts)
        return out


def decode_base64url(data: str) -> str | None:
    s = data.strip()
    s += "=" * (-len(s) % 4)
    try:
        raw = base64.urlsafe_b64decode(s.encode("ascii"))
    except (binascii.Error, ValueError):
        return None
    return raw.decode("utf-8", errors="replace")


def extract_email_body(message: dict[str, Any]) -> str | None:
    payload = message.get("payload") if isinstance(message, dict) else None
    if not isinstance(payload, dict):
        return None
    root = MessagePart.from_payload(payload)

    for part in root.parts:
        if part.mime_type == "text/plain" and part.data:
            return part.decoded_text()

    if root.data:
        return root.decoded_text()

    nested = [text for child in root.parts for text in child.accept(PlainTextCollector())]
    return nested[0] if nested else None


def parse_eml(raw: bytes) -> EmailMessage:
    return BytesParser(policy=policy.default).parsebytes(raw)


def eml_message_id(msg: EmailMessage) -> str | None:
    value = str(msg.get("Message-ID") or "").strip().strip("<>").strip()
    return value or None


def email_body_from_eml(msg: EmailMessage) -> str:
    """
    Readable body of a parsed RFC 822 message.

    ``text/plain`` is preferred over ``text/html``; attachments are never considered.
    HTML is flattened with ``html_to_text``.
    """
    part = msg.get_body(preferencelist=("plain", "html"))
    if part is None:
        return ""
    try:
        content = part.get_content()
    except (LookupError, ValueError):
        content = (part.get_payload(decode=True) or b"").decode("utf-8", errors="replace")
    if not isinstance(content, str):
        return ""
    if part.get_content_subtype() == "html":
        return html_to_text(content)
    return content.strip()


class _HtmlText(HTMLParser):
    _BREAKS = frozenset({"br", "p", "div", "tr", "li", "table", "h1", "h2", "h3", "h4"})
    _SKIPPED = frozenset({"script", "style", "head"})

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.lines: list[str] = [""]
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs) -> None:
        if tag in self._SKIPPED:
            self._skip_depth += 1
        elif tag in self._BREAKS:
            self.lines.append("")

    def handle_endtag(self, tag: str) -> None:
        if tag in self._SKIPPED:
            self._skip_depth = max(0, self._skip_depth - 1)
        elif tag in self._BREAKS:
            self.lines.append("")

    def handle_data(self, data: str) -> None:
        if not self._skip_depth:
            self.lines[-1] += data


def html_to_text(html: str) -> str:
    parser = _HtmlText()
    parser.feed(html)
    parser.close()
    lines = (" ".join(ln.split()) for ln in parser.lines)
    return "\n".join(ln for ln in lines if ln)

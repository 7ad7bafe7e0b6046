from __future__ import annotations

import json
import logging

from spendwise.core.logging import JsonFormatter, bind_log_fields, log_context, text_snippet


def _format(event: str, **fields) -> dict:
    record = logging.LogRecord("spendwise.test", logging.INFO, __file__, 1, event, None, None)
    record.event = event
    record.fields = fields
    return json.loads(JsonFormatter().format(record))


def test_bound_fields_are_scoped_to_the_context_block():
    with log_context(request_id="r-1", user_id=None):
        with log_context(celery_task_id="t-1"):
            inner = _format("ingest.email.recorded", item_count=2)
        outer = _format("ingest.batch.finish")
    after = _format("ingest.batch.finish")

    assert inner["event"] == "ingest.email.recorded"
    assert inner["request_id"] == "r-1"
    assert inner["celery_task_id"] == "t-1"
    assert inner["item_count"] == 2
    assert "user_id" not in inner
    assert "celery_task_id" not in outer
    assert "request_id" not in after


def test_bind_log_fields_extends_the_enclosing_context():
    with log_context(request_id="r-2"):
        bind_log_fields(user_id="u-9")
        line = _format("extraction.text.extracted")
    assert line["user_id"] == "u-9"
    assert "user_id" not in _format("extraction.text.extracted")


def test_none_fields_are_dropped():
    line = _format("extraction.structured.not_found", evidence_snippet=None, text_length=0)
    assert "evidence_snippet" not in line
    assert line["text_length"] == 0


def test_text_snippet_collapses_whitespace_and_bounds_length():
    assert text_snippet("  Paid\n\t$5.00   at  Deli ") == "Paid $5.00 at Deli"
    assert text_snippet("") is None
    cut = text_snippet("word " * 100, max_len=20)
    assert cut is not None and len(cut) <= 20 and cut.endswith("...")

"""
Model import hook.

Importing this module ensures all SQLAlchemy models are registered on Base.metadata.
"""

from __future__ import annotations

from spendwise.modules.expenses.models import ExpenseRecord, ProcessedMessage  # noqa: F401

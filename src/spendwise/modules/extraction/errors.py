from __future__ import annotations


class ExtractionError(ValueError):
    pass


class NoAmountFoundError(ExtractionError):
    """The text contained no positive monetary amount in any recognised phrasing."""


class InvalidExtractionResult(ExtractionError):
    """A structured response was found but is missing a usable total or line items."""

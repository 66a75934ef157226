"""Parser package exports."""

from .document import (
    ParseFailure,
    ParseOutcome,
    ParsedDocument,
    TextSample,
    classify_and_parse,
    looks_like_markup,
    text_sample,
)

__all__ = [
    "ParseFailure",
    "ParseOutcome",
    "ParsedDocument",
    "TextSample",
    "classify_and_parse",
    "looks_like_markup",
    "text_sample",
]

"""Markup sniffing and parsing into a BeautifulSoup tree or a text sample."""

from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from ..constants import TEXT_SAMPLE_CHARS

_MARKUP_SIGNATURE_RE = re.compile(r"<!doctype\s+html|<html\b", re.IGNORECASE)


@dataclass(slots=True)
class ParsedDocument:
    """A page body that parsed as HTML."""

    url: str
    soup: BeautifulSoup


@dataclass(frozen=True, slots=True)
class TextSample:
    """A non-markup body reduced to its leading characters."""

    url: str
    text: str

    @property
    def empty(self) -> bool:
        return not self.text


@dataclass(frozen=True, slots=True)
class ParseFailure:
    """Markup that could not be turned into a tree."""

    url: str
    error: str


ParseOutcome = ParsedDocument | TextSample | ParseFailure


def looks_like_markup(body: str) -> bool:
    """Return True when the body carries an HTML doctype or root tag."""

    return bool(_MARKUP_SIGNATURE_RE.search(body or ""))


def text_sample(body: str, *, limit: int = TEXT_SAMPLE_CHARS) -> str:
    return (body or "").strip()[:limit]


def classify_and_parse(
    body: str | bytes,
    *,
    url: str,
    features: str = "lxml",
) -> ParseOutcome:
    """Sniff a response body and parse it when it is markup.

    Plain text (or markdown from a reader proxy) yields a `TextSample`; the
    caller records at most one item from it.
    """

    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")

    if not looks_like_markup(body):
        return TextSample(url=url, text=text_sample(body))

    try:
        soup = BeautifulSoup(body, features)
    except Exception as exc:
        return ParseFailure(url=url, error=f"{exc.__class__.__name__}: {exc}")

    if soup.find() is None:
        return ParseFailure(url=url, error="Document has no elements")

    return ParsedDocument(url=url, soup=soup)


__all__ = [
    "ParseFailure",
    "ParseOutcome",
    "ParsedDocument",
    "TextSample",
    "classify_and_parse",
    "looks_like_markup",
    "text_sample",
]

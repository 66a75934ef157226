from __future__ import annotations

import pytest

from webscrape.parsers import (
    ParsedDocument,
    ParseFailure,
    TextSample,
    classify_and_parse,
    looks_like_markup,
    text_sample,
)
from webscrape.parsers import document as document_module

URL = "https://example.test/"


@pytest.mark.parametrize(
    "body, expected",
    [
        ("<!DOCTYPE html><html></html>", True),
        ("<!doctype   HTML>", True),
        ("<HTML lang='en'><body></body></HTML>", True),
        ("<h1>only a fragment</h1>", False),
        ("<htmlish>", False),
        ("# Markdown title\n\nSome words.", False),
        ("", False),
    ],
)
def test_looks_like_markup(body, expected):
    assert looks_like_markup(body) is expected


def test_markup_parses_into_document():
    outcome = classify_and_parse("<html><body><h1>Hi</h1></body></html>", url=URL)

    assert isinstance(outcome, ParsedDocument)
    assert outcome.url == URL
    assert outcome.soup.find("h1").get_text() == "Hi"


def test_plain_text_becomes_trimmed_sample():
    body = "\n\n  " + "x" * 250 + "  "
    outcome = classify_and_parse(body, url=URL)

    assert isinstance(outcome, TextSample)
    assert outcome.text == "x" * 200
    assert not outcome.empty


def test_bytes_body_is_decoded():
    outcome = classify_and_parse("<html><p>café</p></html>".encode("utf-8"), url=URL)

    assert isinstance(outcome, ParsedDocument)
    assert outcome.soup.find("p").get_text() == "café"


def test_whitespace_only_text_sample_is_empty():
    outcome = classify_and_parse("   \n\t ", url=URL)

    assert isinstance(outcome, TextSample)
    assert outcome.empty


def test_parser_error_becomes_failure(monkeypatch):
    def broken_soup(*args, **kwargs):
        raise RuntimeError("tree builder exploded")

    monkeypatch.setattr(document_module, "BeautifulSoup", broken_soup)

    outcome = classify_and_parse("<html><p>x</p></html>", url=URL)

    assert isinstance(outcome, ParseFailure)
    assert outcome.error == "RuntimeError: tree builder exploded"


def test_text_sample_limit():
    assert text_sample("  abcdef  ", limit=3) == "abc"
    assert text_sample("") == ""

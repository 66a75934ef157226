"""Turn a parsed page into typed extracted items."""

from __future__ import annotations

from bs4 import Tag

from .config import ExtractionPlan
from .parsers import ParsedDocument, TextSample
from .types import DataType, ExtractedItem
from .url import resolve_url

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
CELL_TAGS = ["th", "td"]
CELL_SEPARATOR = " | "


class Extractor:
    """Apply the enabled extractors to one page.

    Items come out grouped in a fixed order: headings, paragraphs, images,
    links, tables. Within a group, document order is kept. `source_url` is
    always the page being processed.
    """

    def extract(self, doc: ParsedDocument, plan: ExtractionPlan) -> list[ExtractedItem]:
        page_url = doc.url
        items: list[ExtractedItem] = []

        if plan.headings:
            items.extend(self._headings(doc, page_url))
        if plan.paragraphs:
            items.extend(self._paragraphs(doc, page_url))
        if plan.images:
            items.extend(self._images(doc, page_url))
        if plan.links:
            items.extend(self._links(doc, page_url))
        if plan.tables:
            items.extend(self._tables(doc, page_url))

        return items

    @staticmethod
    def _headings(doc: ParsedDocument, page_url: str) -> list[ExtractedItem]:
        return [
            ExtractedItem(
                content=node.get_text().strip(),
                source_url=page_url,
                data_type=DataType.HEADING,
            )
            for node in doc.soup.find_all(HEADING_TAGS)
        ]

    @staticmethod
    def _paragraphs(doc: ParsedDocument, page_url: str) -> list[ExtractedItem]:
        return [
            ExtractedItem(
                content=node.get_text().strip(),
                source_url=page_url,
                data_type=DataType.PARAGRAPH,
            )
            for node in doc.soup.find_all("p")
        ]

    @staticmethod
    def _images(doc: ParsedDocument, page_url: str) -> list[ExtractedItem]:
        items: list[ExtractedItem] = []
        for node in doc.soup.find_all("img", src=True):
            src = _attr(node, "src")
            absolute = resolve_url(page_url, src) or src
            alt = _attr(node, "alt")
            content = f"{absolute} | alt: {alt}" if alt else absolute
            items.append(
                ExtractedItem(content=content, source_url=page_url, data_type=DataType.IMAGE)
            )
        return items

    @staticmethod
    def _links(doc: ParsedDocument, page_url: str) -> list[ExtractedItem]:
        items: list[ExtractedItem] = []
        for node in doc.soup.find_all("a", href=True):
            absolute = resolve_url(page_url, _attr(node, "href"))
            if absolute is None:
                continue
            text = node.get_text().strip()
            content = f"{absolute} | text: {text}" if text else absolute
            items.append(
                ExtractedItem(content=content, source_url=page_url, data_type=DataType.LINK)
            )
        return items

    @staticmethod
    def _tables(doc: ParsedDocument, page_url: str) -> list[ExtractedItem]:
        items: list[ExtractedItem] = []
        for table in doc.soup.find_all("table"):
            serialized = serialize_table(table)
            if serialized is None:
                continue
            items.append(
                ExtractedItem(content=serialized, source_url=page_url, data_type=DataType.TABLE)
            )
        return items


def serialize_table(table: Tag) -> str | None:
    """Rows joined by newlines, cells by `" | "`; `None` when there are no cells."""

    rows: list[str] = []
    cell_count = 0
    for row in table.find_all("tr"):
        cells = [cell.get_text().strip() for cell in row.find_all(CELL_TAGS)]
        cell_count += len(cells)
        rows.append(CELL_SEPARATOR.join(cells))

    if cell_count == 0:
        return None
    return "\n".join(rows)


def text_sample_item(sample: TextSample) -> ExtractedItem | None:
    """The single `Text` item for a non-markup page, if it has any text."""

    if sample.empty:
        return None
    return ExtractedItem(content=sample.text, source_url=sample.url, data_type=DataType.TEXT)


def _attr(node: Tag, name: str) -> str:
    value = node.get(name)
    if isinstance(value, list):
        return " ".join(value)
    return (value or "").strip()


__all__ = [
    "Extractor",
    "serialize_table",
    "text_sample_item",
]

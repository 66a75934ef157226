"""Derive child frontier entries from a page's anchors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from .parsers import ParsedDocument
from .types import FrontierItem
from .url import fetchable_url, normalize_url, origin_of, resolve_url


@dataclass(frozen=True, slots=True)
class ExpansionPolicy:
    """Scope and depth rules for link expansion."""

    start_origin: str
    same_domain_only: bool
    max_depth: int

    @classmethod
    def for_start_url(
        cls,
        start_url: str,
        *,
        same_domain_only: bool,
        max_depth: int,
    ) -> "ExpansionPolicy":
        origin = origin_of(start_url)
        if origin is None:
            raise ValueError(f"Start URL has no origin: {start_url!r}")
        return cls(start_origin=origin, same_domain_only=same_domain_only, max_depth=max_depth)

    def allows_origin(self, url: str) -> bool:
        if not self.same_domain_only:
            return True
        return origin_of(url) == self.start_origin


class LinkExpander:
    """Resolve, scope, and dedupe anchor targets into depth+1 entries.

    Unresolvable, non-http(s), already-seen, and (with the same-domain
    policy) cross-origin targets are dropped without logging. Entries carry
    the link target with only its fragment removed; `normalize_url` decides
    duplicates.
    """

    def expand(
        self,
        doc: ParsedDocument,
        *,
        current_depth: int,
        policy: ExpansionPolicy,
        is_seen: Callable[[str], bool],
    ) -> list[FrontierItem]:
        if current_depth >= policy.max_depth:
            return []

        page_url = doc.url
        out: list[FrontierItem] = []
        emitted: set[str] = set()

        for anchor in doc.soup.find_all("a", href=True):
            href = anchor.get("href")
            if isinstance(href, list):
                href = " ".join(href)

            absolute = resolve_url(page_url, href)
            if absolute is None:
                continue

            key = normalize_url(absolute)
            target = fetchable_url(absolute)
            if key is None or target is None or key in emitted:
                continue
            if is_seen(target):
                continue
            if not policy.allows_origin(target):
                continue

            emitted.add(key)
            out.append(FrontierItem(url=target, depth=current_depth + 1, referrer=page_url))

        return out


__all__ = [
    "ExpansionPolicy",
    "LinkExpander",
]

"""Start-URL validation, relative reference resolution, and frontier keys."""

from __future__ import annotations

import posixpath
import re
from urllib.parse import SplitResult, parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

HTTP_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}

TRACKING_QUERY_PARAM_PREFIXES = ("utm_",)
TRACKING_QUERY_PARAMS = frozenset(
    {"fbclid", "gclid", "igshid", "mc_cid", "mc_eid", "mkt_tok", "ref_src"}
)

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_REPEATED_SLASHES_RE = re.compile(r"/{2,}")


def _split(url: str) -> SplitResult | None:
    """`urlsplit` that also validates the port; `None` instead of ValueError."""

    try:
        parts = urlsplit(url)
        parts.port  # noqa: B018 - raises ValueError on a bad port
    except ValueError:
        return None
    return parts


def is_http_url(url: str) -> bool:
    """Absolute http(s) URL with a host."""

    parts = _split(url)
    return parts is not None and parts.scheme.lower() in HTTP_SCHEMES and bool(parts.hostname)


def normalize_start_url(raw: str | None) -> str | None:
    """Prefix `https://` when no http(s) scheme is given and validate the result.

    Returns `None` when the value cannot be a crawlable absolute URL.
    """

    candidate = (raw or "").strip()
    if not candidate:
        return None
    if not _SCHEME_RE.match(candidate):
        candidate = f"https://{candidate}"

    parts = _split(candidate)
    if parts is None or not parts.hostname or any(ch.isspace() for ch in parts.netloc):
        return None
    return candidate


def _authority(parts: SplitResult) -> str:
    scheme = parts.scheme.lower()
    host = parts.hostname.lower()
    if ":" in host:
        host = f"[{host}]"

    userinfo, _, _ = parts.netloc.rpartition("@")
    prefix = f"{userinfo}@" if userinfo else ""

    port = parts.port
    if port is None or DEFAULT_PORTS.get(scheme) == port:
        return f"{prefix}{host}"
    return f"{prefix}{host}:{port}"


def _clean_path(path: str) -> str:
    if not path:
        return "/"

    collapsed = _REPEATED_SLASHES_RE.sub("/", path)
    cleaned = posixpath.normpath(collapsed)
    if cleaned in {"", "."}:
        cleaned = "/"
    elif not cleaned.startswith("/"):
        cleaned = "/" + cleaned

    # Directory URLs keep their trailing slash.
    if collapsed.endswith("/") and not cleaned.endswith("/"):
        cleaned += "/"
    return cleaned


def _is_tracking_param(key: str) -> bool:
    lowered = key.strip().lower()
    return lowered in TRACKING_QUERY_PARAMS or lowered.startswith(TRACKING_QUERY_PARAM_PREFIXES)


def _clean_query(query: str) -> str:
    pairs = [
        (key, value)
        for key, value in parse_qsl(query, keep_blank_values=True)
        if not _is_tracking_param(key)
    ]
    return urlencode(sorted(pairs), doseq=True)


def normalize_url(url: str | None) -> str | None:
    """Canonical form of an absolute http(s) URL, used only as a dedup key.

    Scheme and host are lowercased, default ports and fragments dropped,
    repeated slashes and dot segments collapsed, tracking parameters removed
    and the remaining query sorted. The result is never requested; see
    `fetchable_url`. Anything else yields `None`.
    """

    candidate = (url or "").strip()
    if not candidate or not is_http_url(candidate):
        return None

    parts = urlsplit(candidate)
    return urlunsplit(
        (
            parts.scheme.lower(),
            _authority(parts),
            _clean_path(parts.path),
            _clean_query(parts.query),
            "",
        )
    )


def fetchable_url(url: str | None) -> str | None:
    """The URL to request for an absolute http(s) link: fragment dropped, nothing else touched.

    An empty path becomes `/`, which names the same resource.
    """

    candidate = (url or "").strip()
    if not candidate or not is_http_url(candidate):
        return None

    parts = urlsplit(candidate)
    return urlunsplit((parts.scheme, parts.netloc, parts.path or "/", parts.query, ""))


def resolve_url(base_url: str, reference: str | None) -> str | None:
    """Resolve a possibly relative reference against the page it appeared on.

    This is the one resolution routine used for images, anchors, and link
    expansion. Returns `None` when the reference is missing or the joined
    result is not a parsable absolute URL. Non-http schemes (`mailto:`,
    `tel:`) come back unchanged; callers that crawl filter them out.
    """

    candidate = (reference or "").strip()
    if not candidate:
        return None

    try:
        absolute = urljoin(base_url, candidate)
    except ValueError:
        return None

    parts = _split(absolute)
    if parts is None or not parts.scheme:
        return None
    if parts.scheme.lower() in HTTP_SCHEMES and not parts.hostname:
        return None
    return absolute


def origin_of(url: str) -> str | None:
    """Return `scheme://host[:port]` with the default port dropped."""

    parts = _split(url)
    if parts is None or not parts.scheme or not parts.hostname:
        return None

    scheme = parts.scheme.lower()
    host = parts.hostname.lower()
    if ":" in host:
        host = f"[{host}]"
    if parts.port is None or DEFAULT_PORTS.get(scheme) == parts.port:
        return f"{scheme}://{host}"
    return f"{scheme}://{host}:{parts.port}"


def is_same_origin(url: str, other: str) -> bool:
    origin = origin_of(url)
    return origin is not None and origin == origin_of(other)


__all__ = [
    "DEFAULT_PORTS",
    "HTTP_SCHEMES",
    "TRACKING_QUERY_PARAMS",
    "TRACKING_QUERY_PARAM_PREFIXES",
    "fetchable_url",
    "is_http_url",
    "is_same_origin",
    "normalize_start_url",
    "normalize_url",
    "origin_of",
    "resolve_url",
]

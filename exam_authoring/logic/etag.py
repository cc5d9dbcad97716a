"""ETag helpers for test resources.

A test's entity tag is derived from its id and its monotonically increasing
``version`` column: ``W/"test-<id>-v<version>"``. Clients echo it in
``If-Match`` on sync requests to detect concurrent writers.
"""

from __future__ import annotations

import logging

from fastapi import Response

logger = logging.getLogger(__name__)


def compute_test_etag(test_id: str, version: int) -> str:
    return f'W/"test-{test_id}-v{int(version)}"'


def _split_tags(value: str) -> list[str]:
    """Split a header on commas that are not inside quotes."""
    parts: list[str] = []
    buf: list[str] = []
    in_quote = False
    for ch in value:
        if ch == '"':
            in_quote = not in_quote
        if ch == "," and not in_quote:
            parts.append("".join(buf))
            buf = []
            continue
        buf.append(ch)
    parts.append("".join(buf))
    return parts


def normalize_etag_token(value: str | None) -> str:
    """Return the opaque tag without weak prefix or quotes ('' when blank)."""
    if value is None:
        return ""
    s = value.strip()
    if s.startswith("W/"):
        s = s[2:].strip()
    if len(s) >= 2 and s[0] == '"' and s[-1] == '"':
        s = s[1:-1]
    return s.strip()


def compare_etag(current: str, if_match: str | None) -> bool:
    """Return True when any tag in `if_match` matches `current`.

    Weak and strong validators compare equal; ``*`` matches anything.
    A missing or blank header is treated as a match (the check is opt-in).
    """
    if if_match is None or not if_match.strip():
        return True
    if if_match.strip() == "*":
        return True
    current_norm = normalize_etag_token(current)
    tokens = [normalize_etag_token(t) for t in _split_tags(if_match)]
    matched = any(t and t == current_norm for t in tokens)
    logger.debug("etag.compare current=%s tokens=%s matched=%s", current_norm, tokens, matched)
    return matched


def emit_etag_header(response: Response, token: str) -> None:
    """Set the generic ETag header; blank tokens are never emitted."""
    if token and token.strip():
        response.headers["ETag"] = token


__all__ = ["compute_test_etag", "normalize_etag_token", "compare_etag", "emit_etag_header"]

"""Caller identity dependency.

Authentication happens upstream: the gateway verifies the session and
forwards the caller's id in a trusted header (``X-User-Id`` by default, see
``auth.user_header``). This dependency only insists the header is present.
"""

from __future__ import annotations

import logging

from fastapi import Request

from exam_authoring.config import get_config
from exam_authoring.logic.errors import AuthenticationError

logger = logging.getLogger(__name__)


def require_caller(request: Request) -> str:
    """Return the authenticated caller id or raise AuthenticationError."""
    header_name = get_config().auth.user_header
    caller = (request.headers.get(header_name) or "").strip()
    if not caller:
        logger.info("caller.missing path=%s header=%s", request.url.path, header_name)
        raise AuthenticationError("Unauthorized")
    return caller


__all__ = ["require_caller"]

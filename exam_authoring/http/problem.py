"""Problem+JSON utilities and global exception handlers.

Defines the RFC 7807 media type and handler callables that render domain
errors, FastAPI validation errors, HTTP exceptions and unexpected failures
as application/problem+json responses.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from exam_authoring.logic.errors import ExamAuthoringError, ValidationError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def problem_response(
    *,
    status: int,
    title: str,
    detail: str,
    code: str,
    request: Request | None = None,
    errors: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    body: dict[str, Any] = {
        "type": "about:blank",
        "title": title,
        "status": status,
        "detail": detail,
        "code": code,
    }
    if errors:
        body["errors"] = errors
    if request is not None and _request_id(request):
        body["request_id"] = _request_id(request)
    return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE)


async def handle_domain_error(request: Request, exc: ExamAuthoringError) -> JSONResponse:
    if exc.status >= 500:
        # Cause is chained; the body stays opaque
        logger.error("domain_error code=%s path=%s", exc.code, request.url.path, exc_info=exc)
    else:
        logger.info("domain_error code=%s status=%s path=%s", exc.code, exc.status, request.url.path)
    return problem_response(
        status=exc.status,
        title=exc.title,
        detail=exc.detail,
        code=exc.code,
        request=request,
        errors=exc.errors,
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        loc = [p for p in err.get("loc", ()) if p != "body"]
        path = "$" + "".join(f"[{p}]" if isinstance(p, int) else f".{p}" for p in loc)
        errors.append({"path": path, "code": err.get("type", "invalid"), "message": err.get("msg", "")})
    return problem_response(
        status=ValidationError.status,
        title=ValidationError.title,
        detail="Request validation failed",
        code=ValidationError.code,
        request=request,
        errors=errors,
    )


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    status = int(getattr(exc, "status_code", 500) or 500)
    return problem_response(
        status=status,
        title="Error",
        detail=str(exc.detail),
        code=f"HTTP_{status}",
        request=request,
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="Internal server error",
        code="INTERNAL_ERROR",
        request=request,
    )


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_response",
    "handle_domain_error",
    "handle_request_validation_error",
    "handle_http_exception",
    "handle_unexpected_error",
]

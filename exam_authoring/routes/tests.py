"""Test authoring endpoints: create, fetch, and section sync."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from exam_authoring.guards.caller import require_caller
from exam_authoring.logic.errors import ValidationError
from exam_authoring.logic.etag import compute_test_etag, emit_etag_header
from exam_authoring.logic.repository_tests import create_test
from exam_authoring.logic.section_sync import get_test_tree, reload_canonical_tree, sync_sections
from exam_authoring.models.payload import decode_json_body
from exam_authoring.models.tree import TestCreateIn, TestRecord

router = APIRouter(prefix="/tests")
logger = logging.getLogger(__name__)


def _tree_response(message: str, test: TestRecord, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse({"message": message, "test": test.to_response()}, status_code=status_code)
    emit_etag_header(resp, compute_test_etag(test.id, test.version))
    return resp


@router.post(
    "",
    summary="Create a draft test owned by the caller",
    operation_id="createTest",
)
async def create_test_route(request: Request, caller: str = Depends(require_caller)) -> JSONResponse:
    payload = decode_json_body(await request.body())
    try:
        data = TestCreateIn.model_validate(payload)
    except PydanticValidationError as exc:
        errors = [
            {"path": "$." + ".".join(str(p) for p in e.get("loc", ())), "code": e.get("type"), "message": e.get("msg")}
            for e in exc.errors()
        ]
        raise ValidationError("invalid test payload", errors=errors) from exc
    test_id = await run_in_threadpool(create_test, caller, data)
    test = await run_in_threadpool(reload_canonical_tree, test_id)
    return _tree_response("Test created successfully", test, status_code=201)


@router.get(
    "/{test_id}",
    summary="Get a test with its sections, questions and options",
    operation_id="getTest",
)
async def get_test_route(test_id: str, caller: str = Depends(require_caller)) -> JSONResponse:
    test = await run_in_threadpool(get_test_tree, test_id.strip(), caller)
    return _tree_response("Test fetched successfully", test)


@router.put(
    "/{test_id}/sections",
    summary="Replace the section hierarchy of a test with the submitted snapshot",
    operation_id="syncTestSections",
)
async def sync_sections_route(
    test_id: str,
    request: Request,
    caller: str = Depends(require_caller),
    if_match: Optional[str] = Header(default=None, alias="If-Match"),
) -> JSONResponse:
    raw_body = await request.body()
    outcome = await run_in_threadpool(
        sync_sections,
        test_id.strip(),
        caller,
        raw_body,
        if_match=if_match,
    )
    logger.info(
        "tests.sections_synced test_id=%s summary=%s assigned=%s",
        outcome.test.id,
        outcome.summary,
        len(outcome.assigned_ids),
    )
    return _tree_response("Sections synced successfully", outcome.test)


__all__ = ["router"]

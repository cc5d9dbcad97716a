"""APIRouter registration for the exam authoring service."""

from __future__ import annotations

from fastapi import APIRouter

from exam_authoring.routes.tests import router as tests_router

api_router = APIRouter()
api_router.include_router(tests_router, tags=["Tests", "Authoring"])

__all__ = ["api_router"]

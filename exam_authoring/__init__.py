"""FastAPI application package for the exam authoring service.

This package exposes the application factory. It wires cross-cutting
middleware (request id, CORS) and mounts the API routers. Business logic
lives in `exam_authoring/logic/` and route handlers in
`exam_authoring/routes/`.
"""

from __future__ import annotations

from exam_authoring.main import create_app

__all__ = ["create_app"]

"""Section sync service: reconcile a client snapshot into storage.

Flow for one request:

1. Ownership gate and payload validation, both before any transaction opens.
2. One transaction: lock the test row, load the stored tree, plan the
   reconciliation, execute it. Any storage failure rolls everything back.
3. Canonical reload after commit; the reloaded tree is the only source of the
   ids assigned to created nodes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict

from sqlalchemy.exc import SQLAlchemyError

from exam_authoring.config import AppConfig, get_config
from exam_authoring.db.base import get_engine, transaction
from exam_authoring.logic.diff_planner import plan_reconciliation
from exam_authoring.logic.errors import StorageError
from exam_authoring.logic.executor import execute_plan
from exam_authoring.logic.repository_tests import assert_owner, lock_for_sync
from exam_authoring.logic.tree_loader import load_tree
from exam_authoring.models.payload import decode_json_body, parse_sync_payload
from exam_authoring.models.tree import TestRecord

logger = logging.getLogger(__name__)


@dataclass
class SyncOutcome:
    test: TestRecord
    summary: Dict[str, int] = field(default_factory=dict)
    # Client token -> storage id for created nodes
    assigned_ids: Dict[str, str] = field(default_factory=dict)


def reload_canonical_tree(test_id: str) -> TestRecord:
    """Read the committed hierarchy for `test_id` in a fresh connection."""
    try:
        with get_engine().connect() as conn:
            return load_tree(conn, test_id)
    except SQLAlchemyError as exc:
        logger.error("section_sync.reload_failed test_id=%s", test_id, exc_info=True)
        raise StorageError("reload") from exc


def get_test_tree(test_id: str, caller_id: str) -> TestRecord:
    assert_owner(test_id, caller_id)
    return reload_canonical_tree(test_id)


def sync_sections(
    test_id: str,
    caller_id: str,
    raw_body: bytes,
    *,
    if_match: str | None = None,
    config: AppConfig | None = None,
) -> SyncOutcome:
    """Bring the stored hierarchy of `test_id` in line with the JSON `raw_body`.

    Ownership is checked before the body is decoded, so a non-owner gets
    OwnershipError whatever it sent. ValidationError is raised before the
    hierarchy is touched, ConflictError when `if_match` names a stale version,
    and StorageError when the transaction failed and was rolled back.
    """
    cfg = config or get_config()
    assert_owner(test_id, caller_id)
    snapshot = parse_sync_payload(decode_json_body(raw_body), cfg.sync)
    logger.info(
        "section_sync.start test_id=%s sections=%s ephemeral=%s",
        test_id,
        len(snapshot.sections),
        snapshot.count_ephemeral(),
    )

    try:
        with transaction() as conn:
            version = lock_for_sync(conn, test_id, if_match)
            existing = load_tree(conn, test_id)
            plan = plan_reconciliation(existing, snapshot)
            result = execute_plan(conn, plan)
    except SQLAlchemyError as exc:
        logger.error("section_sync.aborted test_id=%s", test_id, exc_info=True)
        raise StorageError("sync_sections") from exc

    logger.info("section_sync.commit test_id=%s version=%s", test_id, version)
    canonical = reload_canonical_tree(test_id)
    return SyncOutcome(test=canonical, summary=plan.summary(), assigned_ids=result.assigned_ids)


__all__ = ["SyncOutcome", "reload_canonical_tree", "get_test_tree", "sync_sections"]

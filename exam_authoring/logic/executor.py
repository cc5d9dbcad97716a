"""Apply a reconciliation plan to storage.

Every statement runs on the connection handed in by the caller, which owns
the transaction: the executor never commits. Statements are issued in
referential order. Deletes go children-before-parents, then upserts go
parents-before-children across three passes (all sections, all questions,
all options) so each child insert can bind its parent's real id.

SQLAlchemy errors propagate unchanged; the caller rolls back and maps them
to ``StorageError``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from sqlalchemy import bindparam, text as sql_text
from sqlalchemy.engine import Connection

from exam_authoring.logic.diff_planner import (
    OptionChange,
    QuestionChange,
    ReconciliationPlan,
    SectionChange,
)
from exam_authoring.logic.identity import CREATE
from exam_authoring.models.identifiers import Ephemeral

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    # Client token -> storage id for every created node that had a token
    assigned_ids: Dict[str, str] = field(default_factory=dict)
    statements: int = 0


def _new_id() -> str:
    return str(uuid.uuid4())


def _remember(result: ExecutionResult, node_id, storage_id: str) -> None:  # type: ignore[no-untyped-def]
    if isinstance(node_id, Ephemeral) and node_id.client_token:
        result.assigned_ids[node_id.client_token] = storage_id


def _delete_in(conn: Connection, sql: str, ids: Sequence[str], result: ExecutionResult) -> None:
    if not ids:
        return
    stmt = sql_text(sql).bindparams(bindparam("ids", expanding=True))
    conn.execute(stmt, {"ids": list(ids)})
    result.statements += 1


# ---------------------------------------------------------------------------
# Delete phase
# ---------------------------------------------------------------------------


def _delete_phase(conn: Connection, plan: ReconciliationPlan, result: ExecutionResult) -> None:
    # 1) Whole sections: their options, their questions, then the sections
    _delete_in(
        conn,
        "DELETE FROM options WHERE question_id IN (SELECT id FROM questions WHERE section_id IN :ids)",
        plan.delete_section_ids,
        result,
    )
    _delete_in(conn, "DELETE FROM questions WHERE section_id IN :ids", plan.delete_section_ids, result)
    _delete_in(conn, "DELETE FROM sections WHERE id IN :ids", plan.delete_section_ids, result)

    # 2) Questions removed from surviving sections, options first
    question_ids: List[str] = [qid for s in plan.sections for qid in s.delete_question_ids]
    _delete_in(conn, "DELETE FROM options WHERE question_id IN :ids", question_ids, result)
    _delete_in(conn, "DELETE FROM questions WHERE id IN :ids", question_ids, result)

    # 3) Options removed from surviving questions (includes free-text cleanup)
    option_ids: List[str] = [
        oid for s in plan.sections for q in s.questions for oid in q.delete_option_ids
    ]
    _delete_in(conn, "DELETE FROM options WHERE id IN :ids", option_ids, result)


# ---------------------------------------------------------------------------
# Upsert phase
# ---------------------------------------------------------------------------


def _upsert_section(conn: Connection, test_id: str, change: SectionChange, result: ExecutionResult) -> str:
    node = change.node
    params = {
        "title": node.title,
        "duration": node.duration,
        "dpm": node.default_positive_marks,
        "dnm": node.default_negative_marks,
        "pos": change.position,
        "tid": test_id,
    }
    if change.action == CREATE:
        section_id = _new_id()
        conn.execute(
            sql_text(
                """
                INSERT INTO sections (id, test_id, title, duration, default_positive_marks,
                                      default_negative_marks, position)
                VALUES (:sid, :tid, :title, :duration, :dpm, :dnm, :pos)
                """
            ),
            {**params, "sid": section_id},
        )
        _remember(result, node.id, section_id)
    else:
        section_id = str(change.target_id)
        conn.execute(
            sql_text(
                """
                UPDATE sections
                SET title = :title, duration = :duration, default_positive_marks = :dpm,
                    default_negative_marks = :dnm, position = :pos
                WHERE id = :sid AND test_id = :tid
                """
            ),
            {**params, "sid": section_id},
        )
    result.statements += 1
    return section_id


def _upsert_question(conn: Connection, section_id: str, change: QuestionChange, result: ExecutionResult) -> str:
    node = change.node
    params = {
        "type": node.type,
        "text": node.text,
        "answer": node.correct_answer,
        "pm": node.positive_marks,
        "nm": node.negative_marks,
        "pos": change.position,
        "sid": section_id,
    }
    if change.action == CREATE:
        question_id = _new_id()
        conn.execute(
            sql_text(
                """
                INSERT INTO questions (id, section_id, type, text, correct_answer,
                                       positive_marks, negative_marks, position)
                VALUES (:qid, :sid, :type, :text, :answer, :pm, :nm, :pos)
                """
            ),
            {**params, "qid": question_id},
        )
        _remember(result, node.id, question_id)
    else:
        question_id = str(change.target_id)
        conn.execute(
            sql_text(
                """
                UPDATE questions
                SET type = :type, text = :text, correct_answer = :answer,
                    positive_marks = :pm, negative_marks = :nm, position = :pos
                WHERE id = :qid AND section_id = :sid
                """
            ),
            {**params, "qid": question_id},
        )
    result.statements += 1
    return question_id


def _upsert_option(conn: Connection, question_id: str, change: OptionChange, result: ExecutionResult) -> str:
    node = change.node
    params = {"text": node.text, "correct": bool(node.is_correct), "pos": change.position, "qid": question_id}
    if change.action == CREATE:
        option_id = _new_id()
        conn.execute(
            sql_text(
                """
                INSERT INTO options (id, question_id, text, is_correct, position)
                VALUES (:oid, :qid, :text, :correct, :pos)
                """
            ),
            {**params, "oid": option_id},
        )
        _remember(result, node.id, option_id)
    else:
        option_id = str(change.target_id)
        conn.execute(
            sql_text(
                "UPDATE options SET text = :text, is_correct = :correct, position = :pos "
                "WHERE id = :oid AND question_id = :qid"
            ),
            {**params, "oid": option_id},
        )
    result.statements += 1
    return option_id


def execute_plan(conn: Connection, plan: ReconciliationPlan) -> ExecutionResult:
    """Apply `plan` on `conn` inside the caller's open transaction."""
    result = ExecutionResult()
    _delete_phase(conn, plan, result)

    section_ids = [_upsert_section(conn, plan.test_id, s, result) for s in plan.sections]

    question_ids: List[List[str]] = []
    for section_id, section in zip(section_ids, plan.sections):
        question_ids.append([_upsert_question(conn, section_id, q, result) for q in section.questions])

    for section, qids in zip(plan.sections, question_ids):
        for question_id, question in zip(qids, section.questions):
            if question.node.is_free_text:
                continue
            for option in question.options:
                _upsert_option(conn, question_id, option, result)

    logger.info(
        "executor.applied test_id=%s statements=%s created_with_token=%s",
        plan.test_id,
        result.statements,
        len(result.assigned_ids),
    )
    return result


__all__ = ["ExecutionResult", "execute_plan"]

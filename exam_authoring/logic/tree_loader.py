"""Read the persisted test hierarchy.

Loads a test with its sections, questions and options in three set-based
queries on the caller's connection, so a loader invoked inside a write
transaction sees exactly the state that transaction will mutate. Siblings are
ordered by ``position`` with the id as tie-breaker.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from exam_authoring.logic.errors import OwnershipError
from exam_authoring.models.tree import OptionRecord, QuestionRecord, SectionRecord, TestRecord

logger = logging.getLogger(__name__)


def _opt_float(value: Any) -> float | None:
    return None if value is None else float(value)


def _opt_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _test_from_row(row: Mapping[str, Any]) -> TestRecord:
    return TestRecord(
        id=str(row["id"]),
        title=str(row["title"]),
        description=row.get("description"),
        created_by=str(row["created_by"]),
        availability_start=row.get("availability_start"),
        availability_end=row.get("availability_end"),
        total_duration=_opt_int(row.get("total_duration")),
        shuffle_questions=bool(row.get("shuffle_questions")),
        allow_section_nav=bool(row.get("allow_section_nav")),
        negative_marking=bool(row.get("negative_marking")),
        show_results_instant=bool(row.get("show_results_instant")),
        status=str(row.get("status") or "draft"),
        version=int(row.get("version") or 1),
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
    )


def load_test_row(conn: Connection, test_id: str) -> TestRecord | None:
    row = conn.execute(
        sql_text(
            """
            SELECT id, title, description, created_by, availability_start, availability_end,
                   total_duration, shuffle_questions, allow_section_nav, negative_marking,
                   show_results_instant, status, version, created_at, updated_at
            FROM tests
            WHERE id = :tid
            """
        ),
        {"tid": test_id},
    ).mappings().fetchone()
    if row is None:
        return None
    return _test_from_row(row)


def load_tree(conn: Connection, test_id: str) -> TestRecord:
    """Return the full hierarchy for `test_id`; raise OwnershipError if absent."""
    test = load_test_row(conn, test_id)
    if test is None:
        raise OwnershipError(test_id)

    section_rows = conn.execute(
        sql_text(
            """
            SELECT id, test_id, title, duration, default_positive_marks,
                   default_negative_marks, position
            FROM sections
            WHERE test_id = :tid
            ORDER BY position ASC, id ASC
            """
        ),
        {"tid": test_id},
    ).mappings().all()

    question_rows = conn.execute(
        sql_text(
            """
            SELECT q.id, q.section_id, q.type, q.text, q.correct_answer,
                   q.positive_marks, q.negative_marks, q.position
            FROM questions q
            JOIN sections s ON s.id = q.section_id
            WHERE s.test_id = :tid
            ORDER BY q.position ASC, q.id ASC
            """
        ),
        {"tid": test_id},
    ).mappings().all()

    option_rows = conn.execute(
        sql_text(
            """
            SELECT o.id, o.question_id, o.text, o.is_correct, o.position
            FROM options o
            JOIN questions q ON q.id = o.question_id
            JOIN sections s ON s.id = q.section_id
            WHERE s.test_id = :tid
            ORDER BY o.position ASC, o.id ASC
            """
        ),
        {"tid": test_id},
    ).mappings().all()

    options_by_question: Dict[str, List[OptionRecord]] = {}
    for r in option_rows:
        options_by_question.setdefault(str(r["question_id"]), []).append(
            OptionRecord(
                id=str(r["id"]),
                question_id=str(r["question_id"]),
                text=str(r["text"]),
                is_correct=bool(r["is_correct"]),
                position=int(r["position"] or 0),
            )
        )

    questions_by_section: Dict[str, List[QuestionRecord]] = {}
    for r in question_rows:
        qid = str(r["id"])
        questions_by_section.setdefault(str(r["section_id"]), []).append(
            QuestionRecord(
                id=qid,
                section_id=str(r["section_id"]),
                type=str(r["type"]),
                text=str(r["text"]),
                correct_answer=r["correct_answer"],
                positive_marks=_opt_float(r["positive_marks"]),
                negative_marks=_opt_float(r["negative_marks"]),
                position=int(r["position"] or 0),
                options=options_by_question.get(qid, []),
            )
        )

    test.sections = [
        SectionRecord(
            id=str(r["id"]),
            test_id=str(r["test_id"]),
            title=str(r["title"]),
            duration=_opt_int(r["duration"]),
            default_positive_marks=float(r["default_positive_marks"]),
            default_negative_marks=float(r["default_negative_marks"]),
            position=int(r["position"] or 0),
            questions=questions_by_section.get(str(r["id"]), []),
        )
        for r in section_rows
    ]
    logger.debug(
        "tree_loader.loaded test_id=%s sections=%s questions=%s options=%s",
        test_id,
        len(section_rows),
        len(question_rows),
        len(option_rows),
    )
    return test


__all__ = ["load_test_row", "load_tree"]

"""Reconciliation planning between a stored tree and an incoming snapshot.

The planner is pure: it reads the loaded ``TestRecord`` and the typed
``Snapshot`` and returns a ``ReconciliationPlan`` without touching storage.
For every parent scope (the test, each section, each question) it computes

- deletes: stored child ids missing from the incoming children,
- creates: incoming children classified CREATE,
- updates: incoming children classified UPDATE.

Deletion is absence-driven, so submitting the same snapshot twice plans the
same updates and no creates or deletes the second time. A persisted id that
shows up under a different parent than the one it is stored under is unknown
in its new scope; it is planned as a create there and as a delete in its old
scope. Incoming array order becomes each child's ``position``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from exam_authoring.logic.identity import CREATE, UPDATE, classify
from exam_authoring.models.identifiers import Persisted
from exam_authoring.models.payload import OptionNode, QuestionNode, SectionNode, Snapshot
from exam_authoring.models.tree import QuestionRecord, SectionRecord, TestRecord

logger = logging.getLogger(__name__)


@dataclass
class OptionChange:
    action: str
    node: OptionNode
    position: int
    # Stored id when action is UPDATE
    target_id: Optional[str] = None


@dataclass
class QuestionChange:
    action: str
    node: QuestionNode
    position: int
    target_id: Optional[str] = None
    # Stored options of a surviving question that must go
    delete_option_ids: List[str] = field(default_factory=list)
    options: List[OptionChange] = field(default_factory=list)


@dataclass
class SectionChange:
    action: str
    node: SectionNode
    position: int
    target_id: Optional[str] = None
    # Stored questions of a surviving section that must go, with their options
    delete_question_ids: List[str] = field(default_factory=list)
    questions: List[QuestionChange] = field(default_factory=list)


@dataclass
class ReconciliationPlan:
    test_id: str
    delete_section_ids: List[str] = field(default_factory=list)
    sections: List[SectionChange] = field(default_factory=list)

    def summary(self) -> Dict[str, int]:
        counts = {
            "sections_created": 0,
            "sections_updated": 0,
            "sections_deleted": len(self.delete_section_ids),
            "questions_created": 0,
            "questions_updated": 0,
            "questions_deleted": 0,
            "options_created": 0,
            "options_updated": 0,
            "options_deleted": 0,
        }
        for s in self.sections:
            counts[f"sections_{s.action}d"] += 1
            counts["questions_deleted"] += len(s.delete_question_ids)
            for q in s.questions:
                counts[f"questions_{q.action}d"] += 1
                counts["options_deleted"] += len(q.delete_option_ids)
                for o in q.options:
                    counts[f"options_{o.action}d"] += 1
        return counts


def _incoming_persisted_ids(nodes) -> set[str]:  # type: ignore[no-untyped-def]
    return {n.id.storage_id for n in nodes if isinstance(n.id, Persisted)}


def _plan_options(
    incoming: QuestionNode,
    existing: Optional[QuestionRecord],
) -> tuple[List[str], List[OptionChange]]:
    stored_ids = [o.id for o in existing.options] if existing is not None else []

    if incoming.is_free_text:
        # Free-text questions carry no options, whatever the payload says
        return stored_ids, []

    known = set(stored_ids)
    keep = _incoming_persisted_ids(incoming.options)
    deletes = [oid for oid in stored_ids if oid not in keep]
    changes: List[OptionChange] = []
    for pos, option in enumerate(incoming.options):
        action = classify(option.id, known)
        changes.append(
            OptionChange(
                action=action,
                node=option,
                position=pos,
                target_id=str(option.id) if action == UPDATE else None,
            )
        )
    return deletes, changes


def _plan_questions(
    incoming: SectionNode,
    existing: Optional[SectionRecord],
) -> tuple[List[str], List[QuestionChange]]:
    stored = {q.id: q for q in existing.questions} if existing is not None else {}
    keep = _incoming_persisted_ids(incoming.questions)
    deletes = [qid for qid in stored if qid not in keep]
    changes: List[QuestionChange] = []
    for pos, question in enumerate(incoming.questions):
        action = classify(question.id, stored.keys())
        current = stored.get(str(question.id)) if action == UPDATE else None
        option_deletes, option_changes = _plan_options(question, current)
        changes.append(
            QuestionChange(
                action=action,
                node=question,
                position=pos,
                target_id=str(question.id) if action == UPDATE else None,
                delete_option_ids=option_deletes,
                options=option_changes,
            )
        )
    return deletes, changes


def plan_reconciliation(existing: TestRecord, snapshot: Snapshot) -> ReconciliationPlan:
    """Compute the create/update/delete sets for every level and parent scope."""
    stored = {s.id: s for s in existing.sections}
    keep = _incoming_persisted_ids(snapshot.sections)
    plan = ReconciliationPlan(
        test_id=existing.id,
        delete_section_ids=[sid for sid in stored if sid not in keep],
    )
    for pos, section in enumerate(snapshot.sections):
        action = classify(section.id, stored.keys())
        current = stored.get(str(section.id)) if action == UPDATE else None
        question_deletes, question_changes = _plan_questions(section, current)
        plan.sections.append(
            SectionChange(
                action=action,
                node=section,
                position=pos,
                target_id=str(section.id) if action == UPDATE else None,
                delete_question_ids=question_deletes,
                questions=question_changes,
            )
        )
    logger.info("diff_planner.plan test_id=%s %s", existing.id, plan.summary())
    return plan


__all__ = [
    "OptionChange",
    "QuestionChange",
    "SectionChange",
    "ReconciliationPlan",
    "plan_reconciliation",
]

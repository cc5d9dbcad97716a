"""Unit tests for the pure reconciliation planner."""

from __future__ import annotations

from exam_authoring.config import SyncConfig
from exam_authoring.logic.diff_planner import plan_reconciliation
from exam_authoring.logic.identity import CREATE, UPDATE
from exam_authoring.models.payload import parse_sync_payload
from exam_authoring.models.tree import OptionRecord, QuestionRecord, SectionRecord, TestRecord


def _stored() -> TestRecord:
    return TestRecord(
        id="t1",
        title="Mock",
        created_by="owner",
        created_at="2024-01-01T00:00:00Z",
        updated_at="2024-01-01T00:00:00Z",
        sections=[
            SectionRecord(id="s1", test_id="t1", title="A", position=0),
            SectionRecord(
                id="s2",
                test_id="t1",
                title="B",
                position=1,
                questions=[
                    QuestionRecord(
                        id="q1",
                        section_id="s2",
                        type="mcq",
                        text="Pick",
                        options=[
                            OptionRecord(id="o1", question_id="q1", text="yes", is_correct=True),
                            OptionRecord(id="o2", question_id="q1", text="no", is_correct=False),
                        ],
                    ),
                    QuestionRecord(id="q2", section_id="s2", type="text", text="Why"),
                ],
            ),
        ],
    )


def _snapshot(body: dict):
    return parse_sync_payload(body, SyncConfig())


def _resubmit_body() -> dict:
    return {
        "sections": [
            {"id": "s1", "title": "A"},
            {
                "id": "s2",
                "title": "B",
                "questions": [
                    {
                        "id": "q1",
                        "type": "mcq",
                        "text": "Pick",
                        "options": [{"id": "o1", "text": "yes", "isCorrect": True}, {"id": "o2", "text": "no"}],
                    },
                    {"id": "q2", "type": "text", "text": "Why"},
                ],
            },
        ]
    }


def test_resubmitting_stored_tree_plans_only_updates():
    plan = plan_reconciliation(_stored(), _snapshot(_resubmit_body()))

    summary = plan.summary()
    assert summary["sections_updated"] == 2
    assert summary["questions_updated"] == 2
    assert summary["options_updated"] == 2
    assert all(v == 0 for k, v in summary.items() if not k.endswith("_updated"))


def test_omitted_section_is_deleted_and_new_one_created():
    plan = plan_reconciliation(_stored(), _snapshot({"sections": [{"id": "s1", "title": "A"}, {"id": "temp-x", "title": "C"}]}))

    assert plan.delete_section_ids == ["s2"]
    assert [(s.action, s.position) for s in plan.sections] == [(UPDATE, 0), (CREATE, 1)]
    assert plan.sections[0].target_id == "s1"
    assert plan.sections[1].target_id is None


def test_empty_snapshot_deletes_every_section():
    plan = plan_reconciliation(_stored(), _snapshot({"sections": []}))

    assert sorted(plan.delete_section_ids) == ["s1", "s2"]
    assert plan.sections == []


def test_omitted_question_and_option_are_deleted_in_their_scope():
    body = _resubmit_body()
    body["sections"][1]["questions"] = [body["sections"][1]["questions"][0]]
    body["sections"][1]["questions"][0]["options"] = [{"id": "o2", "text": "no"}]

    plan = plan_reconciliation(_stored(), _snapshot(body))

    section_b = plan.sections[1]
    assert section_b.delete_question_ids == ["q2"]
    assert section_b.questions[0].delete_option_ids == ["o1"]


def test_question_moved_to_other_section_is_create_plus_delete():
    body = {
        "sections": [
            {"id": "s1", "title": "A", "questions": [{"id": "q2", "type": "text", "text": "Why"}]},
            {"id": "s2", "title": "B", "questions": [_resubmit_body()["sections"][1]["questions"][0]]},
        ]
    }

    plan = plan_reconciliation(_stored(), _snapshot(body))

    assert plan.sections[0].questions[0].action == CREATE
    assert plan.sections[1].delete_question_ids == ["q2"]


def test_switch_to_text_deletes_all_stored_options():
    body = _resubmit_body()
    body["sections"][1]["questions"][0] = {"id": "q1", "type": "text", "text": "Pick", "options": [{"id": "o1", "text": "yes"}]}

    plan = plan_reconciliation(_stored(), _snapshot(body))

    q1 = plan.sections[1].questions[0]
    assert q1.action == UPDATE
    assert sorted(q1.delete_option_ids) == ["o1", "o2"]
    assert q1.options == []


def test_unknown_persisted_id_is_create():
    plan = plan_reconciliation(_stored(), _snapshot({"sections": [{"id": "not-stored", "title": "Z"}]}))

    assert plan.sections[0].action == CREATE
    assert sorted(plan.delete_section_ids) == ["s1", "s2"]


def test_children_of_new_section_are_all_creates():
    body = {
        "sections": [
            {
                "title": "New",
                "questions": [{"id": "q1", "type": "mcq", "text": "Pick", "options": [{"id": "o1", "text": "yes"}]}],
            }
        ]
    }

    plan = plan_reconciliation(_stored(), _snapshot(body))

    question = plan.sections[0].questions[0]
    assert question.action == CREATE
    assert question.options[0].action == CREATE
    assert question.delete_option_ids == []

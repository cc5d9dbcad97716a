"""Unit tests for section sync payload validation and snapshot building."""

from __future__ import annotations

import pytest

from exam_authoring.config import SyncConfig
from exam_authoring.logic.errors import ValidationError
from exam_authoring.models.identifiers import Ephemeral, Persisted
from exam_authoring.models.payload import parse_sync_payload


def _paths(exc: ValidationError) -> list[str]:
    return [e["path"] for e in exc.errors or []]


def test_builds_typed_snapshot_with_defaults():
    body = {
        "sections": [
            {
                "id": "temp-s1",
                "title": "Algebra",
                "questions": [
                    {
                        "id": "q-stored",
                        "type": "mcq",
                        "text": "2+2?",
                        "correctAnswer": "4",
                        "options": [{"text": "4", "isCorrect": True}, {"id": "o1", "text": "5"}],
                    },
                    {"type": "text", "text": "Explain", "correctAnswer": "because"},
                ],
            }
        ]
    }

    snapshot = parse_sync_payload(body, SyncConfig())

    section = snapshot.sections[0]
    assert section.id == Ephemeral("temp-s1")
    assert section.default_positive_marks == 1.0
    assert section.default_negative_marks == 0.0
    mcq, text = section.questions
    assert mcq.id == Persisted("q-stored")
    assert mcq.correct_answer is None
    assert [o.is_correct for o in mcq.options] == [True, False]
    assert mcq.options[0].id == Ephemeral("")
    assert mcq.options[1].id == Persisted("o1")
    assert text.is_free_text
    assert text.correct_answer == "because"
    assert snapshot.count_ephemeral() == 3


def test_text_question_drops_incoming_options():
    body = {"sections": [{"title": "S", "questions": [{"type": "text", "text": "t", "options": [{"text": "x"}]}]}]}

    snapshot = parse_sync_payload(body, SyncConfig())

    assert snapshot.sections[0].questions[0].options == ()


def test_null_is_correct_and_null_questions_are_coerced():
    body = {
        "sections": [
            {"title": "A", "questions": None},
            {"title": "B", "questions": [{"type": "mcq", "text": "q", "options": [{"text": "x", "isCorrect": None}]}]},
        ]
    }

    snapshot = parse_sync_payload(body, SyncConfig())

    assert snapshot.sections[0].questions == ()
    assert snapshot.sections[1].questions[0].options[0].is_correct is False


def test_empty_sections_list_is_valid():
    assert parse_sync_payload({"sections": []}, SyncConfig()).sections == ()


@pytest.mark.parametrize(
    "body",
    [
        [],
        "sections",
        {},
        {"sections": None},
        {"sections": [{"questions": []}]},
        {"sections": [{"title": "S", "questions": [{"type": "essay", "text": "t"}]}]},
        {"sections": [{"title": "S", "questions": [{"type": "mcq"}]}]},
        {"sections": [{"title": "S", "questions": [{"type": "mcq", "text": "t", "options": [{"isCorrect": True}]}]}]},
    ],
)
def test_malformed_payloads_raise_validation_error(body):
    with pytest.raises(ValidationError) as info:
        parse_sync_payload(body, SyncConfig())
    assert info.value.status == 400
    assert info.value.errors


def test_missing_title_reports_json_path():
    with pytest.raises(ValidationError) as info:
        parse_sync_payload({"sections": [{"title": "ok"}, {"duration": 5}]}, SyncConfig())
    assert "$.sections[1].title" in _paths(info.value)


def test_limits_are_enforced():
    cfg = SyncConfig(max_sections=1, max_questions_per_section=1, max_options_per_question=1)
    body = {
        "sections": [
            {
                "title": "A",
                "questions": [
                    {"type": "mcq", "text": "q", "options": [{"text": "a"}, {"text": "b"}]},
                    {"type": "text", "text": "q2"},
                ],
            },
            {"title": "B"},
        ]
    }

    with pytest.raises(ValidationError) as info:
        parse_sync_payload(body, cfg)

    assert set(_paths(info.value)) == {
        "$.sections",
        "$.sections[0].questions",
        "$.sections[0].questions[0].options",
    }


def test_duplicate_persisted_ids_at_one_level_are_rejected():
    body = {"sections": [{"id": "s1", "title": "A"}, {"id": "s1", "title": "B"}]}

    with pytest.raises(ValidationError) as info:
        parse_sync_payload(body, SyncConfig())

    assert _paths(info.value) == ["$.sections[1].id"]


def test_repeated_ephemeral_tokens_are_allowed():
    body = {"sections": [{"id": "temp-1", "title": "A"}, {"id": "temp-1", "title": "B"}]}
    assert len(parse_sync_payload(body, SyncConfig()).sections) == 2

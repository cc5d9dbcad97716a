"""Ingress models for the section sync payload.

The request body is loosely typed JSON. It is validated here with Pydantic
and immediately converted into a frozen snapshot whose questions are a tagged
variant on ``type`` and whose identifiers are parsed into
``Ephemeral``/``Persisted``. Nothing untyped reaches the diff planner.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator
from pydantic.alias_generators import to_camel

from exam_authoring.config import SyncConfig
from exam_authoring.logic.errors import ValidationError
from exam_authoring.models.identifiers import Ephemeral, NodeId, Persisted, parse_node_id
from exam_authoring.models.question_kind import QuestionKind

DEFAULT_POSITIVE_MARKS = 1.0
DEFAULT_NEGATIVE_MARKS = 0.0


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OptionIn(_CamelModel):
    id: Optional[str] = None
    text: str
    is_correct: bool = False

    @field_validator("is_correct", mode="before")
    @classmethod
    def null_is_not_correct(cls, v: Any) -> Any:
        return False if v is None else v


class ChoiceQuestionIn(_CamelModel):
    id: Optional[str] = None
    type: Literal["mcq", "multi-select"]
    text: str
    positive_marks: Optional[float] = None
    negative_marks: Optional[float] = None
    options: Optional[list[OptionIn]] = None


class TextQuestionIn(_CamelModel):
    id: Optional[str] = None
    type: Literal["text"]
    text: str
    correct_answer: Optional[str] = None
    positive_marks: Optional[float] = None
    negative_marks: Optional[float] = None
    # Accepted for client convenience, never persisted for free-text questions
    options: Optional[Any] = None


QuestionIn = Annotated[Union[ChoiceQuestionIn, TextQuestionIn], Field(discriminator="type")]


class SectionIn(_CamelModel):
    id: Optional[str] = None
    title: str
    duration: Optional[int] = None
    default_positive_marks: Optional[float] = None
    default_negative_marks: Optional[float] = None
    questions: list[QuestionIn] = Field(default_factory=list)

    @field_validator("questions", mode="before")
    @classmethod
    def null_questions_are_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class SectionSyncIn(_CamelModel):
    sections: list[SectionIn]


# ---------------------------------------------------------------------------
# Typed snapshot handed to the planner
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OptionNode:
    id: NodeId
    text: str
    is_correct: bool


@dataclass(frozen=True)
class QuestionNode:
    id: NodeId
    type: str
    text: str
    correct_answer: Optional[str]
    positive_marks: Optional[float]
    negative_marks: Optional[float]
    options: tuple[OptionNode, ...]

    @property
    def is_free_text(self) -> bool:
        return self.type == QuestionKind.TEXT


@dataclass(frozen=True)
class SectionNode:
    id: NodeId
    title: str
    duration: Optional[int]
    default_positive_marks: float
    default_negative_marks: float
    questions: tuple[QuestionNode, ...]


@dataclass(frozen=True)
class Snapshot:
    sections: tuple[SectionNode, ...]

    def count_ephemeral(self) -> int:
        total = 0
        for section in self.sections:
            total += isinstance(section.id, Ephemeral)
            for question in section.questions:
                total += isinstance(question.id, Ephemeral)
                total += sum(isinstance(o.id, Ephemeral) for o in question.options)
        return total


def decode_json_body(raw: bytes) -> Any:
    """Decode a raw request body, raising ValidationError when it is empty or not JSON."""
    if not raw.strip():
        raise ValidationError("request body is required", errors=[{"path": "$", "code": "missing", "message": "empty body"}])
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError(
            "request body is not valid JSON",
            errors=[{"path": "$", "code": "json_invalid", "message": str(exc)}],
        ) from exc


def _error_items(exc: PydanticValidationError) -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    for err in exc.errors():
        path = "$" + "".join(f"[{p}]" if isinstance(p, int) else f".{p}" for p in err.get("loc", ()))
        items.append({"path": path, "code": err.get("type", "invalid"), "message": err.get("msg", "")})
    return items


def _check_limits(payload: SectionSyncIn, cfg: SyncConfig) -> None:
    errors: list[dict[str, Any]] = []
    if len(payload.sections) > cfg.max_sections:
        errors.append({"path": "$.sections", "code": "too_many", "message": f"at most {cfg.max_sections} sections"})
    for si, section in enumerate(payload.sections):
        if len(section.questions) > cfg.max_questions_per_section:
            errors.append({
                "path": f"$.sections[{si}].questions",
                "code": "too_many",
                "message": f"at most {cfg.max_questions_per_section} questions per section",
            })
        for qi, question in enumerate(section.questions):
            if isinstance(question, ChoiceQuestionIn) and len(question.options or []) > cfg.max_options_per_question:
                errors.append({
                    "path": f"$.sections[{si}].questions[{qi}].options",
                    "code": "too_many",
                    "message": f"at most {cfg.max_options_per_question} options per question",
                })
    if errors:
        raise ValidationError("payload exceeds configured limits", errors=errors)


class _DuplicateTracker:
    """Reject a persisted id that occurs twice at the same level."""

    def __init__(self) -> None:
        self.seen: dict[str, set[str]] = {"section": set(), "question": set(), "option": set()}
        self.errors: list[dict[str, Any]] = []

    def check(self, level: str, node_id: NodeId, path: str) -> None:
        if not isinstance(node_id, Persisted):
            return
        if node_id.storage_id in self.seen[level]:
            self.errors.append({"path": path, "code": "duplicate_id", "message": f"duplicate {level} id {node_id}"})
        self.seen[level].add(node_id.storage_id)


def parse_sync_payload(body: Any, cfg: SyncConfig) -> Snapshot:
    """Validate a raw request body and return the typed snapshot.

    Raises ``ValidationError`` with per-field error items when the body does
    not have the required shape, names an unknown question type, exceeds the
    configured limits, or repeats a persisted id at one level.
    """
    if not isinstance(body, dict):
        raise ValidationError("request body must be a JSON object", errors=[{"path": "$", "code": "type", "message": "expected object"}])
    try:
        payload = SectionSyncIn.model_validate(body)
    except PydanticValidationError as exc:
        raise ValidationError("invalid section sync payload", errors=_error_items(exc)) from exc
    _check_limits(payload, cfg)

    prefix = cfg.ephemeral_prefix
    dupes = _DuplicateTracker()
    sections: list[SectionNode] = []
    for si, s in enumerate(payload.sections):
        sid = parse_node_id(s.id, ephemeral_prefix=prefix)
        dupes.check("section", sid, f"$.sections[{si}].id")
        questions: list[QuestionNode] = []
        for qi, q in enumerate(s.questions):
            qid = parse_node_id(q.id, ephemeral_prefix=prefix)
            dupes.check("question", qid, f"$.sections[{si}].questions[{qi}].id")
            options: list[OptionNode] = []
            if isinstance(q, ChoiceQuestionIn):
                for oi, o in enumerate(q.options or []):
                    oid = parse_node_id(o.id, ephemeral_prefix=prefix)
                    dupes.check("option", oid, f"$.sections[{si}].questions[{qi}].options[{oi}].id")
                    options.append(OptionNode(id=oid, text=o.text, is_correct=bool(o.is_correct)))
                correct_answer = None
            else:
                correct_answer = q.correct_answer
            questions.append(
                QuestionNode(
                    id=qid,
                    type=q.type,
                    text=q.text,
                    correct_answer=correct_answer,
                    positive_marks=q.positive_marks,
                    negative_marks=q.negative_marks,
                    options=tuple(options),
                )
            )
        sections.append(
            SectionNode(
                id=sid,
                title=s.title,
                duration=s.duration,
                default_positive_marks=DEFAULT_POSITIVE_MARKS if s.default_positive_marks is None else s.default_positive_marks,
                default_negative_marks=DEFAULT_NEGATIVE_MARKS if s.default_negative_marks is None else s.default_negative_marks,
                questions=tuple(questions),
            )
        )
    if dupes.errors:
        raise ValidationError("duplicate identifiers in payload", errors=dupes.errors)
    return Snapshot(sections=tuple(sections))


__all__ = [
    "OptionIn",
    "ChoiceQuestionIn",
    "TextQuestionIn",
    "SectionIn",
    "SectionSyncIn",
    "OptionNode",
    "QuestionNode",
    "SectionNode",
    "Snapshot",
    "decode_json_body",
    "parse_sync_payload",
]

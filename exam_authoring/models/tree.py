"""Pydantic models for the persisted test hierarchy.

Used both as the Tree Loader's result and as the canonical response body.
Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OptionRecord(_Record):
    id: str
    question_id: str
    text: str
    is_correct: bool
    position: int = 0


class QuestionRecord(_Record):
    id: str
    section_id: str
    type: str
    text: str
    correct_answer: Optional[str] = None
    positive_marks: Optional[float] = None
    negative_marks: Optional[float] = None
    position: int = 0
    options: List[OptionRecord] = Field(default_factory=list)


class SectionRecord(_Record):
    id: str
    test_id: str
    title: str
    duration: Optional[int] = None
    default_positive_marks: float = 1.0
    default_negative_marks: float = 0.0
    position: int = 0
    questions: List[QuestionRecord] = Field(default_factory=list)


class TestRecord(_Record):
    # Not a pytest test class despite the name
    __test__ = False

    id: str
    title: str
    description: Optional[str] = None
    created_by: str
    availability_start: Optional[str] = None
    availability_end: Optional[str] = None
    total_duration: Optional[int] = None
    shuffle_questions: bool = False
    allow_section_nav: bool = True
    negative_marking: bool = False
    show_results_instant: bool = False
    status: str = "draft"
    version: int = 1
    created_at: str
    updated_at: str
    sections: List[SectionRecord] = Field(default_factory=list)

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True)


class TestCreateIn(_Record):
    __test__ = False
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(min_length=1)
    description: Optional[str] = None
    availability_start: Optional[str] = None
    availability_end: Optional[str] = None
    total_duration: Optional[int] = Field(default=None, ge=0)
    shuffle_questions: bool = False
    allow_section_nav: bool = True
    negative_marking: bool = False
    show_results_instant: bool = False


__all__ = [
    "OptionRecord",
    "QuestionRecord",
    "SectionRecord",
    "TestRecord",
    "TestCreateIn",
]

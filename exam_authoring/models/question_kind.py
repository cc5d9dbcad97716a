"""QuestionKind enumeration for the closed set of question types.

Provides a simple constants container instead of an Enum to keep imports
lightweight in architectural tests. Values match the wire format.
"""

from __future__ import annotations


class QuestionKind:
    MCQ = "mcq"
    MULTI_SELECT = "multi-select"
    TEXT = "text"

    CHOICE_KINDS = frozenset({MCQ, MULTI_SELECT})
    ALL = frozenset({MCQ, MULTI_SELECT, TEXT})


__all__ = ["QuestionKind"]

"""QuestionType enumeration: the closed set of supported question types."""

from __future__ import annotations

from enum import Enum


class QuestionType(str, Enum):
    TEXT = "TEXT"
    EMAIL = "EMAIL"
    NUMBER = "NUMBER"
    DROPDOWN = "DROPDOWN"
    CHECKBOX = "CHECKBOX"
    RADIO = "RADIO"
    DATE = "DATE"
    FILE = "FILE"
    RATING = "RATING"


CHOICE_TYPES = frozenset({QuestionType.DROPDOWN, QuestionType.CHECKBOX, QuestionType.RADIO})


__all__ = ["QuestionType", "CHOICE_TYPES"]

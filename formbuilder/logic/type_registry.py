"""Question type registry.

One row per question type stating which constraint fields apply and what a
blank answer looks like. Every other module asks this table instead of
branching on the type itself.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from formbuilder.logic.errors import SchemaError
from formbuilder.models.question_type import QuestionType


DEFAULT_RATING_SCALE = 5
ALLOWED_RATING_SCALES = (3, 5, 7, 10)


@dataclass(frozen=True)
class TypeConstraints:
    applies_options: bool = False
    applies_scale: bool = False
    applies_length_bounds: bool = False
    applies_numeric_bounds: bool = False
    applies_pattern: bool = False
    multi_select: bool = False
    # Decoded value meaning "no answer given"
    empty_value: Any = ""


_REGISTRY: Dict[QuestionType, TypeConstraints] = {
    QuestionType.TEXT: TypeConstraints(applies_length_bounds=True, applies_pattern=True),
    QuestionType.EMAIL: TypeConstraints(applies_length_bounds=True, applies_pattern=True),
    QuestionType.NUMBER: TypeConstraints(applies_numeric_bounds=True, applies_pattern=True),
    QuestionType.DROPDOWN: TypeConstraints(applies_options=True),
    QuestionType.RADIO: TypeConstraints(applies_options=True),
    QuestionType.CHECKBOX: TypeConstraints(applies_options=True, multi_select=True, empty_value=()),
    QuestionType.DATE: TypeConstraints(),
    QuestionType.FILE: TypeConstraints(),
    QuestionType.RATING: TypeConstraints(applies_scale=True, empty_value=0),
}


def resolve_type(value: Any) -> QuestionType:
    """Return the QuestionType for a stored or submitted type token.

    Raises SchemaError for tokens outside the closed enumeration.
    """
    if isinstance(value, QuestionType):
        return value
    try:
        return QuestionType(str(value))
    except ValueError:
        raise SchemaError(f"unrecognized question type: {value!r}") from None


def constraints_for(question_type: Any) -> TypeConstraints:
    return _REGISTRY[resolve_type(question_type)]


__all__ = [
    "ALLOWED_RATING_SCALES",
    "DEFAULT_RATING_SCALE",
    "TypeConstraints",
    "constraints_for",
    "resolve_type",
]

"""Pydantic models for request payloads.

These declare payload shape only. Cross-field rules (options for choice
types, rating scales, bound ordering) are enforced by the form aggregate so
that every issue is reported together.
"""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import Field, StrictFloat, StrictInt, StrictStr

from formbuilder.models.base import WireModel
from formbuilder.models.question_type import QuestionType


class OptionIn(WireModel):
    label: str
    value: str


class QuestionIn(WireModel):
    label: str
    placeholder: Optional[str] = None
    required: bool = False
    type: QuestionType = QuestionType.TEXT
    options: Optional[List[OptionIn]] = None
    scale: Optional[int] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_value: Optional[float] = Field(default=None, alias="min")
    max_value: Optional[float] = Field(default=None, alias="max")
    pattern: Optional[str] = None


class FormWrite(WireModel):
    title: str = ""
    description: Optional[str] = None
    questions: List[QuestionIn] = Field(default_factory=list)


# Wire values are strings; numbers and string lists are tolerated and
# normalized by the answer codec. Strict members keep JSON booleans from
# coercing to 1/0.
AnswerValue = Union[StrictStr, StrictInt, StrictFloat, List[StrictStr], None]


class AnswerIn(WireModel):
    question_id: str
    value: AnswerValue = None


class AnswerSet(WireModel):
    answers: List[AnswerIn] = Field(default_factory=list)


class ResponseSubmit(AnswerSet):
    form_id: str
    preview: bool = False


__all__ = [
    "OptionIn",
    "QuestionIn",
    "FormWrite",
    "AnswerValue",
    "AnswerIn",
    "AnswerSet",
    "ResponseSubmit",
]

"""Response, answer and results-summary records."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import Field

from formbuilder.models.base import WireModel


class Answer(WireModel):
    id: str
    response_id: str
    question_id: str
    value: str
    # Read-path decoration; not stored
    decoded: Any = None
    question_label: Optional[str] = None
    question_type: Optional[str] = None
    orphaned: bool = False


class Response(WireModel):
    id: str
    form_id: str
    user_id: Optional[str] = None
    created_at: str
    answers: List[Answer] = Field(default_factory=list)
    persisted: bool = True


class ValidationResult(WireModel):
    valid: bool
    errors: List[Dict[str, Any]] = Field(default_factory=list)
    ignored_question_ids: List[str] = Field(default_factory=list)


class QuestionSummary(WireModel):
    question_id: str
    label: str
    type: str
    answered: int
    option_counts: Optional[Dict[str, int]] = None
    count: Optional[int] = None
    min: Optional[float] = None
    max: Optional[float] = None
    average: Optional[float] = None
    histogram: Optional[Dict[str, int]] = None


class ResponseSummary(WireModel):
    form_id: str
    total_responses: int
    orphaned_answers: int
    questions: List[QuestionSummary]


__all__ = [
    "Answer",
    "Response",
    "ValidationResult",
    "QuestionSummary",
    "ResponseSummary",
]

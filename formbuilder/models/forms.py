"""Stored form aggregate records returned by the read path."""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from formbuilder.models.base import WireModel


class Option(WireModel):
    id: str
    question_id: str
    label: str
    value: str


class Question(WireModel):
    id: str
    form_id: str
    label: str
    placeholder: Optional[str] = None
    required: bool = False
    # Plain string: stored rows are not re-validated against the enum so the
    # derivation engine can report corrupt types as SchemaError.
    type: str
    order: int
    options: List[Option] = Field(default_factory=list)
    scale: Optional[int] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_value: Optional[float] = Field(default=None, alias="min")
    max_value: Optional[float] = Field(default=None, alias="max")
    pattern: Optional[str] = None


class Form(WireModel):
    id: str
    title: str
    description: Optional[str] = None
    published: bool = False
    creator_id: str
    created_at: str
    updated_at: str
    questions: List[Question] = Field(default_factory=list)


class FormSummary(WireModel):
    id: str
    title: str
    description: Optional[str] = None
    published: bool
    created_at: str
    updated_at: str
    question_count: int
    response_count: int


class Pagination(WireModel):
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool


class FormPage(WireModel):
    data: List[FormSummary]
    pagination: Pagination


__all__ = ["Option", "Question", "Form", "FormSummary", "Pagination", "FormPage"]

"""Pydantic models for form definitions, responses and request payloads."""

from formbuilder.models.question_type import CHOICE_TYPES, QuestionType

__all__ = ["CHOICE_TYPES", "QuestionType"]

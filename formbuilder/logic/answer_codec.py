"""Encode/decode boundary for stored answer values.

Answers are always stored as strings. The question's type, never the
content, decides how a stored string is decoded:

- CHECKBOX -> JSON array of option values
- DATE     -> ISO-8601 date or date-time (a trailing 'Z' means UTC)
- NUMBER   -> decimal string (integral values without a fraction)
- RATING   -> integer string
- others   -> the string as-is
"""

from __future__ import annotations

import json
import math
import re
from datetime import date, datetime
from typing import Any, List, Optional, Union

from formbuilder.logic.errors import SchemaError
from formbuilder.logic.timestamps import format_timestamp
from formbuilder.logic.type_registry import constraints_for, resolve_type
from formbuilder.models.question_type import QuestionType


_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class AnswerCodecError(ValueError):
    """Raised when a value cannot be encoded or decoded for its question type."""


def format_number(value: Union[int, float]) -> str:
    """Return a stable decimal string: integral values without a fraction."""
    f = float(value)
    if not math.isfinite(f):
        raise AnswerCodecError("number must be finite")
    if f.is_integer():
        return str(int(f))
    return repr(f)


def parse_iso(raw: str) -> Union[date, datetime]:
    text = str(raw).strip()
    if not text:
        raise AnswerCodecError("date is empty")
    try:
        if _DATE_ONLY.match(text):
            return date.fromisoformat(text)
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return datetime.fromisoformat(text)
    except ValueError:
        raise AnswerCodecError(f"not an ISO-8601 date: {raw!r}") from None


def parse_number(raw: str) -> Union[int, float]:
    text = str(raw).strip()
    try:
        if re.fullmatch(r"[+-]?\d+", text):
            return int(text)
        value = float(text)
    except ValueError:
        raise AnswerCodecError(f"not a number: {raw!r}") from None
    if not math.isfinite(value):
        raise AnswerCodecError("number must be finite")
    return value


def parse_selection(raw: str) -> List[str]:
    try:
        value = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        raise AnswerCodecError("selection must be a JSON array of strings") from None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise AnswerCodecError("selection must be a JSON array of strings")
    return value


def encode_answer(question_type: Any, value: Any) -> Optional[str]:
    """Return the stored/wire string for a value, or None for no value.

    Strings are taken to be wire-encoded already and pass through unchanged.
    """
    qtype = resolve_type(question_type)
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        raise AnswerCodecError("boolean values are not supported")
    if isinstance(value, (list, tuple)):
        if not constraints_for(qtype).multi_select:
            raise AnswerCodecError("multiple values are only accepted for checkbox questions")
        if not all(isinstance(v, str) for v in value):
            raise AnswerCodecError("selection must contain strings only")
        return json.dumps(list(value), ensure_ascii=False)
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)):
        return format_number(value)
    raise AnswerCodecError(f"unsupported value type: {type(value).__name__}")


def decode_answer(question_type: Any, raw: str) -> Any:
    """Decode a stored string into its structured value for the question type."""
    qtype = resolve_type(question_type)
    if qtype is QuestionType.CHECKBOX:
        return parse_selection(raw)
    if qtype is QuestionType.DATE:
        return parse_iso(raw)
    if qtype is QuestionType.NUMBER:
        return parse_number(raw)
    if qtype is QuestionType.RATING:
        number = parse_number(raw)
        if isinstance(number, float):
            if not number.is_integer():
                raise AnswerCodecError(f"rating must be a whole number: {raw!r}")
            number = int(number)
        return number
    return raw


def decode_for_display(question_type: Optional[str], raw: str) -> Any:
    """Tolerant decode for the read path; falls back to the raw string."""
    if question_type is None:
        return raw
    try:
        value = decode_answer(question_type, raw)
    except (AnswerCodecError, SchemaError):
        return raw
    if isinstance(value, (date, datetime)):
        return encode_answer(QuestionType.DATE, value)
    return value


__all__ = [
    "AnswerCodecError",
    "decode_answer",
    "decode_for_display",
    "encode_answer",
    "format_number",
    "parse_iso",
    "parse_number",
    "parse_selection",
]

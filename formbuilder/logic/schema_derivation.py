"""Schema derivation engine.

Turns a form's question list into per-question acceptance rules. The same
`DerivedSchema` serves the dry-run validation endpoint, the serialized rules
handed to clients for live feedback, and the authoritative check inside the
submission pipeline, so accept/reject decisions cannot drift between them.

Type-specific checks live in one table (`_CHECKS`) keyed by QuestionType;
which constraint fields a rule carries is decided by the type registry.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from email_validator import EmailNotValidError, validate_email

from formbuilder.logic.answer_codec import (
    AnswerCodecError,
    encode_answer,
    format_number,
    parse_iso,
    parse_number,
    parse_selection,
)
from formbuilder.logic.errors import FieldIssue, SchemaError
from formbuilder.logic.type_registry import (
    ALLOWED_RATING_SCALES,
    DEFAULT_RATING_SCALE,
    constraints_for,
    resolve_type,
)
from formbuilder.models.question_type import QuestionType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldRule:
    question_id: str
    label: str
    type: QuestionType
    required: bool
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    pattern: Optional[str] = None
    scale: Optional[int] = None
    choices: Tuple[str, ...] = ()
    _regex: Optional["re.Pattern[str]"] = field(default=None, compare=False, repr=False)

    def issue(self, code: str, message: str) -> FieldIssue:
        return FieldIssue(code=code, message=message, question_id=self.question_id)

    def is_blank(self, raw: Optional[str]) -> bool:
        if raw is None or raw == "":
            return True
        empty = constraints_for(self.type).empty_value
        if empty == "":
            return False
        try:
            if constraints_for(self.type).multi_select:
                return len(parse_selection(raw)) == 0
            return parse_number(raw) == empty
        except AnswerCodecError:
            return False

    def check(self, raw: Optional[str]) -> List[FieldIssue]:
        """Return every issue for one wire value; an empty list means accepted."""
        if self.is_blank(raw):
            if self.required:
                return [self.issue("required", f"{self.label} is required")]
            return []
        return _CHECKS[self.type](self, str(raw))

    def describe(self) -> Dict[str, Any]:
        empty = constraints_for(self.type).empty_value
        data: Dict[str, Any] = {
            "questionId": self.question_id,
            "label": self.label,
            "type": self.type.value,
            "required": self.required,
            "emptyValue": list(empty) if isinstance(empty, tuple) else empty,
        }
        optional = {
            "minLength": self.min_length,
            "maxLength": self.max_length,
            "min": self.min_value,
            "max": self.max_value,
            "pattern": self.pattern,
            "scale": self.scale,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        if constraints_for(self.type).applies_options:
            data["choices"] = list(self.choices)
        return data


# -----
# Type-specific checks (one entry per QuestionType)
# -----


def _check_length_and_pattern(rule: FieldRule, raw: str) -> List[FieldIssue]:
    issues: List[FieldIssue] = []
    if rule.min_length is not None and len(raw) < rule.min_length:
        issues.append(rule.issue("too_short", f"{rule.label} must be at least {rule.min_length} characters"))
    if rule.max_length is not None and len(raw) > rule.max_length:
        issues.append(rule.issue("too_long", f"{rule.label} must be at most {rule.max_length} characters"))
    if rule._regex is not None and rule._regex.fullmatch(raw) is None:
        issues.append(rule.issue("pattern_mismatch", f"{rule.label} does not match the required pattern"))
    return issues


def _check_text(rule: FieldRule, raw: str) -> List[FieldIssue]:
    return _check_length_and_pattern(rule, raw)


def _is_addr_spec(raw: str) -> bool:
    # Bare address only: display names and surrounding whitespace are rejected
    if raw != raw.strip():
        return False
    try:
        validate_email(raw, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _check_email(rule: FieldRule, raw: str) -> List[FieldIssue]:
    issues = _check_length_and_pattern(rule, raw)
    if not _is_addr_spec(raw):
        issues.append(rule.issue("invalid_email", f"{rule.label} must be a valid email address"))
    return issues


def _check_number(rule: FieldRule, raw: str) -> List[FieldIssue]:
    try:
        number = parse_number(raw)
    except AnswerCodecError:
        return [rule.issue("invalid_number", f"{rule.label} must be a number")]
    issues: List[FieldIssue] = []
    if rule.min_value is not None and number < rule.min_value:
        issues.append(rule.issue("below_min", f"{rule.label} must be at least {format_number(rule.min_value)}"))
    if rule.max_value is not None and number > rule.max_value:
        issues.append(rule.issue("above_max", f"{rule.label} must be at most {format_number(rule.max_value)}"))
    if rule._regex is not None and rule._regex.fullmatch(raw.strip()) is None:
        issues.append(rule.issue("pattern_mismatch", f"{rule.label} does not match the required pattern"))
    return issues


def _check_date(rule: FieldRule, raw: str) -> List[FieldIssue]:
    try:
        parse_iso(raw)
    except AnswerCodecError:
        return [rule.issue("invalid_date", f"{rule.label} must be an ISO-8601 date")]
    return []


def _check_single_choice(rule: FieldRule, raw: str) -> List[FieldIssue]:
    if raw not in rule.choices:
        return [rule.issue("invalid_choice", f"{rule.label} must be one of the listed options")]
    return []


def _check_multi_choice(rule: FieldRule, raw: str) -> List[FieldIssue]:
    try:
        selected = parse_selection(raw)
    except AnswerCodecError:
        return [rule.issue("invalid_selection", f"{rule.label} must be a JSON array of option values")]
    issues: List[FieldIssue] = []
    if len(set(selected)) != len(selected):
        issues.append(rule.issue("duplicate_selection", f"{rule.label} lists an option more than once"))
    unknown = [v for v in selected if v not in rule.choices]
    if unknown:
        issues.append(rule.issue("invalid_choice", f"{rule.label} contains unknown options: {', '.join(unknown)}"))
    return issues


def _check_rating(rule: FieldRule, raw: str) -> List[FieldIssue]:
    scale = rule.scale or DEFAULT_RATING_SCALE
    try:
        number = parse_number(raw)
    except AnswerCodecError:
        number = None
    if number is None or float(number) != int(number):
        return [rule.issue("invalid_rating", f"{rule.label} must be a whole number")]
    if not 1 <= int(number) <= scale:
        return [rule.issue("out_of_range", f"{rule.label} must be between 1 and {scale}")]
    return []


def _check_file(rule: FieldRule, raw: str) -> List[FieldIssue]:
    # Presence-only; any non-blank reference is accepted
    return []


_CHECKS: Dict[QuestionType, Callable[[FieldRule, str], List[FieldIssue]]] = {
    QuestionType.TEXT: _check_text,
    QuestionType.EMAIL: _check_email,
    QuestionType.NUMBER: _check_number,
    QuestionType.DATE: _check_date,
    QuestionType.DROPDOWN: _check_single_choice,
    QuestionType.RADIO: _check_single_choice,
    QuestionType.CHECKBOX: _check_multi_choice,
    QuestionType.RATING: _check_rating,
    QuestionType.FILE: _check_file,
}


# -----
# Derivation
# -----


def derive_rule(question: Any) -> FieldRule:
    """Build the rule for one question (a record or any object with the same attributes).

    Constraint fields that do not apply to the question's type are ignored.
    Raises SchemaError when the stored type or constraints are unusable.
    """
    qid = str(getattr(question, "id", "") or "")
    qtype = resolve_type(getattr(question, "type", None))
    applies = constraints_for(qtype)

    regex = None
    pattern = getattr(question, "pattern", None) if applies.applies_pattern else None
    if pattern:
        try:
            regex = re.compile(pattern)
        except re.error as exc:
            raise SchemaError(f"question {qid} has an invalid pattern: {exc}") from exc
    else:
        pattern = None

    scale = None
    if applies.applies_scale:
        scale = getattr(question, "scale", None) or DEFAULT_RATING_SCALE
        if scale not in ALLOWED_RATING_SCALES:
            raise SchemaError(f"question {qid} has an unsupported rating scale: {scale}")

    choices: Tuple[str, ...] = ()
    if applies.applies_options:
        choices = tuple(str(o.value) for o in (getattr(question, "options", None) or []))

    return FieldRule(
        question_id=qid,
        label=str(getattr(question, "label", "") or qid),
        type=qtype,
        required=bool(getattr(question, "required", False)),
        min_length=getattr(question, "min_length", None) if applies.applies_length_bounds else None,
        max_length=getattr(question, "max_length", None) if applies.applies_length_bounds else None,
        min_value=getattr(question, "min_value", None) if applies.applies_numeric_bounds else None,
        max_value=getattr(question, "max_value", None) if applies.applies_numeric_bounds else None,
        pattern=pattern,
        scale=scale,
        choices=choices,
        _regex=regex,
    )


@dataclass(frozen=True)
class SchemaCheck:
    issues: Tuple[FieldIssue, ...]
    # (question_id, wire value) for each non-blank answer to a known question, in question order
    accepted: Tuple[Tuple[str, str], ...]
    # answers naming no question of this schema
    ignored: Tuple[str, ...]

    @property
    def ok(self) -> bool:
        return not self.issues

    @property
    def missing(self) -> List[str]:
        return [i.question_id for i in self.issues if i.code == "required" and i.question_id]


@dataclass(frozen=True)
class DerivedSchema:
    rules: Tuple[FieldRule, ...]

    def rule_for(self, question_id: str) -> Optional[FieldRule]:
        for rule in self.rules:
            if rule.question_id == question_id:
                return rule
        return None

    @property
    def required_ids(self) -> List[str]:
        return [r.question_id for r in self.rules if r.required]

    def validate(self, answers: Iterable[Tuple[str, Any]]) -> SchemaCheck:
        """Check a full answer set; collects every issue rather than stopping at the first."""
        by_id = {r.question_id: r for r in self.rules}
        issues: List[FieldIssue] = []
        provided: Dict[str, Optional[str]] = {}
        ignored: List[str] = []
        for question_id, value in answers:
            question_id = str(question_id)
            rule = by_id.get(question_id)
            if rule is None:
                if question_id not in ignored:
                    ignored.append(question_id)
                continue
            if question_id in provided:
                issues.append(rule.issue("duplicate_answer", f"{rule.label} was answered more than once"))
                continue
            try:
                provided[question_id] = encode_answer(rule.type, value)
            except AnswerCodecError as exc:
                provided[question_id] = None
                issues.append(rule.issue("invalid_value", f"{rule.label}: {exc}"))

        accepted: List[Tuple[str, str]] = []
        for rule in self.rules:
            if any(i.question_id == rule.question_id and i.code == "invalid_value" for i in issues):
                continue
            raw = provided.get(rule.question_id)
            field_issues = rule.check(raw)
            issues.extend(field_issues)
            if not field_issues and not rule.is_blank(raw):
                accepted.append((rule.question_id, str(raw)))
        return SchemaCheck(issues=tuple(issues), accepted=tuple(accepted), ignored=tuple(ignored))

    def describe(self) -> List[Dict[str, Any]]:
        return [r.describe() for r in self.rules]


def derive_schema(questions: Sequence[Any]) -> DerivedSchema:
    """Derive the validation schema for an ordered question list."""
    rules = tuple(derive_rule(q) for q in questions)
    logger.debug("schema_derived questions=%s required=%s", len(rules), sum(1 for r in rules if r.required))
    return DerivedSchema(rules=rules)


__all__ = [
    "DerivedSchema",
    "FieldRule",
    "SchemaCheck",
    "derive_rule",
    "derive_schema",
]

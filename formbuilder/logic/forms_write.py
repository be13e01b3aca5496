"""Form aggregate write operations.

create, update (full replace of the question list), delete and
publish-toggle. Each operation runs in one transaction: the form row, its
questions and their options commit together or not at all.
"""

from __future__ import annotations

import logging
import re
import uuid
from typing import List, Optional, Sequence, Tuple

from formbuilder.db.base import transaction
from formbuilder.logic import repository_forms as repo
from formbuilder.logic.access_gate import Action, authorize, require_authenticated, state_of, toggled, FormState
from formbuilder.logic.errors import FieldIssue, NotFoundError, ValidationError
from formbuilder.logic.events import (
    FORM_CREATED,
    FORM_DELETED,
    FORM_PUBLICATION_CHANGED,
    FORM_UPDATED,
    publish,
)
from formbuilder.logic.timestamps import utc_now
from formbuilder.logic.type_registry import ALLOWED_RATING_SCALES, DEFAULT_RATING_SCALE, constraints_for
from formbuilder.models.forms import Form, Option, Question
from formbuilder.models.payloads import QuestionIn

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return str(uuid.uuid4())


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    stripped = str(text).strip()
    return stripped or None


def _normalize_question(index: int, raw: QuestionIn, form_id: str, issues: List[FieldIssue]) -> Question:
    """Build a storable question, dropping constraint fields its type ignores."""
    loc = f"questions[{index}]"
    applies = constraints_for(raw.type)
    label = str(raw.label or "").strip()
    if not label:
        issues.append(FieldIssue(code="required", message="Question text is required", field=f"{loc}.label"))

    question_id = _new_id()
    options: List[Option] = []
    if applies.applies_options:
        raw_options = raw.options or []
        if not raw_options:
            issues.append(
                FieldIssue(code="options_required", message="Choice questions need at least one option", field=f"{loc}.options")
            )
        seen: set[str] = set()
        for j, opt in enumerate(raw_options):
            opt_label = str(opt.label or "").strip()
            opt_value = str(opt.value or "").strip()
            if not opt_label:
                issues.append(FieldIssue(code="required", message="Option label required", field=f"{loc}.options[{j}].label"))
            if not opt_value:
                issues.append(FieldIssue(code="required", message="Option value required", field=f"{loc}.options[{j}].value"))
            elif opt_value in seen:
                issues.append(
                    FieldIssue(code="duplicate_option", message=f"Option value {opt_value!r} is repeated", field=f"{loc}.options[{j}].value")
                )
            seen.add(opt_value)
            options.append(Option(id=_new_id(), question_id=question_id, label=opt_label, value=opt_value))

    scale = None
    if applies.applies_scale:
        scale = raw.scale if raw.scale is not None else DEFAULT_RATING_SCALE
        if scale not in ALLOWED_RATING_SCALES:
            allowed = ", ".join(str(s) for s in ALLOWED_RATING_SCALES)
            issues.append(FieldIssue(code="invalid_scale", message=f"Scale must be one of {allowed}", field=f"{loc}.scale"))

    min_length = max_length = None
    if applies.applies_length_bounds:
        min_length, max_length = raw.min_length, raw.max_length
        for name, value in (("minLength", min_length), ("maxLength", max_length)):
            if value is not None and value < 0:
                issues.append(FieldIssue(code="invalid_bound", message=f"{name} cannot be negative", field=f"{loc}.{name}"))
        if min_length is not None and max_length is not None and min_length > max_length:
            issues.append(FieldIssue(code="invalid_bound", message="minLength exceeds maxLength", field=f"{loc}.minLength"))

    min_value = max_value = None
    if applies.applies_numeric_bounds:
        min_value, max_value = raw.min_value, raw.max_value
        if min_value is not None and max_value is not None and min_value > max_value:
            issues.append(FieldIssue(code="invalid_bound", message="min exceeds max", field=f"{loc}.min"))

    pattern = None
    if applies.applies_pattern and raw.pattern:
        pattern = raw.pattern
        try:
            re.compile(pattern)
        except re.error as exc:
            issues.append(FieldIssue(code="invalid_pattern", message=f"Pattern does not compile: {exc}", field=f"{loc}.pattern"))

    return Question(
        id=question_id,
        form_id=form_id,
        label=label,
        placeholder=_clean(raw.placeholder),
        required=bool(raw.required),
        type=raw.type.value,
        order=index,
        options=options,
        scale=scale,
        min_length=min_length,
        max_length=max_length,
        min_value=min_value,
        max_value=max_value,
        pattern=pattern,
    )


def normalize_definition(
    form_id: str,
    title: Optional[str],
    description: Optional[str],
    questions: Sequence[QuestionIn],
) -> Tuple[str, Optional[str], List[Question]]:
    """Validate a submitted definition and assign `order` by list position.

    Raises ValidationError listing every issue found.
    """
    issues: List[FieldIssue] = []
    clean_title = str(title or "").strip()
    if not clean_title:
        issues.append(FieldIssue(code="required", message="Form title is required", field="title"))
    if not questions:
        issues.append(FieldIssue(code="required", message="Add at least one question", field="questions"))
    normalized = [_normalize_question(i, q, form_id, issues) for i, q in enumerate(questions)]
    if issues:
        raise ValidationError("Invalid form definition", issues)
    return clean_title, _clean(description), normalized


def create_form(
    creator_id: Optional[str],
    title: Optional[str],
    description: Optional[str],
    questions: Sequence[QuestionIn],
) -> Form:
    creator = require_authenticated(creator_id)
    form_id = _new_id()
    clean_title, clean_description, normalized = normalize_definition(form_id, title, description, questions)
    now = utc_now()
    with transaction() as conn:
        repo.insert_form(conn, form_id=form_id, title=clean_title, description=clean_description, creator_id=creator, now=now)
        repo.insert_questions(conn, normalized)
        form = repo.fetch_form(conn, form_id)
    logger.info("form_create form_id=%s creator_id=%s questions=%s", form_id, creator, len(normalized))
    publish(FORM_CREATED, {"form_id": form_id, "creator_id": creator})
    return form


def update_form(
    form_id: str,
    requester_id: Optional[str],
    title: Optional[str],
    description: Optional[str],
    questions: Sequence[QuestionIn],
) -> Form:
    """Replace a form's scalar fields and its entire question list.

    Existing questions and options are deleted and recreated with new ids;
    answers stored against the old ids become orphaned.
    """
    require_authenticated(requester_id)
    with transaction() as conn:
        existing = repo.fetch_form(conn, form_id)
        if existing is None:
            raise NotFoundError("Form not found")
        authorize(Action.EDIT, existing, requester_id)
        clean_title, clean_description, normalized = normalize_definition(form_id, title, description, questions)
        repo.update_form_header(conn, form_id, title=clean_title, description=clean_description, now=utc_now())
        removed = repo.delete_questions(conn, form_id)
        repo.insert_questions(conn, normalized)
        form = repo.fetch_form(conn, form_id)
    logger.info("form_update form_id=%s removed_questions=%s questions=%s", form_id, removed, len(normalized))
    publish(FORM_UPDATED, {"form_id": form_id})
    return form


def delete_form(form_id: str, requester_id: Optional[str]) -> None:
    require_authenticated(requester_id)
    with transaction() as conn:
        existing = repo.fetch_form(conn, form_id)
        if existing is None:
            raise NotFoundError("Form not found")
        authorize(Action.DELETE, existing, requester_id)
        repo.delete_form(conn, form_id)
    logger.info("form_delete form_id=%s", form_id)
    publish(FORM_DELETED, {"form_id": form_id})


def toggle_publish(form_id: str, requester_id: Optional[str]) -> Form:
    """Flip DRAFT <-> PUBLISHED; owner only."""
    require_authenticated(requester_id)
    with transaction() as conn:
        existing = repo.fetch_form(conn, form_id)
        if existing is None:
            raise NotFoundError("Form not found")
        authorize(Action.TOGGLE_PUBLISH, existing, requester_id)
        current = state_of(existing)
        target = toggled(current)
        repo.set_published(conn, form_id, target is FormState.PUBLISHED, now=utc_now())
        form = repo.fetch_form(conn, form_id)
    logger.info("form_publication form_id=%s from=%s to=%s", form_id, current.value, target.value)
    publish(FORM_PUBLICATION_CHANGED, {"form_id": form_id, "state": target.value})
    return form


__all__ = [
    "create_form",
    "delete_form",
    "normalize_definition",
    "toggle_publish",
    "update_form",
]

"""Form read operations: public definition, owner listing, derived schema and dry-run validation."""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Tuple

from formbuilder.db.base import read_connection
from formbuilder.logic import repository_forms as repo
from formbuilder.logic.access_gate import Action, authorize, require_authenticated
from formbuilder.logic.errors import FieldIssue, NotFoundError, ValidationError
from formbuilder.logic.schema_derivation import DerivedSchema, derive_schema
from formbuilder.models.forms import Form, FormPage, Pagination
from formbuilder.models.responses import ValidationResult

logger = logging.getLogger(__name__)


def get_form(form_id: str) -> Optional[Form]:
    """Public read of the full aggregate; no identity required."""
    with read_connection() as conn:
        return repo.fetch_form(conn, form_id)


def require_form(form_id: str) -> Form:
    form = get_form(form_id)
    if form is None:
        raise NotFoundError("Form not found")
    return form


def list_forms(requester_id: Optional[str], page: int = 1, page_size: int = 10, *, max_page_size: int = 100) -> FormPage:
    creator = require_authenticated(requester_id)
    issues: List[FieldIssue] = []
    if page < 1:
        issues.append(FieldIssue(code="invalid_page", message="page must be >= 1", field="page"))
    if page_size < 1 or page_size > max_page_size:
        issues.append(
            FieldIssue(code="invalid_page_size", message=f"pageSize must be between 1 and {max_page_size}", field="pageSize")
        )
    if issues:
        raise ValidationError("Invalid pagination parameters", issues)

    with read_connection() as conn:
        total = repo.count_forms_for_creator(conn, creator)
        data = repo.list_forms_for_creator(conn, creator, limit=page_size, offset=(page - 1) * page_size)
    total_pages = math.ceil(total / page_size) if total else 0
    return FormPage(
        data=data,
        pagination=Pagination(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        ),
    )


def get_form_schema(form_id: str) -> Tuple[Form, DerivedSchema]:
    form = require_form(form_id)
    authorize(Action.READ_DEFINITION, form, None)
    return form, derive_schema(form.questions)


def describe_form_schema(form_id: str) -> Dict[str, Any]:
    form, schema = get_form_schema(form_id)
    return {"formId": form.id, "fields": schema.describe()}


def validate_answers(form_id: str, answers: Iterable[Tuple[str, Any]]) -> ValidationResult:
    """Run submit-time validation without persisting anything."""
    _, schema = get_form_schema(form_id)
    check = schema.validate(answers)
    logger.info("form_validate form_id=%s ok=%s issues=%s", form_id, check.ok, len(check.issues))
    return ValidationResult(
        valid=check.ok,
        errors=[i.to_dict() for i in check.issues],
        ignored_question_ids=list(check.ignored),
    )


__all__ = [
    "describe_form_schema",
    "get_form",
    "get_form_schema",
    "list_forms",
    "require_form",
    "validate_answers",
]

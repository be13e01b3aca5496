"""Form authoring and definition endpoints.

Handlers translate HTTP to the form aggregate and read path; identity,
ownership and validation live in `formbuilder.logic`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from formbuilder.http.identity import current_user_id
from formbuilder.logic import forms_read, forms_write, responses_read
from formbuilder.models.forms import Form, FormPage
from formbuilder.models.payloads import AnswerSet, FormWrite
from formbuilder.models.responses import ResponseSummary, ValidationResult


router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/forms",
    summary="List the caller's forms, newest first",
    operation_id="listForms",
    tags=["Forms"],
    response_model=FormPage,
)
def list_forms(
    request: Request,
    page: int = Query(1),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    user_id: Optional[str] = Depends(current_user_id),
):
    pagination = request.app.state.config.pagination
    return forms_read.list_forms(
        user_id,
        page=page,
        page_size=page_size if page_size is not None else pagination.default_page_size,
        max_page_size=pagination.max_page_size,
    )


@router.post(
    "/forms",
    summary="Create a form with its questions",
    operation_id="createForm",
    tags=["Forms"],
    status_code=201,
    response_model=Form,
)
def create_form(payload: FormWrite, response: Response, user_id: Optional[str] = Depends(current_user_id)):
    form = forms_write.create_form(user_id, payload.title, payload.description, payload.questions)
    response.headers["Location"] = f"/api/v1/forms/{form.id}"
    return form


@router.get(
    "/forms/{form_id}",
    summary="Get a form definition (public)",
    operation_id="getForm",
    tags=["Forms"],
    response_model=Form,
)
def get_form(form_id: str):
    return forms_read.require_form(form_id)


@router.put(
    "/forms/{form_id}",
    summary="Replace a form's fields and question list",
    operation_id="updateForm",
    tags=["Forms"],
    response_model=Form,
)
def update_form(form_id: str, payload: FormWrite, user_id: Optional[str] = Depends(current_user_id)):
    return forms_write.update_form(form_id, user_id, payload.title, payload.description, payload.questions)


@router.delete(
    "/forms/{form_id}",
    summary="Delete a form with its questions and responses",
    operation_id="deleteForm",
    tags=["Forms"],
    status_code=204,
)
def delete_form(form_id: str, user_id: Optional[str] = Depends(current_user_id)):
    forms_write.delete_form(form_id, user_id)
    return Response(status_code=204)


@router.post(
    "/forms/{form_id}/publish",
    summary="Toggle a form between draft and published",
    operation_id="togglePublish",
    tags=["Forms"],
    response_model=Form,
)
def toggle_publish(form_id: str, user_id: Optional[str] = Depends(current_user_id)):
    return forms_write.toggle_publish(form_id, user_id)


@router.get(
    "/forms/{form_id}/schema",
    summary="Get the validation rules derived from a form's questions",
    operation_id="getFormSchema",
    tags=["Forms", "Validation"],
)
def get_form_schema(form_id: str) -> Dict[str, Any]:
    return forms_read.describe_form_schema(form_id)


@router.post(
    "/forms/{form_id}/validate",
    summary="Validate answers against a form without storing them",
    operation_id="validateAnswers",
    tags=["Validation"],
    response_model=ValidationResult,
)
def validate_answers(form_id: str, payload: AnswerSet):
    return forms_read.validate_answers(form_id, [(a.question_id, a.value) for a in payload.answers])


@router.get(
    "/forms/{form_id}/summary",
    summary="Aggregate results for a form's responses",
    operation_id="summarizeResponses",
    tags=["Responses"],
    response_model=ResponseSummary,
)
def summarize_responses(form_id: str, user_id: Optional[str] = Depends(current_user_id)):
    return responses_read.summarize_responses(form_id, user_id)


__all__ = ["router"]

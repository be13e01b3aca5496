"""Response submission and owner read endpoints."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response as HttpResponse

from formbuilder.http.identity import current_user_id
from formbuilder.logic import response_submission, responses_read
from formbuilder.models.payloads import ResponseSubmit
from formbuilder.models.responses import Response


router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/responses",
    summary="Submit answers to a published form",
    operation_id="submitResponse",
    tags=["Responses"],
    status_code=201,
    response_model=Response,
)
def submit_response(payload: ResponseSubmit, http_response: HttpResponse, user_id: Optional[str] = Depends(current_user_id)):
    response = response_submission.submit_response(
        payload.form_id,
        user_id,
        [(a.question_id, a.value) for a in payload.answers],
        preview=payload.preview,
    )
    if payload.preview:
        http_response.status_code = 200
    else:
        http_response.headers["Location"] = f"/api/v1/responses/{response.id}"
    return response


@router.get(
    "/responses",
    summary="List a form's responses (owner only)",
    operation_id="listResponses",
    tags=["Responses"],
    response_model=List[Response],
)
def list_responses(form_id: str = Query(..., alias="formId"), user_id: Optional[str] = Depends(current_user_id)):
    return responses_read.list_responses(form_id, user_id)


@router.get(
    "/responses/{response_id}",
    summary="Get one response (owner only)",
    operation_id="getResponse",
    tags=["Responses"],
    response_model=Response,
)
def get_response(response_id: str, user_id: Optional[str] = Depends(current_user_id)):
    return responses_read.get_response(response_id, user_id)


__all__ = ["router"]

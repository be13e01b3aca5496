"""Response submission pipeline.

Loads the form, applies the publication gate, derives the schema from the
stored questions and validates the whole answer set before anything is
written. A submission is accepted in full or rejected in full: one response
row plus one answer row per non-blank answer, in one transaction.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, List, Optional, Tuple

from formbuilder.db.base import transaction
from formbuilder.logic import repository_forms, repository_responses
from formbuilder.logic.access_gate import Action, authorize
from formbuilder.logic.answer_codec import decode_for_display
from formbuilder.logic.errors import NotFoundError, ValidationError
from formbuilder.logic.events import RESPONSE_SUBMITTED, publish
from formbuilder.logic.schema_derivation import derive_schema
from formbuilder.logic.timestamps import utc_now
from formbuilder.models.responses import Answer, Response

logger = logging.getLogger(__name__)


def submit_response(
    form_id: str,
    submitter_id: Optional[str],
    raw_answers: Iterable[Tuple[str, Any]],
    *,
    preview: bool = False,
) -> Response:
    """Validate and store one submission.

    `raw_answers` holds (question_id, value) pairs; values are wire strings
    or values the answer codec can encode. `submitter_id` is recorded when
    the caller is authenticated and None otherwise. With `preview=True` the
    owner's submission is fully validated but never persisted.
    """
    answers = list(raw_answers)
    response_id = str(uuid.uuid4())
    created_at = utc_now()

    with transaction() as conn:
        form = repository_forms.fetch_form(conn, form_id)
        if form is None:
            raise NotFoundError("Form not found")
        authorize(Action.SUBMIT, form, submitter_id, preview=preview)

        schema = derive_schema(form.questions)
        check = schema.validate(answers)
        if not check.ok:
            missing = check.missing
            only_missing = len(missing) == len(check.issues)
            logger.info(
                "response_rejected form_id=%s missing=%s issues=%s",
                form_id,
                missing,
                len(check.issues),
            )
            raise ValidationError(
                "Missing required questions" if only_missing else "Submission failed validation",
                check.issues,
            )
        if check.ignored:
            logger.warning("response_unknown_questions form_id=%s question_ids=%s", form_id, list(check.ignored))

        rows: List[Tuple[str, str, str]] = [(str(uuid.uuid4()), qid, value) for qid, value in check.accepted]
        if not preview:
            repository_responses.insert_response(
                conn,
                response_id=response_id,
                form_id=form_id,
                user_id=submitter_id,
                created_at=created_at,
                answers=rows,
            )

    questions = {q.id: q for q in form.questions}
    response = Response(
        id=response_id,
        form_id=form_id,
        user_id=submitter_id,
        created_at=created_at,
        persisted=not preview,
        answers=[
            Answer(
                id=answer_id,
                response_id=response_id,
                question_id=qid,
                value=value,
                decoded=decode_for_display(questions[qid].type, value),
                question_label=questions[qid].label,
                question_type=questions[qid].type,
            )
            for answer_id, qid, value in rows
        ],
    )
    if preview:
        logger.info("response_preview form_id=%s answers=%s", form_id, len(rows))
        return response
    logger.info("response_submit form_id=%s response_id=%s answers=%s anonymous=%s", form_id, response_id, len(rows), submitter_id is None)
    publish(RESPONSE_SUBMITTED, {"form_id": form_id, "response_id": response_id})
    return response


__all__ = ["submit_response"]

"""Owner-only read path for responses.

Answers are decoded with the type of the question they point at in the
form's current definition. Answers whose question was removed by an edit
are reported as orphaned instead of failing the read.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from formbuilder.db.base import read_connection
from formbuilder.logic import repository_forms, repository_responses
from formbuilder.logic.access_gate import Action, authorize, require_authenticated
from formbuilder.logic.answer_codec import AnswerCodecError, decode_answer, decode_for_display
from formbuilder.logic.errors import NotFoundError
from formbuilder.logic.type_registry import DEFAULT_RATING_SCALE, constraints_for
from formbuilder.models.forms import Form, Question
from formbuilder.models.responses import Answer, QuestionSummary, Response, ResponseSummary

logger = logging.getLogger(__name__)


def _decorate(response: Response, questions: Dict[str, Question]) -> Response:
    answers: List[Answer] = []
    orphaned = 0
    for a in response.answers:
        q = questions.get(a.question_id)
        if q is None:
            orphaned += 1
            answers.append(a.model_copy(update={"decoded": a.value, "orphaned": True}))
            continue
        answers.append(
            a.model_copy(
                update={
                    "decoded": decode_for_display(q.type, a.value),
                    "question_label": q.label,
                    "question_type": q.type,
                }
            )
        )
    if orphaned:
        logger.info("response_orphaned_answers response_id=%s count=%s", response.id, orphaned)
    return response.model_copy(update={"answers": answers})


def _owned_form(conn, form_id: str, requester_id: Optional[str]) -> Form:  # type: ignore[no-untyped-def]
    form = repository_forms.fetch_form(conn, form_id)
    if form is None:
        raise NotFoundError("Form not found")
    authorize(Action.LIST_RESPONSES, form, requester_id)
    return form


def list_responses(form_id: str, requester_id: Optional[str]) -> List[Response]:
    require_authenticated(requester_id)
    with read_connection() as conn:
        form = _owned_form(conn, form_id, requester_id)
        responses = repository_responses.list_responses(conn, form_id)
    questions = {q.id: q for q in form.questions}
    return [_decorate(r, questions) for r in responses]


def get_response(response_id: str, requester_id: Optional[str]) -> Response:
    require_authenticated(requester_id)
    with read_connection() as conn:
        response = repository_responses.fetch_response(conn, response_id)
        if response is None:
            raise NotFoundError("Response not found")
        form = _owned_form(conn, response.form_id, requester_id)
    return _decorate(response, {q.id: q for q in form.questions})


def _summarize_question(q: Question, values: List[str]) -> QuestionSummary:
    applies = constraints_for(q.type)
    decoded = []
    for raw in values:
        try:
            decoded.append(decode_answer(q.type, raw))
        except AnswerCodecError:
            logger.warning("summary_undecodable_answer question_id=%s", q.id)
    summary = QuestionSummary(question_id=q.id, label=q.label, type=q.type, answered=len(decoded))

    if applies.applies_options:
        counts = {o.value: 0 for o in q.options}
        for value in decoded:
            for selected in value if applies.multi_select else [value]:
                if selected in counts:
                    counts[selected] += 1
        summary.option_counts = counts

    if applies.applies_numeric_bounds or applies.applies_scale:
        numbers = [float(v) for v in decoded]
        summary.count = len(numbers)
        if numbers:
            summary.min = min(numbers)
            summary.max = max(numbers)
            summary.average = round(sum(numbers) / len(numbers), 4)
        if applies.applies_scale:
            scale = q.scale or DEFAULT_RATING_SCALE
            histogram = {str(i): 0 for i in range(1, scale + 1)}
            for n in numbers:
                key = str(int(n))
                if key in histogram:
                    histogram[key] += 1
            summary.histogram = histogram
    return summary


def summarize_responses(form_id: str, requester_id: Optional[str]) -> ResponseSummary:
    """Aggregate results per current question; orphaned answers are only counted."""
    responses = list_responses(form_id, requester_id)
    with read_connection() as conn:
        form = repository_forms.fetch_form(conn, form_id)
    if form is None:
        raise NotFoundError("Form not found")
    by_question: Dict[str, List[str]] = {q.id: [] for q in form.questions}
    orphaned = 0
    for r in responses:
        for a in r.answers:
            if a.orphaned:
                orphaned += 1
            elif a.question_id in by_question:
                by_question[a.question_id].append(a.value)
    return ResponseSummary(
        form_id=form_id,
        total_responses=len(responses),
        orphaned_answers=orphaned,
        questions=[_summarize_question(q, by_question[q.id]) for q in form.questions],
    )


__all__ = ["get_response", "list_responses", "summarize_responses"]

"""Functional tests for response submission, the owner read path and result summaries.

Exercised end to end over HTTP with a TestClient; the database is a fresh
SQLite file per test.
"""

from __future__ import annotations

from typing import Any, Dict, List

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from formbuilder.logic import repository_responses
from formbuilder.logic.events import get_buffered_events

PROBLEM = "application/problem+json"


def _submit(client, form: Dict[str, Any], answers: List[Dict[str, Any]], headers=None, **extra):
    body = {"formId": form["id"], "answers": answers, **extra}
    return client.post("/api/v1/responses", json=body, headers=headers or {})


def _answer(form: Dict[str, Any], index: int, value: Any) -> Dict[str, Any]:
    return {"questionId": form["questions"][index]["id"], "value": value}


def _responses(client, form, headers):
    return client.get("/api/v1/responses", params={"formId": form["id"]}, headers=headers)


# --------------------
# Submission scenarios
# --------------------


def test_scenario_a_single_required_text_answer_is_stored(client, make_form, auth):
    form = make_form()
    res = _submit(client, form, [_answer(form, 0, "Alice")])
    assert res.status_code == 201, res.text
    body = res.json()
    assert body["formId"] == form["id"]
    assert body["userId"] is None
    assert body["persisted"] is True
    assert res.headers["Location"] == f"/api/v1/responses/{body['id']}"
    assert [(a["questionId"], a["value"]) for a in body["answers"]] == [(form["questions"][0]["id"], "Alice")]

    listed = _responses(client, form, auth("owner-1"))
    assert listed.status_code == 200
    assert [r["id"] for r in listed.json()] == [body["id"]]
    assert listed.json()[0]["answers"][0]["value"] == "Alice"


def test_scenario_b_missing_required_answer_is_rejected(client, make_form, auth):
    form = make_form()
    res = _submit(client, form, [])
    assert res.status_code == 400
    assert res.headers["content-type"].startswith(PROBLEM)
    problem = res.json()
    assert problem["code"] == "validation_failed"
    assert problem["detail"] == "Missing required questions"
    assert problem["errors"] == [
        {"code": "required", "message": "Name is required", "questionId": form["questions"][0]["id"]}
    ]
    assert _responses(client, form, auth("owner-1")).json() == []


def test_scenario_c_rating_must_be_within_scale(client, make_form, q):
    form = make_form(questions=[q("Stars", "RATING", required=True, scale=5)])
    rejected = _submit(client, form, [_answer(form, 0, 6)])
    assert rejected.status_code == 400
    assert [e["code"] for e in rejected.json()["errors"]] == ["out_of_range"]
    accepted = _submit(client, form, [_answer(form, 0, 3)])
    assert accepted.status_code == 201
    assert accepted.json()["answers"][0]["value"] == "3"
    assert accepted.json()["answers"][0]["decoded"] == 3


def test_scenario_d_checkbox_selection(client, make_form, auth, q, opts):
    form = make_form(questions=[q("Pick", "CHECKBOX", required=True, options=opts("A", "B", "C"))])
    empty = _submit(client, form, [_answer(form, 0, "[]")])
    assert empty.status_code == 400
    assert [e["code"] for e in empty.json()["errors"]] == ["required"]

    ok = _submit(client, form, [_answer(form, 0, '["A","B"]')])
    assert ok.status_code == 201
    stored = _responses(client, form, auth("owner-1")).json()[0]["answers"][0]
    assert stored["value"] == '["A","B"]'
    assert stored["decoded"] == ["A", "B"]

    as_list = _submit(client, form, [_answer(form, 0, ["C"])])
    assert as_list.status_code == 201
    assert as_list.json()["answers"][0]["decoded"] == ["C"]


def test_scenario_e_answers_to_removed_questions_are_orphaned(client, make_form, auth, q, opts):
    owner = auth("owner-1")
    form = make_form(questions=[q("Name", required=True), q("Colour", "RADIO", options=opts("red", "blue"))])
    submitted = _submit(client, form, [_answer(form, 0, "Alice"), _answer(form, 1, "red")])
    assert submitted.status_code == 201

    edited = client.put(
        f"/api/v1/forms/{form['id']}",
        json={"title": "Survey v2", "questions": [q("Name", required=True)]},
        headers=owner,
    )
    assert edited.status_code == 200
    assert edited.json()["published"] is True

    listed = _responses(client, form, owner)
    assert listed.status_code == 200
    answers = listed.json()[0]["answers"]
    assert {a["value"] for a in answers} == {"Alice", "red"}
    assert all(a["orphaned"] is True and a["questionLabel"] is None for a in answers)

    one = client.get(f"/api/v1/responses/{submitted.json()['id']}", headers=owner)
    assert one.status_code == 200
    assert all(a["orphaned"] for a in one.json()["answers"])

    summary = client.get(f"/api/v1/forms/{form['id']}/summary", headers=owner).json()
    assert summary["totalResponses"] == 1
    assert summary["orphanedAnswers"] == 2
    assert summary["questions"][0]["answered"] == 0


# --------------------
# Submission rules
# --------------------


def test_draft_form_rejects_submissions(client, make_form, auth):
    form = make_form(publish=False)
    for headers in (None, auth("visitor"), auth("owner-1")):
        res = _submit(client, form, [_answer(form, 0, "Alice")], headers=headers)
        assert res.status_code == 403
        assert res.json()["code"] == "form_not_published"


def test_owner_preview_validates_without_persisting(client, make_form, auth):
    form = make_form(publish=False)
    preview = _submit(client, form, [_answer(form, 0, "Alice")], headers=auth("owner-1"), preview=True)
    assert preview.status_code == 200
    assert preview.json()["persisted"] is False
    assert "Location" not in preview.headers

    bad = _submit(client, form, [], headers=auth("owner-1"), preview=True)
    assert bad.status_code == 400

    stranger = _submit(client, form, [_answer(form, 0, "Alice")], headers=auth("visitor"), preview=True)
    assert stranger.status_code == 403
    assert stranger.json()["code"] == "preview_forbidden"

    assert _responses(client, form, auth("owner-1")).json() == []
    assert not [e for e in get_buffered_events() if e["type"] == "response.submitted"]


def test_authenticated_submitter_is_recorded(client, make_form, auth):
    form = make_form()
    res = _submit(client, form, [_answer(form, 0, "Bob")], headers=auth("visitor"))
    assert res.status_code == 201
    assert res.json()["userId"] == "visitor"
    events = [e for e in get_buffered_events() if e["type"] == "response.submitted"]
    assert [e["payload"] for e in events] == [{"form_id": form["id"], "response_id": res.json()["id"]}]
    assert events[0]["occurred_at"].endswith("Z")


def test_all_field_failures_are_reported_together(client, make_form, q):
    form = make_form(
        questions=[
            q("Name", required=True),
            q("Email", "EMAIL"),
            q("Age", "NUMBER", min=18),
        ]
    )
    res = _submit(client, form, [_answer(form, 1, "nope"), _answer(form, 2, "12")])
    assert res.status_code == 400
    problem = res.json()
    assert problem["detail"] == "Submission failed validation"
    assert sorted(e["code"] for e in problem["errors"]) == ["below_min", "invalid_email", "required"]
    assert {e["questionId"] for e in problem["errors"]} == {qq["id"] for qq in form["questions"]}


def test_unknown_questions_are_ignored_and_optional_forms_accept_empty_answers(client, make_form, q):
    form = make_form(questions=[q("Notes")])
    res = _submit(client, form, [{"questionId": "not-a-question", "value": "x"}])
    assert res.status_code == 201
    assert res.json()["answers"] == []


def test_email_answers_must_be_bare_addresses(client, make_form, q):
    form = make_form(questions=[q("Email", "EMAIL", required=True)])
    for value in ("Alice <alice@example.com>", " a@example.com "):
        res = _submit(client, form, [_answer(form, 0, value)])
        assert res.status_code == 400, value
        assert [e["code"] for e in res.json()["errors"]] == ["invalid_email"]
    assert _submit(client, form, [_answer(form, 0, "alice@example.com")]).status_code == 201


@pytest.mark.parametrize("type_", ["RATING", "NUMBER"])
def test_boolean_answers_are_rejected_not_coerced(client, make_form, q, type_):
    form = make_form(questions=[q("Value", type_, required=True)])
    for value in (True, False):
        res = _submit(client, form, [_answer(form, 0, value)])
        assert res.status_code == 400, res.text
        assert res.json()["code"] == "validation_failed"


def test_submitting_to_a_missing_form_is_not_found(client):
    res = client.post("/api/v1/responses", json={"formId": "missing", "answers": []})
    assert res.status_code == 404
    assert res.headers["content-type"].startswith(PROBLEM)


def test_dates_numbers_and_blank_optionals_are_stored_by_type(client, make_form, auth, q):
    form = make_form(questions=[q("When", "DATE"), q("Count", "NUMBER"), q("Notes")])
    res = _submit(client, form, [_answer(form, 0, "2024-03-01T09:00:00Z"), _answer(form, 1, 2.0), _answer(form, 2, "")])
    assert res.status_code == 201
    stored = _responses(client, form, auth("owner-1")).json()[0]["answers"]
    assert [(a["questionLabel"], a["value"]) for a in stored] == [("When", "2024-03-01T09:00:00Z"), ("Count", "2")]
    assert stored[1]["decoded"] == 2


# --------------------
# Owner read path
# --------------------


def test_response_reads_are_owner_only(client, make_form, auth):
    form = make_form()
    created = _submit(client, form, [_answer(form, 0, "Alice")]).json()

    assert _responses(client, form, None).status_code == 401
    assert _responses(client, form, auth("visitor")).status_code == 403
    assert client.get("/api/v1/responses", params={"formId": "missing"}, headers=auth("owner-1")).status_code == 404

    path = f"/api/v1/responses/{created['id']}"
    assert client.get(path).status_code == 401
    assert client.get(path, headers=auth("visitor")).status_code == 403
    assert client.get(path, headers=auth("owner-1")).json()["answers"][0]["questionLabel"] == "Name"
    assert client.get("/api/v1/responses/missing", headers=auth("owner-1")).status_code == 404


def test_responses_are_listed_newest_first(client, make_form, auth, tick):
    form = make_form()
    first = _submit(client, form, [_answer(form, 0, "first")]).json()
    second = _submit(client, form, [_answer(form, 0, "second")]).json()
    listed = _responses(client, form, auth("owner-1")).json()
    assert [r["id"] for r in listed] == [second["id"], first["id"]]


def test_summary_aggregates_each_current_question(client, make_form, auth, q, opts):
    form = make_form(
        questions=[
            q("Plan", "DROPDOWN", options=opts("a", "b")),
            q("Tags", "CHECKBOX", options=opts("x", "y")),
            q("Count", "NUMBER"),
            q("Stars", "RATING", scale=3),
        ]
    )
    rows = [
        ("a", '["x","y"]', "10", 1),
        ("b", '["y"]', "20", 3),
        ("a", "[]", "30", 3),
    ]
    for plan, tags, count, stars in rows:
        res = _submit(
            client,
            form,
            [_answer(form, 0, plan), _answer(form, 1, tags), _answer(form, 2, count), _answer(form, 3, stars)],
        )
        assert res.status_code == 201, res.text

    assert client.get(f"/api/v1/forms/{form['id']}/summary", headers=auth("visitor")).status_code == 403
    summary = client.get(f"/api/v1/forms/{form['id']}/summary", headers=auth("owner-1")).json()
    assert summary["totalResponses"] == 3
    assert summary["orphanedAnswers"] == 0
    plan, tags, count, stars = summary["questions"]
    assert plan["optionCounts"] == {"a": 2, "b": 1}
    assert tags["answered"] == 2
    assert tags["optionCounts"] == {"x": 1, "y": 2}
    assert (count["count"], count["min"], count["max"], count["average"]) == (3, 10, 30, 20)
    assert count["histogram"] is None
    assert stars["histogram"] == {"1": 1, "2": 0, "3": 2}
    assert stars["average"] == 2.3333


# --------------------
# Store failures
# --------------------


def _row_counts(engine) -> tuple:
    with engine.connect() as conn:
        responses = conn.execute(text("SELECT COUNT(*) FROM form_response")).scalar_one()
        answers = conn.execute(text("SELECT COUNT(*) FROM response_answer")).scalar_one()
    return responses, answers


def test_store_failure_is_an_opaque_500_and_leaves_no_rows(client, make_form, fresh_database, monkeypatch):
    form = make_form()
    real_insert = repository_responses.insert_response

    def insert_then_fail(conn, **kwargs):
        real_insert(conn, **kwargs)
        raise OperationalError("INSERT INTO response_answer", {}, Exception("disk I/O error"))

    monkeypatch.setattr(repository_responses, "insert_response", insert_then_fail)
    res = _submit(client, form, [_answer(form, 0, "Alice")])

    assert res.status_code == 500
    assert res.headers["content-type"].startswith(PROBLEM)
    assert res.json()["code"] == "internal_error"
    assert res.json()["detail"] == "Internal server error"
    assert "disk I/O" not in res.text
    assert _row_counts(fresh_database) == (0, 0)
    assert not [e for e in get_buffered_events() if e["type"] == "response.submitted"]

    monkeypatch.setattr(repository_responses, "insert_response", real_insert)
    assert _submit(client, form, [_answer(form, 0, "Alice")]).status_code == 201
    assert _row_counts(fresh_database) == (1, 1)

"""Functional tests for the schema derivation engine.

Rules are derived from stored question records; the same DerivedSchema
drives dry-run validation, the rules served to clients and the
authoritative submit-time check.
"""

from __future__ import annotations

from typing import Any, List

import pytest

from formbuilder.logic.errors import SchemaError
from formbuilder.logic.schema_derivation import derive_rule, derive_schema
from formbuilder.models.forms import Option, Question


def _question(qid: str, label: str, type_: str, order: int = 0, **extra: Any) -> Question:
    opts = extra.pop("options", [])
    return Question(
        id=qid,
        form_id="form-1",
        label=label,
        type=type_,
        order=order,
        options=[Option(id=f"{qid}-{v}", question_id=qid, label=v.upper(), value=v) for v in opts],
        **extra,
    )


def _codes(issues) -> List[str]:
    return [i.code for i in issues]


def test_derivation_is_a_pure_function_of_the_question_list():
    questions = [
        _question("q1", "Name", "TEXT", required=True, min_length=2, pattern="[A-Za-z ]+"),
        _question("q2", "Colours", "CHECKBOX", 1, options=["red", "blue"]),
        _question("q3", "Score", "RATING", 2, scale=7),
    ]
    first, second = derive_schema(questions), derive_schema(questions)
    assert first == second
    assert first.describe() == second.describe()
    assert first.required_ids == ["q1"]


def test_required_text_reports_label_message():
    rule = derive_rule(_question("q1", "Name", "TEXT", required=True))
    issues = rule.check("")
    assert _codes(issues) == ["required"]
    assert issues[0].message == "Name is required"
    assert issues[0].question_id == "q1"
    assert rule.check(None)
    assert rule.check("Alice") == []


def test_text_length_and_pattern_bounds():
    rule = derive_rule(_question("q1", "Code", "TEXT", min_length=2, max_length=5, pattern="[a-z]+"))
    assert _codes(rule.check("a")) == ["too_short"]
    assert _codes(rule.check("abcdef")) == ["too_long"]
    assert _codes(rule.check("ab1")) == ["pattern_mismatch"]
    assert rule.check("abc") == []
    # optional and blank is fine
    assert rule.check("") == []


def test_email_grammar():
    rule = derive_rule(_question("q1", "Email", "EMAIL", required=True))
    assert rule.check("ada@lovelace.org") == []
    assert _codes(rule.check("not-an-email")) == ["invalid_email"]
    assert _codes(rule.check("Alice <alice@example.com>")) == ["invalid_email"]
    assert _codes(rule.check(" a@example.com ")) == ["invalid_email"]
    assert derive_schema([_question("q1", "Email", "EMAIL", required=True)]).validate([("q1", " a@example.com ")]).accepted == ()


def test_number_coercion_and_bounds():
    rule = derive_rule(_question("q1", "Age", "NUMBER", required=True, min_value=0, max_value=120))
    assert rule.check("42") == []
    assert rule.check("0") == []
    assert rule.check("99.5") == []
    assert _codes(rule.check("abc")) == ["invalid_number"]
    assert _codes(rule.check("-1")) == ["below_min"]
    assert _codes(rule.check("121")) == ["above_max"]


def test_date_must_parse():
    rule = derive_rule(_question("q1", "Start", "DATE", required=True))
    assert rule.check("2024-02-29") == []
    assert rule.check("2024-02-29T10:00:00Z") == []
    assert _codes(rule.check("2024-02-30")) == ["invalid_date"]
    assert _codes(rule.check("")) == ["required"]


def test_single_choice_must_be_a_configured_value():
    for type_ in ("DROPDOWN", "RADIO"):
        rule = derive_rule(_question("q1", "Pick", type_, required=True, options=["a", "b"]))
        assert rule.check("b") == []
        assert _codes(rule.check("z")) == ["invalid_choice"]
        assert _codes(rule.check("")) == ["required"]


def test_checkbox_selection_is_a_subset_without_repeats():
    rule = derive_rule(_question("q1", "Pick", "CHECKBOX", required=True, options=["A", "B", "C"]))
    assert rule.check('["A","B"]') == []
    assert _codes(rule.check("[]")) == ["required"]
    assert _codes(rule.check('["A","A"]')) == ["duplicate_selection"]
    assert _codes(rule.check('["Z"]')) == ["invalid_choice"]
    assert _codes(rule.check("A")) == ["invalid_selection"]


def test_rating_is_an_integer_within_scale():
    rule = derive_rule(_question("q1", "Stars", "RATING", required=True, scale=5))
    assert rule.check("3") == []
    assert _codes(rule.check("6")) == ["out_of_range"]
    assert _codes(rule.check("2.5")) == ["invalid_rating"]
    assert _codes(rule.check("0")) == ["required"]
    default_scale = derive_rule(_question("q2", "Stars", "RATING"))
    assert default_scale.scale == 5
    assert default_scale.check("0") == []


def test_file_is_presence_only():
    rule = derive_rule(_question("q1", "Upload", "FILE", required=True))
    assert rule.check("uploads/cv.pdf") == []
    assert _codes(rule.check("")) == ["required"]


def test_constraints_that_do_not_apply_are_ignored():
    text = derive_rule(_question("q1", "Name", "TEXT", scale=7, min_value=1, options=["a"]))
    assert text.scale is None and text.min_value is None and text.choices == ()
    number = derive_rule(_question("q2", "Age", "NUMBER", min_length=3))
    assert number.min_length is None
    assert number.check("7") == []
    rating = derive_rule(_question("q3", "Stars", "RATING", pattern="("))
    assert rating.pattern is None


def test_unusable_stored_questions_raise_schema_error():
    with pytest.raises(SchemaError):
        derive_schema([_question("q1", "Broken", "SLIDER")])
    with pytest.raises(SchemaError):
        derive_schema([_question("q1", "Broken", "TEXT", pattern="(")])
    with pytest.raises(SchemaError):
        derive_schema([_question("q1", "Broken", "RATING", scale=4)])


def test_validate_collects_every_issue_and_orders_accepted_answers():
    schema = derive_schema(
        [
            _question("q1", "Name", "TEXT", 0, required=True),
            _question("q2", "Age", "NUMBER", 1, max_value=10),
            _question("q3", "Email", "EMAIL", 2),
            _question("q4", "Notes", "TEXT", 3),
        ]
    )
    check = schema.validate([("q3", "bad"), ("q2", 11), ("ghost", "x")])
    assert not check.ok
    assert sorted(_codes(check.issues)) == ["above_max", "invalid_email", "required"]
    assert check.missing == ["q1"]
    assert check.ignored == ("ghost",)

    ok = schema.validate([("q3", "ada@lovelace.org"), ("q1", "Alice"), ("q2", 7), ("q4", "")])
    assert ok.ok
    assert ok.accepted == (("q1", "Alice"), ("q2", "7"), ("q3", "ada@lovelace.org"))


def test_validate_flags_duplicates_and_unencodable_values():
    schema = derive_schema([_question("q1", "Name", "TEXT"), _question("q2", "Age", "NUMBER", 1)])
    check = schema.validate([("q1", "a"), ("q1", "b"), ("q2", ["1"])])
    assert sorted(_codes(check.issues)) == ["duplicate_answer", "invalid_value"]


def test_describe_serializes_rules_for_clients():
    schema = derive_schema(
        [
            _question("q1", "Pick", "CHECKBOX", 0, required=True, options=["a", "b"]),
            _question("q2", "Stars", "RATING", 1),
            _question("q3", "Age", "NUMBER", 2, min_value=1),
        ]
    )
    pick, stars, age = schema.describe()
    assert pick == {
        "questionId": "q1",
        "label": "Pick",
        "type": "CHECKBOX",
        "required": True,
        "emptyValue": [],
        "choices": ["a", "b"],
    }
    assert stars["scale"] == 5 and stars["emptyValue"] == 0
    assert age["min"] == 1 and "max" not in age and "choices" not in age

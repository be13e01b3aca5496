"""Form aggregate data access helpers.

Encapsulates the SQL for forms, questions and options. Write helpers take
the caller's connection so a whole aggregate change commits or rolls back
together; route handlers never issue SQL themselves.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from formbuilder.models.forms import Form, FormSummary, Option, Question

logger = logging.getLogger(__name__)


def insert_form(
    conn: Connection,
    *,
    form_id: str,
    title: str,
    description: Optional[str],
    creator_id: str,
    now: str,
) -> None:
    conn.execute(
        sql_text(
            """
            INSERT INTO form (form_id, title, description, published, creator_id, created_at, updated_at)
            VALUES (:fid, :title, :description, :published, :creator, :now, :now)
            """
        ),
        {
            "fid": form_id,
            "title": title,
            "description": description,
            "published": False,
            "creator": creator_id,
            "now": now,
        },
    )


def update_form_header(conn: Connection, form_id: str, *, title: str, description: Optional[str], now: str) -> None:
    conn.execute(
        sql_text("UPDATE form SET title = :title, description = :description, updated_at = :now WHERE form_id = :fid"),
        {"title": title, "description": description, "now": now, "fid": form_id},
    )


def set_published(conn: Connection, form_id: str, published: bool, *, now: str) -> None:
    conn.execute(
        sql_text("UPDATE form SET published = :p, updated_at = :now WHERE form_id = :fid"),
        {"p": bool(published), "now": now, "fid": form_id},
    )


def insert_questions(conn: Connection, questions: Sequence[Question]) -> None:
    """Insert questions and their options; `order` and ids are already assigned."""
    for q in questions:
        conn.execute(
            sql_text(
                """
                INSERT INTO form_question (
                    question_id, form_id, label, placeholder, required, question_type, question_order,
                    scale, min_length, max_length, min_value, max_value, pattern
                )
                VALUES (:qid, :fid, :label, :placeholder, :required, :qtype, :ord,
                        :scale, :min_length, :max_length, :min_value, :max_value, :pattern)
                """
            ),
            {
                "qid": q.id,
                "fid": q.form_id,
                "label": q.label,
                "placeholder": q.placeholder,
                "required": bool(q.required),
                "qtype": str(q.type),
                "ord": int(q.order),
                "scale": q.scale,
                "min_length": q.min_length,
                "max_length": q.max_length,
                "min_value": q.min_value,
                "max_value": q.max_value,
                "pattern": q.pattern,
            },
        )
        for index, opt in enumerate(q.options):
            conn.execute(
                sql_text(
                    """
                    INSERT INTO question_option (option_id, question_id, label, value, option_order)
                    VALUES (:oid, :qid, :label, :value, :ord)
                    """
                ),
                {"oid": opt.id, "qid": q.id, "label": opt.label, "value": opt.value, "ord": index},
            )


def delete_questions(conn: Connection, form_id: str) -> int:
    """Delete every question (and its options) of a form; returns the question count removed."""
    conn.execute(
        sql_text(
            "DELETE FROM question_option WHERE question_id IN "
            "(SELECT question_id FROM form_question WHERE form_id = :fid)"
        ),
        {"fid": form_id},
    )
    result = conn.execute(sql_text("DELETE FROM form_question WHERE form_id = :fid"), {"fid": form_id})
    return int(result.rowcount or 0)


def delete_form(conn: Connection, form_id: str) -> None:
    """Delete a form with its questions, options, responses and answers."""
    conn.execute(
        sql_text(
            "DELETE FROM response_answer WHERE response_id IN "
            "(SELECT response_id FROM form_response WHERE form_id = :fid)"
        ),
        {"fid": form_id},
    )
    conn.execute(sql_text("DELETE FROM form_response WHERE form_id = :fid"), {"fid": form_id})
    delete_questions(conn, form_id)
    conn.execute(sql_text("DELETE FROM form WHERE form_id = :fid"), {"fid": form_id})


def _question_from_row(row: Any, options: List[Option]) -> Question:
    return Question(
        id=str(row["question_id"]),
        form_id=str(row["form_id"]),
        label=row["label"],
        placeholder=row["placeholder"],
        required=bool(row["required"]),
        type=str(row["question_type"]),
        order=int(row["question_order"]),
        options=options,
        scale=row["scale"],
        min_length=row["min_length"],
        max_length=row["max_length"],
        min_value=row["min_value"],
        max_value=row["max_value"],
        pattern=row["pattern"],
    )


def fetch_questions(conn: Connection, form_id: str) -> List[Question]:
    rows = conn.execute(
        sql_text(
            """
            SELECT question_id, form_id, label, placeholder, required, question_type, question_order,
                   scale, min_length, max_length, min_value, max_value, pattern
            FROM form_question
            WHERE form_id = :fid
            ORDER BY question_order ASC
            """
        ),
        {"fid": form_id},
    ).mappings().all()
    option_rows = conn.execute(
        sql_text(
            """
            SELECT o.option_id, o.question_id, o.label, o.value
            FROM question_option o
            JOIN form_question q ON q.question_id = o.question_id
            WHERE q.form_id = :fid
            ORDER BY o.question_id ASC, o.option_order ASC
            """
        ),
        {"fid": form_id},
    ).mappings().all()
    options_by_question: Dict[str, List[Option]] = {}
    for o in option_rows:
        options_by_question.setdefault(str(o["question_id"]), []).append(
            Option(id=str(o["option_id"]), question_id=str(o["question_id"]), label=o["label"], value=o["value"])
        )
    return [_question_from_row(r, options_by_question.get(str(r["question_id"]), [])) for r in rows]


def fetch_form(conn: Connection, form_id: str) -> Optional[Form]:
    """Return the full aggregate with questions ordered by `order`, or None."""
    row = conn.execute(
        sql_text(
            """
            SELECT form_id, title, description, published, creator_id, created_at, updated_at
            FROM form WHERE form_id = :fid
            """
        ),
        {"fid": form_id},
    ).mappings().fetchone()
    if row is None:
        return None
    return Form(
        id=str(row["form_id"]),
        title=row["title"],
        description=row["description"],
        published=bool(row["published"]),
        creator_id=str(row["creator_id"]),
        created_at=str(row["created_at"]),
        updated_at=str(row["updated_at"]),
        questions=fetch_questions(conn, form_id),
    )


def count_forms_for_creator(conn: Connection, creator_id: str) -> int:
    row = conn.execute(
        sql_text("SELECT COUNT(*) FROM form WHERE creator_id = :cid"),
        {"cid": creator_id},
    ).fetchone()
    return int(row[0]) if row and row[0] is not None else 0


def list_forms_for_creator(conn: Connection, creator_id: str, *, limit: int, offset: int) -> List[FormSummary]:
    """Return one page of a creator's forms, newest first, with counts."""
    rows = conn.execute(
        sql_text(
            """
            SELECT f.form_id, f.title, f.description, f.published, f.created_at, f.updated_at,
                   (SELECT COUNT(*) FROM form_question q WHERE q.form_id = f.form_id) AS question_count,
                   (SELECT COUNT(*) FROM form_response r WHERE r.form_id = f.form_id) AS response_count
            FROM form f
            WHERE f.creator_id = :cid
            ORDER BY f.created_at DESC, f.form_id ASC
            LIMIT :limit OFFSET :offset
            """
        ),
        {"cid": creator_id, "limit": int(limit), "offset": int(offset)},
    ).mappings().all()
    return [
        FormSummary(
            id=str(r["form_id"]),
            title=r["title"],
            description=r["description"],
            published=bool(r["published"]),
            created_at=str(r["created_at"]),
            updated_at=str(r["updated_at"]),
            question_count=int(r["question_count"] or 0),
            response_count=int(r["response_count"] or 0),
        )
        for r in rows
    ]


__all__ = [
    "count_forms_for_creator",
    "delete_form",
    "delete_questions",
    "fetch_form",
    "fetch_questions",
    "insert_form",
    "insert_questions",
    "list_forms_for_creator",
    "set_published",
    "update_form_header",
]

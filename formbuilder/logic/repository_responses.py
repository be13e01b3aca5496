"""Response and answer data access helpers."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection

from formbuilder.models.responses import Answer, Response

logger = logging.getLogger(__name__)


def insert_response(
    conn: Connection,
    *,
    response_id: str,
    form_id: str,
    user_id: Optional[str],
    created_at: str,
    answers: Sequence[Tuple[str, str, str]],
) -> None:
    """Insert one response row and its answers.

    `answers` holds (answer_id, question_id, value) in the order to keep.
    """
    conn.execute(
        sql_text(
            """
            INSERT INTO form_response (response_id, form_id, user_id, created_at)
            VALUES (:rid, :fid, :uid, :created_at)
            """
        ),
        {"rid": response_id, "fid": form_id, "uid": user_id, "created_at": created_at},
    )
    for index, (answer_id, question_id, value) in enumerate(answers):
        conn.execute(
            sql_text(
                """
                INSERT INTO response_answer (answer_id, response_id, question_id, value, answer_order)
                VALUES (:aid, :rid, :qid, :value, :ord)
                """
            ),
            {"aid": answer_id, "rid": response_id, "qid": question_id, "value": value, "ord": index},
        )


def _answers_for(conn: Connection, where: str, params: Dict[str, str]) -> Dict[str, List[Answer]]:
    rows = conn.execute(
        sql_text(
            f"""
            SELECT a.answer_id, a.response_id, a.question_id, a.value
            FROM response_answer a
            JOIN form_response r ON r.response_id = a.response_id
            WHERE {where}
            ORDER BY a.response_id ASC, a.answer_order ASC
            """
        ),
        params,
    ).mappings().all()
    grouped: Dict[str, List[Answer]] = {}
    for a in rows:
        grouped.setdefault(str(a["response_id"]), []).append(
            Answer(
                id=str(a["answer_id"]),
                response_id=str(a["response_id"]),
                question_id=str(a["question_id"]),
                value=str(a["value"]),
            )
        )
    return grouped


def list_responses(conn: Connection, form_id: str) -> List[Response]:
    """Return a form's responses newest first, each with its stored answers."""
    rows = conn.execute(
        sql_text(
            """
            SELECT response_id, form_id, user_id, created_at
            FROM form_response
            WHERE form_id = :fid
            ORDER BY created_at DESC, response_id ASC
            """
        ),
        {"fid": form_id},
    ).mappings().all()
    answers = _answers_for(conn, "r.form_id = :fid", {"fid": form_id})
    return [
        Response(
            id=str(r["response_id"]),
            form_id=str(r["form_id"]),
            user_id=r["user_id"],
            created_at=str(r["created_at"]),
            answers=answers.get(str(r["response_id"]), []),
        )
        for r in rows
    ]


def fetch_response(conn: Connection, response_id: str) -> Optional[Response]:
    row = conn.execute(
        sql_text("SELECT response_id, form_id, user_id, created_at FROM form_response WHERE response_id = :rid"),
        {"rid": response_id},
    ).mappings().fetchone()
    if row is None:
        return None
    answers = _answers_for(conn, "r.response_id = :rid", {"rid": response_id})
    return Response(
        id=str(row["response_id"]),
        form_id=str(row["form_id"]),
        user_id=row["user_id"],
        created_at=str(row["created_at"]),
        answers=answers.get(response_id, []),
    )


__all__ = ["fetch_response", "insert_response", "list_responses"]

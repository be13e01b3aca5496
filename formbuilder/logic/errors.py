"""Domain error taxonomy.

Every failure surfaced by the aggregate, the submission pipeline and the
access gate is one of these exceptions. The HTTP layer maps them to
problem+json responses using `status_code`, `title` and `code`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional


@dataclass(frozen=True)
class FieldIssue:
    """One enumerable validation failure, addressable from a UI."""

    code: str
    message: str
    question_id: Optional[str] = None
    field: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.question_id is not None:
            data["questionId"] = self.question_id
        if self.field is not None:
            data["field"] = self.field
        return data


class FormBuilderError(Exception):
    status_code = 500
    title = "Internal Server Error"
    code = "internal_error"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or self.title)
        self.detail = detail or self.title

    def to_problem(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
            "code": self.code,
        }


class ValidationError(FormBuilderError):
    status_code = 400
    title = "Validation Failed"
    code = "validation_failed"

    def __init__(self, detail: str, issues: Iterable[FieldIssue] = ()) -> None:
        super().__init__(detail)
        self.issues: List[FieldIssue] = list(issues)

    @property
    def question_ids(self) -> List[str]:
        return [i.question_id for i in self.issues if i.question_id is not None]

    def to_problem(self) -> Dict[str, Any]:
        problem = super().to_problem()
        problem["errors"] = [i.to_dict() for i in self.issues]
        return problem


class NotFoundError(FormBuilderError):
    status_code = 404
    title = "Not Found"
    code = "not_found"


class ForbiddenError(FormBuilderError):
    status_code = 403
    title = "Forbidden"
    code = "forbidden"

    def __init__(self, detail: str = "", code: str | None = None) -> None:
        super().__init__(detail)
        if code:
            self.code = code


class UnauthenticatedError(FormBuilderError):
    status_code = 401
    title = "Unauthorized"
    code = "unauthenticated"


class SchemaError(FormBuilderError):
    """Stored question data the derivation engine cannot interpret."""

    code = "schema_error"

    def to_problem(self) -> Dict[str, Any]:
        # Corrupt data is an operator concern; keep the wire message opaque
        return {"title": self.title, "status": self.status_code, "detail": "Internal server error", "code": self.code}


class InternalError(FormBuilderError):
    code = "internal_error"

    def to_problem(self) -> Dict[str, Any]:
        return {"title": self.title, "status": self.status_code, "detail": "Internal server error", "code": self.code}


__all__ = [
    "FieldIssue",
    "FormBuilderError",
    "ValidationError",
    "NotFoundError",
    "ForbiddenError",
    "UnauthenticatedError",
    "SchemaError",
    "InternalError",
]

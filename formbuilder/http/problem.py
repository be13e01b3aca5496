"""Problem+JSON utilities and global exception handlers.

Every error leaves the service as an application/problem+json body with
`title`, `status`, `detail` and `code`; validation failures add `errors`,
a list of enumerable field issues.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from formbuilder.logic.errors import FieldIssue, FormBuilderError

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_response(problem: Dict[str, Any], headers: Dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        problem,
        status_code=int(problem.get("status", 500)),
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers,
    )


async def handle_domain_error(request: Request, exc: FormBuilderError) -> JSONResponse:  # noqa: D401
    if exc.status_code >= 500:
        logger.error("domain_error path=%s code=%s detail=%s", request.url.path, exc.code, exc.detail, exc_info=exc)
    else:
        logger.info("domain_error path=%s status=%s code=%s", request.url.path, exc.status_code, exc.code)
    return problem_response(exc.to_problem())


def _location(loc: Any) -> str:
    parts = [str(p) for p in (loc or ()) if p not in ("body", "query", "path")]
    out = ""
    for p in parts:
        out += f"[{p}]" if p.isdigit() else (f".{p}" if out else p)
    return out


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    issues: List[Dict[str, Any]] = []
    for err in exc.errors():
        field = _location(err.get("loc"))
        issues.append(
            FieldIssue(code=str(err.get("type", "invalid")), message=str(err.get("msg", "Invalid value")), field=field or None).to_dict()
        )
    logger.info("request_invalid path=%s errors=%s", request.url.path, len(issues))
    return problem_response(
        {
            "title": "Validation Failed",
            "status": 400,
            "detail": "Request validation failed",
            "code": "validation_failed",
            "errors": issues,
        }
    )


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(exc.status_code or 500)
    if isinstance(exc.detail, dict):
        problem = {"status": status, **exc.detail}
    else:
        problem = {"title": "Error", "status": status, "detail": str(exc.detail or "")}
    headers = dict(exc.headers) if isinstance(exc.headers, dict) else None
    return problem_response(problem, headers)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return problem_response(
        {"title": "Internal Server Error", "status": 500, "detail": "Internal server error", "code": "internal_error"}
    )


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "handle_domain_error",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
    "problem_response",
]

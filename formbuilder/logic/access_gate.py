"""Access and publication gate.

A form is either DRAFT or PUBLISHED; `toggle_publish` is the only transition
and only the owner may take it. `authorize` applies the permission matrix:

| Action                     | Anonymous | Non-owner | Owner         |
|----------------------------|-----------|-----------|---------------|
| read definition            | allow     | allow     | allow         |
| submit (DRAFT)             | 403       | 403       | preview only  |
| submit (PUBLISHED)         | allow     | allow     | allow         |
| edit / delete / publish    | 401       | 403       | allow         |
| list or read responses     | 401       | 403       | allow         |
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

from formbuilder.logic.errors import ForbiddenError, UnauthenticatedError

logger = logging.getLogger(__name__)


class FormState(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class Action(str, Enum):
    READ_DEFINITION = "read_definition"
    SUBMIT = "submit"
    EDIT = "edit"
    DELETE = "delete"
    TOGGLE_PUBLISH = "toggle_publish"
    LIST_RESPONSES = "list_responses"


_OWNER_ONLY = frozenset({Action.EDIT, Action.DELETE, Action.TOGGLE_PUBLISH, Action.LIST_RESPONSES})


def state_of(form: Any) -> FormState:
    return FormState.PUBLISHED if bool(getattr(form, "published", False)) else FormState.DRAFT


def toggled(state: FormState) -> FormState:
    return FormState.DRAFT if state is FormState.PUBLISHED else FormState.PUBLISHED


def is_owner(form: Any, user_id: Optional[str]) -> bool:
    return user_id is not None and str(user_id) == str(getattr(form, "creator_id", None))


def require_authenticated(user_id: Optional[str]) -> str:
    if not user_id:
        raise UnauthenticatedError("Authentication required")
    return str(user_id)


def authorize(action: Action, form: Any, user_id: Optional[str], *, preview: bool = False) -> None:
    """Raise when `user_id` may not perform `action` on `form`; return None otherwise."""
    form_id = getattr(form, "id", None)
    if action is Action.READ_DEFINITION:
        return

    if action is Action.SUBMIT:
        owner = is_owner(form, user_id)
        if preview:
            if not owner:
                logger.info("gate_denied action=preview form_id=%s user_id=%s", form_id, user_id)
                raise ForbiddenError("Only the form owner can preview submissions", code="preview_forbidden")
            return
        if state_of(form) is FormState.DRAFT:
            logger.info("gate_denied action=submit form_id=%s state=DRAFT user_id=%s", form_id, user_id)
            raise ForbiddenError("Form is not published", code="form_not_published")
        return

    if action in _OWNER_ONLY:
        require_authenticated(user_id)
        if not is_owner(form, user_id):
            logger.info("gate_denied action=%s form_id=%s user_id=%s", action.value, form_id, user_id)
            raise ForbiddenError("Only the form owner can perform this action")
        return

    raise ValueError(f"unhandled action: {action!r}")


__all__ = [
    "Action",
    "FormState",
    "authorize",
    "is_owner",
    "require_authenticated",
    "state_of",
    "toggled",
]

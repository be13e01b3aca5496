"""Bearer-token identity for request handlers.

Identity is optional at this layer: a request without an Authorization
header resolves to None so the public routes (definition read, anonymous
submission) keep working. A header that is present but does not verify is
always rejected with 401; it never degrades to anonymous.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from formbuilder.config import AuthConfig
from formbuilder.logic.errors import UnauthenticatedError

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None


def _auth_config(request: Request) -> AuthConfig:
    return request.app.state.config.auth


def decode_token(token: str, auth: AuthConfig) -> CurrentUser:
    try:
        payload = jwt.decode(
            token,
            auth.jwt_secret,
            algorithms=[auth.jwt_algorithm],
            audience=auth.jwt_audience,
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthenticatedError("Token has expired") from None
    except jwt.PyJWTError as exc:
        logger.info("token_rejected reason=%s", type(exc).__name__)
        raise UnauthenticatedError("Invalid token") from None
    subject = str(payload.get("sub") or "").strip()
    if not subject:
        raise UnauthenticatedError("Invalid token payload")
    return CurrentUser(id=subject, email=payload.get("email"), name=payload.get("name"))


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[CurrentUser]:
    if credentials is None:
        if request.headers.get("Authorization"):
            raise UnauthenticatedError("Unsupported authorization scheme")
        return None
    return decode_token(credentials.credentials, _auth_config(request))


def current_user_id(user: Optional[CurrentUser] = Depends(get_current_user)) -> Optional[str]:
    return user.id if user is not None else None


def issue_token(
    user_id: str,
    auth: AuthConfig,
    *,
    email: Optional[str] = None,
    name: Optional[str] = None,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """Mint a signed bearer token; used by local tooling and tests."""
    now = datetime.now(timezone.utc)
    claims = {"sub": user_id, "iat": now, "exp": now + expires_in}
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name
    if auth.jwt_audience:
        claims["aud"] = auth.jwt_audience
    return jwt.encode(claims, auth.jwt_secret, algorithm=auth.jwt_algorithm)


__all__ = ["CurrentUser", "bearer_scheme", "current_user_id", "decode_token", "get_current_user", "issue_token"]

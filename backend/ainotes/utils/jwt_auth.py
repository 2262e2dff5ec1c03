from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    """The signed-in owner as carried by the access token."""

    id: str
    name: str = ""
    email: str = ""


def _secret() -> str:
    s = os.getenv("JWT_SECRET", "")
    if not s:
        raise RuntimeError("JWT_SECRET is not set")
    return s


def _algo() -> str:
    return os.getenv("JWT_ALGORITHM", "HS256")


def _exp_minutes() -> int:
    try:
        return int(os.getenv("JWT_EXP_MINUTES", "60"))
    except ValueError:
        return 60


def _trust_user_header() -> bool:
    # off unless explicitly enabled; only for local demos and the test suite
    return os.getenv("AUTH_TRUST_USER_HEADER", "").strip().lower() in {"1", "true", "yes"}


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(user: CurrentUser) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(minutes=_exp_minutes())
    payload = {
        "sub": user.id,
        "name": user.name,
        "email": user.email,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, _secret(), algorithm=_algo())


def decode_token(token: str) -> CurrentUser:
    """Validate ``token`` and return the identity it carries.

    Raises JWTError for a bad signature, an expired token, or a missing subject.
    """
    claims = jwt.decode(token, _secret(), algorithms=[_algo()])
    sub = claims.get("sub")
    if not sub:
        raise JWTError("Token has no subject")
    return CurrentUser(id=str(sub), name=str(claims.get("name") or ""), email=str(claims.get("email") or ""))


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> CurrentUser:
    if creds is not None and creds.scheme.lower() == "bearer":
        try:
            return decode_token(creds.credentials)
        except JWTError:
            raise _unauthorized("Invalid or expired token")

    if x_user_id and _trust_user_header():
        return CurrentUser(id=x_user_id)

    raise _unauthorized("Missing credentials")

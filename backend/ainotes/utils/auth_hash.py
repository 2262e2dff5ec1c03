"""Password hashing for signup/login, via passlib.

bcrypt is preferred. If the bcrypt backend cannot be loaded we fall back to
pbkdf2_sha256 and warn once at import. ``BCRYPT_ROUNDS`` tunes the cost of
whichever scheme ends up active.
"""
from __future__ import annotations

import os
import warnings

from passlib.context import CryptContext


def _rounds() -> int | None:
    value = os.environ.get("BCRYPT_ROUNDS")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _build_context(rounds: int | None) -> CryptContext:
    try:
        kwargs = {"bcrypt__rounds": rounds} if rounds else {}
        ctx = CryptContext(schemes=["bcrypt"], deprecated="auto", **kwargs)
        ctx.hash("probe")
        return ctx
    except Exception as exc:
        warnings.warn(
            f"bcrypt backend unavailable, using pbkdf2_sha256 for password hashes ({exc})",
            RuntimeWarning,
        )
        kwargs = {"pbkdf2_sha256__rounds": rounds} if rounds else {}
        return CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto", **kwargs)


pwd_context = _build_context(_rounds())


def hash_password(plain: str) -> str:
    if plain is None:
        raise ValueError("Password must not be None")
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """Return True when ``plain`` matches the stored hash; never raises."""
    if plain is None or hashed is None:
        return False
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False

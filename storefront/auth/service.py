"""Register / login / check-status flows.

The password hasher and token issuer are passed in explicitly so callers (the
API, scripts, tests) decide which implementations and secrets are used.
"""

from __future__ import annotations

from typing import Any, Dict

import jwt

from storefront.errors import Conflict, Unauthenticated

from .crud import get_user_by_email, get_user_by_id, insert_user, public_user, touch_last_login
from .security import PasswordHasher, TokenIssuer


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def _with_token(user: Dict[str, Any], issuer: TokenIssuer) -> Dict[str, Any]:
    return {"user": user, "token": issuer.sign(user["id"])}


def register(
    conn: Any,
    *,
    email: str,
    password: str,
    full_name: str,
    hasher: PasswordHasher,
    issuer: TokenIssuer,
) -> Dict[str, Any]:
    if get_user_by_email(conn, email) is not None:
        raise Conflict(f"Key (email)=({email.strip().lower()}) already exists")

    user = insert_user(
        conn,
        email=email,
        password_hash=hasher.hash(password),
        full_name=full_name,
        roles=("user",),
    )
    _debug(f"Registered user id={user['id']} email={user['email']}")
    return _with_token(user, issuer)


def login(
    conn: Any,
    *,
    email: str,
    password: str,
    hasher: PasswordHasher,
    issuer: TokenIssuer,
) -> Dict[str, Any]:
    row = get_user_by_email(conn, email, include_password=True)
    if row is None:
        raise Unauthenticated("Credentials are not valid")
    if not hasher.verify(password, str(row["password_hash"])):
        raise Unauthenticated("Credentials are not valid")
    if not int(row["is_active"] or 0):
        raise Unauthenticated("User is inactive, talk with an admin")

    touch_last_login(conn, row["id"])
    return _with_token(public_user(row), issuer)


def check_status(user: Dict[str, Any], issuer: TokenIssuer) -> Dict[str, Any]:
    """Hand back the current user with a freshly issued token."""
    return _with_token(user, issuer)


def resolve_user(conn: Any, token: str, issuer: TokenIssuer) -> Dict[str, Any]:
    """Turn a bearer token into the active user it names."""
    try:
        payload = issuer.verify(token)
    except jwt.ExpiredSignatureError:
        raise Unauthenticated("token_expired")
    except jwt.InvalidTokenError:
        raise Unauthenticated("token_invalid")

    sub = payload.get("sub")
    if not sub:
        raise Unauthenticated("token_missing_sub")

    row = get_user_by_id(conn, str(sub))
    if row is None:
        raise Unauthenticated("Token not valid")
    if not int(row["is_active"] or 0):
        raise Unauthenticated("User is inactive, talk with an admin")
    return public_user(row)

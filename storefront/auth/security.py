from __future__ import annotations

from datetime import timedelta
from typing import Any, Dict

import jwt
from passlib.context import CryptContext

from storefront.util.time import utcnow


_JWT_ALG = "HS256"


class PasswordHasher:
    """One-way password hashing (passlib)."""

    def __init__(self, schemes: tuple[str, ...] = ("pbkdf2_sha256",)) -> None:
        self._ctx = CryptContext(schemes=list(schemes), deprecated="auto")

    def hash(self, password: str) -> str:
        if not password:
            raise ValueError("password_blank")
        return self._ctx.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        if not password or not password_hash:
            return False
        try:
            return self._ctx.verify(password, password_hash)
        except Exception:
            # Malformed / unknown hash formats count as a mismatch.
            return False


class TokenIssuer:
    """Signs and verifies access tokens carrying the user id in `sub`."""

    def __init__(self, *, secret: str, expires_minutes: int) -> None:
        if not secret:
            raise ValueError("jwt_secret_blank")
        self._secret = secret
        self._expires_minutes = max(1, int(expires_minutes))

    def sign(self, user_id: str) -> str:
        now = utcnow()
        exp = now + timedelta(minutes=self._expires_minutes)
        payload: Dict[str, Any] = {
            "sub": str(user_id),
            "iat": int(now.timestamp()),
            "exp": int(exp.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=_JWT_ALG)

    def verify(self, token: str) -> Dict[str, Any]:
        """Decode `token`. Raises jwt.InvalidTokenError (or a subclass) on failure."""
        if not token:
            raise jwt.InvalidTokenError("token_blank")
        return jwt.decode(token, self._secret, algorithms=[_JWT_ALG])

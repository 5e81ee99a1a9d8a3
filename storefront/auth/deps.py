from __future__ import annotations

from typing import Any, Callable, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.config import Config
from storefront.db import connect
from storefront.errors import StoreFailure, Unauthenticated

from .roles import authorize, roles_for
from .security import PasswordHasher, TokenIssuer
from .service import resolve_user


_bearer = HTTPBearer(auto_error=False)


def get_config(request: Request) -> Config:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise StoreFailure("server_config_missing")
    return cfg


def get_hasher(request: Request) -> PasswordHasher:
    return request.app.state.hasher


def get_issuer(request: Request) -> TokenIssuer:
    return request.app.state.issuer


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    cfg: Config = Depends(get_config),
    issuer: TokenIssuer = Depends(get_issuer),
) -> Dict[str, Any]:
    """Authenticate a request from its `Authorization: Bearer <jwt>` header."""
    token = credentials.credentials if credentials is not None else None
    if not token:
        raise Unauthenticated("missing_token")

    with connect(cfg.DB_DSN) as conn:
        return resolve_user(conn, token, issuer)


def require_roles(operation: str) -> Callable[..., Dict[str, Any]]:
    """Dependency that authenticates and then checks the roles declared for `operation`."""
    required = roles_for(operation)

    def _dependency(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
        authorize(required, user)
        return user

    _dependency.__name__ = f"require_roles_{operation.replace('.', '_')}"
    return _dependency

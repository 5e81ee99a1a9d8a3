"""Role-based authorization.

Every protected operation declares the roles it needs in `OPERATION_ROLES`.
An empty tuple means "any authenticated user". The check itself is the pure
function `authorize`.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from storefront.errors import Forbidden, Unauthenticated


ADMIN = "admin"
SUPER_USER = "super-user"
USER = "user"

VALID_ROLES = (ADMIN, SUPER_USER, USER)


OPERATION_ROLES: dict[str, tuple[str, ...]] = {
    "auth.check_status": (),
    "auth.private": (ADMIN, SUPER_USER),
    "products.create": (),
    "products.list": (),
    "products.get": (),
    "products.update": (),
    "products.delete": (),
    "files.upload": (),
}


def roles_for(operation: str) -> tuple[str, ...]:
    try:
        return OPERATION_ROLES[operation]
    except KeyError:
        raise KeyError(f"no roles declared for operation {operation!r}") from None


def authorize(required_roles: Optional[Sequence[str]], user: Optional[Mapping[str, Any]]) -> bool:
    """Decide whether `user` may run an operation that requires `required_roles`.

    Returns True when no roles are required or when the user holds at least one
    of them (exact, case-sensitive match). Raises Unauthenticated when roles are
    required but no user is attached, and Forbidden when there is no overlap.
    """
    if not required_roles:
        return True

    if user is None:
        raise Unauthenticated("User not found")

    held = set(user.get("roles") or ())
    if any(role in held for role in required_roles):
        return True

    name = user.get("full_name") or user.get("email") or "unknown"
    raise Forbidden(f"User {name} needs valid role [{', '.join(required_roles)}]")

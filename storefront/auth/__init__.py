"""Authentication / authorization helpers.

Auth is kept lightweight:

- Users table (email/password hash + a list of roles)
- JWT access tokens sent as `Authorization: Bearer <token>`
- Per-operation role requirements declared in `roles.OPERATION_ROLES`
"""

from .deps import get_current_user, require_roles
from .roles import authorize
from .crud import bootstrap_admin_if_needed, insert_user

__all__ = [
    "get_current_user",
    "require_roles",
    "authorize",
    "bootstrap_admin_if_needed",
    "insert_user",
]

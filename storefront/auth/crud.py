from __future__ import annotations

import json
import uuid
from typing import Any, Dict, Optional, Sequence

from storefront.config import Config
from storefront.db import connect, store_errors
from storefront.util.jsonfields import load_list, ordered_unique
from storefront.util.time import utcnow_iso

from .roles import VALID_ROLES
from .security import PasswordHasher


_USER_COLUMNS = "id, email, full_name, is_active, roles_json, created_at, updated_at, last_login_at"


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    d.pop("password_hash", None)
    d["roles"] = load_list(d.pop("roles_json", None))
    d["is_active"] = bool(d.get("is_active"))
    return d


def get_user_by_email(conn: Any, email: str, *, include_password: bool = False) -> Optional[Any]:
    """Look a user up by normalized email.

    The password hash is only selected when `include_password` is set.
    """
    e = normalize_email(email)
    if not e:
        return None
    cols = _USER_COLUMNS + (", password_hash" if include_password else "")
    return conn.execute(f"SELECT {cols} FROM users WHERE email=?", (e,)).fetchone()


def get_user_by_id(conn: Any, user_id: str) -> Optional[Any]:
    return conn.execute(
        f"SELECT {_USER_COLUMNS} FROM users WHERE id=?",
        (str(user_id),),
    ).fetchone()


def _role_list(roles: Sequence[str]) -> list[str]:
    role_list = ordered_unique(roles) or ["user"]
    bad = [r for r in role_list if r not in VALID_ROLES]
    if bad:
        raise ValueError(f"invalid_role: {', '.join(bad)}")
    return role_list


def insert_user(
    conn: Any,
    *,
    email: str,
    password_hash: str,
    full_name: str,
    roles: Sequence[str] = ("user",),
    is_active: bool = True,
) -> Dict[str, Any]:
    e = normalize_email(email)
    if not e:
        raise ValueError("email_blank")
    role_list = _role_list(roles)

    user_id = str(uuid.uuid4())
    now = utcnow_iso()
    with store_errors():
        conn.execute(
            """
            INSERT INTO users (id, email, password_hash, full_name, is_active, roles_json, created_at, updated_at)
            VALUES (?,?,?,?,?,?,?,?)
            """,
            (
                user_id,
                e,
                password_hash,
                (full_name or "").strip(),
                1 if is_active else 0,
                json.dumps(role_list),
                now,
                now,
            ),
        )
    row = get_user_by_id(conn, user_id)
    assert row is not None
    return public_user(row)


def update_user(
    conn: Any,
    user_id: str,
    *,
    email: str | None = None,
    full_name: str | None = None,
    roles: Sequence[str] | None = None,
    is_active: bool | None = None,
) -> None:
    # Build dynamic SQL so we only touch provided fields.
    fields: list[tuple[str, Any]] = []
    if email is not None:
        fields.append(("email", normalize_email(email)))
    if full_name is not None:
        fields.append(("full_name", full_name.strip()))
    if roles is not None:
        fields.append(("roles_json", json.dumps(_role_list(roles))))
    if is_active is not None:
        fields.append(("is_active", 1 if is_active else 0))
    if not fields:
        return

    fields.append(("updated_at", utcnow_iso()))
    sets = ", ".join([f"{k}=?" for k, _ in fields])
    params = [v for _, v in fields] + [str(user_id)]
    with store_errors():
        conn.execute(f"UPDATE users SET {sets} WHERE id=?", params)


def touch_last_login(conn: Any, user_id: str) -> None:
    now = utcnow_iso()
    conn.execute(
        "UPDATE users SET last_login_at=?, updated_at=? WHERE id=?",
        (now, now, str(user_id)),
    )


def bootstrap_admin_if_needed(cfg: Config, hasher: PasswordHasher | None = None) -> Optional[Dict[str, Any]]:
    """Create the first admin user if the users table is empty.

    Controlled via environment variables so a new clone has a deterministic way to log in.

    - AUTH_BOOTSTRAP_ADMIN_EMAIL (default: admin@example.com)
    - AUTH_BOOTSTRAP_ADMIN_PASSWORD (default: Admin123)

    This only runs when there are 0 rows in `users`.
    """

    if not cfg.AUTH_BOOTSTRAP_ENABLED:
        return None

    with connect(cfg.DB_DSN) as conn:
        n = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"]
        if int(n) > 0:
            return None

        email = normalize_email(cfg.AUTH_BOOTSTRAP_ADMIN_EMAIL)
        password = cfg.AUTH_BOOTSTRAP_ADMIN_PASSWORD
        # If env explicitly clears these, don't create anything.
        if not email or not password:
            return None

        hasher = hasher or PasswordHasher()
        return insert_user(
            conn,
            email=email,
            password_hash=hasher.hash(password),
            full_name=cfg.AUTH_BOOTSTRAP_ADMIN_FULL_NAME or "Administrator",
            roles=("admin", "user"),
        )

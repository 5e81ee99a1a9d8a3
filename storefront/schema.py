"""Database schema for the storefront backend.

SQLite is the default engine; Postgres is supported as well.

Timestamps are ISO-8601 TEXT (UTC, with 'Z') for portability across engines.
List-valued columns (roles, sizes, tags) are stored as JSON TEXT so the same
DDL works on both engines.

NOTE: The Postgres schema is generated from the SQLite schema with a small set of
transformations (types, autoincrement, and dropping pragmas and comments).
"""

from __future__ import annotations

import re


SCHEMA_SQLITE = r"""
PRAGMA foreign_keys = ON;

-- Users / Auth
-- Passwords are stored only as hashes, JWTs keep auth stateless.
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    full_name TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1,
    roles_json TEXT NOT NULL DEFAULT '["user"]',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_login_at TEXT
);

-- Catalog
CREATE TABLE IF NOT EXISTS products (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL UNIQUE,
    price REAL NOT NULL DEFAULT 0,
    description TEXT,
    slug TEXT NOT NULL UNIQUE,
    stock INTEGER NOT NULL DEFAULT 0,
    sizes_json TEXT NOT NULL DEFAULT '[]',
    gender TEXT NOT NULL,
    tags_json TEXT NOT NULL DEFAULT '[]',
    user_id TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id)
);
CREATE INDEX IF NOT EXISTS idx_products_user ON products (user_id);
CREATE INDEX IF NOT EXISTS idx_products_created ON products (created_at, id);

CREATE TABLE IF NOT EXISTS product_images (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    url TEXT NOT NULL,
    position INTEGER NOT NULL DEFAULT 0,
    product_id TEXT NOT NULL,
    FOREIGN KEY (product_id) REFERENCES products(id) ON DELETE CASCADE
);
CREATE INDEX IF NOT EXISTS idx_product_images_product ON product_images (product_id, position);
"""


def _sqlite_to_postgres(ddl: str) -> str:
    # Remove SQLite pragmas and comment lines
    lines: list[str] = []
    for line in ddl.splitlines():
        if line.strip().upper().startswith("PRAGMA ") or line.strip().startswith("--"):
            continue
        lines.append(line)
    out = "\n".join(lines)

    # Types
    out = re.sub(r"\bREAL\b", "DOUBLE PRECISION", out)

    # AUTOINCREMENT primary keys
    out = re.sub(
        r"INTEGER\s+PRIMARY\s+KEY\s+AUTOINCREMENT",
        "BIGSERIAL PRIMARY KEY",
        out,
        flags=re.IGNORECASE,
    )
    out = re.sub(r"\bAUTOINCREMENT\b", "", out, flags=re.IGNORECASE)

    return out


SCHEMA_POSTGRES = _sqlite_to_postgres(SCHEMA_SQLITE)


def get_schema_sql(dialect: str) -> str:
    d = (dialect or "").lower()
    if d.startswith("post"):
        return SCHEMA_POSTGRES
    return SCHEMA_SQLITE

from __future__ import annotations

import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from storefront.db import store_errors
from storefront.errors import Conflict, ValidationFailed
from storefront.util.jsonfields import dump_list, load_list, ordered_unique
from storefront.util.time import utcnow_iso

from .slug import derive_slug


GENDERS = ("men", "women", "kid", "unisex")

PRODUCT_FIELDS = ("title", "price", "description", "slug", "stock", "sizes", "gender", "tags")

_PRODUCT_COLUMNS = (
    "id, title, price, description, slug, stock, sizes_json, gender, tags_json, user_id, created_at, updated_at"
)


def is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return False
    return True


def _row_to_product(row: Any) -> Dict[str, Any]:
    d = dict(row)
    d["sizes"] = load_list(d.pop("sizes_json", None))
    d["tags"] = load_list(d.pop("tags_json", None))
    d["price"] = float(d.get("price") or 0)
    d["stock"] = int(d.get("stock") or 0)
    return d


def _number(key: str, value: Any, kind: type) -> Any:
    if isinstance(value, bool):
        raise ValidationFailed(f"{key} must be a number")
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{key} must be a number") from None


def _clean_fields(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate and coerce the product columns present in `fields`."""
    unknown = sorted(set(fields) - set(PRODUCT_FIELDS))
    if unknown:
        raise ValidationFailed(f"unknown product fields: {', '.join(unknown)}")

    out: Dict[str, Any] = {}
    for key, value in fields.items():
        if value is None:
            if key == "description":
                out[key] = None
                continue
            raise ValidationFailed(f"{key} must not be null")

        if key == "title":
            title = str(value).strip()
            if not title:
                raise ValidationFailed("title must not be empty")
            out[key] = title
        elif key == "price":
            price = _number(key, value, float)
            if price < 0:
                raise ValidationFailed("price must be a non-negative number")
            out[key] = price
        elif key == "stock":
            stock = _number(key, value, int)
            if stock < 0:
                raise ValidationFailed("stock must be a non-negative integer")
            out[key] = stock
        elif key in ("sizes", "tags"):
            if not isinstance(value, (list, tuple)):
                raise ValidationFailed(f"{key} must be a list of strings")
            out[key] = ordered_unique(value)
        elif key == "gender":
            if value not in GENDERS:
                raise ValidationFailed(f"gender must be one of {', '.join(GENDERS)}")
            out[key] = value
        else:
            out[key] = str(value)
    return out


def get_product_by_id(conn: Any, product_id: str) -> Optional[Dict[str, Any]]:
    row = conn.execute(
        f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id=?",
        (str(product_id),),
    ).fetchone()
    return _row_to_product(row) if row is not None else None


def find_product_by_title_or_slug(conn: Any, term: str) -> Optional[Dict[str, Any]]:
    """Case-insensitive match on title or slug."""
    row = conn.execute(
        f"""
        SELECT {_PRODUCT_COLUMNS} FROM products
        WHERE LOWER(title) = LOWER(?) OR LOWER(slug) = LOWER(?)
        ORDER BY created_at, id
        LIMIT 1
        """,
        (term, term),
    ).fetchone()
    return _row_to_product(row) if row is not None else None


def list_product_rows(conn: Any, *, limit: int, offset: int) -> List[Dict[str, Any]]:
    rows = conn.execute(
        f"SELECT {_PRODUCT_COLUMNS} FROM products ORDER BY created_at, id LIMIT ? OFFSET ?",
        (int(limit), int(offset)),
    ).fetchall()
    return [_row_to_product(r) for r in rows]


def get_image_urls(conn: Any, product_ids: Sequence[str]) -> Dict[str, List[str]]:
    """Image URLs per product id, in stored order."""
    out: Dict[str, List[str]] = {str(pid): [] for pid in product_ids}
    if not out:
        return out
    marks = ",".join("?" for _ in out)
    rows = conn.execute(
        f"SELECT product_id, url FROM product_images WHERE product_id IN ({marks}) ORDER BY position, id",
        tuple(out),
    ).fetchall()
    for r in rows:
        out[str(r["product_id"])].append(str(r["url"]))
    return out


def _ensure_unique(conn: Any, product: Mapping[str, Any], *, exclude_id: str | None = None) -> None:
    rows = conn.execute(
        "SELECT id, title, slug FROM products WHERE (title=? OR slug=?) AND id<>?",
        (product["title"], product["slug"], exclude_id or ""),
    ).fetchall()
    for r in rows:
        if r["title"] == product["title"]:
            raise Conflict(f"Key (title)=({product['title']}) already exists")
        raise Conflict(f"Key (slug)=({product['slug']}) already exists")


def insert_product(conn: Any, fields: Mapping[str, Any], *, user_id: str | None) -> Dict[str, Any]:
    data = _clean_fields(fields)
    for required in ("title", "sizes", "gender"):
        if required not in data:
            raise ValidationFailed(f"{required} is required")

    now = utcnow_iso()
    product: Dict[str, Any] = {
        "id": str(uuid.uuid4()),
        "title": data["title"],
        "price": data.get("price", 0.0),
        "description": data.get("description"),
        "slug": derive_slug(data["title"], data.get("slug")),
        "stock": data.get("stock", 0),
        "sizes": data["sizes"],
        "gender": data["gender"],
        "tags": data.get("tags", []),
        "user_id": user_id,
        "created_at": now,
        "updated_at": now,
    }
    with store_errors():
        conn.execute(
            """
            INSERT INTO products
                (id, title, price, description, slug, stock, sizes_json, gender, tags_json, user_id, created_at, updated_at)
            VALUES (?,?,?,?,?,?,?,?,?,?,?,?)
            """,
            (
                product["id"],
                product["title"],
                product["price"],
                product["description"],
                product["slug"],
                product["stock"],
                dump_list(product["sizes"]),
                product["gender"],
                dump_list(product["tags"]),
                product["user_id"],
                now,
                now,
            ),
        )
    return product


def merge_product(conn: Any, product_id: str, changes: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """Overlay `changes` on the stored product without writing anything.

    Returns None when no product has `product_id`. The slug is re-derived from
    the supplied slug, else the new title, else the stored slug. Raises
    Conflict when the merged title or slug already belongs to another product.
    """
    current = get_product_by_id(conn, product_id)
    if current is None:
        return None

    data = _clean_fields(changes)
    merged = dict(current)
    merged.update(data)

    if data.get("slug"):
        basis: str | None = data["slug"]
    elif data.get("title"):
        basis = None
    else:
        basis = current["slug"]
    merged["slug"] = derive_slug(merged["title"], basis)

    _ensure_unique(conn, merged, exclude_id=current["id"])
    return merged


def save_product(conn: Any, product: Mapping[str, Any]) -> None:
    with store_errors():
        conn.execute(
            """
            UPDATE products
            SET title=?, price=?, description=?, slug=?, stock=?, sizes_json=?, gender=?, tags_json=?,
                user_id=?, updated_at=?
            WHERE id=?
            """,
            (
                product["title"],
                float(product["price"]),
                product.get("description"),
                derive_slug(product["title"], product.get("slug")),
                int(product["stock"]),
                dump_list(product["sizes"]),
                product["gender"],
                dump_list(product["tags"]),
                product.get("user_id"),
                utcnow_iso(),
                product["id"],
            ),
        )


def delete_images_for_product(conn: Any, product_id: str) -> int:
    cur = conn.execute("DELETE FROM product_images WHERE product_id=?", (str(product_id),))
    return int(cur.rowcount or 0)


def stage_images(conn: Any, product_id: str, urls: Iterable[str]) -> int:
    """Insert image rows for `product_id`, keeping the order of `urls`."""
    rows = [(str(url), pos, str(product_id)) for pos, url in enumerate(urls)]
    if not rows:
        return 0
    conn.executemany(
        "INSERT INTO product_images (url, position, product_id) VALUES (?,?,?)",
        rows,
    )
    return len(rows)


def delete_product_row(conn: Any, product_id: str) -> int:
    # product_images rows go with it (ON DELETE CASCADE).
    cur = conn.execute("DELETE FROM products WHERE id=?", (str(product_id),))
    return int(cur.rowcount or 0)


def delete_all_product_rows(conn: Any) -> int:
    cur = conn.execute("DELETE FROM products")
    return int(cur.rowcount or 0)

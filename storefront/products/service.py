"""Product catalog operations.

Reads return "plain" products: image rows are flattened to their URLs and
the owning user is attached as a public user dict.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from storefront.auth.crud import public_user
from storefront.db import transaction
from storefront.errors import NotFound, ValidationFailed

from . import crud


DEFAULT_LIMIT = 10
DEFAULT_OFFSET = 0


def _debug(msg: str) -> None:
    print(f"[products] {msg}")


def _image_list(images: Any) -> List[str]:
    if isinstance(images, str) or not isinstance(images, (list, tuple)):
        raise ValidationFailed("images must be a list of strings")
    return [str(u) for u in images]


def _attach(conn: Any, products: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Add `images` (URLs) and `user` (public owner) to each product."""
    if not products:
        return products

    images = crud.get_image_urls(conn, [p["id"] for p in products])

    owner_ids = sorted({p["user_id"] for p in products if p.get("user_id")})
    owners: Dict[str, Dict[str, Any]] = {}
    if owner_ids:
        marks = ",".join("?" for _ in owner_ids)
        rows = conn.execute(
            f"SELECT id, email, full_name, is_active, roles_json FROM users WHERE id IN ({marks})",
            tuple(owner_ids),
        ).fetchall()
        owners = {str(r["id"]): public_user(r) for r in rows}

    out: List[Dict[str, Any]] = []
    for p in products:
        d = dict(p)
        d["images"] = images.get(p["id"], [])
        d["user"] = owners.get(str(d.pop("user_id", None) or ""))
        out.append(d)
    return out


def create_product(conn: Any, payload: Mapping[str, Any], user: Mapping[str, Any]) -> Dict[str, Any]:
    fields = dict(payload)
    images = _image_list(fields.pop("images", None) or [])

    with transaction(conn):
        product = crud.insert_product(conn, fields, user_id=user["id"])
        crud.stage_images(conn, product["id"], images)

    _debug(f"Created product id={product['id']} slug={product['slug']} images={len(images)}")
    return _attach(conn, [product])[0]


def list_products(
    conn: Any,
    *,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    default_limit: int = DEFAULT_LIMIT,
) -> List[Dict[str, Any]]:
    # NOTE: no upper bound on limit; callers can request arbitrarily large pages.
    lim = default_limit if limit is None else int(limit)
    off = DEFAULT_OFFSET if offset is None else int(offset)
    if lim < 1:
        raise ValidationFailed("limit must be a positive integer")
    if off < 0:
        raise ValidationFailed("offset must be zero or greater")
    return _attach(conn, crud.list_product_rows(conn, limit=lim, offset=off))


def find_product(conn: Any, term: str) -> Dict[str, Any]:
    """Look a product up by id (when `term` is a UUID) or by title/slug."""
    if crud.is_uuid(term):
        product = crud.get_product_by_id(conn, term)
    else:
        product = crud.find_product_by_title_or_slug(conn, term)
    if product is None:
        raise NotFound(f"Product with term {term} not found")
    return product


def get_product_plain(conn: Any, term: str) -> Dict[str, Any]:
    return _attach(conn, [find_product(conn, term)])[0]


def update_product(
    conn: Any,
    product_id: str,
    changes: Mapping[str, Any],
    user: Mapping[str, Any],
) -> Dict[str, Any]:
    """Apply a partial update and, when `images` is given, replace the image set.

    `images` absent (or None) leaves the stored images alone; a list, even an
    empty one, replaces them. Image replacement, re-attribution to `user` and
    the field update commit together or not at all.
    """
    fields = dict(changes)
    images = fields.pop("images", None)
    if images is not None:
        images = _image_list(images)

    product = crud.merge_product(conn, product_id, fields)
    if product is None:
        raise NotFound(f"Product with id {product_id} not found")

    with transaction(conn):
        if images is not None:
            crud.delete_images_for_product(conn, product_id)
            crud.stage_images(conn, product_id, images)

        product["user_id"] = user["id"]
        crud.save_product(conn, product)

    _debug(
        f"Updated product id={product_id} by user={user['id']}"
        + (f" images={len(images)}" if images is not None else "")
    )
    stored = crud.get_product_by_id(conn, product_id)
    if stored is None:
        raise NotFound(f"Product with id {product_id} not found")
    return _attach(conn, [stored])[0]


def delete_product(conn: Any, product_id: str) -> Dict[str, Any]:
    product = get_product_plain(conn, product_id)
    with transaction(conn):
        crud.delete_product_row(conn, product["id"])
    _debug(f"Deleted product id={product['id']}")
    return product


def delete_all_products(conn: Any) -> int:
    """Remove every product (and, by cascade, every image). Used when seeding."""
    with transaction(conn):
        n = crud.delete_all_product_rows(conn)
    _debug(f"Deleted {n} products")
    return n

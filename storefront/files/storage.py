from __future__ import annotations

import uuid
from pathlib import Path

from storefront.errors import NotFound, ValidationFailed


ALLOWED_EXTENSIONS = ("jpg", "jpeg", "png", "gif")


def _debug(msg: str) -> None:
    print(f"[files] {msg}")


def file_extension(filename: str) -> str:
    name = (filename or "").strip()
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def is_allowed_image(filename: str, content_type: str | None = None) -> bool:
    """Accept jpg/jpeg/png/gif uploads.

    When the client sends a content type it must be an image/* type as well.
    """
    if file_extension(filename) not in ALLOWED_EXTENSIONS:
        return False
    if content_type and not content_type.lower().startswith("image/"):
        return False
    return True


def store_product_image(directory: str, filename: str, data: bytes) -> str:
    """Write an uploaded image under a fresh `<uuid>.<ext>` name and return that name."""
    if not is_allowed_image(filename):
        raise ValidationFailed("Make sure that the file is an image")

    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    name = f"{uuid.uuid4()}.{file_extension(filename)}"
    (target_dir / name).write_bytes(data)
    _debug(f"Stored product image {name} ({len(data)} bytes)")
    return name


def product_image_path(directory: str, name: str) -> Path:
    # Stored names never contain separators; anything else is a traversal attempt.
    if not name or "/" in name or "\\" in name or name in (".", ".."):
        raise NotFound(f"No product found with image {name}")
    path = Path(directory) / name
    if not path.is_file():
        raise NotFound(f"No product found with image {name}")
    return path


def secure_url(host_api: str, name: str) -> str:
    return f"{host_api.rstrip('/')}/files/product/{name}"

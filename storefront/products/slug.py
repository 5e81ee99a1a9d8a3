from __future__ import annotations

from typing import Optional


def derive_slug(title: str, slug: Optional[str] = None) -> str:
    """Normalize a product slug.

    Uses `slug` when given, otherwise `title`. The result is lowercased, spaces
    become underscores and apostrophes are dropped, so applying it twice gives
    the same value as applying it once.
    """
    basis = slug if slug else (title or "")
    return basis.lower().replace(" ", "_").replace("'", "")

"""Product catalog: store functions (`crud`), slug rules and the service layer."""

from .service import (
    create_product,
    delete_all_products,
    delete_product,
    find_product,
    get_product_plain,
    list_products,
    update_product,
)
from .slug import derive_slug

__all__ = [
    "create_product",
    "delete_all_products",
    "delete_product",
    "find_product",
    "get_product_plain",
    "list_products",
    "update_product",
    "derive_slug",
]

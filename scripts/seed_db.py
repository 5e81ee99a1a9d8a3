"""Reset the catalog to a small set of demo products.

Usage:
  python scripts/seed_db.py [--owner-email admin@example.com]

All existing products (and their images) are deleted first.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from storefront.auth.crud import bootstrap_admin_if_needed, get_user_by_email
from storefront.config import load_config
from storefront.db import connect, init_db
from storefront.products import create_product, delete_all_products


SEED_PRODUCTS = [
    {
        "title": "Men's Chill Crew Neck Sweatshirt",
        "price": 75,
        "description": "Introducing the Tesla Chill Collection. Relaxed fit, soft fleece.",
        "stock": 7,
        "sizes": ["XS", "S", "M", "L", "XL", "XXL"],
        "gender": "men",
        "tags": ["sweatshirt"],
        "images": ["1740176-00-A_0_2000.jpg", "1740176-00-A_1.jpg"],
    },
    {
        "title": "Men's Quilted Shirt Jacket",
        "price": 200,
        "description": "Water-resistant quilted shell with a premium feel.",
        "stock": 5,
        "sizes": ["XS", "S", "M", "XL", "XXL"],
        "gender": "men",
        "tags": ["jacket"],
        "images": ["1740507-00-A_0_2000.jpg", "1740507-00-A_1.jpg"],
    },
    {
        "title": "Women's Cropped Puffer Jacket",
        "price": 225,
        "description": "Cropped puffer with a two-way zipper.",
        "stock": 85,
        "sizes": ["XS", "S", "M"],
        "gender": "women",
        "tags": ["hoodie"],
        "images": ["1740535-00-A_0_2000.jpg", "1740535-00-A_1.jpg"],
    },
    {
        "title": "Kids Cybertruck Hoodie",
        "price": 30,
        "description": "Soft fleece hoodie for kids.",
        "stock": 10,
        "sizes": ["XS", "S", "M"],
        "gender": "kid",
        "tags": ["hoodie"],
        "images": ["1742702-00-A_0_2000.jpg"],
    },
]


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--owner-email", default=None)
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)
    bootstrap_admin_if_needed(cfg)

    owner_email = args.owner_email or cfg.AUTH_BOOTSTRAP_ADMIN_EMAIL
    with connect(cfg.DB_DSN) as conn:
        owner = get_user_by_email(conn, owner_email)
        if owner is None:
            raise SystemExit(f"No user with email {owner_email}; create one first")

        removed = delete_all_products(conn)
        for payload in SEED_PRODUCTS:
            create_product(conn, payload, {"id": owner["id"]})

    print(f"Seeded {len(SEED_PRODUCTS)} products (removed {removed})")


if __name__ == "__main__":
    main()

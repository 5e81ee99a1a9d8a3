"""Storefront backend.

- Users register / log in and receive JWT access tokens.
- Protected operations declare the roles they require (`auth.roles`).
- Products carry an ordered list of image URLs; updates that replace the
  images run in a single transaction.

See README for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"

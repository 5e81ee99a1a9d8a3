"""Domain errors.

Service and store functions raise these; the API layer turns them into HTTP
responses (see `storefront.api.server`). Each error carries a short,
user-facing `detail` string.
"""

from __future__ import annotations


class StorefrontError(Exception):
    status_code = 500

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail


class NotFound(StorefrontError):
    status_code = 404


class Conflict(StorefrontError):
    # Uniqueness violations were always answered with Bad Request.
    status_code = 400


class ValidationFailed(StorefrontError):
    status_code = 400


class Unauthenticated(StorefrontError):
    status_code = 401


class Forbidden(StorefrontError):
    status_code = 403


class StoreFailure(StorefrontError):
    status_code = 500

    def __init__(self, detail: str = "Unexpected error, check server logs") -> None:
        super().__init__(detail)

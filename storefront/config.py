import os
from dataclasses import dataclass
from typing import Optional

# Optional: load a local .env file if present.
try:
    from dotenv import load_dotenv

    load_dotenv()
except Exception:
    # If python-dotenv isn't installed or .env isn't present, that's fine.
    pass


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    IMPORTANT: Provide secrets via environment variables or a .env file.
    Do not hardcode secrets in source code.
    """

    # -----------------
    # Core
    # -----------------
    # Preferred: set STOREFRONT_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: STOREFRONT_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("STOREFRONT_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("STOREFRONT_DB_PATH", "./storefront.sqlite")
    )

    # Public base URL of this API; used to build image URLs after upload.
    HOST_API: str = os.environ.get("HOST_API", "http://localhost:8000")

    # Where uploaded product images are stored on disk.
    PRODUCT_IMAGES_DIR: str = os.environ.get("PRODUCT_IMAGES_DIR", "./static/products")

    # Pagination default when the caller omits ?limit=
    PRODUCTS_DEFAULT_LIMIT: int = int(os.environ.get("PRODUCTS_DEFAULT_LIMIT", "10"))

    # -----------------
    # Auth (JWT)
    # -----------------
    # NOTE: In dev, this defaults to a fixed string so you can get started.
    # In production, you MUST set AUTH_JWT_SECRET to a strong random value.
    AUTH_JWT_SECRET: str = (
        os.environ.get("AUTH_JWT_SECRET")
        or os.environ.get("JWT_SECRET")
        or "dev_change_me"
    )
    AUTH_TOKEN_EXPIRE_MINUTES: int = int(os.environ.get("AUTH_TOKEN_EXPIRE_MINUTES", "120"))  # 2 hours

    # Bootstrap first admin user if users table is empty
    AUTH_BOOTSTRAP_ADMIN_EMAIL: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_EMAIL", "admin@example.com")
    AUTH_BOOTSTRAP_ADMIN_PASSWORD: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_PASSWORD", "Admin123")
    AUTH_BOOTSTRAP_ADMIN_FULL_NAME: str = os.environ.get("AUTH_BOOTSTRAP_ADMIN_FULL_NAME", "Administrator")
    AUTH_BOOTSTRAP_ENABLED: bool = _env_bool("AUTH_BOOTSTRAP_ENABLED", True) is True

    # -----------------
    # CORS (development)
    # -----------------
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000",
    )


def load_config() -> Config:
    return Config()

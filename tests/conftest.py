"""Shared fixtures: a throwaway SQLite database, auth collaborators and an API client."""

from typing import Any, Callable, Dict, Iterator

import pytest
from fastapi.testclient import TestClient

from storefront.auth.crud import insert_user
from storefront.auth.security import PasswordHasher, TokenIssuer
from storefront.config import Config
from storefront.db import connect, init_db


TEST_SECRET = "test-secret"
DEFAULT_PASSWORD = "Secret123"


@pytest.fixture
def cfg(tmp_path) -> Config:
    return Config(
        DB_DSN=str(tmp_path / "storefront.sqlite"),
        HOST_API="http://testserver",
        PRODUCT_IMAGES_DIR=str(tmp_path / "images"),
        AUTH_JWT_SECRET=TEST_SECRET,
        AUTH_TOKEN_EXPIRE_MINUTES=60,
        AUTH_BOOTSTRAP_ENABLED=False,
        CORS_ALLOW_ORIGINS="",
    )


@pytest.fixture
def db_dsn(cfg) -> str:
    init_db(cfg.DB_DSN)
    return cfg.DB_DSN


@pytest.fixture
def conn(db_dsn) -> Iterator[Any]:
    with connect(db_dsn) as c:
        yield c


@pytest.fixture(scope="session")
def hasher() -> PasswordHasher:
    return PasswordHasher()


@pytest.fixture
def issuer() -> TokenIssuer:
    return TokenIssuer(secret=TEST_SECRET, expires_minutes=60)


@pytest.fixture
def make_user(db_dsn, hasher) -> Callable[..., Dict[str, Any]]:
    """Insert a user through its own committed connection."""

    def _make(
        email: str = "alice@example.com",
        *,
        password: str = DEFAULT_PASSWORD,
        full_name: str = "Alice Doe",
        roles=("user",),
        is_active: bool = True,
    ) -> Dict[str, Any]:
        with connect(db_dsn) as c:
            return insert_user(
                c,
                email=email,
                password_hash=hasher.hash(password),
                full_name=full_name,
                roles=roles,
                is_active=is_active,
            )

    return _make


@pytest.fixture
def client(cfg) -> Iterator[TestClient]:
    from storefront.api.server import create_app

    with TestClient(create_app(cfg)) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client, make_user) -> Callable[..., Dict[str, str]]:
    """Create a user, log in through the API and return bearer headers."""

    def _headers(email: str = "alice@example.com", **kwargs: Any) -> Dict[str, str]:
        make_user(email, **kwargs)
        response = client.post("/auth/login", json={"email": email, "password": DEFAULT_PASSWORD})
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _headers


def _shoe_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "title": "Old Shoe",
        "price": 49.5,
        "description": "A comfortable shoe",
        "stock": 3,
        "sizes": ["M", "L"],
        "gender": "unisex",
        "tags": ["shoe"],
        "images": ["a.jpg"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def shoe_payload() -> Callable[..., Dict[str, Any]]:
    """Factory for a valid product payload; keyword overrides replace fields."""
    return _shoe_payload

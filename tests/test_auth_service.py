"""Tests for the credential store and the register / login / token flows."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from storefront.auth import service as auth_service
from storefront.auth.crud import (
    bootstrap_admin_if_needed,
    get_user_by_email,
    get_user_by_id,
    normalize_email,
    update_user,
)
from storefront.auth.security import PasswordHasher, TokenIssuer
from storefront.db import connect
from storefront.errors import Conflict, Unauthenticated

from conftest import DEFAULT_PASSWORD, TEST_SECRET


class TestCredentialStore:
    def test_normalize_email(self):
        assert normalize_email("  Alice@Example.COM ") == "alice@example.com"

    def test_insert_normalizes_email_and_hides_hash(self, make_user):
        user = make_user("  Bob@Example.com ")
        assert user["email"] == "bob@example.com"
        assert user["roles"] == ["user"]
        assert user["is_active"] is True
        assert "password_hash" not in user

    def test_password_hash_only_selected_on_request(self, conn, make_user):
        make_user("carol@example.com")
        assert "password_hash" not in dict(get_user_by_email(conn, "carol@example.com"))
        row = get_user_by_email(conn, "CAROL@example.com", include_password=True)
        assert row["password_hash"].startswith("$pbkdf2-sha256$")

    def test_duplicate_email_is_conflict(self, make_user):
        make_user("dave@example.com")
        with pytest.raises(Conflict):
            make_user("DAVE@example.com")

    def test_invalid_role_rejected(self, make_user):
        with pytest.raises(ValueError):
            make_user("erin@example.com", roles=("owner",))

    def test_update_user_rejects_invalid_role(self, conn, make_user):
        user = make_user("fay@example.com")
        with pytest.raises(ValueError):
            update_user(conn, user["id"], roles=["owner"])
        assert get_user_by_id(conn, user["id"])["roles_json"] == '["user"]'

    def test_update_user_normalizes_and_changes_roles(self, conn, make_user):
        user = make_user("frank@example.com")
        update_user(conn, user["id"], email=" FRANK2@Example.com", roles=["admin", "user"], is_active=False)
        row = dict(get_user_by_id(conn, user["id"]))
        assert row["email"] == "frank2@example.com"
        assert row["roles_json"] == '["admin", "user"]'
        assert row["is_active"] == 0


class TestPasswordHasher:
    def test_hash_and_verify(self):
        hasher = PasswordHasher()
        h = hasher.hash("Secret123")
        assert h != "Secret123"
        assert hasher.verify("Secret123", h)
        assert not hasher.verify("secret123", h)

    def test_garbage_hash_does_not_verify(self):
        assert PasswordHasher().verify("Secret123", "not-a-hash") is False

    def test_blank_password_cannot_be_hashed(self):
        with pytest.raises(ValueError):
            PasswordHasher().hash("")


class TestTokenIssuer:
    def test_sign_and_verify_round_trip(self, issuer):
        payload = issuer.verify(issuer.sign("user-1"))
        assert payload["sub"] == "user-1"
        assert payload["exp"] > payload["iat"]

    def test_wrong_secret_fails(self, issuer):
        token = TokenIssuer(secret="other", expires_minutes=5).sign("user-1")
        with pytest.raises(jwt.InvalidTokenError):
            issuer.verify(token)

    def test_blank_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenIssuer(secret="", expires_minutes=5)


class TestFlows:
    def test_register_returns_user_and_token(self, conn, hasher, issuer):
        result = auth_service.register(
            conn,
            email="New@Example.com",
            password="Secret123",
            full_name="New User",
            hasher=hasher,
            issuer=issuer,
        )
        assert result["user"]["email"] == "new@example.com"
        assert result["user"]["roles"] == ["user"]
        assert issuer.verify(result["token"])["sub"] == result["user"]["id"]

    def test_register_duplicate_is_conflict(self, conn, make_user, hasher, issuer):
        make_user("taken@example.com")
        with pytest.raises(Conflict):
            auth_service.register(
                conn, email="Taken@example.com", password="Secret123", full_name="X", hasher=hasher, issuer=issuer
            )

    def test_login_success_touches_last_login(self, conn, make_user, hasher, issuer):
        user = make_user("gina@example.com")
        result = auth_service.login(
            conn, email="GINA@example.com", password=DEFAULT_PASSWORD, hasher=hasher, issuer=issuer
        )
        assert result["user"]["id"] == user["id"]
        assert "password_hash" not in result["user"]
        assert get_user_by_id(conn, user["id"])["last_login_at"] is not None

    @pytest.mark.parametrize("email, password", [("gina@example.com", "Wrong123"), ("nobody@example.com", "Secret123")])
    def test_login_bad_credentials(self, conn, make_user, hasher, issuer, email, password):
        make_user("gina@example.com")
        with pytest.raises(Unauthenticated) as exc_info:
            auth_service.login(conn, email=email, password=password, hasher=hasher, issuer=issuer)
        assert exc_info.value.detail == "Credentials are not valid"

    def test_login_inactive_user(self, conn, make_user, hasher, issuer):
        make_user("ivan@example.com", is_active=False)
        with pytest.raises(Unauthenticated) as exc_info:
            auth_service.login(conn, email="ivan@example.com", password=DEFAULT_PASSWORD, hasher=hasher, issuer=issuer)
        assert "inactive" in exc_info.value.detail

    def test_check_status_issues_fresh_token(self, make_user, issuer):
        user = make_user("jo@example.com")
        result = auth_service.check_status(user, issuer)
        assert result["user"] is user
        assert issuer.verify(result["token"])["sub"] == user["id"]

    def test_resolve_user(self, conn, make_user, issuer):
        user = make_user("kim@example.com")
        assert auth_service.resolve_user(conn, issuer.sign(user["id"]), issuer)["id"] == user["id"]

    def test_resolve_user_rejects_bad_tokens(self, conn, make_user, issuer):
        user = make_user("lee@example.com")
        expired = jwt.encode(
            {"sub": user["id"], "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
            TEST_SECRET,
            algorithm="HS256",
        )
        no_sub = jwt.encode({"exp": datetime.now(timezone.utc) + timedelta(minutes=1)}, TEST_SECRET, algorithm="HS256")

        cases = {
            expired: "token_expired",
            "garbage": "token_invalid",
            no_sub: "token_missing_sub",
            issuer.sign("unknown-id"): "Token not valid",
        }
        for token, detail in cases.items():
            with pytest.raises(Unauthenticated) as exc_info:
                auth_service.resolve_user(conn, token, issuer)
            assert exc_info.value.detail == detail

    def test_resolve_user_rejects_inactive(self, conn, make_user, issuer):
        user = make_user("max@example.com", is_active=False)
        with pytest.raises(Unauthenticated):
            auth_service.resolve_user(conn, issuer.sign(user["id"]), issuer)


class TestBootstrapAdmin:
    def test_creates_admin_only_when_empty(self, cfg, db_dsn, make_user):
        from dataclasses import replace

        enabled = replace(cfg, AUTH_BOOTSTRAP_ENABLED=True, AUTH_BOOTSTRAP_ADMIN_EMAIL="Root@Example.com")
        admin = bootstrap_admin_if_needed(enabled)
        assert admin["email"] == "root@example.com"
        assert admin["roles"] == ["admin", "user"]

        assert bootstrap_admin_if_needed(enabled) is None
        with connect(db_dsn) as conn:
            assert conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()["n"] == 1

    def test_disabled(self, cfg, db_dsn):
        assert bootstrap_admin_if_needed(cfg) is None

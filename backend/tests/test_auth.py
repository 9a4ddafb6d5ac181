"""
Account and session flow tests.

Verifies:
- registration validation, duplicate email, welcome + verification emails
- non-specific login failures; deactivated accounts are refused
- refresh, logout revocation, change-password revocation
- forgot/reset password flow and email verification
- shared auth rate limit
"""

import re

import pytest

from storefront.extensions import db
from storefront.models import User
from storefront.models.users import LIFECYCLE_DEACTIVATED
from storefront.services import auth_service, token_service

from conftest import auth_headers, make_user


def _link_token(body: str) -> str:
    match = re.search(r"\?token=(\S+)", body)
    assert match, body
    return match.group(1)


def _register(client, **overrides):
    payload = {"name": "Amy Pond", "email": "  Amy@Example.COM ", "password": "abc123"}
    payload.update(overrides)
    return client.post("/api/auth/register", json=payload)


class TestRegister:
    def test_register_returns_user_and_tokens(self, client, db_session, mailbox):
        resp = _register(client)

        assert resp.status_code == 201
        body = resp.json
        assert body["success"] is True
        assert body["data"]["user"]["email"] == "amy@example.com"
        assert body["data"]["user"]["role"] == "user"
        assert "password_hash" not in body["data"]["user"]
        assert body["data"]["access_token"]
        assert body["data"]["refresh_token"]

        subjects = sorted(m.subject for m in mailbox.sent)
        assert any(s.startswith("Welcome to") for s in subjects)
        assert any(s.startswith("Verify your email") for s in subjects)

    def test_duplicate_email_is_rejected(self, client, db_session):
        assert _register(client).status_code == 201
        resp = _register(client, email="amy@example.com")
        assert resp.status_code == 400
        assert resp.json["message"] == "User already exists with this email"

    @pytest.mark.parametrize(
        "overrides,field",
        [
            ({"name": "A"}, "name"),
            ({"name": "R2D2"}, "name"),
            ({"email": "not-an-email"}, "email"),
            ({"password": "abcdef"}, "password"),
            ({"password": "a1"}, "password"),
            ({"phone": "call me"}, "phone"),
        ],
    )
    def test_field_errors(self, client, db_session, overrides, field):
        resp = _register(client, **overrides)
        assert resp.status_code == 400
        assert field in {e["field"] for e in resp.json["errors"]}

    def test_registration_survives_mail_outage(self, client, app, db_session, mailbox):
        dispatcher = app.extensions["email_dispatcher"]
        dispatcher.primary.fail_with = RuntimeError("smtp down")
        dispatcher.fallback.fail_with = RuntimeError("backup down")

        resp = _register(client)

        assert resp.status_code == 201
        assert db.session.query(User).filter_by(email="amy@example.com").count() == 1


class TestLogin:
    def test_login_success(self, client, customer):
        resp = client.post("/api/auth/login", json={"email": "customer@example.com", "password": "secret123"})
        assert resp.status_code == 200
        assert resp.json["data"]["user"]["id"] == customer.id
        db.session.refresh(customer)
        assert customer.last_login_at is not None

    @pytest.mark.parametrize("email,password", [
        ("customer@example.com", "wrong-pass1"),
        ("nobody@example.com", "secret123"),
    ])
    def test_login_failure_is_non_specific(self, client, customer, email, password):
        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 401
        assert resp.json["message"] == "Invalid email or password"

    def test_deactivated_account_cannot_login(self, client, db_session):
        make_user(email="gone@example.com", lifecycle_state=LIFECYCLE_DEACTIVATED)
        resp = client.post("/api/auth/login", json={"email": "gone@example.com", "password": "secret123"})
        assert resp.status_code == 401

    def test_deactivated_account_token_rejected(self, client, db_session, customer, customer_headers):
        auth_service.set_active(customer, False)
        assert client.get("/api/auth/me", headers=customer_headers).status_code == 401


class TestSessions:
    def test_refresh_issues_new_access_token(self, client, customer):
        refresh = token_service.issue_refresh_token(customer)
        resp = client.post("/api/auth/refresh", json={"refresh_token": refresh})
        assert resp.status_code == 200
        claims = token_service.verify(resp.json["data"]["access_token"])
        assert claims["purpose"] == "access"

    def test_logout_revokes_access_and_refresh(self, client, customer, customer_headers):
        refresh = token_service.issue_refresh_token(customer)

        assert client.post("/api/auth/logout", headers=customer_headers).status_code == 200

        assert client.get("/api/auth/me", headers=customer_headers).status_code == 401
        resp = client.post("/api/auth/refresh", json={"refresh_token": refresh})
        assert resp.status_code == 401

    def test_me_requires_token(self, client, db_session):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json["success"] is False

    def test_profile_update_only_touches_name_and_phone(self, client, customer, customer_headers):
        resp = client.put("/api/auth/profile", headers=customer_headers, json={
            "name": "Jane Q Customer",
            "phone": "+1 (555) 123-4567",
            "role": "admin",
        })
        assert resp.status_code == 200
        user = resp.json["data"]["user"]
        assert user["name"] == "Jane Q Customer"
        assert user["phone"] == "+1 (555) 123-4567"
        assert user["role"] == "user"

    def test_change_password_requires_current_password(self, client, customer, customer_headers):
        resp = client.put("/api/auth/change-password", headers=customer_headers, json={
            "current_password": "nope1234",
            "new_password": "brandnew9",
        })
        assert resp.status_code == 400

    def test_change_password_revokes_old_tokens(self, client, customer, customer_headers):
        resp = client.put("/api/auth/change-password", headers=customer_headers, json={
            "current_password": "secret123",
            "new_password": "brandnew9",
        })
        assert resp.status_code == 200
        new_headers = auth_headers(resp.json["data"]["access_token"])

        assert client.get("/api/auth/me", headers=customer_headers).status_code == 401
        assert client.get("/api/auth/me", headers=new_headers).status_code == 200
        login = client.post("/api/auth/login", json={"email": customer.email, "password": "brandnew9"})
        assert login.status_code == 200


class TestPasswordReset:
    GENERIC = "If an account with that email exists, a password reset link has been sent."

    def test_unknown_email_gets_generic_answer(self, client, db_session, mailbox):
        resp = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
        assert resp.status_code == 200
        assert resp.json["message"] == self.GENERIC
        assert mailbox.sent == []

    def test_full_reset_flow(self, client, customer, mailbox):
        resp = client.post("/api/auth/forgot-password", json={"email": customer.email})
        assert resp.status_code == 200
        assert resp.json["message"] == self.GENERIC

        db.session.refresh(customer)
        assert customer.password_reset_token_hash is not None
        assert customer.password_reset_expires_at is not None
        assert len(mailbox.sent) == 1

        token = _link_token(mailbox.sent[0].body)
        resp = client.post("/api/auth/reset-password", json={"token": token, "password": "fresh1234"})
        assert resp.status_code == 200

        db.session.refresh(customer)
        assert customer.password_reset_token_hash is None
        assert customer.password_reset_expires_at is None
        assert customer.token_version == 1

        reuse = client.post("/api/auth/reset-password", json={"token": token, "password": "again1234"})
        assert reuse.status_code == 400

        login = client.post("/api/auth/login", json={"email": customer.email, "password": "fresh1234"})
        assert login.status_code == 200

    def test_reset_rejects_access_token(self, client, customer):
        resp = client.post("/api/auth/reset-password", json={
            "token": token_service.issue_access_token(customer),
            "password": "fresh1234",
        })
        assert resp.status_code == 401


class TestEmailVerification:
    def test_verify_email(self, client, customer):
        token = token_service.issue_verification_token(customer)
        resp = client.post("/api/auth/verify-email", json={"token": token})
        assert resp.status_code == 200
        assert resp.json["data"]["user"]["email_verified"] is True

    def test_link_from_registration_email(self, client, db_session, mailbox):
        _register(client)
        body = next(m.body for m in mailbox.sent if m.subject.startswith("Verify your email"))
        resp = client.post("/api/auth/verify-email", json={"token": _link_token(body)})
        assert resp.status_code == 200


class TestAuthRateLimit:
    def test_sixth_attempt_is_rate_limited(self, client, customer):
        payload = {"email": "customer@example.com", "password": "wrong-pass1"}
        for _ in range(5):
            assert client.post("/api/auth/login", json=payload).status_code == 401

        resp = client.post("/api/auth/login", json=payload)
        assert resp.status_code == 429
        assert resp.json["message"].startswith("Too many authentication attempts")
        assert resp.json["retry_after_minutes"] == 15
        assert "Retry-After" in resp.headers

    def test_limit_is_shared_across_auth_endpoints(self, client, customer):
        for _ in range(5):
            client.post("/api/auth/forgot-password", json={"email": "customer@example.com"})
        resp = client.post("/api/auth/login", json={"email": "customer@example.com", "password": "secret123"})
        assert resp.status_code == 429

    def test_different_email_has_its_own_window(self, client, customer):
        for _ in range(5):
            client.post("/api/auth/login", json={"email": "a@example.com", "password": "x1"})
        resp = client.post("/api/auth/login", json={"email": "customer@example.com", "password": "secret123"})
        assert resp.status_code == 200

# Overview: Pytest coverage for registration, login and the profile endpoint.

"""
Authentication Tests

- registration hashes the password and returns a usable token
- duplicate emails are rejected, case-insensitively
- unknown email and wrong password are indistinguishable
- /api/profile requires a token and never returns the password hash
"""

import bcrypt
import pytest

from bizdash.models import User
from bizdash.services import auth_service, token_service
from bizdash.services.auth_service import AuthFailure
from bizdash.validation import DuplicateEmail, ValidationError

from conftest import auth_headers


class TestRegister:
    """POST /api/register"""

    def test_register_returns_token_for_new_user(self, client, db_session):
        resp = client.post("/api/register", json={
            "name": "Carol", "email": "Carol@Example.com", "password": "pw123456",
        })
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["message"] == "User registered successfully"
        assert body["user"]["email"] == "carol@example.com"
        assert body["user"]["name"] == "Carol"

        identity = token_service.verify(body["token"])
        assert identity.user_id == body["user"]["id"]
        assert identity.email == "carol@example.com"

    def test_password_is_stored_hashed(self, client, db_session):
        client.post("/api/register", json={
            "name": "Carol", "email": "carol@example.com", "password": "pw123456",
        })
        user = db_session.query(User).filter_by(email="carol@example.com").one()
        assert user.password_hash != "pw123456"
        assert user.password_hash.startswith("$2")

    def test_duplicate_email_rejected(self, client, user_a):
        resp = client.post("/api/register", json={
            "name": "Impostor", "email": user_a.email.upper(), "password": "whatever1",
        })
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Email already exists"

    @pytest.mark.parametrize("missing", ["name", "email", "password"])
    def test_missing_field_rejected(self, client, db_session, missing):
        payload = {"name": "Dan", "email": "dan@example.com", "password": "pw123456"}
        payload[missing] = ""
        resp = client.post("/api/register", json=payload)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "All fields are required"

    def test_service_raises_duplicate(self, db_session, user_a):
        with pytest.raises(DuplicateEmail):
            auth_service.register("Again", user_a.email, "pw123456")

    def test_service_accepts_explicit_session(self, db_session):
        user = auth_service.register("Fay", "fay@example.com", "pw123456", session=db_session)
        assert auth_service.get_user(user.id, session=db_session).email == "fay@example.com"
        assert auth_service.verify_credentials("fay@example.com", "pw123456", session=db_session).id == user.id

    def test_service_rejects_blank_password(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.register("Eve", "eve@example.com", "   ")


class TestLogin:
    """POST /api/login"""

    def test_login_success(self, client, user_a):
        resp = client.post("/api/login", json={"email": user_a.email, "password": user_a.password})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["message"] == "Login successful"
        assert body["user"]["id"] == user_a.id
        assert token_service.verify(body["token"]).user_id == user_a.id

    def test_login_is_case_insensitive_on_email(self, client, user_a):
        resp = client.post("/api/login", json={"email": "  ALICE@acme.test ", "password": user_a.password})
        assert resp.status_code == 200

    def test_wrong_password_and_unknown_email_look_the_same(self, client, user_a):
        wrong = client.post("/api/login", json={"email": user_a.email, "password": "nope-nope"})
        unknown = client.post("/api/login", json={"email": "ghost@nowhere.test", "password": "nope-nope"})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json() == unknown.get_json() == {"error": "Invalid credentials"}

    @pytest.mark.parametrize("payload", [
        {"email": "alice@acme.test", "password": 12345},
        {"email": ["alice@acme.test"], "password": "secret123"},
        {"email": "alice@acme.test", "password": {"p": 1}},
    ])
    def test_non_string_credentials_rejected(self, client, user_a, payload):
        resp = client.post("/api/login", json=payload)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Email and password are required"

    def test_service_treats_non_string_password_as_failure(self, db_session, user_a):
        with pytest.raises(AuthFailure):
            auth_service.verify_credentials(user_a.email, 12345)
        with pytest.raises(AuthFailure):
            auth_service.verify_credentials("nobody@example.com", None)

    def test_both_failure_paths_use_configured_cost(self, app, db_session, monkeypatch):
        monkeypatch.setitem(app.config, "BCRYPT_ROUNDS", 11)
        auth_service.register("Costly", "costly@example.com", "pw123456")

        compared = []
        checkpw = bcrypt.checkpw

        def recording_checkpw(password, hashed):
            compared.append(hashed.decode("utf-8"))
            return checkpw(password, hashed)

        monkeypatch.setattr(bcrypt, "checkpw", recording_checkpw)

        with pytest.raises(AuthFailure):
            auth_service.verify_credentials("costly@example.com", "wrong-password")
        with pytest.raises(AuthFailure):
            auth_service.verify_credentials("ghost@example.com", "wrong-password")

        # bcrypt hashes read $2b$<cost>$...
        costs = [h.split("$")[2] for h in compared]
        assert costs == ["11", "11"]

    def test_missing_credentials(self, client, db_session):
        resp = client.post("/api/login", json={"email": "a@b.test"})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Email and password are required"

    def test_service_failure_paths_share_one_exception(self, db_session, user_a):
        with pytest.raises(AuthFailure) as wrong:
            auth_service.verify_credentials(user_a.email, "bad-password")
        with pytest.raises(AuthFailure) as unknown:
            auth_service.verify_credentials("nobody@example.com", "bad-password")
        assert str(wrong.value) == str(unknown.value) == "Invalid credentials"


class TestProfile:
    """GET /api/profile"""

    def test_profile_returns_own_account(self, client, user_a):
        resp = client.get("/api/profile", headers=user_a.headers)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["id"] == user_a.id
        assert body["email"] == user_a.email
        assert body["created_at"].endswith("Z")
        assert "password_hash" not in body
        assert "password" not in body

    def test_profile_requires_token(self, client, db_session):
        resp = client.get("/api/profile")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Access token required"

    def test_profile_for_deleted_user(self, client, db_session):
        token = token_service.issue(987654, "gone@example.com")
        resp = client.get("/api/profile", headers=auth_headers(token))
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "User not found"

"""Tests for password hashing and token handling."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest
from bson import ObjectId
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from errors import TokenExpired, TokenInvalid, Unauthorized
from security import Credentials, get_current_user_id

USER_ID = str(ObjectId())


class TestPasswords:
    def test_hash_is_not_plaintext(self, credentials):
        hashed = credentials.hash_password("hunter22")
        assert hashed != "hunter22"
        assert hashed.startswith("$2b$04$")

    def test_hash_is_salted(self, credentials):
        assert credentials.hash_password("hunter22") != credentials.hash_password("hunter22")

    def test_verify_matching_password(self, credentials):
        hashed = credentials.hash_password("hunter22")
        assert credentials.verify_password("hunter22", hashed) is True

    def test_verify_wrong_password(self, credentials):
        hashed = credentials.hash_password("hunter22")
        assert credentials.verify_password("hunter23", hashed) is False

    def test_verify_malformed_hash_raises(self, credentials):
        with pytest.raises(ValueError):
            credentials.verify_password("hunter22", "not-a-bcrypt-hash")

    def test_verify_login_without_account(self, credentials):
        assert credentials.verify_login("hunter22", None) is False

    def test_verify_login_with_account(self, credentials):
        hashed = credentials.hash_password("hunter22")
        assert credentials.verify_login("hunter22", hashed) is True
        assert credentials.verify_login("hunter23", hashed) is False

    def test_long_passwords_are_accepted(self, credentials):
        password = "x" * 100
        hashed = credentials.hash_password(password)
        assert credentials.verify_password(password, hashed) is True


class TestTokens:
    def test_round_trip(self, credentials):
        token = credentials.issue_token(USER_ID)
        assert credentials.verify_token(token) == USER_ID

    def test_expires_after_seven_days(self, credentials):
        token = credentials.issue_token(USER_ID)
        payload = jwt.decode(token, options={"verify_signature": False})
        assert payload["exp"] - payload["iat"] == 7 * 24 * 3600

    def test_valid_shortly_before_expiry(self, credentials):
        issued = datetime.now(timezone.utc) - timedelta(days=6, hours=23)
        token = credentials.issue_token(USER_ID, issued_at=issued)
        assert credentials.verify_token(token) == USER_ID

    def test_expired_token(self, credentials):
        issued = datetime.now(timezone.utc) - timedelta(days=8)
        token = credentials.issue_token(USER_ID, issued_at=issued)
        with pytest.raises(TokenExpired):
            credentials.verify_token(token)

    def test_wrong_secret(self, credentials):
        other = Credentials("another-signing-secret-of-32-bytes-plus")
        with pytest.raises(TokenInvalid):
            credentials.verify_token(other.issue_token(USER_ID))

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed_token(self, credentials, token):
        with pytest.raises(TokenInvalid):
            credentials.verify_token(token)

    def test_token_without_identity(self, credentials):
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
        token = jwt.encode({"exp": exp}, credentials.secret, algorithm="HS256")
        with pytest.raises(TokenInvalid):
            credentials.verify_token(token)

    def test_token_without_expiry(self, credentials):
        token = jwt.encode({"id": USER_ID}, credentials.secret, algorithm="HS256")
        with pytest.raises(TokenInvalid):
            credentials.verify_token(token)

    def test_failures_are_unauthorized(self):
        assert issubclass(TokenExpired, Unauthorized)
        assert issubclass(TokenInvalid, Unauthorized)
        assert TokenExpired().status_code == TokenInvalid().status_code == 401

    def test_custom_lifetime(self, settings):
        credentials = Credentials.from_settings(settings)
        assert credentials.token_ttl == timedelta(days=settings.token_expire_days)


class TestCurrentUserDependency:
    def test_attaches_identity_to_request(self, credentials):
        app = FastAPI()
        app.state.credentials = credentials

        @app.get("/whoami")
        def whoami(request: Request, user_id: str = Depends(get_current_user_id)):
            return {"state": request.state.user_id, "dependency": user_id}

        token = credentials.issue_token(USER_ID)
        response = TestClient(app).get("/whoami", headers={"Authorization": f"Bearer {token}"})
        assert response.json() == {"state": USER_ID, "dependency": USER_ID}

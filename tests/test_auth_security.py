import time

import jwt
import pytest

from auth import security


def test_password_roundtrip():
    hashed = security.hash_password("s3cret!")
    assert security.verify_password("s3cret!", hashed)
    assert not security.verify_password("wrong", hashed)
    assert not security.verify_password("s3cret!", "not-a-bcrypt-hash")


def test_empty_password_is_rejected():
    with pytest.raises(security.AuthSecurityError):
        security.hash_password("")


def test_access_token_claims(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    token = security.build_access_token(user_id=5, email="a@b.co", role="admin")

    payload = security.decode_access_token(token)

    assert payload["sub"] == "5"
    assert payload["role"] == "admin"
    assert payload["exp"] - payload["iat"] == 15 * 60


def test_expired_token(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    token = jwt.encode({"sub": "1", "type": "access", "exp": int(time.time()) - 10}, "test-secret", algorithm="HS256")
    with pytest.raises(security.AuthSecurityError, match="expired"):
        security.decode_access_token(token)


def test_non_access_token(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    token = jwt.encode({"sub": "1", "type": "refresh"}, "test-secret", algorithm="HS256")
    with pytest.raises(security.AuthSecurityError, match="not an access token"):
        security.decode_access_token(token)


def test_refresh_token_hash():
    raw = security.build_refresh_token()
    assert len(security.hash_refresh_token(raw)) == 64
    with pytest.raises(security.AuthSecurityError):
        security.hash_refresh_token("")

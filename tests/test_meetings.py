import jwt
import pytest

from core.errors import ConfigurationError
from meetings import signature


def test_signature_claims():
    token = signature.generate_signature("key", "secret", "123 456-789", now=1_700_000_000)

    claims = jwt.decode(token, "secret", algorithms=["HS256"], options={"verify_exp": False})
    assert claims["mn"] == "123456789"
    assert claims["sdkKey"] == claims["appKey"] == "key"
    assert claims["role"] == signature.ATTENDEE_ROLE
    assert claims["iat"] == 1_700_000_000 - 30
    assert claims["exp"] == claims["tokenExp"] == claims["iat"] + 7200


def test_signature_verifies_with_current_time():
    token = signature.generate_signature("key", "secret", 42, role=signature.HOST_ROLE)
    claims = jwt.decode(token, "secret", algorithms=["HS256"])
    assert claims["role"] == 1


def test_invalid_meeting_number():
    with pytest.raises(signature.InvalidMeetingNumber):
        signature.generate_signature("key", "secret", "12ab")


def test_invalid_role():
    with pytest.raises(ValueError):
        signature.generate_signature("key", "secret", "123", role=2)


def test_credentials_required(monkeypatch):
    monkeypatch.setenv("ZOOM_SDK_KEY", "key")
    monkeypatch.delenv("ZOOM_SDK_SECRET", raising=False)
    with pytest.raises(ConfigurationError):
        signature.sdk_credentials()

import json

import pytest

from billing import webhooks
from billing.webhooks import SignatureVerificationError

SECRET = "whsec_test"
PAYLOAD = json.dumps({"id": "evt_1", "type": "invoice.paid", "data": {"object": {}}})


def _header(timestamp: int, payload: str = PAYLOAD, secret: str = SECRET) -> str:
    return f"t={timestamp},v1={webhooks.compute_signature(payload, secret, timestamp)}"


def test_valid_signature_returns_event():
    event = webhooks.construct_event(PAYLOAD.encode(), _header(1_700_000_000), SECRET, now=1_700_000_100)
    assert event["type"] == "invoice.paid"


def test_any_matching_v1_is_accepted():
    good = webhooks.compute_signature(PAYLOAD, SECRET, 1_700_000_000)
    header = f"t=1700000000,v1=deadbeef,v1={good}"
    webhooks.verify_signature(PAYLOAD, header, SECRET, now=1_700_000_000)


def test_tampered_payload_is_rejected():
    with pytest.raises(SignatureVerificationError):
        webhooks.verify_signature(PAYLOAD + " ", _header(1_700_000_000), SECRET, now=1_700_000_000)


def test_wrong_secret_is_rejected():
    with pytest.raises(SignatureVerificationError):
        webhooks.verify_signature(PAYLOAD, _header(1_700_000_000, secret="other"), SECRET, now=1_700_000_000)


def test_old_timestamp_is_rejected():
    with pytest.raises(SignatureVerificationError, match="tolerance"):
        webhooks.verify_signature(PAYLOAD, _header(1_700_000_000), SECRET, now=1_700_000_301)


@pytest.mark.parametrize("header", ["", "v1=abc", "t=abc,v1=abc", "t=1700000000"])
def test_malformed_headers(header):
    with pytest.raises(SignatureVerificationError):
        webhooks.verify_signature(PAYLOAD, header, SECRET, now=1_700_000_000)


def test_payload_without_type_is_rejected():
    payload = json.dumps({"id": "evt_1"})
    with pytest.raises(SignatureVerificationError):
        webhooks.construct_event(payload, _header(1_700_000_000, payload), SECRET, now=1_700_000_000)

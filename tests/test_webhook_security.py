import time

import pytest

from veridie.webhook_security import (
    WebhookSignatureError,
    create_webhook_signature,
    parse_signature_header,
    verify_signature_header,
    verify_timestamp,
)

SECRET = "whsec_unit"
BODY = b'{"type":"checkout.session.completed"}'


def test_signed_header_verifies():
    header = create_webhook_signature(SECRET, BODY)
    verify_signature_header(header, SECRET, BODY)


def test_tampered_body_is_rejected():
    header = create_webhook_signature(SECRET, BODY)
    with pytest.raises(WebhookSignatureError):
        verify_signature_header(header, SECRET, BODY + b" ")


def test_wrong_secret_is_rejected():
    header = create_webhook_signature("other-secret", BODY)
    with pytest.raises(WebhookSignatureError):
        verify_signature_header(header, SECRET, BODY)


def test_stale_timestamp_is_rejected():
    header = create_webhook_signature(SECRET, BODY, timestamp=int(time.time()) - 301)
    with pytest.raises(WebhookSignatureError, match="tolerance"):
        verify_signature_header(header, SECRET, BODY)


@pytest.mark.parametrize("header", ["", "v1=abc", "t=123", "garbage"])
def test_malformed_headers_are_rejected(header):
    with pytest.raises(WebhookSignatureError):
        verify_signature_header(header, SECRET, BODY)


def test_any_matching_v1_signature_is_accepted():
    valid = create_webhook_signature(SECRET, BODY)
    timestamp, signatures = parse_signature_header(valid)
    header = f"t={timestamp},v1=deadbeef,v1={signatures[0]}"
    verify_signature_header(header, SECRET, BODY)


def test_verify_timestamp_requires_a_value():
    assert verify_timestamp(None) is False
    assert verify_timestamp("not-a-number") is False
    assert verify_timestamp(str(int(time.time()))) is True

from __future__ import annotations

from datetime import datetime, timezone

from availability_engine.infrastructure.events.signature import sign_event, verify_event_signature

BODY = b'{"collection": "service_bookings", "documentId": "b1"}'
NOW = datetime(2026, 2, 3, 9, 0, tzinfo=timezone.utc)
TS = int(NOW.timestamp())


def verify(signature, timestamp, *, secret="s3cret", env="prod", now=NOW, tolerance=300, body=BODY):
    return verify_event_signature(body, signature, timestamp, secret, env, now=now, tolerance_seconds=tolerance)


def test_signed_event_verifies():
    assert verify(sign_event(BODY, "s3cret", TS), str(TS))


def test_signature_binds_body_and_timestamp():
    signature = sign_event(BODY, "s3cret", TS)
    assert not verify(signature, str(TS), body=BODY + b" ")
    assert not verify(signature, str(TS + 1))
    assert not verify(signature, str(TS), secret="other")


def test_timestamp_tolerance_applies_both_ways():
    late = TS - 301
    early = TS + 301
    assert not verify(sign_event(BODY, "s3cret", late), str(late))
    assert not verify(sign_event(BODY, "s3cret", early), str(early))
    assert verify(sign_event(BODY, "s3cret", TS - 300), str(TS - 300))


def test_zero_tolerance_skips_timestamp_check():
    old = TS - 86400
    assert verify(sign_event(BODY, "s3cret", old), str(old), tolerance=0)


def test_missing_or_malformed_timestamp_is_rejected():
    signature = sign_event(BODY, "s3cret", TS)
    assert not verify(signature, None)
    assert not verify(signature, "yesterday")


def test_missing_signature_accepted_only_in_dev():
    assert verify(None, None, env="dev")
    assert verify(None, None, env="LOCAL")
    assert not verify(None, None, env="prod")


def test_missing_secret_or_wrong_algorithm_is_rejected():
    signature = sign_event(BODY, "s3cret", TS)
    assert not verify(signature, str(TS), secret=None)
    assert not verify(signature.replace("sha256=", "sha1="), str(TS))
    assert not verify("no-separator", str(TS))

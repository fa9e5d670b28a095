from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import jwt

from filevault.security import Principal, TokenService


def test_issue_and_validate_round_trip():
    service = TokenService('s3cret')

    principal = service.validate(service.issue('alice', True))

    assert principal == Principal(username='alice', is_admin=True)


def test_expired_token_is_invalid():
    service = TokenService('s3cret', expire_minutes=-1)

    assert service.validate(service.issue('alice', False)) is None


def test_token_signed_with_other_key_is_invalid():
    token = TokenService('other-key').issue('alice', True)

    assert TokenService('s3cret').validate(token) is None


def test_garbage_token_is_invalid():
    service = TokenService('s3cret')

    assert service.validate('not-a-token') is None
    assert service.validate('') is None
    assert service.validate('a.b.c') is None


def test_token_without_subject_is_invalid():
    exp = datetime.now(timezone.utc) + timedelta(minutes=5)
    token = jwt.encode({'isAdmin': True, 'exp': exp}, 's3cret', algorithm='HS256')

    assert TokenService('s3cret').validate(token) is None


def test_admin_claim_must_be_true_boolean():
    exp = datetime.now(timezone.utc) + timedelta(minutes=5)
    token = jwt.encode({'sub': 'mallory', 'isAdmin': 'yes', 'exp': exp}, 's3cret', algorithm='HS256')

    assert TokenService('s3cret').validate(token) == Principal(username='mallory', is_admin=False)


def test_missing_secret_generates_a_per_instance_key():
    first = TokenService(None)
    second = TokenService(None)

    token = first.issue('alice', False)

    assert first.validate(token) is not None
    assert second.validate(token) is None

"""Token codec and password hashing."""

from datetime import timedelta
from types import SimpleNamespace

import pytest
from jose import jwt

from marketplace.core.exceptions import AuthenticationError
from marketplace.core.security import TokenCodec, hash_password, verify_password
from marketplace.models.principal import PrincipalType


def make_principal(is_super_admin=False):
    role = SimpleNamespace(code="manager", name="Manager", is_super_admin=is_super_admin)
    return SimpleNamespace(id=42, email="ops@example.com", role=role)


@pytest.fixture()
def codec():
    return TokenCodec("unit-secret")


def test_issued_token_carries_identity_type_and_role_snapshot(codec):
    token = codec.issue(make_principal(), PrincipalType.vendorb2c)

    claims = codec.verify(token)

    assert claims.principal_id == 42
    assert claims.principal_type == "vendorb2c"
    assert claims.email == "ops@example.com"
    assert claims.role == {"code": "manager", "name": "Manager", "is_super_admin": False}
    assert claims.expires_at > claims.issued_at


def test_default_expiry_is_thirty_days(codec):
    claims = codec.verify(codec.issue(make_principal(), "user"))

    assert claims.expires_at - claims.issued_at == pytest.approx(30 * 24 * 3600, abs=5)


def test_expired_token_is_rejected(codec):
    token = codec.issue(make_principal(), "user", expires_delta=timedelta(seconds=-10))

    with pytest.raises(AuthenticationError):
        codec.verify(token)


def test_token_signed_with_another_secret_is_rejected(codec):
    token = TokenCodec("someone-else").issue(make_principal(), "user")

    with pytest.raises(AuthenticationError):
        codec.verify(token)


@pytest.mark.parametrize("token", ["", "not-a-jwt", "a.b.c"])
def test_malformed_token_is_rejected(codec, token):
    with pytest.raises(AuthenticationError):
        codec.verify(token)


def test_token_without_type_claim_is_rejected(codec):
    token = jwt.encode({"sub": "1", "exp": 9999999999}, "unit-secret", algorithm="HS256")

    with pytest.raises(AuthenticationError, match="payload"):
        codec.verify(token)


def test_token_with_non_numeric_subject_is_rejected(codec):
    token = jwt.encode({"sub": "abc", "type": "user", "exp": 9999999999}, "unit-secret", algorithm="HS256")

    with pytest.raises(AuthenticationError):
        codec.verify(token)


def test_password_hash_verifies_only_the_original_password():
    hashed = hash_password("s3cret!")

    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)

"""Tests for token issuing, decoding, and password hashing."""

import base64
import json
from datetime import timedelta

import pytest
from jose import jwt

from employdex.core.access import Claims
from employdex.core.config import Settings, settings
from employdex.core.exceptions import AuthenticationError, ConfigurationError
from employdex.core.security import (
    PASSWORD_RESET_TOKEN_TYPE,
    create_access_token,
    create_password_reset_token,
    decode_claims,
    decode_token,
    hash_password,
    verify_password,
)

CLAIMS = Claims(
    id=7,
    email="seven@example.com",
    first_name="Se",
    last_name="Ven",
    roles=frozenset({"Editor", "User"}),
    permissions=frozenset({"user_view", "user_edit"}),
)


def test_token_round_trip_preserves_sets():
    decoded = decode_claims(create_access_token(CLAIMS))
    assert decoded is not None
    assert decoded.roles == CLAIMS.roles
    assert decoded.permissions == CLAIMS.permissions
    assert decoded.id == 7


def test_token_payload_layout():
    payload = jwt.decode(
        create_access_token(CLAIMS), settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM]
    )
    assert payload["type"] == "access"
    assert payload["exp"] - payload["iat"] == settings.JWT_EXPIRY_HOURS * 3600
    assert sorted(payload["user"]["roles"]) == ["Editor", "User"]


def test_expired_token_is_treated_as_absent():
    token = create_access_token(CLAIMS, expires_delta=timedelta(seconds=-5))
    assert decode_claims(token) is None


def test_tampered_token_is_treated_as_absent():
    header, _, signature = create_access_token(CLAIMS).split(".")
    escalated = {"user": {**CLAIMS.to_payload(), "roles": ["Admin"]}, "type": "access", "exp": 9999999999}
    body = base64.urlsafe_b64encode(json.dumps(escalated).encode()).rstrip(b"=").decode()
    assert decode_claims(f"{header}.{body}.{signature}") is None

    forged = jwt.encode(escalated, "some-other-secret-that-is-long-enough", algorithm="HS256")
    assert decode_claims(forged) is None
    assert decode_claims("not-a-token") is None


def test_reset_token_is_not_an_access_token():
    token = create_password_reset_token(7, hash_password("Secret123"))
    assert decode_claims(token) is None
    assert decode_token(token, expected_type=PASSWORD_RESET_TOKEN_TYPE)["sub"] == "7"
    with pytest.raises(AuthenticationError):
        decode_token(create_access_token(CLAIMS), expected_type=PASSWORD_RESET_TOKEN_TYPE)


def test_password_hashing():
    hashed = hash_password("Secret123")
    assert hashed != "Secret123"
    assert verify_password("Secret123", hashed) is True
    assert verify_password("secret123", hashed) is False
    assert verify_password("Secret123", "not-a-bcrypt-hash") is False


@pytest.mark.parametrize("secret", ["", "changeme", "secret", "too-short-but-not-placeholder"])
def test_unsafe_jwt_secrets_are_rejected(secret):
    with pytest.raises(ConfigurationError):
        Settings(JWT_SECRET=secret).validate_jwt_secret()


def test_long_random_secret_is_accepted():
    Settings(JWT_SECRET="x" * 16 + "y" * 16 + "z").validate_jwt_secret()


def test_password_policy_counts_bytes_not_characters():
    from employdex.schemas.schemas import check_password_strength

    assert check_password_strength("Aa1" + "x" * 69) == "Aa1" + "x" * 69
    with pytest.raises(ValueError, match="72 bytes"):
        check_password_strength("Aa1" + "é" * 35)

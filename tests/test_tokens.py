"""Unit tests for auth/tokens.py -- password hashing and JWT encode/decode.

Covers:
- bcrypt hash/verify round trip, wrong password rejected
- token pair carries sub/iss/rid/exp with the expected lifetimes
- access and refresh tokens are not interchangeable (issuer pinned)
- expired, tampered and foreign-key tokens rejected with distinct errors
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.models import User
from auth.tokens import (
    ACCESS_ISSUER,
    ACCESS_TOKEN_LIFETIME,
    REFRESH_ISSUER,
    create_token,
    create_token_pair,
    decode_token,
    hash_password,
    verify_password,
)
from core.config import get_settings
from core.errors import TokenExpired, TokenInvalid

# ---------------------------------------------------------------------------
# Passwords
# ---------------------------------------------------------------------------


def test_hash_and_verify_round_trip() -> None:
    hashed = hash_password("s3cret-password")
    assert hashed != "s3cret-password"
    assert hashed.startswith("$2")
    assert verify_password("s3cret-password", hashed)


def test_verify_rejects_wrong_password() -> None:
    assert not verify_password("wrong-password", hash_password("s3cret-password"))


def test_hashes_are_salted() -> None:
    assert hash_password("same-password") != hash_password("same-password")


# ---------------------------------------------------------------------------
# Token pair
# ---------------------------------------------------------------------------


def _claims(token: str) -> dict:
    return jwt.get_unverified_claims(token)


def test_token_pair_claims() -> None:
    pair = create_token_pair(User(id=42, role_id=3))
    access, refresh = _claims(pair.access_token), _claims(pair.refresh_token)

    assert access["sub"] == "42" and refresh["sub"] == "42"
    assert access["rid"] == 3 and refresh["rid"] == 3
    assert access["iss"] == ACCESS_ISSUER
    assert refresh["iss"] == REFRESH_ISSUER
    assert refresh["exp"] > access["exp"]
    assert pair.expires_in == int(ACCESS_TOKEN_LIFETIME.total_seconds()) == 6 * 3600
    assert pair.token_type == "bearer"


def test_token_pair_uses_hs512() -> None:
    pair = create_token_pair(User(id=1, role_id=1))
    assert jwt.get_unverified_header(pair.access_token)["alg"] == "HS512"


def test_decode_access_token() -> None:
    pair = create_token_pair(User(id=42, role_id=3))
    claims = decode_token(pair.access_token)
    assert (claims.user_id, claims.role_id, claims.is_refresh) == (42, 3, False)


def test_decode_refresh_token() -> None:
    pair = create_token_pair(User(id=42, role_id=3))
    claims = decode_token(pair.refresh_token, refresh=True)
    assert (claims.user_id, claims.is_refresh) == (42, True)


def test_refresh_token_rejected_as_access_token() -> None:
    pair = create_token_pair(User(id=42, role_id=3))
    with pytest.raises(TokenInvalid):
        decode_token(pair.refresh_token)


def test_access_token_rejected_as_refresh_token() -> None:
    pair = create_token_pair(User(id=42, role_id=3))
    with pytest.raises(TokenInvalid):
        decode_token(pair.access_token, refresh=True)


# ---------------------------------------------------------------------------
# Rejections
# ---------------------------------------------------------------------------


def test_expired_token_raises_token_expired() -> None:
    token = create_token(42, 2, ACCESS_ISSUER, timedelta(seconds=-10))
    with pytest.raises(TokenExpired):
        decode_token(token)


def test_tampered_token_rejected() -> None:
    """A valid signature moved onto another principal's claims must not verify."""
    mine = create_token_pair(User(id=42, role_id=2)).access_token
    theirs = create_token_pair(User(id=1, role_id=1)).access_token
    head, payload, _sig = theirs.split(".")
    forged = ".".join([head, payload, mine.split(".")[2]])
    with pytest.raises(TokenInvalid):
        decode_token(forged)


def test_token_signed_with_other_key_rejected() -> None:
    payload = {
        "sub": "42",
        "iss": ACCESS_ISSUER,
        "rid": 1,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    token = jwt.encode(payload, "x" * 64, algorithm="HS512")
    with pytest.raises(TokenInvalid):
        decode_token(token)


@pytest.mark.parametrize("subject", ["admin", "0", "18446744073709551616"])
def test_subject_must_be_a_principal_id(subject: str) -> None:
    payload = {
        "sub": subject,
        "iss": ACCESS_ISSUER,
        "rid": 1,
        "exp": datetime.now(timezone.utc) + timedelta(hours=1),
    }
    token = jwt.encode(payload, get_settings().secret_key, algorithm="HS512")
    with pytest.raises(TokenInvalid):
        decode_token(token)


def test_missing_expiry_rejected() -> None:
    token = jwt.encode({"sub": "42", "iss": ACCESS_ISSUER, "rid": 1}, get_settings().secret_key, algorithm="HS512")
    with pytest.raises(TokenInvalid):
        decode_token(token)


@pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c"])
def test_garbage_rejected(garbage: str) -> None:
    with pytest.raises(TokenInvalid):
        decode_token(garbage)

"""
auth/tokens.py -- JWT and password hashing utilities.

Security design decisions:
  JWT: python-jose with HS512. Every login mints two tokens from the same
       principal snapshot, signed with the same SECRET_KEY:
         access  -- iss="access",  exp=now+6h
         refresh -- iss="refresh", exp=now+10d
       Both carry sub (principal id, as a string) and rid (role id). The iss
       claim is the only thing telling them apart, so decode_token() always
       pins the issuer it expects. Nothing is persisted: a token dies by
       expiring or by its principal being deactivated (checked by the caller
       on every use).

  Passwords: bcrypt directly. The work factor comes from BCRYPT_ROUNDS
       (default 12). _DUMMY_HASH enables timing equalization in
       auth/users.py so response time does not reveal whether an email is
       registered.

  SECRET_KEY: sourced from core.config.get_settings(), which rejects keys
       shorter than 32 characters.

Layer rule: no imports from api/ or ratings/. Import from core/ is allowed.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import TokenClaims, TokenPair, User
from core.config import get_settings
from core.db import MAX_ID
from core.errors import TokenExpired, TokenInvalid

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS512"

ACCESS_ISSUER = "access"
REFRESH_ISSUER = "refresh"

ACCESS_TOKEN_LIFETIME = timedelta(hours=6)
REFRESH_TOKEN_LIFETIME = timedelta(days=10)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt cannot use more than 72 bytes of input; auth/users.py rejects
    longer passwords before they get here.
    """
    salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash is a
    data problem, not a login failure, so its ValueError propagates.
    """
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


# Computed once at module load so the first failed login is not measurably
# faster than later ones.
_DUMMY_HASH: str = hash_password("ratingsapp_timing_dummy")


def burn_password_check(plain: str) -> None:
    """Spend one bcrypt comparison when there is no real hash to compare against."""
    verify_password(plain, _DUMMY_HASH)


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_token(user_id: int, role_id: int, issuer: str, lifetime: timedelta) -> str:
    """Encode one signed JWT for a principal."""
    payload = {
        "sub": str(user_id),
        "iss": issuer,
        "rid": role_id,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def create_token_pair(user: User) -> TokenPair:
    """Mint the access and refresh tokens for user."""
    return TokenPair(
        access_token=create_token(user.id, user.role_id, ACCESS_ISSUER, ACCESS_TOKEN_LIFETIME),
        refresh_token=create_token(user.id, user.role_id, REFRESH_ISSUER, REFRESH_TOKEN_LIFETIME),
        expires_in=int(ACCESS_TOKEN_LIFETIME.total_seconds()),
    )


def decode_token(token: str, refresh: bool = False) -> TokenClaims:
    """Verify signature, expiry and issuer of token and return its claims.

    Raises TokenExpired when the token is past its exp, TokenInvalid for
    everything else (bad signature, garbage input, wrong issuer, bad subject).
    A refresh token presented where an access token is expected -- or the
    other way around -- is just TokenInvalid; callers collapse both into
    Unauthorized anyway.
    """
    issuer = REFRESH_ISSUER if refresh else ACCESS_ISSUER
    try:
        payload = jwt.decode(
            token,
            _settings.secret_key,
            algorithms=[_ALGORITHM],
            issuer=issuer,
            options={"require_exp": True, "require_iss": True, "require_sub": True},
        )
    except ExpiredSignatureError as exc:
        raise TokenExpired(f"{issuer} token expired") from exc
    except JWTError as exc:
        raise TokenInvalid(f"{issuer} token rejected: {exc}") from exc

    try:
        user_id = int(payload["sub"])
        role_id = int(payload.get("rid", 0))
    except (TypeError, ValueError) as exc:
        raise TokenInvalid("token claims are malformed") from exc
    if not 1 <= user_id <= MAX_ID:
        raise TokenInvalid("token subject is not a principal id")

    return TokenClaims(user_id=user_id, role_id=role_id, is_refresh=refresh)

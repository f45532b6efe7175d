"""JWT claims tokens, password hashing, and permission dependencies."""

import hashlib
import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Iterable, Optional

import bcrypt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from employdex.core.access import Claims, Requirement, decide
from employdex.core.config import settings
from employdex.core.exceptions import AuthenticationError, AuthorizationError

logger = logging.getLogger("employdex.security")

ACCESS_TOKEN_TYPE = "access"
PASSWORD_RESET_TOKEN_TYPE = "password_reset"

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    try:
        return bcrypt.checkpw(pwd_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash.
        return False


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("employdex-timing-equalizer")


def burn_password_check(plain_password: str) -> None:
    """Spend the same bcrypt work as a real check for unknown identities."""
    verify_password(plain_password, _dummy_hash())


def _encode(payload: dict, expires_delta: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = payload.copy()
    to_encode.update({"iat": now, "exp": now + expires_delta})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_access_token(claims: Claims, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a claims bundle; valid for JWT_EXPIRY_HOURS unless overridden."""
    return _encode(
        {"user": claims.to_payload(), "type": ACCESS_TOKEN_TYPE},
        expires_delta or timedelta(hours=settings.JWT_EXPIRY_HOURS),
    )


def password_fingerprint(hashed_password: str) -> str:
    """Short digest of the stored hash; changes whenever the password does."""
    return hashlib.sha256(hashed_password.encode("utf-8")).hexdigest()[:16]


def create_password_reset_token(user_id: int, hashed_password: str) -> str:
    """Reset token bound to the current password, so it stops working once used."""
    return _encode(
        {"sub": str(user_id), "pwd": password_fingerprint(hashed_password), "type": PASSWORD_RESET_TOKEN_TYPE},
        timedelta(minutes=settings.PASSWORD_RESET_EXPIRY_MINUTES),
    )


def decode_token(token: str, expected_type: str = ACCESS_TOKEN_TYPE) -> dict:
    """Decode and validate a JWT token of the given type."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")
    if payload.get("type") != expected_type:
        raise AuthenticationError("Invalid or expired token")
    return payload


def decode_claims(token: str) -> Optional[Claims]:
    """Return the claims in an access token, or None if it is not usable."""
    try:
        payload = decode_token(token)
        return Claims.from_payload(payload["user"])
    except AuthenticationError:
        return None
    except (KeyError, TypeError, ValueError):
        logger.warning("Rejected access token with malformed claims payload")
        return None


async def get_optional_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> Optional[Claims]:
    """Claims from the Bearer token, None when absent or invalid."""
    if credentials is None:
        return None
    return decode_claims(credentials.credentials)


async def get_current_claims(
    claims: Optional[Claims] = Depends(get_optional_claims),
) -> Claims:
    """Claims of an authenticated caller, no further requirement."""
    if claims is None:
        raise AuthenticationError("Authentication required")
    return claims


class RequirePermission:
    """Dependency enforcing an any-of permission/role requirement.

    Usage::

        claims: Claims = Depends(RequirePermission(["role_view"]))
    """

    def __init__(
        self,
        any_of_permissions: Optional[Iterable[str]] = None,
        any_of_roles: Optional[Iterable[str]] = None,
    ):
        self.requirement = Requirement.of(any_of_permissions, any_of_roles)

    async def __call__(
        self,
        claims: Optional[Claims] = Depends(get_optional_claims),
    ) -> Claims:
        decision = decide(claims, self.requirement)
        if not decision.authenticated:
            raise AuthenticationError(decision.reason)
        if not decision.allowed:
            raise AuthorizationError(decision.reason, required=decision.required)
        return claims

"""Bearer access tokens.

Sign-in and session management happen elsewhere; this service only reads
who the caller is. ``create_access_token`` exists for operator tooling and
tests that need to act as an owner or requester.
"""

import uuid
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from staydesk.config import settings

ACCESS_TOKEN_TYPE = "access"


def create_access_token(subject: uuid.UUID | str, expires_delta: timedelta | None = None) -> str:
    """Sign an access token whose ``sub`` claim is ``subject``.

    Args:
        subject: The user id the token speaks for.
        expires_delta: Lifetime. Defaults to
            ``settings.jwt_access_token_expire_minutes`` minutes.
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))
    claims = {"sub": str(subject), "exp": expire, "iat": now, "type": ACCESS_TOKEN_TYPE}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    """Decode and verify a JWT.

    Raises:
        jose.JWTError: If the token is invalid, expired, or malformed.
    """
    return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def access_token_subject(token: str) -> uuid.UUID | None:
    """Return the user id of a valid access token, or None.

    Expired or tampered tokens, tokens of another type and subjects that are
    not UUIDs all yield None.
    """
    try:
        payload = decode_token(token)
    except JWTError:
        return None

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None

    try:
        return uuid.UUID(str(payload.get("sub")))
    except ValueError:
        return None

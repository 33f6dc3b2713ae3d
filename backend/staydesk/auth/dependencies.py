"""FastAPI dependencies that resolve the acting user from a bearer token.

The resolved ``User`` is the actor id passed to every visit lifecycle call.
"""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from staydesk.auth.jwt import access_token_subject
from staydesk.database import get_db
from staydesk.models.user import User

# Strict bearer: rejects requests without an Authorization header
_bearer_scheme = HTTPBearer()

# Optional bearer: anonymous visitors may still request a visit
_bearer_scheme_optional = HTTPBearer(auto_error=False)


def _unauthenticated(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _load_user(db: AsyncSession, user_id: uuid.UUID | None) -> User | None:
    if user_id is None:
        return None
    return await db.get(User, user_id)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Return the signed-in user.

    Raises:
        HTTPException 401: The token is invalid, expired or of the wrong
            type, the user does not exist, or the account is inactive.
    """
    user = await _load_user(db, access_token_subject(credentials.credentials))
    if user is None:
        raise _unauthenticated("Could not validate credentials")
    if not user.is_active:
        raise _unauthenticated("User account is inactive")
    return user


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme_optional),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    """Return the signed-in user, or ``None`` for anonymous callers.

    An unusable token is treated like no token at all.
    """
    if credentials is None:
        return None
    user = await _load_user(db, access_token_subject(credentials.credentials))
    if user is None or not user.is_active:
        return None
    return user

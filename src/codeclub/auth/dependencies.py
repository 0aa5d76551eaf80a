"""FastAPI authentication dependencies."""

from __future__ import annotations

import secrets

import jwt
from fastapi import Depends, Header, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.auth.jwt import verify_token
from codeclub.config import get_settings
from codeclub.database import get_session
from codeclub.db.models import User
from codeclub.identity.service import get_user_by_id

_bearer = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Extract and verify the bearer JWT, return the User model.

    Raises 401 for bad tokens or unknown users, 403 for deactivated accounts.
    """
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user = await get_user_by_id(db, payload["sub"])
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    return user


async def get_admin_user(user: User = Depends(get_current_user)) -> User:
    """Same as get_current_user but requires the SYSTEM_ADMIN role."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Administrator role required")
    return user


async def verify_judge_token(x_judge_token: str = Header(...)) -> None:
    """Authenticate the external judge calling back with verdicts."""
    if not secrets.compare_digest(x_judge_token, get_settings().judge_token):
        raise HTTPException(status_code=401, detail="Invalid judge token")


async def verify_gateway_token(x_auth_gateway_token: str = Header(...)) -> None:
    """Authenticate the sign-in gateway exchanging verified identities for tokens."""
    if not secrets.compare_digest(x_auth_gateway_token, get_settings().auth_gateway_token):
        raise HTTPException(status_code=401, detail="Invalid gateway token")


_optional_bearer = HTTPBearer(auto_error=False)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_optional_bearer),
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """Resolve the user when a bearer token is present; anonymous otherwise."""
    if credentials is None:
        return None
    return await get_current_user(credentials, db)

"""Sign-in exchange: /api/v1/auth/* endpoints.

The provider handshake (OAuth and the like) happens in the sign-in gateway.
The gateway calls here with the verified identity and receives an access
token for the matching local user, created on first sign-in.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.auth.dependencies import verify_gateway_token
from codeclub.auth.jwt import create_access_token
from codeclub.auth.schemas import ProviderSignInRequest, TokenResponse
from codeclub.config import get_settings
from codeclub.database import get_session
from codeclub.identity.router import user_response
from codeclub.identity.service import sign_in_with_provider

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.post("/provider", response_model=TokenResponse, dependencies=[Depends(verify_gateway_token)])
async def provider_sign_in(
    body: ProviderSignInRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Exchange a verified external identity for an access token."""
    user, created = await sign_in_with_provider(
        db,
        body.provider,
        body.provider_id,
        body.email,
        body.name,
        display_name=body.display_name,
        icon_url=body.icon_url,
    )
    await db.commit()
    return TokenResponse(
        access_token=create_access_token(user.id, user.system_role),
        expires_in=get_settings().jwt_access_token_expire_minutes * 60,
        created=created,
        user=user_response(user),
    )

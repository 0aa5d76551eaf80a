"""User profile and organization endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.auth.dependencies import get_current_user
from codeclub.database import get_session
from codeclub.db.models import User
from codeclub.errors import PermissionDenied
from codeclub.identity import service
from codeclub.identity.schemas import (
    AddMemberRequest,
    CreateOrganizationRequest,
    MemberResponse,
    OrganizationResponse,
    UpdateProfileRequest,
    UserResponse,
)

router = APIRouter(prefix="/api/v1", tags=["Identity"])


def user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        display_name=user.display_name,
        grade=user.grade,
        icon_url=user.icon_url,
        system_role=user.system_role,
        created_at=user.created_at,
    )


@router.get("/users/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Current user's profile."""
    return user_response(user)


@router.patch("/users/me", response_model=UserResponse)
async def update_me(
    body: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Update display name, grade or icon."""
    await service.update_profile(db, user, body.display_name, body.grade, body.icon_url)
    await db.commit()
    return user_response(user)


@router.post("/organizations", response_model=OrganizationResponse, status_code=201)
async def create_organization(
    body: CreateOrganizationRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Create an organization; the caller becomes its leader."""
    org = await service.create_organization(db, body.name, user, body.description, body.icon_url)
    await db.commit()
    return OrganizationResponse(
        id=org.id, name=org.name, description=org.description, icon_url=org.icon_url, role="LEADER"
    )


@router.get("/organizations/mine", response_model=list[OrganizationResponse])
async def my_organizations(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Organizations the caller belongs to."""
    rows = await service.list_user_organizations(db, user.id)
    return [
        OrganizationResponse(id=o.id, name=o.name, description=o.description, icon_url=o.icon_url, role=role)
        for o, role in rows
    ]


@router.get("/organizations/{organization_id}/members", response_model=list[MemberResponse])
async def list_members(
    organization_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Members of an organization (members and admins only)."""
    await service.require_organization(db, organization_id)
    if not user.is_admin and not await service.is_member(db, user.id, organization_id):
        raise PermissionDenied("Not a member of this organization")
    rows = await service.list_members(db, organization_id)
    return [
        MemberResponse(
            user_id=u.id, name=u.name, display_name=u.display_name, role=m.role, joined_at=m.joined_at
        )
        for m, u in rows
    ]


@router.post("/organizations/{organization_id}/members", response_model=MemberResponse, status_code=201)
async def add_member(
    organization_id: str,
    body: AddMemberRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Add a member (leaders and admins only)."""
    await service.require_organization(db, organization_id)
    await service.require_leader_or_admin(db, user, organization_id)
    member = await service.add_member(db, organization_id, body.user_id, body.role)
    await db.commit()
    added = await service.require_user(db, body.user_id)
    return MemberResponse(
        user_id=added.id,
        name=added.name,
        display_name=added.display_name,
        role=member.role,
        joined_at=member.joined_at,
    )

"""Users, external identity links, organizations and memberships."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select

from codeclub.db.base import utcnow
from codeclub.db.guards import flush_or_conflict
from codeclub.db.models import MEMBER_ROLES, SYSTEM_ROLES, Organization, OrganizationMember, User, UserProvider
from codeclub.errors import NotFoundError, PermissionDenied

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# --- Users ---


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def require_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


async def create_user(
    db: AsyncSession,
    email: str,
    name: str,
    display_name: str | None = None,
    grade: str | None = None,
    icon_url: str | None = None,
    system_role: str = "USER",
) -> User:
    """
    Create a user account.

    Raises:
        ValueError: If the role is unknown.
        ConstraintViolation: If the email is already registered.
    """
    if system_role not in SYSTEM_ROLES:
        msg = f"Unknown system role: {system_role}"
        raise ValueError(msg)

    user = User(
        email=email.strip().lower(),
        name=name,
        display_name=display_name,
        grade=grade,
        icon_url=icon_url,
        system_role=system_role,
    )
    db.add(user)
    await flush_or_conflict(db, "Email already registered")
    logger.info("user_created", user_id=user.id)
    return user


async def update_profile(
    db: AsyncSession,
    user: User,
    display_name: str | None = None,
    grade: str | None = None,
    icon_url: str | None = None,
) -> User:
    if display_name is not None:
        user.display_name = display_name
    if grade is not None:
        user.grade = grade
    if icon_url is not None:
        user.icon_url = icon_url
    user.updated_at = utcnow()
    await db.flush()
    return user


async def deactivate_user(db: AsyncSession, user: User) -> User:
    """Soft-deactivate a user. Users are never hard-deleted."""
    user.is_active = False
    user.updated_at = utcnow()
    await db.flush()
    logger.info("user_deactivated", user_id=user.id)
    return user


# --- External providers ---


async def link_provider(db: AsyncSession, user_id: str, provider: str, provider_id: str) -> UserProvider:
    """
    Bind an external identity to a user.

    One binding per provider per user, and an external identity can only be
    claimed by one local user. Both rules are enforced by unique constraints.
    """
    await require_user(db, user_id)
    link = UserProvider(user_id=user_id, provider=provider, provider_id=provider_id)
    db.add(link)
    await flush_or_conflict(db, f"Identity already linked for provider '{provider}'")
    return link


async def get_user_by_provider(db: AsyncSession, provider: str, provider_id: str) -> User | None:
    result = await db.execute(
        select(User)
        .join(UserProvider, UserProvider.user_id == User.id)
        .where(UserProvider.provider == provider, UserProvider.provider_id == provider_id)
    )
    return result.scalar_one_or_none()


async def sign_in_with_provider(
    db: AsyncSession,
    provider: str,
    provider_id: str,
    email: str,
    name: str,
    display_name: str | None = None,
    icon_url: str | None = None,
) -> tuple[User, bool]:
    """
    Resolve the local user for an external identity the gateway has verified.

    A first sign-in creates the account and links the identity. An unknown
    identity whose email already has an account is linked to that account.

    Returns:
        Tuple of (user, created) where created is True if a new user was made.

    Raises:
        PermissionDenied: The account is deactivated.
        ConstraintViolation: The account already links another identity of this provider.
    """
    provider = provider.strip().lower()
    created = False

    user = await get_user_by_provider(db, provider, provider_id)
    if user is None:
        user = await get_user_by_email(db, email)
        if user is None:
            user = await create_user(db, email, name, display_name=display_name, icon_url=icon_url)
            created = True
        elif not user.is_active:
            raise PermissionDenied("Account is deactivated")
        await link_provider(db, user.id, provider, provider_id)

    if not user.is_active:
        raise PermissionDenied("Account is deactivated")

    logger.info("user_signed_in", user_id=user.id, provider=provider, created=created)
    return user, created


# --- Organizations ---


async def require_organization(db: AsyncSession, organization_id: str) -> Organization:
    org = await db.get(Organization, organization_id)
    if org is None:
        raise NotFoundError(f"Organization {organization_id} not found")
    return org


async def create_organization(
    db: AsyncSession,
    name: str,
    creator: User,
    description: str | None = None,
    icon_url: str | None = None,
) -> Organization:
    """Create an organization; the creator becomes its first LEADER."""
    org = Organization(name=name, description=description, icon_url=icon_url)
    db.add(org)
    await flush_or_conflict(db, "Organization name already taken")

    db.add(OrganizationMember(user_id=creator.id, organization_id=org.id, role="LEADER"))
    await db.flush()
    logger.info("organization_created", organization_id=org.id, leader_id=creator.id)
    return org


async def add_member(
    db: AsyncSession,
    organization_id: str,
    user_id: str,
    role: str = "MEMBER",
) -> OrganizationMember:
    """
    Add a user to an organization.

    Duplicate membership is rejected by the (user_id, organization_id)
    unique constraint rather than by a pre-check, so concurrent joins
    cannot both succeed.
    """
    if role not in MEMBER_ROLES:
        msg = f"Unknown member role: {role}"
        raise ValueError(msg)
    await require_organization(db, organization_id)
    await require_user(db, user_id)

    member = OrganizationMember(user_id=user_id, organization_id=organization_id, role=role)
    db.add(member)
    await flush_or_conflict(db, "User is already a member of this organization")
    return member


async def get_membership(db: AsyncSession, user_id: str, organization_id: str) -> OrganizationMember | None:
    result = await db.execute(
        select(OrganizationMember).where(
            OrganizationMember.user_id == user_id,
            OrganizationMember.organization_id == organization_id,
        )
    )
    return result.scalar_one_or_none()


async def is_member(db: AsyncSession, user_id: str, organization_id: str) -> bool:
    return await get_membership(db, user_id, organization_id) is not None


async def is_leader(db: AsyncSession, user_id: str, organization_id: str) -> bool:
    membership = await get_membership(db, user_id, organization_id)
    return membership is not None and membership.role == "LEADER"


async def require_leader_or_admin(db: AsyncSession, user: User, organization_id: str) -> None:
    if user.is_admin:
        return
    if not await is_leader(db, user.id, organization_id):
        raise PermissionDenied("Only organization leaders may manage this organization")


async def list_members(db: AsyncSession, organization_id: str) -> list[tuple[OrganizationMember, User]]:
    result = await db.execute(
        select(OrganizationMember, User)
        .join(User, User.id == OrganizationMember.user_id)
        .where(OrganizationMember.organization_id == organization_id)
        .order_by(OrganizationMember.joined_at)
    )
    return [(m, u) for m, u in result.all()]


async def list_user_organizations(db: AsyncSession, user_id: str) -> list[tuple[Organization, str]]:
    """Organizations the user belongs to, with the user's role in each."""
    result = await db.execute(
        select(Organization, OrganizationMember.role)
        .join(OrganizationMember, OrganizationMember.organization_id == Organization.id)
        .where(OrganizationMember.user_id == user_id)
        .order_by(Organization.name)
    )
    return [(org, role) for org, role in result.all()]

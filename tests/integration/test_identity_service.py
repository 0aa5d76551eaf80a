"""Integration tests: users, provider links and organization membership."""

from __future__ import annotations

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.errors import ConstraintViolation, NotFoundError, PermissionDenied
from codeclub.identity import service
from tests.factories import make_org, make_user

pytestmark = pytest.mark.asyncio


class TestUsers:
    async def test_create_user_normalises_email(self, db_session: AsyncSession) -> None:
        user = await service.create_user(db_session, "  Alice@Example.COM ", "Alice")
        await db_session.commit()
        assert user.email == "alice@example.com"
        assert user.system_role == "USER"
        assert user.is_active is True
        assert len(user.id) == 36
        assert (await service.get_user_by_email(db_session, "ALICE@example.com")).id == user.id

    async def test_duplicate_email_is_constraint_violation(self, db_session: AsyncSession) -> None:
        await make_user(db_session, "bob@example.com")
        await db_session.commit()

        with pytest.raises(ConstraintViolation, match="Email already registered"):
            await make_user(db_session, "BOB@example.com")

    async def test_unknown_role_rejected(self, db_session: AsyncSession) -> None:
        with pytest.raises(ValueError, match="Unknown system role"):
            await service.create_user(db_session, "c@example.com", "C", system_role="ROOT")

    async def test_deactivation_is_soft(self, db_session: AsyncSession) -> None:
        user = await make_user(db_session, "d@example.com")
        await service.deactivate_user(db_session, user)
        await db_session.commit()
        reloaded = await service.get_user_by_id(db_session, user.id)
        assert reloaded is not None
        assert reloaded.is_active is False

    async def test_update_profile_only_touches_given_fields(self, db_session: AsyncSession) -> None:
        user = await make_user(db_session, "e@example.com")
        await service.update_profile(db_session, user, display_name="Eve", grade="10")
        await service.update_profile(db_session, user, icon_url="https://img/e.png")
        assert (user.display_name, user.grade, user.icon_url) == ("Eve", "10", "https://img/e.png")

    async def test_require_user_unknown(self, db_session: AsyncSession) -> None:
        with pytest.raises(NotFoundError):
            await service.require_user(db_session, "missing")


class TestProviders:
    async def test_link_and_lookup(self, db_session: AsyncSession) -> None:
        user = await make_user(db_session, "p@example.com")
        await service.link_provider(db_session, user.id, "github", "gh-1")
        found = await service.get_user_by_provider(db_session, "github", "gh-1")
        assert found is not None and found.id == user.id
        assert await service.get_user_by_provider(db_session, "github", "gh-2") is None

    async def test_one_binding_per_provider_per_user(self, db_session: AsyncSession) -> None:
        user = await make_user(db_session, "q@example.com")
        user_id = user.id
        await service.link_provider(db_session, user_id, "github", "gh-1")
        await db_session.commit()

        with pytest.raises(ConstraintViolation):
            await service.link_provider(db_session, user_id, "github", "gh-other")

    async def test_external_identity_claimed_once(self, db_session: AsyncSession) -> None:
        first = await make_user(db_session, "r1@example.com")
        second = await make_user(db_session, "r2@example.com")
        second_id = second.id
        await service.link_provider(db_session, first.id, "google", "g-42")
        await db_session.commit()

        with pytest.raises(ConstraintViolation):
            await service.link_provider(db_session, second_id, "google", "g-42")


class TestOrganizations:
    async def test_creator_becomes_leader(self, db_session: AsyncSession) -> None:
        leader = await make_user(db_session, "lead@example.com")
        org = await service.create_organization(db_session, "Algo Club", leader)
        assert await service.is_leader(db_session, leader.id, org.id)
        assert [role for _, role in await service.list_user_organizations(db_session, leader.id)] == ["LEADER"]

    async def test_duplicate_name_rejected(self, db_session: AsyncSession) -> None:
        leader = await make_user(db_session, "lead@example.com")
        await service.create_organization(db_session, "Algo Club", leader)
        await db_session.commit()

        with pytest.raises(ConstraintViolation, match="name already taken"):
            await service.create_organization(db_session, "Algo Club", leader)

    async def test_add_member_twice_is_constraint_violation(self, db_session: AsyncSession) -> None:
        leader = await make_user(db_session, "lead@example.com")
        member = await make_user(db_session, "mem@example.com")
        org = await make_org(db_session, "Club", leader, [member])
        org_id, member_id = org.id, member.id
        await db_session.commit()

        assert await service.is_member(db_session, member_id, org_id)
        assert not await service.is_leader(db_session, member_id, org_id)
        with pytest.raises(ConstraintViolation, match="already a member"):
            await service.add_member(db_session, org_id, member_id)

    async def test_add_member_unknown_org(self, db_session: AsyncSession) -> None:
        user = await make_user(db_session, "x@example.com")
        with pytest.raises(NotFoundError):
            await service.add_member(db_session, "no-such-org", user.id)

    async def test_list_members_in_join_order(self, db_session: AsyncSession) -> None:
        leader = await make_user(db_session, "lead@example.com")
        a = await make_user(db_session, "a@example.com")
        org = await make_org(db_session, "Club", leader, [a])
        rows = await service.list_members(db_session, org.id)
        assert [(u.email, m.role) for m, u in rows] == [("lead@example.com", "LEADER"), ("a@example.com", "MEMBER")]

    async def test_require_leader_or_admin(self, db_session: AsyncSession) -> None:
        leader = await make_user(db_session, "lead@example.com")
        member = await make_user(db_session, "mem@example.com")
        admin = await make_user(db_session, "root@example.com", admin=True)
        org = await make_org(db_session, "Club", leader, [member])

        await service.require_leader_or_admin(db_session, leader, org.id)
        await service.require_leader_or_admin(db_session, admin, org.id)
        with pytest.raises(PermissionDenied):
            await service.require_leader_or_admin(db_session, member, org.id)

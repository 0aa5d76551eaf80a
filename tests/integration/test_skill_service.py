"""Integration tests: skill taxonomy and permanent achievement."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.db.models import SkillProgress
from codeclub.errors import ConstraintViolation, NotFoundError
from codeclub.skills import service
from codeclub.social.notification_service import get_notifications
from tests.factories import make_user

pytestmark = pytest.mark.asyncio


@pytest.fixture
async def taxonomy(db_session: AsyncSession) -> dict:
    user = await make_user(db_session, "learner@example.com")
    basics = await service.create_category(db_session, "Basics", sort_order=1)
    graphs = await service.create_category(db_session, "Graphs", sort_order=2)
    loops = await service.create_skill(db_session, basics.id, "Loops", level=1)
    bfs = await service.create_skill(db_session, graphs.id, "BFS", level=2, requirement="BASIC")
    await db_session.commit()
    return {"user": user, "basics": basics, "graphs": graphs, "loops": loops, "bfs": bfs}


class TestTaxonomy:
    async def test_categories_sorted(self, db_session: AsyncSession, taxonomy: dict) -> None:
        assert [c.name for c in await service.list_categories(db_session)] == ["Basics", "Graphs"]

    async def test_skills_filtered_by_category(self, db_session: AsyncSession, taxonomy: dict) -> None:
        skills = await service.list_skills(db_session, taxonomy["graphs"].id)
        assert [s.name for s in skills] == ["BFS"]
        assert len(await service.list_skills(db_session)) == 2

    async def test_duplicate_skill_name_in_category(self, db_session: AsyncSession, taxonomy: dict) -> None:
        basics_id = taxonomy["basics"].id
        with pytest.raises(ConstraintViolation):
            await service.create_skill(db_session, basics_id, "Loops")

    async def test_unknown_requirement(self, db_session: AsyncSession, taxonomy: dict) -> None:
        with pytest.raises(ValueError, match="Unknown skill requirement"):
            await service.create_skill(db_session, taxonomy["basics"].id, "Recursion", requirement="EXPERT")

    async def test_unknown_category(self, db_session: AsyncSession, taxonomy: dict) -> None:
        with pytest.raises(NotFoundError):
            await service.create_skill(db_session, "missing", "Recursion")


class TestMarkAchieved:
    async def test_first_mark_creates_achieved_row(self, db_session: AsyncSession, taxonomy: dict) -> None:
        progress, changed = await service.mark_achieved(db_session, taxonomy["user"].id, taxonomy["loops"].id)
        assert changed is True
        assert progress.is_achieved is True
        assert progress.achieved_at is not None

    async def test_repeat_is_a_no_op(self, db_session: AsyncSession, taxonomy: dict) -> None:
        user_id, skill_id = taxonomy["user"].id, taxonomy["loops"].id
        first, _ = await service.mark_achieved(db_session, user_id, skill_id)
        achieved_at = first.achieved_at
        await db_session.commit()

        again, changed = await service.mark_achieved(db_session, user_id, skill_id)
        assert changed is False
        assert again.id == first.id
        # SQLite hands back naive timestamps
        assert again.achieved_at.replace(tzinfo=None) == achieved_at.replace(tzinfo=None)

        count = await db_session.execute(
            select(func.count(SkillProgress.id)).where(
                SkillProgress.user_id == user_id, SkillProgress.skill_id == skill_id
            )
        )
        assert count.scalar_one() == 1

    async def test_existing_unachieved_row_is_flipped(self, db_session: AsyncSession, taxonomy: dict) -> None:
        user_id, skill_id = taxonomy["user"].id, taxonomy["bfs"].id
        db_session.add(SkillProgress(user_id=user_id, skill_id=skill_id, is_achieved=False))
        await db_session.commit()

        progress, changed = await service.mark_achieved(db_session, user_id, skill_id)
        assert changed is True
        assert progress.is_achieved is True
        assert progress.achieved_at is not None

    async def test_achievement_notifies_once(self, db_session: AsyncSession, taxonomy: dict) -> None:
        user_id = taxonomy["user"].id
        await service.mark_achieved(db_session, user_id, taxonomy["loops"].id)
        await service.mark_achieved(db_session, user_id, taxonomy["loops"].id)
        notifications, total = await get_notifications(db_session, user_id)
        assert total == 1
        assert notifications[0].type == "skill"
        assert "Loops" in notifications[0].title

    async def test_unknown_skill_or_user(self, db_session: AsyncSession, taxonomy: dict) -> None:
        with pytest.raises(NotFoundError):
            await service.mark_achieved(db_session, taxonomy["user"].id, "missing")
        with pytest.raises(NotFoundError):
            await service.mark_achieved(db_session, "missing", taxonomy["loops"].id)

    async def test_progress_lists_every_skill(self, db_session: AsyncSession, taxonomy: dict) -> None:
        await service.mark_achieved(db_session, taxonomy["user"].id, taxonomy["bfs"].id)
        rows = await service.list_progress(db_session, taxonomy["user"].id)
        assert [(s.name, p is not None and p.is_achieved) for s, p in rows] == [("Loops", False), ("BFS", True)]

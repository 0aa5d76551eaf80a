"""Integration tests: submission recording, verdict application and counters."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from codeclub.db.models import Problem, Submission
from codeclub.errors import AlreadyJudgedError, IncompleteProblemError, NotFoundError, PermissionDenied
from codeclub.problems.service import set_visibility
from codeclub.submissions import service
from codeclub.submissions.schemas import CaseResult, Verdict
from tests.factories import make_org, make_problem, make_user, open_session

pytestmark = pytest.mark.asyncio


@pytest.fixture
async def setup(db_session: AsyncSession) -> dict:
    leader = await make_user(db_session, "leader@example.com")
    alice = await make_user(db_session, "alice@example.com")
    bob = await make_user(db_session, "bob@example.com")
    org = await make_org(db_session, "Club", leader, [alice])
    problem = await make_problem(db_session, org, leader, "sum")
    await db_session.commit()
    return {"leader": leader, "alice": alice, "bob": bob, "org": org, "problem": problem}


def _verdict(status: str, time: int | None = 100, score: float | None = None) -> Verdict:
    return Verdict(
        status=status,
        execution_time=time,
        memory_usage=12.5,
        score=score,
        test_results=[CaseResult(position=1, status=status, execution_time=time)],
    )


class TestRecordSubmission:
    async def test_recorded_pending_without_touching_counters(self, db_session: AsyncSession, setup: dict) -> None:
        problem = setup["problem"]
        submission = await service.record_submission(db_session, setup["bob"], problem, "print(1)", " Python ")
        assert submission.status == "pending"
        assert submission.language == "python"
        assert submission.test_results == []
        assert submission.judged_at is None
        assert submission.problem_version == 1
        assert (problem.submit_count, problem.accept_count) == (0, 0)

    async def test_member_submission_takes_org_context(self, db_session: AsyncSession, setup: dict) -> None:
        member_sub = await service.record_submission(db_session, setup["alice"], setup["problem"], "x", "cpp")
        outsider_sub = await service.record_submission(db_session, setup["bob"], setup["problem"], "x", "cpp")
        assert member_sub.organization_id == setup["org"].id
        assert outsider_sub.organization_id is None

    async def test_foreign_org_context_denied(self, db_session: AsyncSession, setup: dict) -> None:
        with pytest.raises(PermissionDenied):
            await service.record_submission(
                db_session, setup["bob"], setup["problem"], "x", "cpp", organization_id=setup["org"].id
            )

    async def test_empty_language_rejected(self, db_session: AsyncSession, setup: dict) -> None:
        with pytest.raises(ValueError, match="Language is required"):
            await service.record_submission(db_session, setup["bob"], setup["problem"], "x", "   ")

    async def test_oversized_code_rejected(self, db_session: AsyncSession, setup: dict) -> None:
        with pytest.raises(ValueError, match="maximum length"):
            await service.record_submission(db_session, setup["bob"], setup["problem"], "x" * 65_537, "python")

    async def test_archived_problem_rejects_submissions(self, db_session: AsyncSession, setup: dict) -> None:
        await set_visibility(db_session, setup["problem"].id, True, True, setup["leader"])
        with pytest.raises(PermissionDenied, match="Archived"):
            await service.record_submission(db_session, setup["alice"], setup["problem"], "x", "python")

    async def test_private_problem_rejects_outsiders(self, db_session: AsyncSession, setup: dict) -> None:
        private = await make_problem(db_session, setup["org"], setup["leader"], "secret", is_public=False)
        with pytest.raises(PermissionDenied):
            await service.record_submission(db_session, setup["bob"], private, "x", "python")

    async def test_problem_without_cases_rejects_submissions(self, db_session: AsyncSession, setup: dict) -> None:
        draft = await make_problem(
            db_session, setup["org"], setup["leader"], "draft", cases=0, is_public=False, is_archived=True
        )
        draft.is_archived = False  # bypass the publish guard to reach the judge check
        with pytest.raises(IncompleteProblemError):
            await service.record_submission(db_session, setup["leader"], draft, "x", "python")


class TestApplyVerdict:
    async def test_accepted_increments_both_counters(self, db_session: AsyncSession, setup: dict) -> None:
        problem = setup["problem"]
        submission = await service.record_submission(db_session, setup["bob"], problem, "x", "python")
        await db_session.commit()

        judged = await service.apply_verdict(db_session, submission.id, _verdict("Accepted", 120, 100.0))
        await db_session.commit()

        assert judged.status == "accepted"
        assert judged.execution_time == 120
        assert judged.score == 100.0
        assert judged.judged_at is not None
        assert judged.test_results == [
            {"position": 1, "status": "Accepted", "execution_time": 120, "memory_usage": None, "message": None}
        ]
        assert (problem.submit_count, problem.accept_count) == (1, 1)

    async def test_rejected_increments_submit_only(self, db_session: AsyncSession, setup: dict) -> None:
        problem = setup["problem"]
        submission = await service.record_submission(db_session, setup["bob"], problem, "x", "python")
        await service.apply_verdict(db_session, submission.id, _verdict("Wrong Answer"))
        assert (problem.submit_count, problem.accept_count) == (1, 0)
        assert submission.status == "wrong_answer"

    async def test_second_verdict_rejected_and_counters_unchanged(
        self, db_session: AsyncSession, setup: dict
    ) -> None:
        problem = setup["problem"]
        submission = await service.record_submission(db_session, setup["bob"], problem, "x", "python")
        await service.apply_verdict(db_session, submission.id, _verdict("accepted"))
        await db_session.commit()

        with pytest.raises(AlreadyJudgedError):
            await service.apply_verdict(db_session, submission.id, _verdict("wrong_answer"))
        assert submission.status == "accepted"
        assert (problem.submit_count, problem.accept_count) == (1, 1)

    async def test_failed_verdict_write_rolls_back_everything(
        self, db_session: AsyncSession, setup: dict, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        problem_id = setup["problem"].id
        submission = await service.record_submission(db_session, setup["bob"], setup["problem"], "x", "python")
        submission_id = submission.id
        await db_session.commit()

        async def failing_flush(self: AsyncSession, objects: object = None) -> None:
            raise OperationalError("UPDATE problems", {}, Exception("disk I/O error"))

        with monkeypatch.context() as patched:
            patched.setattr(AsyncSession, "flush", failing_flush)
            with pytest.raises(OperationalError):
                await service.apply_verdict(db_session, submission_id, _verdict("accepted", 90, 100.0))

        async with open_session() as fresh:
            stored = await fresh.get(Submission, submission_id)
            assert stored.status == "pending"
            assert (stored.execution_time, stored.memory_usage, stored.score) == (None, None, None)
            assert stored.judged_at is None
            assert stored.test_results == []
            counters = await fresh.get(Problem, problem_id)
            assert (counters.submit_count, counters.accept_count) == (0, 0)

        judged = await service.apply_verdict(db_session, submission_id, _verdict("accepted", 90, 100.0))
        assert judged.status == "accepted"

    async def test_pending_is_not_a_verdict(self, db_session: AsyncSession, setup: dict) -> None:
        submission = await service.record_submission(db_session, setup["bob"], setup["problem"], "x", "python")
        with pytest.raises(ValueError):
            await service.apply_verdict(db_session, submission.id, _verdict("pending"))
        assert submission.status == "pending"

    async def test_unknown_submission(self, db_session: AsyncSession, setup: dict) -> None:
        with pytest.raises(NotFoundError):
            await service.apply_verdict(db_session, "missing", _verdict("accepted"))

    async def test_unknown_verdict_kind_counts_as_rejection(self, db_session: AsyncSession, setup: dict) -> None:
        problem = setup["problem"]
        submission = await service.record_submission(db_session, setup["bob"], problem, "x", "python")
        await service.apply_verdict(db_session, submission.id, _verdict("Sandbox Violation"))
        assert submission.status == "sandbox_violation"
        assert (problem.submit_count, problem.accept_count) == (1, 0)

    async def test_accept_count_never_exceeds_submit_count(self, db_session: AsyncSession, setup: dict) -> None:
        problem = setup["problem"]
        statuses = ["accepted", "wrong_answer", "accepted", "runtime_error", "time_limit_exceeded"]
        for status in statuses:
            submission = await service.record_submission(db_session, setup["alice"], problem, "x", "python")
            await service.apply_verdict(db_session, submission.id, _verdict(status))
            assert problem.accept_count <= problem.submit_count
        await db_session.commit()
        assert (problem.submit_count, problem.accept_count) == (5, 2)


class TestQueries:
    async def test_list_submissions_filters_newest_first(self, db_session: AsyncSession, setup: dict) -> None:
        problem = setup["problem"]
        first = await service.record_submission(db_session, setup["bob"], problem, "a", "python")
        second = await service.record_submission(db_session, setup["bob"], problem, "b", "python")
        await service.record_submission(db_session, setup["alice"], problem, "c", "python")
        await service.apply_verdict(db_session, first.id, _verdict("accepted"))

        mine, total = await service.list_submissions(db_session, user_id=setup["bob"].id)
        assert total == 2
        assert [s.id for s in mine] == [second.id, first.id]

        accepted, total = await service.list_submissions(db_session, problem_id=problem.id, status="accepted")
        assert total == 1
        assert accepted[0].id == first.id

    async def test_status_filter_uses_verdict_spelling(self, db_session: AsyncSession, setup: dict) -> None:
        problem = setup["problem"]
        accepted = await service.record_submission(db_session, setup["bob"], problem, "a", "python")
        rejected = await service.record_submission(db_session, setup["bob"], problem, "b", "python")
        await service.record_submission(db_session, setup["bob"], problem, "c", "python")
        await service.apply_verdict(db_session, accepted.id, _verdict("Accepted"))
        await service.apply_verdict(db_session, rejected.id, _verdict("Wrong Answer"))

        for spelling, expected in [("Accepted", accepted.id), ("wrong-answer", rejected.id)]:
            rows, total = await service.list_submissions(db_session, problem_id=problem.id, status=spelling)
            assert total == 1
            assert rows[0].id == expected

        pending, total = await service.list_submissions(db_session, problem_id=problem.id, status="PENDING")
        assert total == 1

    async def test_list_pagination(self, db_session: AsyncSession, setup: dict) -> None:
        for i in range(5):
            await service.record_submission(db_session, setup["bob"], setup["problem"], str(i), "python")
        page, total = await service.list_submissions(db_session, user_id=setup["bob"].id, page=2, per_page=2)
        assert total == 5
        assert len(page) == 2

    async def test_fastest_accepted(self, db_session: AsyncSession, setup: dict) -> None:
        problem = setup["problem"]
        times = {"slow": 300, "fast": 50, "wrong": 1}
        ids = {}
        for label, time in times.items():
            submission = await service.record_submission(db_session, setup["bob"], problem, label, "python")
            status = "wrong_answer" if label == "wrong" else "accepted"
            await service.apply_verdict(db_session, submission.id, _verdict(status, time))
            ids[label] = submission.id

        fastest = await service.fastest_accepted(db_session, problem.id)
        assert [s.id for s in fastest] == [ids["fast"], ids["slow"]]


class TestReconcile:
    async def test_drifted_counters_are_recomputed(self, db_session: AsyncSession, setup: dict) -> None:
        problem = setup["problem"]
        for status in ("accepted", "wrong_answer"):
            submission = await service.record_submission(db_session, setup["bob"], problem, "x", "python")
            await service.apply_verdict(db_session, submission.id, _verdict(status))
        await service.record_submission(db_session, setup["bob"], problem, "pending", "python")

        problem.submit_count = 7
        problem.accept_count = 3
        await db_session.flush()

        corrected = await service.reconcile_problem_counters(db_session)
        assert corrected == [problem.id]
        assert (problem.submit_count, problem.accept_count) == (2, 1)

    async def test_consistent_counters_untouched(self, db_session: AsyncSession, setup: dict) -> None:
        submission = await service.record_submission(db_session, setup["bob"], setup["problem"], "x", "python")
        await service.apply_verdict(db_session, submission.id, _verdict("accepted"))
        assert await service.reconcile_problem_counters(db_session, setup["problem"].id) == []

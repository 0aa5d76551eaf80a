"""Unit tests for the ranking order of problem and global snapshots."""

from __future__ import annotations

from datetime import datetime, timedelta

from codeclub.rankings.ranking import rank_global_entries, rank_problem_entries

T0 = datetime(2026, 3, 1, 12, 0, 0)


def _problem_row(user_id: str, score: float | None, time: int | None, minutes: int, attempts: int = 1) -> dict:
    return {
        "user_id": user_id,
        "best_score": score,
        "best_time": time,
        "accepted_at": T0 + timedelta(minutes=minutes),
        "attempts": attempts,
    }


def _global_row(user_id: str, solved: int, total: float, minutes: int) -> dict:
    return {
        "user_id": user_id,
        "solved": solved,
        "total_score": total,
        "last_solved_at": T0 + timedelta(minutes=minutes),
    }


class TestProblemRanking:
    def test_higher_score_ranks_first(self) -> None:
        ranked = rank_problem_entries([
            _problem_row("u1", 50.0, 10, 0),
            _problem_row("u2", 100.0, 900, 30),
        ])
        assert [e["user_id"] for e in ranked] == ["u2", "u1"]
        assert [e["rank"] for e in ranked] == [1, 2]

    def test_faster_run_breaks_score_tie(self) -> None:
        ranked = rank_problem_entries([
            _problem_row("u1", 100.0, 250, 0),
            _problem_row("u2", 100.0, 120, 10),
        ])
        assert [e["user_id"] for e in ranked] == ["u2", "u1"]

    def test_missing_time_sorts_after_measured_runs(self) -> None:
        ranked = rank_problem_entries([
            _problem_row("u1", 100.0, None, 0),
            _problem_row("u2", 100.0, 999, 5),
        ])
        assert [e["user_id"] for e in ranked] == ["u2", "u1"]

    def test_earlier_accept_breaks_time_tie(self) -> None:
        ranked = rank_problem_entries([
            _problem_row("u1", 100.0, 100, 20),
            _problem_row("u2", 100.0, 100, 5),
        ])
        assert [e["user_id"] for e in ranked] == ["u2", "u1"]

    def test_full_tie_is_ordered_by_user_id(self) -> None:
        rows = [_problem_row("bbb", 100.0, 100, 0), _problem_row("aaa", 100.0, 100, 0)]
        assert [e["user_id"] for e in rank_problem_entries(rows)] == ["aaa", "bbb"]
        assert [e["user_id"] for e in rank_problem_entries(list(reversed(rows)))] == ["aaa", "bbb"]

    def test_null_score_treated_as_zero(self) -> None:
        ranked = rank_problem_entries([_problem_row("u1", None, 10, 0), _problem_row("u2", 1.0, 500, 0)])
        assert ranked[0]["user_id"] == "u2"
        assert ranked[1]["best_score"] == 0.0

    def test_entries_are_json_ready(self) -> None:
        (entry,) = rank_problem_entries([_problem_row("u1", 80.0, 42, 0, attempts=3)])
        assert entry == {
            "rank": 1,
            "user_id": "u1",
            "best_score": 80.0,
            "best_time": 42,
            "accepted_at": T0.isoformat(),
            "attempts": 3,
        }

    def test_empty(self) -> None:
        assert rank_problem_entries([]) == []


class TestGlobalRanking:
    def test_more_solved_ranks_first(self) -> None:
        ranked = rank_global_entries([_global_row("u1", 2, 500.0, 0), _global_row("u2", 3, 100.0, 60)])
        assert [e["user_id"] for e in ranked] == ["u2", "u1"]

    def test_total_score_breaks_solved_tie(self) -> None:
        ranked = rank_global_entries([_global_row("u1", 2, 150.0, 0), _global_row("u2", 2, 200.0, 60)])
        assert [e["user_id"] for e in ranked] == ["u2", "u1"]

    def test_earlier_last_solve_breaks_score_tie(self) -> None:
        ranked = rank_global_entries([_global_row("u1", 2, 200.0, 60), _global_row("u2", 2, 200.0, 10)])
        assert [e["user_id"] for e in ranked] == ["u2", "u1"]
        assert ranked[0]["last_solved_at"] == (T0 + timedelta(minutes=10)).isoformat()

    def test_ranks_are_sequential(self) -> None:
        rows = [_global_row(f"u{i}", 1, 100.0, 0) for i in range(5)]
        assert [e["rank"] for e in rank_global_entries(rows)] == [1, 2, 3, 4, 5]

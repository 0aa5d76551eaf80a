"""Deterministic ranking policy for problem and global scopes.

Problem scope: best score DESC, fastest accepted run ASC, earliest accept ASC.
Global scope: problems solved DESC, total best score DESC, earliest time of
the last solve ASC.

User id is the final tiebreaker in both, so equal inputs always produce the
same order. Ranks are sequential positions starting at 1.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

_NO_TIME = float("inf")


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def rank_problem_entries(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Order per-user results for one problem.

    Input: dicts with user_id, best_score (float | None), best_time
    (int | None), accepted_at (datetime), attempts (int).

    Output: new dicts, sorted, with `rank` added and timestamps rendered as
    ISO strings for the snapshot payload.
    """

    def sort_key(r: dict[str, Any]) -> tuple[float, float, datetime, str]:
        best_time = r.get("best_time")
        return (
            -(r.get("best_score") or 0.0),
            best_time if best_time is not None else _NO_TIME,
            r["accepted_at"],
            r["user_id"],
        )

    ranked = []
    for idx, r in enumerate(sorted(rows, key=sort_key)):
        ranked.append({
            "rank": idx + 1,
            "user_id": r["user_id"],
            "best_score": float(r.get("best_score") or 0.0),
            "best_time": r.get("best_time"),
            "accepted_at": _iso(r["accepted_at"]),
            "attempts": int(r.get("attempts") or 0),
        })
    return ranked


def rank_global_entries(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Order per-user totals across all problems.

    Input: dicts with user_id, solved (int), total_score (float) and
    last_solved_at (datetime of reaching the current solved count).
    """

    def sort_key(r: dict[str, Any]) -> tuple[int, float, datetime, str]:
        return (
            -int(r.get("solved") or 0),
            -float(r.get("total_score") or 0.0),
            r["last_solved_at"],
            r["user_id"],
        )

    ranked = []
    for idx, r in enumerate(sorted(rows, key=sort_key)):
        ranked.append({
            "rank": idx + 1,
            "user_id": r["user_id"],
            "solved": int(r.get("solved") or 0),
            "total_score": float(r.get("total_score") or 0.0),
            "last_solved_at": _iso(r["last_solved_at"]),
        })
    return ranked

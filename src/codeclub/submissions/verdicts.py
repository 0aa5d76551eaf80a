"""Verdict vocabulary for judged submissions.

Statuses are open-ended strings: a judge may report kinds this service has
never seen. Unknown verdicts are stored as reported and handled as
not-accepted everywhere.
"""

from __future__ import annotations

import re

PENDING = "pending"
ACCEPTED = "accepted"

KNOWN_VERDICTS = frozenset({
    ACCEPTED,
    "wrong_answer",
    "time_limit_exceeded",
    "memory_limit_exceeded",
    "output_limit_exceeded",
    "runtime_error",
    "compile_error",
    "presentation_error",
    "internal_error",
})

_SEPARATORS = re.compile(r"[\s\-]+")
_VALID = re.compile(r"^[a-z0-9_]{1,48}$")


def normalize_status(status: str) -> str:
    """Lower snake case: 'Wrong Answer' and 'wrong-answer' both become 'wrong_answer'."""
    return _SEPARATORS.sub("_", status.strip().lower())


def normalize_verdict(status: str) -> str:
    """Normalise a judge-reported status, refusing malformed ones and 'pending'."""
    normalized = normalize_status(status)
    if not _VALID.match(normalized):
        msg = f"Invalid verdict status: {status!r}"
        raise ValueError(msg)
    if normalized == PENDING:
        msg = "'pending' is not a terminal verdict"
        raise ValueError(msg)
    return normalized


def is_accepted(status: str | None) -> bool:
    return status == ACCEPTED


def is_known(status: str) -> bool:
    return status in KNOWN_VERDICTS

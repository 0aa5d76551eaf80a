"""Domain exceptions raised by the service layer.

Each carries the HTTP status the API maps it to. None of them is fatal to
the process; they are recovered at the request boundary.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for recoverable domain errors."""

    status_code: int = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ConstraintViolation(AppError):
    """A uniqueness or foreign-key rule rejected the write."""

    status_code = 409


class DuplicateSlugError(ConstraintViolation):
    """Another problem already uses this slug."""


class NotFoundError(AppError):
    status_code = 404


class AlreadyJudgedError(AppError):
    """A verdict was applied to a submission that already has one."""

    status_code = 409


class IncompleteProblemError(AppError):
    """The problem has no test cases and cannot be published."""

    status_code = 422


class PermissionDenied(AppError):
    status_code = 403

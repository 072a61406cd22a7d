"""Ownership chain checks: user -> position -> resume -> metadata/applications.

A missing id raises :class:`NotFoundError`, an id owned by someone else raises
:class:`AuthorizationError`. Callers at the outer boundary collapse the two
with :func:`resuopti.errors.public_error`.
"""

from __future__ import annotations

from resuopti.db.models import ApplicationRecord, ResumeVersion, TargetPosition
from resuopti.db.repositories import Repository
from resuopti.errors import AuthorizationError, NotFoundError


def require_position(
    repo: Repository,
    position_id: str,
    user_id: str,
    *,
    not_found_code: str = "NotFound",
) -> TargetPosition:
    position = repo.get_position(position_id)
    if position is None:
        raise NotFoundError("target position not found", code=not_found_code)
    if position.user_id != user_id:
        raise AuthorizationError("target position belongs to another user")
    return position


def require_resume(
    repo: Repository, resume_id: str, user_id: str
) -> tuple[ResumeVersion, TargetPosition]:
    chain = repo.get_resume_with_position(resume_id)
    if chain is None:
        raise NotFoundError("resume not found", code="ResumeNotFound")
    resume, position = chain
    if position.user_id != user_id:
        raise AuthorizationError("resume belongs to another user")
    return resume, position


def require_application(
    repo: Repository, application_id: str, user_id: str
) -> tuple[ApplicationRecord, ResumeVersion, TargetPosition]:
    chain = repo.get_application_chain(application_id)
    if chain is None:
        raise NotFoundError("application record not found", code="ApplicationNotFound")
    application, resume, position = chain
    if position.user_id != user_id:
        raise AuthorizationError("application record belongs to another user")
    return application, resume, position

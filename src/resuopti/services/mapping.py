"""Conversions from ORM rows to the plain records services hand out."""

from __future__ import annotations

from resuopti.db.models import (
    ApplicationRecord,
    ResumeMetadata,
    ResumeVersion,
    TargetPosition,
    User,
)
from resuopti.types import (
    Application,
    Metadata,
    Position,
    PositionSummary,
    Resume,
    ResumeSummary,
    UserSummary,
)


def to_user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        email=user.email,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def to_position(position: TargetPosition, resume_count: int | None = None) -> Position:
    return Position(**position.to_dict(), resume_count=resume_count)


def to_position_summary(position: TargetPosition) -> PositionSummary:
    return PositionSummary(
        id=position.id,
        user_id=position.user_id,
        name=position.name,
        description=position.description,
    )


def to_metadata(metadata: ResumeMetadata) -> Metadata:
    return Metadata(
        id=metadata.id,
        resume_id=metadata.resume_id,
        notes=metadata.notes,
        tags=list(metadata.tags or []),
        created_at=metadata.created_at,
        updated_at=metadata.updated_at,
    )


def to_resume(
    resume: ResumeVersion,
    metadata: ResumeMetadata | None = None,
    position: TargetPosition | None = None,
) -> Resume:
    return Resume(
        **resume.to_dict(),
        metadata=to_metadata(metadata) if metadata is not None else None,
        target_position=to_position_summary(position) if position is not None else None,
    )


def to_resume_summary(resume: ResumeVersion) -> ResumeSummary:
    return ResumeSummary(
        id=resume.id,
        target_position_id=resume.target_position_id,
        kind=resume.kind,
        title=resume.title,
        created_at=resume.created_at,
        updated_at=resume.updated_at,
    )


def to_application(
    application: ApplicationRecord,
    resume: ResumeVersion | None = None,
    position: TargetPosition | None = None,
) -> Application:
    return Application(
        **application.to_dict(),
        resume=to_resume_summary(resume) if resume is not None else None,
        target_position=to_position_summary(position) if position is not None else None,
    )

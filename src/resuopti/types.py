from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

ResumeKind = Literal["online", "file"]
ApplicationStatus = Literal["Applied", "InterviewInvited", "Rejected", "Offered"]

APPLICATION_STATUSES: tuple[str, ...] = ("Applied", "InterviewInvited", "Rejected", "Offered")
DEFAULT_APPLICATION_STATUS: ApplicationStatus = "Applied"


class UserSummary(BaseModel):
    id: str
    email: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TokenClaims(BaseModel):
    user_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


class LoginResult(BaseModel):
    user: UserSummary
    token: str


class Position(BaseModel):
    id: str
    user_id: str
    name: str
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    resume_count: int | None = None


class PositionSummary(BaseModel):
    id: str
    user_id: str
    name: str
    description: str | None = None


class Metadata(BaseModel):
    id: str
    resume_id: str
    notes: str | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ResumeSummary(BaseModel):
    id: str
    target_position_id: str
    kind: ResumeKind
    title: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Resume(BaseModel):
    id: str
    target_position_id: str
    kind: ResumeKind
    title: str
    content: str | None = None
    file_path: str | None = None
    file_name: str | None = None
    file_size: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    metadata: Metadata | None = None
    target_position: PositionSummary | None = None


class ResumeDeleted(BaseModel):
    id: str
    kind: ResumeKind


class TagSearchHit(BaseModel):
    metadata: Metadata
    resume: ResumeSummary
    target_position: PositionSummary


class Application(BaseModel):
    id: str
    resume_id: str
    company_name: str
    position_title: str | None = None
    apply_date: date
    status: ApplicationStatus = DEFAULT_APPLICATION_STATUS
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    resume: ResumeSummary | None = None
    target_position: PositionSummary | None = None


class ApplicationDeleted(BaseModel):
    message: str
    deleted_id: str


class ApplicationStats(BaseModel):
    total: int = 0
    by_status: dict[str, int] = Field(
        default_factory=lambda: {status: 0 for status in APPLICATION_STATUSES}
    )
    latest_apply_date: date | None = None
    first_apply_date: date | None = None


class CacheStats(BaseModel):
    size: int
    max_entries: int
    utilization: float

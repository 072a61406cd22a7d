from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from typing import Any

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from resuopti.db.models import (
    ApplicationRecord,
    ResumeMetadata,
    ResumeVersion,
    TargetPosition,
    User,
)
from resuopti.errors import InternalError

logger = logging.getLogger(__name__)


class Repository:
    """Entity store over one SQLAlchemy session.

    Every write commits on its own unless it runs inside :meth:`atomic`, in
    which case it only flushes and the enclosing block commits or rolls back
    all of its writes together.
    """

    def __init__(self, session: Session):
        self.session = session
        self._depth = 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        self._depth += 1
        try:
            yield
        except Exception:
            self._depth -= 1
            if self._depth == 0:
                self.session.rollback()
            raise

        self._depth -= 1
        if self._depth == 0:
            try:
                self.session.commit()
            except SQLAlchemyError as exc:
                self.session.rollback()
                logger.exception("Commit of atomic unit failed")
                raise InternalError("failed to persist changes") from exc

    def _save(self, *objects: Any) -> None:
        try:
            if self._depth:
                self.session.flush()
            else:
                self.session.commit()
            for obj in objects:
                self.session.refresh(obj)
        except SQLAlchemyError as exc:
            if not self._depth:
                self.session.rollback()
            logger.exception("Store write failed")
            raise InternalError("failed to persist changes") from exc

    def _update(self, obj: Any, values: dict[str, Any]) -> Any:
        for key, value in values.items():
            setattr(obj, key, value)
        self._save(obj)
        return obj

    # users

    def create_user(self, *, email: str, password_hash: str) -> User:
        user = User(email=email, password_hash=password_hash)
        self.session.add(user)
        self._save(user)
        return user

    def get_user(self, user_id: str) -> User | None:
        return self.session.get(User, user_id)

    def get_user_by_email(self, email: str) -> User | None:
        return self.session.scalar(select(User).where(User.email == email))

    # target positions

    def create_position(self, *, user_id: str, name: str, description: str | None) -> TargetPosition:
        position = TargetPosition(user_id=user_id, name=name, description=description)
        self.session.add(position)
        self._save(position)
        return position

    def get_position(self, position_id: str) -> TargetPosition | None:
        return self.session.get(TargetPosition, position_id)

    def list_positions(self, user_id: str) -> list[TargetPosition]:
        statement = (
            select(TargetPosition)
            .where(TargetPosition.user_id == user_id)
            .order_by(TargetPosition.created_at.desc(), TargetPosition.id.desc())
        )
        return list(self.session.scalars(statement).all())

    def find_position_by_name(
        self,
        user_id: str,
        name: str,
        *,
        exclude_id: str | None = None,
    ) -> TargetPosition | None:
        conditions = [TargetPosition.user_id == user_id, TargetPosition.name == name]
        if exclude_id is not None:
            conditions.append(TargetPosition.id != exclude_id)
        return self.session.scalar(select(TargetPosition).where(and_(*conditions)))

    def update_position(self, position: TargetPosition, values: dict[str, Any]) -> TargetPosition:
        return self._update(position, values)

    def delete_position(self, position: TargetPosition) -> None:
        self.session.delete(position)
        self._save()

    def count_resumes(self, position_id: str) -> int:
        statement = select(func.count(ResumeVersion.id)).where(
            ResumeVersion.target_position_id == position_id
        )
        return int(self.session.scalar(statement) or 0)

    # resume versions

    def create_resume(self, **values: Any) -> ResumeVersion:
        resume = ResumeVersion(**values)
        self.session.add(resume)
        self._save(resume)
        return resume

    def get_resume(self, resume_id: str) -> ResumeVersion | None:
        return self.session.get(ResumeVersion, resume_id)

    def get_resume_with_position(
        self, resume_id: str
    ) -> tuple[ResumeVersion, TargetPosition] | None:
        statement = (
            select(ResumeVersion, TargetPosition)
            .join(TargetPosition, TargetPosition.id == ResumeVersion.target_position_id)
            .where(ResumeVersion.id == resume_id)
        )
        row = self.session.execute(statement).first()
        if row is None:
            return None
        return row[0], row[1]

    def list_resumes_with_metadata(
        self, position_id: str
    ) -> list[tuple[ResumeVersion, ResumeMetadata | None]]:
        statement = (
            select(ResumeVersion, ResumeMetadata)
            .outerjoin(ResumeMetadata, ResumeMetadata.resume_id == ResumeVersion.id)
            .where(ResumeVersion.target_position_id == position_id)
            .order_by(ResumeVersion.created_at.desc(), ResumeVersion.id.desc())
        )
        return [(row[0], row[1]) for row in self.session.execute(statement).all()]

    def update_resume(self, resume: ResumeVersion, values: dict[str, Any]) -> ResumeVersion:
        return self._update(resume, values)

    def delete_resume_cascade(self, resume_id: str) -> None:
        """Remove a resume together with its metadata and application records."""
        try:
            self.session.execute(
                delete(ApplicationRecord).where(ApplicationRecord.resume_id == resume_id)
            )
            self.session.execute(delete(ResumeMetadata).where(ResumeMetadata.resume_id == resume_id))
            self.session.execute(delete(ResumeVersion).where(ResumeVersion.id == resume_id))
        except SQLAlchemyError as exc:
            if not self._depth:
                self.session.rollback()
            logger.exception("Cascade delete failed resume_id=%s", resume_id)
            raise InternalError("failed to delete resume") from exc
        self._save()

    # resume metadata

    def create_metadata(
        self,
        *,
        resume_id: str,
        notes: str | None = None,
        tags: list[str] | None = None,
    ) -> ResumeMetadata:
        metadata = ResumeMetadata(resume_id=resume_id, notes=notes, tags=list(tags or []))
        self.session.add(metadata)
        self._save(metadata)
        return metadata

    def get_metadata(self, resume_id: str) -> ResumeMetadata | None:
        return self.session.scalar(select(ResumeMetadata).where(ResumeMetadata.resume_id == resume_id))

    def update_metadata(self, metadata: ResumeMetadata, values: dict[str, Any]) -> ResumeMetadata:
        if "tags" in values:
            values = values | {"tags": list(values["tags"])}
        return self._update(metadata, values)

    def list_metadata_with_owner(
        self, user_id: str
    ) -> list[tuple[ResumeMetadata, ResumeVersion, TargetPosition]]:
        statement = (
            select(ResumeMetadata, ResumeVersion, TargetPosition)
            .join(ResumeVersion, ResumeVersion.id == ResumeMetadata.resume_id)
            .join(TargetPosition, TargetPosition.id == ResumeVersion.target_position_id)
            .where(TargetPosition.user_id == user_id)
            .order_by(ResumeVersion.created_at.desc(), ResumeVersion.id.desc())
        )
        return [(row[0], row[1], row[2]) for row in self.session.execute(statement).all()]

    # application records

    def create_application(self, **values: Any) -> ApplicationRecord:
        application = ApplicationRecord(**values)
        self.session.add(application)
        self._save(application)
        return application

    def get_application_chain(
        self, application_id: str
    ) -> tuple[ApplicationRecord, ResumeVersion, TargetPosition] | None:
        statement = (
            select(ApplicationRecord, ResumeVersion, TargetPosition)
            .join(ResumeVersion, ResumeVersion.id == ApplicationRecord.resume_id)
            .join(TargetPosition, TargetPosition.id == ResumeVersion.target_position_id)
            .where(ApplicationRecord.id == application_id)
        )
        row = self.session.execute(statement).first()
        if row is None:
            return None
        return row[0], row[1], row[2]

    def list_applications_for_resume(self, resume_id: str) -> list[ApplicationRecord]:
        statement = (
            select(ApplicationRecord)
            .where(ApplicationRecord.resume_id == resume_id)
            .order_by(ApplicationRecord.apply_date.desc(), ApplicationRecord.created_at.desc())
        )
        return list(self.session.scalars(statement).all())

    def list_applications_for_user(
        self,
        user_id: str,
        *,
        status: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[tuple[ApplicationRecord, ResumeVersion, TargetPosition]]:
        conditions = [TargetPosition.user_id == user_id]
        if status is not None:
            conditions.append(ApplicationRecord.status == status)
        if date_from is not None:
            conditions.append(ApplicationRecord.apply_date >= date_from)
        if date_to is not None:
            conditions.append(ApplicationRecord.apply_date <= date_to)

        statement = (
            select(ApplicationRecord, ResumeVersion, TargetPosition)
            .join(ResumeVersion, ResumeVersion.id == ApplicationRecord.resume_id)
            .join(TargetPosition, TargetPosition.id == ResumeVersion.target_position_id)
            .where(and_(*conditions))
            .order_by(ApplicationRecord.apply_date.desc(), ApplicationRecord.created_at.desc())
        )
        return [(row[0], row[1], row[2]) for row in self.session.execute(statement).all()]

    def update_application(
        self, application: ApplicationRecord, values: dict[str, Any]
    ) -> ApplicationRecord:
        return self._update(application, values)

    def delete_application(self, application: ApplicationRecord) -> None:
        self.session.delete(application)
        self._save()

    def application_status_summary(self, user_id: str) -> list[tuple[str, int, date, date]]:
        """Per-status ``(status, count, first_apply_date, latest_apply_date)`` rows."""
        statement = (
            select(
                ApplicationRecord.status,
                func.count(ApplicationRecord.id),
                func.min(ApplicationRecord.apply_date),
                func.max(ApplicationRecord.apply_date),
            )
            .join(ResumeVersion, ResumeVersion.id == ApplicationRecord.resume_id)
            .join(TargetPosition, TargetPosition.id == ResumeVersion.target_position_id)
            .where(TargetPosition.user_id == user_id)
            .group_by(ApplicationRecord.status)
        )
        return [(row[0], int(row[1]), row[2], row[3]) for row in self.session.execute(statement).all()]

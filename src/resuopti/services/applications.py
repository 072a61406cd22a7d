from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

from resuopti.config import Settings, get_settings
from resuopti.core.cache import LRUCache, stats_key
from resuopti.core.clock import Clock, SystemClock
from resuopti.core.validation import coerce_date, optional_text, required_text
from resuopti.db.repositories import Repository
from resuopti.errors import ValidationError
from resuopti.services.mapping import to_application
from resuopti.services.ownership import require_application, require_resume
from resuopti.types import (
    APPLICATION_STATUSES,
    DEFAULT_APPLICATION_STATUS,
    Application,
    ApplicationDeleted,
    ApplicationStats,
)

logger = logging.getLogger(__name__)

MAX_COMPANY_NAME_LENGTH = 200
MAX_POSITION_TITLE_LENGTH = 200
MAX_NOTES_LENGTH = 2000


def _clean_company_name(value: Any) -> str:
    return required_text(
        value,
        label="company name",
        max_length=MAX_COMPANY_NAME_LENGTH,
        empty_code="EmptyCompanyName",
        too_long_code="CompanyNameTooLong",
    )


def _clean_position_title(value: Any) -> str | None:
    return optional_text(
        value,
        label="position title",
        max_length=MAX_POSITION_TITLE_LENGTH,
        too_long_code="PositionTitleTooLong",
        invalid_code="InvalidPositionTitle",
    )


def _clean_notes(value: Any) -> str | None:
    return optional_text(
        value,
        label="notes",
        max_length=MAX_NOTES_LENGTH,
        too_long_code="NotesTooLong",
        invalid_code="InvalidNotes",
    )


def _check_status(value: Any) -> str:
    if value not in APPLICATION_STATUSES:
        raise ValidationError(
            "InvalidStatus",
            f"status must be one of: {', '.join(APPLICATION_STATUSES)}",
        )
    return value


class ApplicationService:
    """Application attempts logged against a resume version.

    Every write drops the owner's cached statistics so :meth:`get_stats`
    never serves counts older than the last change made through this service.
    """

    def __init__(
        self,
        repo: Repository,
        *,
        cache: LRUCache,
        clock: Clock | None = None,
        settings: Settings | None = None,
    ):
        self.repo = repo
        self.cache = cache
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock(self.settings.timezone)

    def _clean_apply_date(self, value: Any) -> date:
        apply_date = coerce_date(value, label="apply date", code="InvalidApplyDate")
        if apply_date > self.clock.today():
            raise ValidationError("FutureApplyDate", "apply date cannot be in the future")
        return apply_date

    def _invalidate_stats(self, user_id: str) -> None:
        self.cache.delete(stats_key(user_id))

    def create(
        self,
        resume_id: str,
        user_id: str,
        company_name: str,
        apply_date: date | str,
        position_title: str | None = None,
        status: str = DEFAULT_APPLICATION_STATUS,
        notes: str | None = None,
    ) -> Application:
        resume, position = require_resume(self.repo, resume_id, user_id)

        values = {
            "resume_id": resume.id,
            "company_name": _clean_company_name(company_name),
            "position_title": _clean_position_title(position_title),
            "apply_date": self._clean_apply_date(apply_date),
            "status": _check_status(status),
            "notes": _clean_notes(notes),
        }
        application = self.repo.create_application(**values)
        self._invalidate_stats(user_id)
        logger.info(
            "Logged application application_id=%s resume_id=%s status=%s",
            application.id,
            resume.id,
            application.status,
        )
        return to_application(application, resume, position)

    def get_by_resume_id(self, resume_id: str, user_id: str) -> list[Application]:
        resume, position = require_resume(self.repo, resume_id, user_id)
        return [
            to_application(application, resume, position)
            for application in self.repo.list_applications_for_resume(resume.id)
        ]

    def get_by_user_id(
        self,
        user_id: str,
        status: str | None = None,
        date_from: date | str | None = None,
        date_to: date | str | None = None,
    ) -> list[Application]:
        if status is not None:
            _check_status(status)
        lower = coerce_date(date_from, label="date_from", code="InvalidDate") if date_from is not None else None
        upper = coerce_date(date_to, label="date_to", code="InvalidDate") if date_to is not None else None

        rows = self.repo.list_applications_for_user(
            user_id,
            status=status,
            date_from=lower,
            date_to=upper,
        )
        return [to_application(application, resume, position) for application, resume, position in rows]

    def get_by_id(self, application_id: str, user_id: str) -> Application:
        application, resume, position = require_application(self.repo, application_id, user_id)
        return to_application(application, resume, position)

    def update(self, application_id: str, user_id: str, changes: Mapping[str, Any]) -> Application:
        application, resume, position = require_application(self.repo, application_id, user_id)

        values: dict[str, Any] = {}
        if "company_name" in changes:
            values["company_name"] = _clean_company_name(changes["company_name"])
        if "position_title" in changes:
            values["position_title"] = _clean_position_title(changes["position_title"])
        if "apply_date" in changes:
            values["apply_date"] = self._clean_apply_date(changes["apply_date"])
        if "status" in changes:
            values["status"] = _check_status(changes["status"])
        if "notes" in changes:
            values["notes"] = _clean_notes(changes["notes"])

        if values:
            application = self.repo.update_application(application, values)
            self._invalidate_stats(user_id)
        return to_application(application, resume, position)

    def delete(self, application_id: str, user_id: str) -> ApplicationDeleted:
        application, _resume, _position = require_application(self.repo, application_id, user_id)

        self.repo.delete_application(application)
        self._invalidate_stats(user_id)
        logger.info("Deleted application application_id=%s", application_id)
        return ApplicationDeleted(message="application record deleted", deleted_id=application_id)

    def get_stats(self, user_id: str) -> ApplicationStats:
        def compute() -> ApplicationStats:
            stats = ApplicationStats()
            for status, count, first, latest in self.repo.application_status_summary(user_id):
                stats.by_status[status] = count
                stats.total += count
                if stats.first_apply_date is None or first < stats.first_apply_date:
                    stats.first_apply_date = first
                if stats.latest_apply_date is None or latest > stats.latest_apply_date:
                    stats.latest_apply_date = latest
            return stats

        cached = self.cache.wrap(stats_key(user_id), compute, self.settings.stats_cache_ttl_sec)
        return cached.model_copy(deep=True)

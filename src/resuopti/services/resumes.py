from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from resuopti.config import Settings, get_settings
from resuopti.core.cache import LRUCache, metadata_key, stats_key
from resuopti.core.validation import required_text
from resuopti.db.repositories import Repository
from resuopti.errors import ValidationError
from resuopti.services.mapping import to_resume
from resuopti.services.metadata import MetadataService
from resuopti.services.ownership import require_position, require_resume
from resuopti.storage import LocalBlobStore
from resuopti.types import Metadata, Resume, ResumeDeleted

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200


def _clean_title(title: Any) -> str:
    return required_text(
        title,
        label="resume title",
        max_length=MAX_TITLE_LENGTH,
        empty_code="EmptyTitle",
        too_long_code="TitleTooLong",
    )


def _check_content(content: Any) -> str:
    if not isinstance(content, str):
        raise ValidationError("InvalidContent", "resume content must be a string")
    return content


class ResumeService:
    """Resume versions under a target position.

    A resume and its metadata record are created together and removed
    together; see :meth:`Repository.atomic`.
    """

    def __init__(
        self,
        repo: Repository,
        *,
        cache: LRUCache,
        blob_store: LocalBlobStore,
        metadata_service: MetadataService,
        settings: Settings | None = None,
    ):
        self.repo = repo
        self.cache = cache
        self.blob_store = blob_store
        self.metadata_service = metadata_service
        self.settings = settings or get_settings()

    def _create_with_metadata(self, values: dict[str, Any]) -> Resume:
        with self.repo.atomic():
            resume = self.repo.create_resume(**values)
            metadata = self.repo.create_metadata(resume_id=resume.id)
        logger.info(
            "Created resume version resume_id=%s kind=%s position_id=%s",
            resume.id,
            resume.kind,
            resume.target_position_id,
        )
        return to_resume(resume, metadata)

    def create_online(self, position_id: str, user_id: str, title: str, content: str) -> Resume:
        require_position(self.repo, position_id, user_id, not_found_code="PositionNotFound")
        clean_title = _clean_title(title)
        body = _check_content(content)

        return self._create_with_metadata(
            {
                "target_position_id": position_id,
                "kind": "online",
                "title": clean_title,
                "content": body,
            }
        )

    def create_file(
        self,
        position_id: str,
        user_id: str,
        title: str,
        file_path: str,
        file_name: str,
        file_size: int,
    ) -> Resume:
        require_position(self.repo, position_id, user_id, not_found_code="PositionNotFound")
        clean_title = _clean_title(title)

        if not isinstance(file_path, str) or not file_path.strip():
            raise ValidationError("EmptyFilePath", "file path must not be empty")
        if not isinstance(file_name, str) or not file_name.strip():
            raise ValidationError("EmptyFileName", "file name must not be empty")
        limit = self.settings.max_upload_bytes
        if isinstance(file_size, bool) or not isinstance(file_size, int) or not 0 <= file_size <= limit:
            raise ValidationError("InvalidFileSize", f"file size must be an integer between 0 and {limit}")

        return self._create_with_metadata(
            {
                "target_position_id": position_id,
                "kind": "file",
                "title": clean_title,
                "file_path": file_path,
                "file_name": file_name.strip(),
                "file_size": file_size,
            }
        )

    def list_by_position(self, position_id: str, user_id: str) -> list[Resume]:
        require_position(self.repo, position_id, user_id, not_found_code="PositionNotFound")
        return [
            to_resume(resume, metadata)
            for resume, metadata in self.repo.list_resumes_with_metadata(position_id)
        ]

    def get_by_id(self, resume_id: str, user_id: str) -> Resume:
        resume, position = require_resume(self.repo, resume_id, user_id)
        return to_resume(resume, self.repo.get_metadata(resume.id), position)

    def update_online(self, resume_id: str, user_id: str, changes: Mapping[str, Any]) -> Resume:
        resume, position = require_resume(self.repo, resume_id, user_id)
        if resume.kind != "online":
            raise ValidationError("WrongKind", "only online resumes can be edited")

        values: dict[str, Any] = {}
        if "title" in changes:
            values["title"] = _clean_title(changes["title"])
        if "content" in changes:
            values["content"] = _check_content(changes["content"])
        if not values:
            raise ValidationError("NoUpdateData", "nothing to update; supply title or content")

        resume = self.repo.update_resume(resume, values)
        return to_resume(resume, self.repo.get_metadata(resume.id), position)

    def update_metadata(self, resume_id: str, user_id: str, changes: Mapping[str, Any]) -> Metadata:
        return self.metadata_service.update_metadata(resume_id, user_id, changes)

    def delete(self, resume_id: str, user_id: str) -> ResumeDeleted:
        resume, _position = require_resume(self.repo, resume_id, user_id)
        deleted = ResumeDeleted(id=resume.id, kind=resume.kind)
        file_path = resume.file_path

        with self.repo.atomic():
            self.repo.delete_resume_cascade(resume_id)
        logger.info("Deleted resume version resume_id=%s kind=%s", resume_id, deleted.kind)

        self.cache.delete(metadata_key(resume_id))
        self.cache.delete(stats_key(user_id))

        # The rows are committed; a leftover file must not fail the delete.
        if deleted.kind == "file" and file_path:
            try:
                self.blob_store.delete(file_path)
            except Exception:
                logger.warning("Could not delete resume file path=%s", file_path, exc_info=True)

        return deleted

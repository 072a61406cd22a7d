"""Notes and tags attached one-to-one to a resume version.

Two tag write paths exist on purpose. :meth:`MetadataService.update_tags` is
strict and rejects the whole call when any entry is blank, while
:meth:`MetadataService.update_metadata` silently drops blank and non-string
entries before validating the rest.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from resuopti.config import Settings, get_settings
from resuopti.core.cache import LRUCache, metadata_key
from resuopti.db.models import ResumeMetadata
from resuopti.db.repositories import Repository
from resuopti.errors import ConflictError, ValidationError
from resuopti.services.mapping import to_metadata, to_position_summary, to_resume_summary
from resuopti.services.ownership import require_resume
from resuopti.types import Metadata, TagSearchHit

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 2000
MAX_TAGS = 20
MAX_TAG_LENGTH = 50


def validate_notes(notes: Any) -> str | None:
    if notes is None:
        return None
    if not isinstance(notes, str):
        raise ValidationError("InvalidNotes", "notes must be a string")
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError("NotesTooLong", f"notes must be at most {MAX_NOTES_LENGTH} characters")
    return notes


def clean_tag(tag: Any) -> str:
    if not isinstance(tag, str) or not tag.strip():
        raise ValidationError("InvalidTag", "tag must be a non-empty string")
    text = tag.strip()
    if len(text) > MAX_TAG_LENGTH:
        raise ValidationError("TagTooLong", f"tag must be at most {MAX_TAG_LENGTH} characters")
    return text


def _check_tag_count(tags: list[str]) -> None:
    if len(tags) > MAX_TAGS:
        raise ValidationError("TooManyTags", f"at most {MAX_TAGS} tags are allowed")


class MetadataService:
    def __init__(
        self,
        repo: Repository,
        *,
        cache: LRUCache,
        settings: Settings | None = None,
    ):
        self.repo = repo
        self.cache = cache
        self.settings = settings or get_settings()

    def _load_or_create(self, resume_id: str) -> ResumeMetadata:
        metadata = self.repo.get_metadata(resume_id)
        if metadata is None:
            logger.warning("Resume had no metadata record; creating one resume_id=%s", resume_id)
            metadata = self.repo.create_metadata(resume_id=resume_id)
        return metadata

    def _write(self, metadata: ResumeMetadata, values: dict[str, Any]) -> Metadata:
        if values:
            metadata = self.repo.update_metadata(metadata, values)
        self.cache.delete(metadata_key(metadata.resume_id))
        return to_metadata(metadata)

    def get(self, resume_id: str, user_id: str) -> Metadata:
        require_resume(self.repo, resume_id, user_id)
        cached = self.cache.wrap(
            metadata_key(resume_id),
            lambda: to_metadata(self._load_or_create(resume_id)),
            self.settings.metadata_cache_ttl_sec,
        )
        return cached.model_copy(deep=True)

    def update_notes(self, resume_id: str, user_id: str, notes: str | None) -> Metadata:
        require_resume(self.repo, resume_id, user_id)
        clean_notes = validate_notes(notes)
        return self._write(self._load_or_create(resume_id), {"notes": clean_notes})

    def add_tag(self, resume_id: str, user_id: str, tag: str) -> Metadata:
        require_resume(self.repo, resume_id, user_id)
        clean = clean_tag(tag)

        metadata = self._load_or_create(resume_id)
        tags = list(metadata.tags or [])
        if clean in tags:
            raise ConflictError("DuplicateTag", f"tag '{clean}' is already present")
        if len(tags) >= MAX_TAGS:
            raise ValidationError("TooManyTags", f"at most {MAX_TAGS} tags are allowed")

        return self._write(metadata, {"tags": [*tags, clean]})

    def remove_tag(self, resume_id: str, user_id: str, tag: str) -> Metadata:
        require_resume(self.repo, resume_id, user_id)
        metadata = self._load_or_create(resume_id)
        target = tag.strip() if isinstance(tag, str) else tag

        tags = list(metadata.tags or [])
        remaining = [item for item in tags if item != target]
        if remaining == tags:
            return to_metadata(metadata)
        return self._write(metadata, {"tags": remaining})

    def update_tags(self, resume_id: str, user_id: str, tags: list[str]) -> Metadata:
        require_resume(self.repo, resume_id, user_id)
        if not isinstance(tags, list):
            raise ValidationError("InvalidTags", "tags must be a list")
        _check_tag_count(tags)
        clean = [clean_tag(tag) for tag in tags]

        return self._write(self._load_or_create(resume_id), {"tags": clean})

    def update_metadata(self, resume_id: str, user_id: str, changes: Mapping[str, Any]) -> Metadata:
        require_resume(self.repo, resume_id, user_id)
        values: dict[str, Any] = {}

        if "notes" in changes:
            notes = changes["notes"]
            if isinstance(notes, str):
                notes = notes.strip()
            values["notes"] = validate_notes(notes)

        if "tags" in changes:
            tags = changes["tags"]
            if not isinstance(tags, list):
                raise ValidationError("InvalidTags", "tags must be a list")
            kept = [tag.strip() for tag in tags if isinstance(tag, str) and tag.strip()]
            _check_tag_count(kept)
            values["tags"] = [clean_tag(tag) for tag in kept]

        metadata = self._load_or_create(resume_id)
        if not values:
            return to_metadata(metadata)
        return self._write(metadata, values)

    def search_by_tag(self, user_id: str, tag: str) -> list[TagSearchHit]:
        target = tag.strip() if isinstance(tag, str) else ""
        if not target:
            return []

        return [
            TagSearchHit(
                metadata=to_metadata(metadata),
                resume=to_resume_summary(resume),
                target_position=to_position_summary(position),
            )
            for metadata, resume, position in self.repo.list_metadata_with_owner(user_id)
            if target in (metadata.tags or [])
        ]

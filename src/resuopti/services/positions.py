from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from resuopti.core.validation import required_text
from resuopti.db.repositories import Repository
from resuopti.errors import ConflictError, HasResumesError, ValidationError
from resuopti.services.mapping import to_position
from resuopti.services.ownership import require_position
from resuopti.storage import LocalBlobStore
from resuopti.types import Position

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100


def _clean_name(name: Any) -> str:
    return required_text(
        name,
        label="position name",
        max_length=MAX_NAME_LENGTH,
        empty_code="EmptyName",
        too_long_code="NameTooLong",
    )


def _clean_description(description: Any) -> str | None:
    if description is None:
        return None
    if not isinstance(description, str):
        raise ValidationError("InvalidDescription", "position description must be a string")
    return description.strip() or None


class PositionService:
    def __init__(self, repo: Repository, *, blob_store: LocalBlobStore | None = None):
        self.repo = repo
        self.blob_store = blob_store

    def create(self, user_id: str, name: str, description: str | None = None) -> Position:
        clean_name = _clean_name(name)
        clean_description = _clean_description(description)

        if self.repo.find_position_by_name(user_id, clean_name) is not None:
            raise ConflictError("DuplicateName", f"a position named '{clean_name}' already exists")

        position = self.repo.create_position(
            user_id=user_id,
            name=clean_name,
            description=clean_description,
        )
        logger.info("Created target position position_id=%s user_id=%s", position.id, user_id)
        return to_position(position)

    def list(self, user_id: str) -> list[Position]:
        return [to_position(row) for row in self.repo.list_positions(user_id)]

    def get_by_id(self, user_id: str, position_id: str, include_resume_count: bool = True) -> Position:
        position = require_position(self.repo, position_id, user_id)
        resume_count = self.repo.count_resumes(position.id) if include_resume_count else None
        return to_position(position, resume_count=resume_count)

    def update(self, user_id: str, position_id: str, changes: Mapping[str, Any]) -> Position:
        position = require_position(self.repo, position_id, user_id)
        values: dict[str, Any] = {}

        if "name" in changes:
            clean_name = _clean_name(changes["name"])
            if clean_name != position.name:
                duplicate = self.repo.find_position_by_name(user_id, clean_name, exclude_id=position.id)
                if duplicate is not None:
                    raise ConflictError("DuplicateName", f"a position named '{clean_name}' already exists")
            values["name"] = clean_name

        if "description" in changes:
            values["description"] = _clean_description(changes["description"])

        if values:
            position = self.repo.update_position(position, values)
        return to_position(position)

    def delete(self, user_id: str, position_id: str) -> None:
        position = require_position(self.repo, position_id, user_id)

        resume_count = self.repo.count_resumes(position.id)
        if resume_count > 0:
            raise HasResumesError(resume_count)

        self.repo.delete_position(position)
        logger.info("Deleted target position position_id=%s user_id=%s", position_id, user_id)

        if self.blob_store is not None:
            try:
                self.blob_store.delete_tree(user_id, position_id)
            except OSError:
                logger.warning("Could not remove upload directory position_id=%s", position_id, exc_info=True)

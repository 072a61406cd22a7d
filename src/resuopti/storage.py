from __future__ import annotations

import logging
import shutil
import uuid
from pathlib import Path

from resuopti.config import Settings, get_settings
from resuopti.errors import ValidationError

logger = logging.getLogger(__name__)


class LocalBlobStore:
    """Uploaded resume files laid out as ``<root>/<user_id>/<position_id>/<uuid><ext>``."""

    def __init__(self, root: Path | None = None, *, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.root = Path(root or self.settings.upload_dir)

    def validate_upload(self, file_name: str, size: int) -> None:
        extension = Path(file_name).suffix.lower()
        allowed = self.settings.upload_extension_list
        if extension not in allowed:
            raise ValidationError(
                "InvalidFileType",
                f"unsupported file type; allowed: {', '.join(allowed)}",
            )
        if size < 0 or size > self.settings.max_upload_bytes:
            raise ValidationError(
                "InvalidFileSize",
                f"file size must be between 0 and {self.settings.max_upload_bytes} bytes",
            )

    def path_for(self, user_id: str, position_id: str, file_name: str) -> Path:
        directory = self.root / str(user_id) / str(position_id)
        directory.mkdir(parents=True, exist_ok=True)
        return directory / f"{uuid.uuid4()}{Path(file_name).suffix.lower()}"

    def delete(self, path: str | Path) -> None:
        target = Path(path)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.info("Blob already absent path=%s", target)
            return
        logger.info("Deleted blob path=%s", target)

    def delete_tree(self, user_id: str, position_id: str | None = None) -> bool:
        directory = self.root / str(user_id)
        if position_id is not None:
            directory = directory / str(position_id)
        if not directory.exists():
            return False
        shutil.rmtree(directory)
        logger.info("Removed upload directory path=%s", directory)
        return True

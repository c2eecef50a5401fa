"""
Avatar uploaders.

The account service only needs ``upload(file) -> UploadedMedia`` and
``delete(public_id)``; the hosted media service used in production plugs in
behind those calls. The default keeps files in a local folder served under a
base URL.
"""
from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from typing import Protocol

from werkzeug.datastructures import FileStorage
from werkzeug.security import safe_join
from werkzeug.utils import secure_filename

from services.errors import UploadError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}


@dataclass(frozen=True)
class UploadedMedia:
    public_id: str
    url: str


class MediaUploader(Protocol):
    def upload(self, file: FileStorage) -> UploadedMedia:
        ...

    def delete(self, public_id: str) -> None:
        ...


class LocalMediaUploader:
    def __init__(self, folder: str, base_url: str):
        self.folder = folder
        self.base_url = base_url.rstrip("/")

    def _path(self, public_id: str) -> str:
        path = safe_join(self.folder, public_id)
        if path is None:
            raise UploadError(f"Invalid media id '{public_id}'")
        return path

    def upload(self, file: FileStorage) -> UploadedMedia:
        filename = secure_filename(file.filename or "")
        ext = os.path.splitext(filename)[1].lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise UploadError(f"Unsupported avatar type '{ext or filename}'")

        public_id = f"avatars/{uuid.uuid4().hex}{ext}"
        target = self._path(public_id)
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            file.save(target)
        except OSError as exc:
            logger.exception("avatar upload failed path=%s", target)
            raise UploadError("Avatar file could not be uploaded") from exc

        return UploadedMedia(public_id=public_id, url=f"{self.base_url}/{public_id}")

    def delete(self, public_id: str) -> None:
        """Remove a stored file; deleting a missing file is a no-op."""
        try:
            os.remove(self._path(public_id))
        except FileNotFoundError:
            return
        except OSError as exc:
            raise UploadError(f"Avatar file {public_id} could not be deleted") from exc

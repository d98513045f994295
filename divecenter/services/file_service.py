"""
File Service - Stores uploaded documents (certification cards, insurance papers)
"""
from pathlib import Path
from typing import Tuple
import logging
import uuid

from divecenter.core.config import settings

logger = logging.getLogger(__name__)


class FileService:
    def __init__(self, upload_dir: str = None, url_prefix: str = None):
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.url_prefix = (url_prefix or settings.UPLOAD_URL_PREFIX).rstrip("/")

    def validate(self, filename: str, size: int):
        extension = Path(filename or "").suffix.lower().lstrip(".")
        if extension not in settings.allowed_upload_extensions:
            allowed = ", ".join(settings.allowed_upload_extensions)
            raise ValueError(f"File type '.{extension}' is not allowed. Allowed types: {allowed}")

        max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
        if size > max_bytes:
            raise ValueError(f"File exceeds the maximum size of {settings.MAX_UPLOAD_SIZE_MB} MB")
        if size == 0:
            raise ValueError("File is empty")

    def save(self, content: bytes, filename: str, category: str, dive_center_id: int) -> Tuple[str, Path]:
        """Write the file under <upload_dir>/<dive_center>/<category>/ and return (url, path)"""
        self.validate(filename, len(content))

        extension = Path(filename).suffix.lower()
        stored_name = f"{uuid.uuid4().hex}{extension}"
        relative = Path(str(dive_center_id)) / category / stored_name

        target = self.upload_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)

        logger.info(f"Stored upload '{filename}' as {relative}")
        return f"{self.url_prefix}/{relative.as_posix()}", target

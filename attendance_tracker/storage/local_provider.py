"""
Local filesystem storage provider.
Files land under UPLOAD_DIR and are served by the app at /uploads/<key>.
"""
from typing import BinaryIO, Optional
from pathlib import Path
from urllib.parse import quote

import structlog

from ..config import settings
from .provider import StorageProvider

logger = structlog.get_logger(__name__)


class LocalStorageProvider(StorageProvider):
    """Local filesystem storage provider."""

    def __init__(self, base_dir: Optional[str] = None):
        self.base_dir = Path(base_dir or settings.upload_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_path(self, key: str) -> Path:
        """Get the local filesystem path for a given key."""
        # Remove leading slash and sanitize
        clean_key = key.lstrip("/").replace("..", "").replace("\\", "/")
        return self.base_dir / clean_key

    def public_url(self, key: str) -> str:
        return f"/uploads/{quote(key.lstrip('/'))}"

    def exists(self, key: str) -> bool:
        return self._get_path(key).exists()

    def copy_in(self, src_stream: BinaryIO | bytes, key: str) -> None:
        path = self._get_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            if hasattr(src_stream, "read"):
                f.write(src_stream.read())
            else:
                f.write(src_stream)

    def delete(self, key: str) -> None:
        path = self._get_path(key)
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            logger.warning("local_delete_failed", key=key, error=str(e))

"""
Document storage used by the scoring pipeline.

Locators are either paths under the upload directory (documents this service
stored itself) or http(s) URLs pointing at an external file host.
"""
import os
import re
import uuid
from pathlib import Path

import requests

from fitscore.utils.logging_config import get_logger

logger = get_logger(__name__)

_SAFE_NAME = re.compile(r"[^A-Za-z0-9._-]+")


def is_remote(locator: str) -> bool:
    return locator.startswith(("http://", "https://"))


class DocumentStore:
    """Stores uploaded documents on disk and reads local or remote documents back"""

    def __init__(self, upload_dir: str, http_timeout: float = 30.0):
        self.upload_dir = Path(upload_dir)
        self.http_timeout = http_timeout

    def upload(self, filename: str, data: bytes) -> str:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        safe_name = _SAFE_NAME.sub("_", os.path.basename(filename or "document")) or "document"
        path = self.upload_dir / f"{uuid.uuid4().hex}_{safe_name}"
        path.write_bytes(data)
        logger.info(f"Stored document {safe_name} at {path} ({len(data)} bytes)")
        return str(path)

    def _owned_path(self, locator: str):
        """Resolved path for a local locator, or None when it points outside the upload directory"""
        path = Path(locator).resolve()
        if self.upload_dir.resolve() not in path.parents:
            return None
        return path

    def fetch(self, locator: str) -> bytes:
        """
        Return the raw bytes behind a locator.

        Raises:
            FileNotFoundError: the document does not exist or is outside the upload directory
            requests.RequestException / OSError: storage is unreachable or failed
        """
        if is_remote(locator):
            resp = requests.get(locator, timeout=self.http_timeout)
            if resp.status_code in (403, 404, 410):
                raise FileNotFoundError(f"Document not found at {locator} (HTTP {resp.status_code})")
            resp.raise_for_status()
            return resp.content

        path = self._owned_path(locator)
        if path is None:
            logger.warning(f"Refusing to read {locator}: outside upload directory {self.upload_dir}")
            raise FileNotFoundError(f"Document not found at {locator}")
        if not path.is_file():
            raise FileNotFoundError(f"Document not found at {locator}")
        return path.read_bytes()

    def delete(self, locator: str) -> bool:
        """Delete a document this store owns. Returns False when there was nothing to delete."""
        if is_remote(locator):
            logger.warning(f"Not deleting remote document {locator}: not owned by this store")
            return False

        path = self._owned_path(locator)
        if path is None:
            logger.warning(f"Refusing to delete {locator}: outside upload directory {self.upload_dir}")
            return False
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted document {locator}")
        return True

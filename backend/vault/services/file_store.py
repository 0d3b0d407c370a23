"""
File Store — Uploaded document blobs under UPLOAD_DIR.
"""
import os
import secrets
import time
from typing import Optional

from vault.config import Settings, get_settings
from vault.exceptions import StorageError
from vault.utils.logger import get_logger
from vault.utils.validators import sanitize_filename

logger = get_logger("files")


class FileStore:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.root = self.settings.UPLOAD_DIR

    def save(self, user_id: str, original_name: str, contents: bytes) -> str:
        """Write a blob as `<user>-<millis>-<random>-<name>` and return its path."""
        os.makedirs(self.root, exist_ok=True)
        filename = (
            f"{sanitize_filename(user_id)}-{int(time.time() * 1000)}-"
            f"{secrets.randbelow(10**9)}-{sanitize_filename(original_name)}"
        )
        path = os.path.join(self.root, filename)
        try:
            with open(path, "xb") as f:
                f.write(contents)
        except OSError as e:
            raise StorageError(f"Failed to store uploaded file: {e}") from e
        return path

    def delete(self, path: Optional[str]) -> bool:
        """Remove a blob; a missing file is not an error."""
        if not path:
            return False
        try:
            os.remove(path)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to remove file {path}: {e}")
            return False

    def exists(self, path: Optional[str]) -> bool:
        return bool(path) and os.path.isfile(path)

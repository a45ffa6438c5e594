"""
Local file store

Image files referenced by publications and guestbook entries live on the
local disk. Rows own their files: a file is deleted only after the row
that referenced it has been committed without it.
"""

import logging
from collections.abc import Iterable
from pathlib import Path

from sitecms.config import settings

logger = logging.getLogger(__name__)


class LocalFileStore:
    """Deletes stored files, resolving relative paths against ``root``."""

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root if root is not None else settings.upload_root)

    def resolve(self, file_path: str) -> Path:
        path = Path(file_path)
        return path if path.is_absolute() else self.root / path

    def delete_file(self, file_path: str) -> bool:
        """Delete a file.

        Returns:
            True if a file was removed, False if it was already absent.

        Raises:
            OSError: for any failure other than the file being absent.
        """
        try:
            self.resolve(file_path).unlink()
        except FileNotFoundError:
            return False
        return True


def delete_files_quietly(store: LocalFileStore, file_paths: Iterable[str | None], label: str = "image") -> None:
    """Best-effort deletion: failures are logged, never raised."""
    for file_path in file_paths:
        if not file_path:
            continue
        try:
            if store.delete_file(file_path):
                logger.info("Deleted %s file: %s", label, file_path)
        except OSError as e:
            logger.warning("Failed to delete %s file %s: %s", label, file_path, e)


def get_file_store() -> LocalFileStore:
    return LocalFileStore()

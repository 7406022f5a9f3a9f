"""Uploaded product images, kept as flat files in one directory."""

import os
import shutil
import time
from pathlib import Path
from typing import BinaryIO, Optional

from inventory_service.core.logging_config import get_logger

logger = get_logger(__name__)


def _safe_ext(filename: str) -> str:
    _, ext = os.path.splitext(os.path.basename(filename or ""))
    return ext.lower()


class ImageStorage:
    """
    Persist uploads under ``directory`` as ``<epoch-millis><ext>``.

    Files are created exclusively, so two uploads landing in the same
    millisecond get consecutive timestamps instead of overwriting each other.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        return self.directory / Path(filename).name

    def save(self, original_name: str, stream: BinaryIO) -> str:
        self.ensure_directory()
        ext = _safe_ext(original_name)
        stamp = int(time.time() * 1000)
        while True:
            filename = f"{stamp}{ext}"
            try:
                with open(self.directory / filename, "xb") as out:
                    shutil.copyfileobj(stream, out)
            except FileExistsError:
                stamp += 1
                continue
            logger.info(f"Stored upload {original_name!r} as {filename}")
            return filename

    def delete(self, filename: Optional[str]) -> bool:
        """Remove a stored file; failures are logged, not raised."""
        if not filename:
            return False
        path = self.path_for(filename)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning(f"Could not remove upload {filename}: {e}")
            return False
        logger.info(f"Removed upload {filename}")
        return True

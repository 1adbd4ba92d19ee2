"""Filesystem-backed blob storage for profile photos."""

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Union

from filmhub.clients.base import BlobStorage
from filmhub.errors import NotFound

logger = logging.getLogger(__name__)


class LocalBlobStorage(BlobStorage):
    """Stores blobs under ``root`` and serves them from ``base_url``."""

    def __init__(self, root: Union[str, Path], base_url: str):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    async def upload(self, path: str, source: Union[str, Path, bytes]) -> str:
        target = self.root / path.lstrip("/")
        await asyncio.to_thread(self._write, target, source)
        logger.info(f"Stored blob {path}")
        return f"{self.base_url}/{path.lstrip('/')}"

    @staticmethod
    def _write(target: Path, source: Union[str, Path, bytes]) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(source, bytes):
            target.write_bytes(source)
            return
        src = Path(source)
        if not src.is_file():
            raise NotFound(f"No such file: {src}")
        shutil.copyfile(src, target)

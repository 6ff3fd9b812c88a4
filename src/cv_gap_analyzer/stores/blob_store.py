"""Filesystem blob store for temporarily staged uploads."""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path

from cv_gap_analyzer.stores.base import StagedFile

logger = logging.getLogger(__name__)

DEFAULT_BLOB_DIR = Path.home() / ".cv-gap-analyzer" / "blobs"


class LocalBlobStore:
    """Stages each upload as a uniquely named file under ``root``."""

    def __init__(self, root: str | Path = DEFAULT_BLOB_DIR):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, handle: StagedFile) -> Path:
        return self.root / handle.file_id

    def _write(self, data: bytes, owner: str) -> StagedFile:
        handle = StagedFile(file_id=uuid.uuid4().hex, owner=owner, size=len(data))
        self.path_for(handle).write_bytes(data)
        return handle

    async def stage(self, data: bytes, owner: str) -> StagedFile:
        handle = await asyncio.to_thread(self._write, data, owner)
        logger.debug("Staged %d bytes as %s for %s", handle.size, handle.file_id, owner)
        return handle

    async def release(self, handle: StagedFile) -> None:
        """Delete a staged file. Raises FileNotFoundError if it is already gone."""
        await asyncio.to_thread(self.path_for(handle).unlink)

    def list_staged(self) -> list[str]:
        return sorted(p.name for p in self.root.iterdir() if p.is_file())

# roomchat/services/blob_store.py

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from urllib.parse import quote

from roomchat.core.errors import UploadFailed
from roomchat.services.stores import BlobStore

logger = logging.getLogger(__name__)


def safe_file_name(file_name: str) -> str:
    """Drop any directory parts a client sent along with the name."""
    name = Path(file_name.replace("\\", "/")).name.strip()
    if name in ("", ".", ".."):
        raise UploadFailed(f"Unusable file name: {file_name!r}")
    return name


class LocalBlobStore(BlobStore):
    """
    Blob store on the local filesystem.

    Layout:
        {root}/rooms/{ROOM}/{epoch_ms}_{name}

    The returned locator is ``{url_prefix}/{ROOM}/{epoch_ms}_{name}``, which
    the ``/files`` route serves back.
    """

    def __init__(self, root: str | Path, url_prefix: str = "/files") -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def room_dir(self, room_id: str) -> Path:
        return self._contained(self.root / "rooms" / room_id)

    def path_for(self, room_id: str, stored_name: str) -> Path:
        return self._contained(self.room_dir(room_id) / safe_file_name(stored_name))

    def _contained(self, path: Path) -> Path:
        """Resolve ``path`` and refuse anything outside ``{root}/rooms``."""
        base = (self.root / "rooms").resolve()
        resolved = path.resolve()
        if resolved == base or base not in resolved.parents:
            raise UploadFailed(f"Path escapes blob storage: {path}")
        return resolved

    async def upload(self, room_id: str, data: bytes, file_name: str) -> str:
        stored_name = f"{int(time.time() * 1000)}_{safe_file_name(file_name)}"
        target = self.path_for(room_id, stored_name)
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as e:
            raise UploadFailed(f"Could not store {file_name!r}: {e}") from e
        logger.info("Stored upload %s (%d bytes) for room %s", stored_name, len(data), room_id)
        return f"{self.url_prefix}/{quote(room_id)}/{quote(stored_name)}"

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

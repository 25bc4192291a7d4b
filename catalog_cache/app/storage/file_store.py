"""
Filesystem-backed durable store: one file per id under a directory.
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional, Union
from urllib.parse import quote

from shared.errors import PersistenceError
from shared.logging import get_logger


class FileStore:
    """Stores each blob in ``<directory>/<quoted id>.json``.

    Writes go to a temporary file in the same directory and are moved into
    place with ``os.replace`` so readers never see a half-written blob. The
    write runs in a worker thread.
    """

    def __init__(self, directory: Union[str, Path]):
        self._directory = Path(directory)
        self.logger = get_logger("catalog_cache.storage.file")

    @property
    def directory(self) -> Path:
        return self._directory

    def path_for(self, item_id: str) -> Path:
        return self._directory / f"{quote(item_id, safe='')}.json"

    def get(self, item_id: str) -> Optional[bytes]:
        path = self.path_for(item_id)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(
                f"Failed to read {path}",
                details={"item_id": item_id, "error": str(exc)},
            ) from exc

    async def set(self, item_id: str, data: bytes) -> None:
        await asyncio.to_thread(self._write, item_id, data)
        self.logger.debug("Wrote blob", item_id=item_id, size=len(data))

    def _write(self, item_id: str, data: bytes) -> None:
        path = self.path_for(item_id)
        tmp_name = None
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".tmp-", suffix=".json")
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            raise PersistenceError(
                f"Failed to write {path}",
                details={"item_id": item_id, "error": str(exc)},
            ) from exc
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

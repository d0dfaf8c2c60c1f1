"""
Local-disk escape hatch for rendered videos.

When every storage provider fails, the compiler writes the video to a
single well-known file so the retrieval endpoint can still stream it.
Each save overwrites the previous one and the file does not survive the
host, so this is a last resort rather than a storage tier.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_PATH = "/tmp/latest.mp4"


class LocalVideoStore:
    """The one local file that holds the most recent unpersisted video."""

    def __init__(self, path: str = DEFAULT_FALLBACK_PATH) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def save(self, data: bytes) -> Path:
        """Write bytes to the fallback file. Raises OSError on failure."""
        await asyncio.to_thread(self._write, data)
        logger.info(
            "Saved video to local fallback file",
            extra={"path": str(self._path), "size_bytes": len(data)}
        )
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def size(self) -> Optional[int]:
        """File size in bytes, or None when nothing has been saved."""
        try:
            return self._path.stat().st_size
        except FileNotFoundError:
            return None

    def _write(self, data: bytes) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".part")
        with open(tmp_path, "wb") as f:
            f.write(data)
        os.replace(tmp_path, self._path)

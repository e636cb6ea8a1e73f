"""Local disk storage for uploaded proof files.

Files land in a single directory under generated names and are served by
the API under ``url_prefix``. Disk I/O runs in Starlette's threadpool so
the event loop never blocks on the filesystem.
"""

from __future__ import annotations

import mimetypes
import secrets
import time
from dataclasses import dataclass
from pathlib import Path

import structlog
from starlette.concurrency import run_in_threadpool

log = structlog.get_logger(__name__)

# mimetypes has no stable answer for these on every platform
_EXTENSIONS = {
    "image/jpeg": "jpeg",
    "image/png": "png",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
}


@dataclass(frozen=True)
class StoredFile:
    """A file written to storage."""

    url: str
    path: Path
    file_name: str
    mime_type: str
    size: int


def extension_for(mime_type: str) -> str:
    ext = _EXTENSIONS.get(mime_type)
    if ext:
        return ext
    guessed = mimetypes.guess_extension(mime_type)
    return guessed.lstrip(".") if guessed else "bin"


class LocalFileStorage:
    """Write-once file store rooted at a local directory."""

    def __init__(self, root: str | Path, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    async def save(self, content: bytes, mime_type: str, original_name: str) -> StoredFile:
        """Persist content under a generated name and return its location."""
        name = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}.{extension_for(mime_type)}"
        path = self.root / name

        def _write() -> None:
            self.ensure_root()
            path.write_bytes(content)

        await run_in_threadpool(_write)
        log.info("file_stored", path=str(path), size=len(content), mime_type=mime_type)
        return StoredFile(
            url=f"{self.url_prefix}/{name}",
            path=path,
            file_name=original_name,
            mime_type=mime_type,
            size=len(content),
        )

    async def delete(self, stored: StoredFile) -> None:
        """Remove a stored file; a file that is already gone is not an error."""
        await run_in_threadpool(stored.path.unlink, missing_ok=True)
        log.info("file_deleted", path=str(stored.path))

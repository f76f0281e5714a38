# src/media_drop/storage/blob_store.py

from __future__ import annotations

import logging
import os
import re
import shutil
import time
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w.\- ]+", re.UNICODE)


def _safe_name(original_name: str) -> str:
    # Browsers may send full client paths; keep only the base name.
    base = original_name.replace("\\", "/").rsplit("/", 1)[-1]
    base = _UNSAFE_CHARS.sub("_", base).strip(" .")
    return base or "upload"


class LocalBlobStore:
    """
    Upload directory on local disk.

    Layout:
    - one flat directory
    - files named "<epoch-ms>-<originalName>"
    - a payload ref is the absolute path of the file

    Thread-safety:
    - no shared state besides the directory; delete() tolerates files that are already gone
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser().resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        logger.info("LocalBlobStore ready dir=%s", self._root)

    @property
    def root(self) -> Path:
        return self._root

    def save(self, original_name: str, stream: BinaryIO) -> str:
        name = _safe_name(original_name)
        path = self._unique_path(name)

        tmp = path.with_name(path.name + ".part")
        try:
            with tmp.open("wb") as fh:
                shutil.copyfileobj(stream, fh)
            os.replace(tmp, path)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise

        logger.debug("Stored upload %s (%d bytes)", path.name, path.stat().st_size)
        return str(path)

    def delete(self, payload_ref: str) -> bool:
        """Remove a stored payload. Returns False if it was already gone."""
        path = self._resolve(payload_ref)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.debug("Deleted payload %s", path.name)
        return True

    def exists(self, payload_ref: str) -> bool:
        return self._resolve(payload_ref).is_file()

    def path_of(self, payload_ref: str) -> Path:
        return self._resolve(payload_ref)

    def _unique_path(self, name: str) -> Path:
        stamp = int(time.time() * 1000)
        path = self._root / f"{stamp}-{name}"
        n = 1
        while path.exists():
            path = self._root / f"{stamp}-{n}-{name}"
            n += 1
        return path

    def _resolve(self, payload_ref: str) -> Path:
        path = Path(payload_ref)
        if not path.is_absolute():
            path = self._root / path
        path = path.resolve()
        if path.parent != self._root:
            raise ValueError(f"payload ref outside upload dir: {payload_ref}")
        return path

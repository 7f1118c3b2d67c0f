"""File-backed KeyValueStore: one UTF-8 file per key under a data directory."""

import errno
import hashlib
import logging
import os
import re
import tempfile
from pathlib import Path

from anagrammer.domain.constants import DEFAULT_STORAGE_QUOTA_BYTES
from anagrammer.domain.models import WriteResult
from anagrammer.domain.ports import KeyValueStore

SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]+")
QUOTA_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class JsonFileStore(KeyValueStore):
    """
    Persist values as files, replacing them atomically.

    Concurrent writers from several processes are last-write-wins; a reader
    never sees a partially written file.

    Args:
        root: Directory holding the files. Created on first write.
        quota_bytes: Total byte budget across all keys; None disables the check.
    """

    suffix = ".json"

    def __init__(self, root: Path, quota_bytes: int | None = DEFAULT_STORAGE_QUOTA_BYTES):
        self.root = Path(root)
        self.quota_bytes = quota_bytes
        self.logger = logging.getLogger(__name__)

    def path_for(self, key: str) -> Path:
        safe = SAFE_KEY.sub("_", key).strip("._") or "key"
        if safe != key:
            # Keep distinct keys distinct after sanitising
            safe = f"{safe}-{hashlib.sha256(key.encode('utf-8')).hexdigest()[:8]}"
        return self.root / f"{safe}{self.suffix}"

    def used_bytes(self, exclude: Path | None = None) -> int:
        if not self.root.is_dir():
            return 0
        total = 0
        for f in self.root.glob(f"*{self.suffix}"):
            if f != exclude:
                try:
                    total += f.stat().st_size
                except OSError:
                    continue
        return total

    def read(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            self.logger.warning(f"Could not read {path}: {e}")
            return None

    def write(self, key: str, value: str) -> WriteResult:
        path = self.path_for(key)
        data = value.encode("utf-8")

        if self.quota_bytes is not None:
            if self.used_bytes(exclude=path) + len(data) > self.quota_bytes:
                self.logger.debug(f"Quota of {self.quota_bytes} bytes exceeded writing {path.name}")
                return WriteResult.QUOTA_EXCEEDED

        tmp_name = None
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=f".{path.stem}-", suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
            return WriteResult.OK
        except OSError as e:
            self.logger.warning(f"Failed to write {path}: {e}")
            if e.errno in QUOTA_ERRNOS:
                return WriteResult.QUOTA_EXCEEDED
            return WriteResult.OTHER_ERROR
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass

    def remove(self, key: str) -> None:
        self.path_for(key).unlink(missing_ok=True)

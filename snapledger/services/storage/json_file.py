"""
JSON File Storage Implementation

Each record lives in its own file, ``<data_dir>/<key>.json``.

Writes go to a temporary file in the same directory which is then
renamed over the target with os.replace(), so a crash mid-write leaves
the previous record intact.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog

from snapledger.services.storage.interface import (
    CorruptLedgerError,
    PersistenceWriteError,
    RecordStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class JsonFileStorage(RecordStorageInterface):
    """File-per-record storage in a local directory."""

    def __init__(self, data_dir: Union[str, Path]):
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise ValueError(f"Invalid record key: {key!r}")
        return self._data_dir / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            raise CorruptLedgerError(key, f"not valid UTF-8 ({e.reason})") from e
        except OSError as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def write(self, key: str, value: str) -> None:
        path = self.path_for(key)
        tmp_name = None
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._data_dir,
                prefix=f".{key}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise PersistenceWriteError(f"Failed to write {path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("temp_file_cleanup_failed", path=tmp_name)

        logger.debug("record_written", key=key, path=str(path), size=len(value))

    def backup(self, key: str, suffix: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        backup_key = f"{key}.{suffix}"
        backup_path = self.path_for(backup_key)
        try:
            os.replace(path, backup_path)
        except OSError as e:
            raise PersistenceWriteError(f"Failed to back up {path}: {e}") from e
        logger.info("record_backed_up", key=key, backup=str(backup_path))
        return backup_key

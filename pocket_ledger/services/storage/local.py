"""
Local Key-Value Backends

InMemoryBackend keeps everything in a dict (tests, throwaway sessions).
JsonFileBackend keeps every key in one JSON document on disk, the
closest thing to browser local storage for a desktop user.

DESIGN DECISION: The file backend rewrites the whole document through a
temporary file and os.replace. A crash mid-write leaves the previous
document intact, so one set_many is all-or-nothing.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Mapping, Optional, Union

from pocket_ledger.services.storage.interface import KeyValueBackend, StorageError


class InMemoryBackend(KeyValueBackend):
    """Dict-backed storage. Nothing survives the process."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def set_many(self, values: Mapping[str, str]) -> None:
        self._data.update(values)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        """Copy of the raw stored text (useful in tests)."""
        return dict(self._data)


class JsonFileBackend(KeyValueBackend):
    """
    All keys in one JSON object on disk.

    The file is created on first write. A missing file reads as empty.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {self._path}: {e}")

        if not isinstance(data, dict):
            raise StorageError(f"Unexpected content in {self._path}")
        return {str(k): str(v) for k, v in data.items()}

    def _write(self, data: dict[str, str]) -> None:
        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", dir=directory
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2, sort_keys=True)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, values: Mapping[str, str]) -> None:
        data = self._load()
        data.update(values)
        self._write(data)

    def delete(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._write(data)

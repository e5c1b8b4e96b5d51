"""
JSON file FarmStore.

The whole registry lives in one document::

    {"farms": [<FarmRecord>, ...], "active_farm_id": "<id>" | null}

Writes go to a temp file and are moved into place with ``os.replace`` while
holding an advisory lock file, so readers never see a half-written document.
"""

from __future__ import annotations

import json
import logging
import os
import time
from contextlib import suppress
from typing import Any, Sequence

from pydantic import ValidationError as PydanticValidationError

from coopclimate.domain.exceptions import PersistenceError
from coopclimate.domain.farm import Farm
from coopclimate.schemas.farm import FarmStoreDocument
from infrastructure.persistence.records import farms_to_records, records_to_farms

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "farms.json"


class FileLock:
    """Advisory lock held as an exclusively created ``.lock`` file.

    A lock file older than ``stale_after`` seconds is treated as left behind
    by a crashed process and removed, so one crash cannot block every later
    load or save.
    """

    def __init__(self, lock_path: str, timeout: float = 5.0, retry: float = 0.05, stale_after: float = 30.0) -> None:
        self.lock_path = lock_path
        self.timeout = float(timeout)
        self.retry = float(retry)
        self.stale_after = float(stale_after)
        self._held = False

    def _age(self) -> float | None:
        try:
            return time.time() - os.path.getmtime(self.lock_path)
        except FileNotFoundError:
            return None

    def _break_if_stale(self) -> bool:
        age = self._age()
        if age is None or age < self.stale_after:
            return False
        logger.warning("Removing stale lock %s (%.0fs old)", self.lock_path, age)
        with suppress(FileNotFoundError):
            os.unlink(self.lock_path)
        return True

    def acquire(self) -> bool:
        deadline = time.monotonic() + self.timeout
        while True:
            try:
                os.close(os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY))
            except FileExistsError:
                if self._break_if_stale():
                    continue
                if time.monotonic() >= deadline:
                    return False
                time.sleep(self.retry)
            else:
                self._held = True
                return True

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        with suppress(FileNotFoundError):
            os.unlink(self.lock_path)

    def __enter__(self) -> "FileLock":
        if not self.acquire():
            raise PersistenceError(f"Timed out waiting for lock {self.lock_path}")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class JsonFarmStore:
    """FarmStore backed by a single JSON document under ``directory``."""

    def __init__(
        self,
        directory: str,
        filename: str = DEFAULT_FILENAME,
        *,
        lock_timeout: float = 5.0,
        stale_lock_seconds: float = 30.0,
    ) -> None:
        os.makedirs(directory, exist_ok=True)
        self.path = os.path.join(directory, filename)
        self._lock_path = self.path + ".lock"
        self._lock_timeout = lock_timeout
        self._stale_lock_seconds = stale_lock_seconds

    def _file_lock(self) -> FileLock:
        return FileLock(self._lock_path, timeout=self._lock_timeout, stale_after=self._stale_lock_seconds)

    def _read(self) -> FarmStoreDocument:
        """Caller holds the file lock."""
        if not os.path.exists(self.path):
            return FarmStoreDocument()
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                raw: Any = json.load(fh)
            return FarmStoreDocument.model_validate(raw or {})
        except (OSError, json.JSONDecodeError, PydanticValidationError) as exc:
            raise PersistenceError(f"Failed to read farm store {self.path}: {exc}") from exc

    def _write(self, document: FarmStoreDocument) -> None:
        """Caller holds the file lock."""
        tmp = self.path + ".tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as fh:
                json.dump(document.model_dump(mode="json"), fh, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except OSError as exc:
            raise PersistenceError(f"Failed to write farm store {self.path}: {exc}") from exc

    def load_farms(self) -> list[Farm]:
        with self._file_lock():
            document = self._read()
        return records_to_farms(document.farms)

    def save_farms(self, farms: Sequence[Farm]) -> None:
        with self._file_lock():
            document = self._read()
            document.farms = farms_to_records(farms)
            self._write(document)
        logger.debug("Saved %d farm(s) to %s", len(farms), self.path)

    def load_active_farm_id(self) -> str | None:
        with self._file_lock():
            return self._read().active_farm_id

    def save_active_farm_id(self, farm_id: str | None) -> None:
        with self._file_lock():
            document = self._read()
            document.active_farm_id = farm_id
            self._write(document)

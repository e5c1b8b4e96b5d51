"""
Deferred (write-behind) FarmStore wrapper.

Saves are recorded as the latest pending snapshot and written by a
background thread after ``flush_seconds``, so the tick path never waits on
disk. Several saves inside one window collapse into a single write of the
newest state. Loads flush first so they always see earlier saves.
"""

from __future__ import annotations

import logging
import threading
from typing import Sequence

from coopclimate.domain.exceptions import PersistenceError
from coopclimate.domain.farm import Farm
from coopclimate.services.protocols import FarmStore
from coopclimate.utils.concurrency import synchronized

logger = logging.getLogger(__name__)

_UNSET = object()


class DeferredFarmStore:
    """Coalescing write-behind wrapper around any FarmStore."""

    def __init__(self, inner: FarmStore, flush_seconds: float = 1.0) -> None:
        self.inner = inner
        self._flush_seconds = max(0.0, float(flush_seconds))
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._pending_farms: list[Farm] | None = None
        self._pending_active: object = _UNSET
        self._dirty = threading.Event()
        self._closed = threading.Event()
        self._thread = threading.Thread(target=self._run, name="DeferredFarmStore", daemon=True)
        self._thread.start()

    # --- FarmStore -------------------------------------------------------------
    def load_farms(self) -> list[Farm]:
        self.flush()
        return self.inner.load_farms()

    def save_farms(self, farms: Sequence[Farm]) -> None:
        with self._lock:
            self._pending_farms = [farm.copy() for farm in farms]
        self._dirty.set()

    def load_active_farm_id(self) -> str | None:
        self.flush()
        return self.inner.load_active_farm_id()

    def save_active_farm_id(self, farm_id: str | None) -> None:
        with self._lock:
            self._pending_active = farm_id
        self._dirty.set()

    # --- Lifecycle -------------------------------------------------------------
    @synchronized(lock_attr="_write_lock")
    def flush(self) -> None:
        """Write any pending snapshot now. Raises PersistenceError on failure."""
        with self._lock:
            farms, self._pending_farms = self._pending_farms, None
            active, self._pending_active = self._pending_active, _UNSET
        try:
            if farms is not None:
                self.inner.save_farms(farms)
            if active is not _UNSET:
                self.inner.save_active_farm_id(active)
        except PersistenceError:
            # put the snapshot back unless a newer one arrived meanwhile
            with self._lock:
                if self._pending_farms is None:
                    self._pending_farms = farms
                if self._pending_active is _UNSET:
                    self._pending_active = active
            raise

    def close(self) -> None:
        """Flush and stop the writer thread. Safe to call twice."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._dirty.set()
        self._thread.join(timeout=5.0)
        self.flush()
        close_inner = getattr(self.inner, "close", None)
        if callable(close_inner):
            close_inner()

    def _run(self) -> None:
        while not self._closed.is_set():
            self._dirty.wait()
            if self._closed.is_set():
                break
            # coalescing window
            self._closed.wait(self._flush_seconds)
            self._dirty.clear()
            try:
                self.flush()
            except PersistenceError:
                logger.error("Deferred farm store flush failed", exc_info=True)

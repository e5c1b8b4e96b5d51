"""In-process FarmStore for tests and ephemeral runs."""

from __future__ import annotations

import threading
from typing import Sequence

from coopclimate.domain.farm import Farm
from coopclimate.utils.concurrency import synchronized


class InMemoryFarmStore:
    """Keeps detached copies so callers never share state with the store."""

    def __init__(self, farms: Sequence[Farm] = (), active_farm_id: str | None = None) -> None:
        self._lock = threading.Lock()
        self._farms: list[Farm] = [farm.copy() for farm in farms]
        self._active_farm_id = active_farm_id
        self.save_count = 0

    @synchronized
    def load_farms(self) -> list[Farm]:
        return [farm.copy() for farm in self._farms]

    @synchronized
    def save_farms(self, farms: Sequence[Farm]) -> None:
        self._farms = [farm.copy() for farm in farms]
        self.save_count += 1

    @synchronized
    def load_active_farm_id(self) -> str | None:
        return self._active_farm_id

    @synchronized
    def save_active_farm_id(self, farm_id: str | None) -> None:
        self._active_farm_id = farm_id

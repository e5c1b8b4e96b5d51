"""
Service protocols (structural typing interfaces).

The farm service depends on two collaborators it does not own: a store for
the farm list and the active farm id, and a sink for critical alerts.
Anything with the right methods satisfies these protocols; no explicit
inheritance is needed, which keeps tests trivially mockable.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from coopclimate.domain.alert import Alert
from coopclimate.domain.farm import Farm


@runtime_checkable
class FarmStore(Protocol):
    """Key-value persistence for the farm registry.

    Implementations must tolerate a cold start (nothing stored yet) by
    returning an empty list / ``None``, and must round-trip every Farm and
    ActuatorState field including timestamps.
    """

    def load_farms(self) -> list[Farm]:
        """Return stored farms in insertion order, or an empty list."""
        ...

    def save_farms(self, farms: Sequence[Farm]) -> None:
        """Replace the stored farm list."""
        ...

    def load_active_farm_id(self) -> str | None:
        ...

    def save_active_farm_id(self, farm_id: str | None) -> None:
        """Store the active farm id; ``None`` clears it."""
        ...


@runtime_checkable
class NotificationSink(Protocol):
    """Fire-and-forget receiver for critical alerts."""

    def notify(self, alert: Alert) -> None:
        ...

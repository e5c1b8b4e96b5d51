"""
Age Profile Registry
====================
Static catalog of age-based climate profiles for poultry.

Each profile is an immutable value object holding the temperature band
(min/max/target, °C) for one growth stage plus descriptive metadata for
display. The catalog is fixed at import time and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from coopclimate.domain.exceptions import InvariantViolation, NotFoundError
from coopclimate.enums import AgeProfileId


@dataclass(frozen=True)
class AgeProfile:
    """
    Immutable temperature band for a growth stage.

    Attributes:
        id: Stage identifier
        name: Display name
        min_temp: Lowest in-range temperature (°C, inclusive)
        max_temp: Highest in-range temperature (°C, inclusive)
        target_temp: Temperature the simulated sensor centres on (°C)
        age_range_label: Human readable age range, e.g. "2-4 weeks"
        description: Short description of the stage
        icon: Display glyph
    """

    id: AgeProfileId
    name: str
    min_temp: int
    max_temp: int
    target_temp: int
    age_range_label: str
    description: str = ""
    icon: str = ""

    def __post_init__(self):
        if not (self.min_temp < self.target_temp < self.max_temp):
            raise InvariantViolation(
                f"Age profile {self.id} must satisfy min < target < max, "
                f"got {self.min_temp} / {self.target_temp} / {self.max_temp}"
            )

    @property
    def threshold_range(self) -> tuple[int, int]:
        return (self.min_temp, self.max_temp)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id.value,
            "name": self.name,
            "min_temp": self.min_temp,
            "max_temp": self.max_temp,
            "target_temp": self.target_temp,
            "age_range_label": self.age_range_label,
            "description": self.description,
            "icon": self.icon,
        }


AGE_PROFILES: tuple[AgeProfile, ...] = (
    AgeProfile(
        id=AgeProfileId.CHICK,
        name="Chicks",
        min_temp=32,
        max_temp=35,
        target_temp=33,
        age_range_label="0-1 week",
        description="Newly hatched chickens requiring warm environment",
        icon="🐣",
    ),
    AgeProfile(
        id=AgeProfileId.GROWER,
        name="Growers",
        min_temp=28,
        max_temp=32,
        target_temp=30,
        age_range_label="2-4 weeks",
        description="Young chickens developing their feathers",
        icon="🐤",
    ),
    AgeProfile(
        id=AgeProfileId.ADULT,
        name="Adults",
        min_temp=20,
        max_temp=28,
        target_temp=24,
        age_range_label="5+ weeks",
        description="Fully grown chickens with complete feathers",
        icon="🐔",
    ),
)

_BY_ID: dict[AgeProfileId, AgeProfile] = {profile.id: profile for profile in AGE_PROFILES}


def list_profiles() -> list[AgeProfile]:
    """Return the catalog in display order (chick, grower, adult)."""
    return list(AGE_PROFILES)


def lookup_profile(profile_id: AgeProfileId | str) -> AgeProfile:
    """
    Resolve an age profile by id.

    Args:
        profile_id: AgeProfileId or its string value ("chick", "grower", "adult")

    Raises:
        NotFoundError: If no profile carries that id
    """
    try:
        key = profile_id if isinstance(profile_id, AgeProfileId) else AgeProfileId(str(profile_id).strip().lower())
    except ValueError:
        raise NotFoundError(f"Age profile {profile_id!r} not found", detail={"profile_id": str(profile_id)}) from None
    return _BY_ID[key]

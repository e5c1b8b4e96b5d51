"""
Sensor Simulator
================

Per-farm generator of synthetic environmental readings.

Each farm gets its own ``SensorSimulator`` holding nothing but its target
temperature, its noise amplitude and its random source. It never sees
another farm's state, which is what keeps N farms isolated from each other.

Noise amplitude by age profile:

    chick   ±2°C
    grower  ±3°C
    adult   ±4°C

Humidity uses two distributions: seeded history draws around 65% (±5),
steady-state ticks draw uniformly from 60-80%.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta

from coopclimate.domain.reading import Reading, round_half_up
from coopclimate.enums import AgeProfileId

logger = logging.getLogger(__name__)

NOISE_AMPLITUDE: dict[AgeProfileId, float] = {
    AgeProfileId.CHICK: 2.0,
    AgeProfileId.GROWER: 3.0,
    AgeProfileId.ADULT: 4.0,
}

SEED_HUMIDITY_BASE = 65.0
SEED_HUMIDITY_SPREAD = 5.0
TICK_HUMIDITY_BASE = 60.0
TICK_HUMIDITY_SPAN = 20.0

DEFAULT_SEED_COUNT = 24
DEFAULT_SEED_STEP = timedelta(hours=1)


class SensorSimulator:
    """
    Synthetic temperature/humidity feed for one farm.

    Args:
        target_temp: Centre of the temperature distribution (°C)
        profile_id: Age profile used only to pick the noise amplitude
        rng: Random source; inject a seeded ``random.Random`` for reproducible runs
    """

    def __init__(
        self,
        target_temp: int,
        profile_id: AgeProfileId | str,
        rng: random.Random | None = None,
    ) -> None:
        self.target_temp = target_temp
        self.amplitude = NOISE_AMPLITUDE[AgeProfileId(profile_id)]
        self._rng = rng or random.Random()

    def _temperature(self) -> int:
        return round_half_up(self.target_temp + self._rng.uniform(-self.amplitude, self.amplitude))

    def tick(self, now: datetime) -> Reading:
        """Draw one steady-state reading stamped ``now``."""
        reading = Reading(
            timestamp=now,
            temperature=self._temperature(),
            humidity=round_half_up(TICK_HUMIDITY_BASE + self._rng.uniform(0.0, TICK_HUMIDITY_SPAN)),
            target=self.target_temp,
        )
        logger.debug("Simulated reading %s°C / %s%% at %s", reading.temperature, reading.humidity, now.isoformat())
        return reading

    def seed_history(
        self,
        now: datetime,
        count: int = DEFAULT_SEED_COUNT,
        step: timedelta = DEFAULT_SEED_STEP,
    ) -> list[Reading]:
        """
        Produce ``count`` readings at ``now - k*step`` for k = count-1 .. 0.

        The result is in ascending timestamp order and ends at ``now``, so a
        new farm's chart is populated immediately.
        """
        readings = []
        for k in range(count - 1, -1, -1):
            readings.append(
                Reading(
                    timestamp=now - k * step,
                    temperature=self._temperature(),
                    humidity=round_half_up(
                        SEED_HUMIDITY_BASE + self._rng.uniform(-SEED_HUMIDITY_SPREAD, SEED_HUMIDITY_SPREAD)
                    ),
                    target=self.target_temp,
                )
            )
        return readings

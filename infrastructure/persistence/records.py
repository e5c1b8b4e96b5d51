"""Conversion between Farm aggregates and stored record dicts."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence

from pydantic import ValidationError as PydanticValidationError

from coopclimate.domain.exceptions import NotFoundError
from coopclimate.domain.farm import Farm
from coopclimate.schemas.farm import FarmRecord

logger = logging.getLogger(__name__)


def farms_to_records(farms: Sequence[Farm]) -> list[dict[str, Any]]:
    return [FarmRecord.from_farm(farm).model_dump(mode="json") for farm in farms]


def records_to_farms(records: Iterable[dict[str, Any]]) -> list[Farm]:
    """Rebuild farms in stored order, skipping records that no longer validate."""
    farms = []
    seen: set[str] = set()
    for raw in records:
        try:
            farm = FarmRecord.model_validate(raw).to_farm()
        except (PydanticValidationError, NotFoundError) as exc:
            logger.warning("Skipping unreadable farm record %s: %s", raw.get("id"), exc)
            continue
        if farm.id in seen:
            logger.warning("Skipping duplicate farm record %s", farm.id)
            continue
        seen.add(farm.id)
        farms.append(farm)
    return farms

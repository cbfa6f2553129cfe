"""Domain models shared across pipeline modules."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from .topology import Topology


def _optional_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def _optional_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


@dataclass(frozen=True, slots=True)
class PlantRecord:
    """One power plant row from the plant table."""

    name: str
    city: str
    group: str
    value: float | None
    longitude: float | None
    latitude: float | None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> PlantRecord:
        """Build a record from a loaded row; blanks and NaN become `None`."""
        return cls(
            name=_optional_str(data.get("name")),
            city=_optional_str(data.get("city")),
            group=_optional_str(data.get("group")),
            value=_optional_float(data.get("value")),
            longitude=_optional_float(data.get("longitude")),
            latitude=_optional_float(data.get("latitude")),
        )


@dataclass(frozen=True, slots=True)
class ProjectedPlant:
    """A plant paired with its screen position; `point` is None when unprojectable."""

    plant: PlantRecord
    point: tuple[float, float] | None


@dataclass(frozen=True, slots=True)
class MapData:
    plants: tuple[PlantRecord, ...]
    topology: Topology

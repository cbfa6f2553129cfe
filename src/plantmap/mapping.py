"""Visual mapping: scales, projection and the drawable plant set."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Sequence

from .config import AppConfig
from .models import MapData, PlantRecord, ProjectedPlant
from .projection import AlbersUsaProjection, PathGenerator, build_projection
from .scales import OrdinalScale, SqrtScale, build_color_scale, build_radius_scale


_LOGGER = logging.getLogger("plantmap.mapping")


@dataclass(frozen=True, slots=True)
class VisualMapping:
    color_scale: OrdinalScale[str, str]
    radius_scale: SqrtScale
    projection: AlbersUsaProjection
    path: PathGenerator
    plants: tuple[ProjectedPlant, ...]
    skipped_unprojected: int = 0
    skipped_invalid_value: int = 0
    skipped_unknown_category: int = 0
    unknown_categories: tuple[str, ...] = ()

    def color_of(self, plant: PlantRecord) -> str:
        return self.color_scale.apply(plant.group)

    def radius_of(self, plant: PlantRecord) -> float:
        return self.radius_scale.apply(plant.value if plant.value is not None else 0.0)


def project_plants(
    plants: Iterable[PlantRecord],
    projection: AlbersUsaProjection,
) -> tuple[ProjectedPlant, ...]:
    return tuple(
        ProjectedPlant(plant=plant, point=projection.apply(plant.longitude, plant.latitude))
        for plant in plants
    )


def sort_for_drawing(plants: Sequence[ProjectedPlant]) -> tuple[ProjectedPlant, ...]:
    """Largest first so smaller circles stay on top; ties keep input order."""
    return tuple(sorted(plants, key=lambda item: item.plant.value or 0.0, reverse=True))


def build_visual_mapping(cfg: AppConfig, data: MapData) -> VisualMapping:
    color_scale = build_color_scale(cfg)
    radius_scale = build_radius_scale(cfg, (plant.value for plant in data.plants))
    projection = build_projection(cfg)
    projected = project_plants(data.plants, projection)

    drawable: list[ProjectedPlant] = []
    unprojected = 0
    invalid_value = 0
    unknown_skipped = 0
    unknown_keys: list[str] = []
    for item in projected:
        plant = item.plant
        if item.point is None:
            unprojected += 1
            continue
        if plant.value is None or not math.isfinite(plant.value):
            invalid_value += 1
            continue
        if not color_scale.knows(plant.group):
            if plant.group not in unknown_keys:
                unknown_keys.append(plant.group)
                _LOGGER.warning(
                    "Unknown plant category '%s' (%s)",
                    plant.group,
                    "drawn with fallback color"
                    if cfg.unknown_category.policy == "fallback"
                    else "plants skipped",
                )
            if cfg.unknown_category.policy == "skip":
                unknown_skipped += 1
                continue
        drawable.append(item)

    if unprojected:
        _LOGGER.info("%d plants have no position on the map and are not drawn", unprojected)
    if invalid_value:
        _LOGGER.warning("%d plants have no capacity value and are not drawn", invalid_value)
    _LOGGER.info(
        "Radius scale domain [0, %.3f] -> [%.2f, %.2f]",
        radius_scale.domain[1],
        radius_scale.range[0],
        radius_scale.range[1],
    )
    return VisualMapping(
        color_scale=color_scale,
        radius_scale=radius_scale,
        projection=projection,
        path=PathGenerator(projection),
        plants=sort_for_drawing(drawable),
        skipped_unprojected=unprojected,
        skipped_invalid_value=invalid_value,
        skipped_unknown_category=unknown_skipped,
        unknown_categories=tuple(unknown_keys),
    )

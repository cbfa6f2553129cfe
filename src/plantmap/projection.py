"""Composite Albers USA projection and screen-space path generation."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import numpy as np

from .config import AppConfig


_LOGGER = logging.getLogger("plantmap.projection")

_EPSILON = 1e-6


@dataclass(frozen=True, slots=True)
class AlbersUsaConfig:
    scale: float
    translate: tuple[float, float]


@dataclass(frozen=True, slots=True)
class _ConicSpec:
    """Conic equal-area parameters in geographic degrees."""

    name: str
    parallels: tuple[float, float]
    central_meridian: float
    center: tuple[float, float]
    scale_factor: float
    # translate offsets and clip extent, all in multiples of the base scale
    offset: tuple[float, float]
    extent: tuple[float, float, float, float]
    inset: float


_LOWER_48 = _ConicSpec(
    name="lower48",
    parallels=(29.5, 45.5),
    central_meridian=-96.0,
    center=(-96.6, 38.7),
    scale_factor=1.0,
    offset=(0.0, 0.0),
    extent=(-0.455, -0.238, 0.455, 0.238),
    inset=0.0,
)
_ALASKA = _ConicSpec(
    name="alaska",
    parallels=(55.0, 65.0),
    central_meridian=-154.0,
    center=(-156.0, 58.5),
    scale_factor=0.35,
    offset=(-0.307, 0.201),
    extent=(-0.425, 0.120, -0.214, 0.234),
    inset=_EPSILON,
)
_HAWAII = _ConicSpec(
    name="hawaii",
    parallels=(8.0, 18.0),
    central_meridian=-157.0,
    center=(-160.0, 19.9),
    scale_factor=1.0,
    offset=(-0.205, 0.212),
    extent=(-0.214, 0.166, -0.115, 0.234),
    inset=_EPSILON,
)


class _ConicPart:
    """One clipped conic equal-area projection on the unit sphere."""

    def __init__(self, spec: _ConicSpec, scale: float, translate: tuple[float, float]) -> None:
        self.name = spec.name
        self._proj = _require_pyproj_proj(spec.parallels, spec.central_meridian)
        self._k = scale * spec.scale_factor
        x, y = translate
        self._tx = x + spec.offset[0] * scale
        self._ty = y + spec.offset[1] * scale
        cx, cy = self._proj(*spec.center)
        self._cx = float(cx)
        self._cy = float(cy)
        self.extent = (
            x + spec.extent[0] * scale + spec.inset,
            y + spec.extent[1] * scale + spec.inset,
            x + spec.extent[2] * scale - spec.inset,
            y + spec.extent[3] * scale - spec.inset,
        )

    def forward(self, lon: Any, lat: Any) -> tuple[Any, Any]:
        px, py = self._proj(np.asarray(lon, dtype=float), np.asarray(lat, dtype=float))
        return (
            self._tx + self._k * (np.asarray(px) - self._cx),
            self._ty - self._k * (np.asarray(py) - self._cy),
        )

    def contains(self, x: float, y: float) -> bool:
        x0, y0, x1, y1 = self.extent
        return x0 <= x <= x1 and y0 <= y <= y1


class AlbersUsaProjection:
    """Lower 48 states plus Alaska and Hawaii insets.

    A point is routed to the first part whose clip extent holds its projected
    position; points outside every extent project to None.
    """

    def __init__(self, cfg: AlbersUsaConfig) -> None:
        self.cfg = cfg
        self.parts = tuple(
            _ConicPart(spec, cfg.scale, cfg.translate) for spec in (_LOWER_48, _ALASKA, _HAWAII)
        )

    def apply(self, longitude: float | None, latitude: float | None) -> tuple[float, float] | None:
        if longitude is None or latitude is None:
            return None
        lon = float(longitude)
        lat = float(latitude)
        if not (math.isfinite(lon) and math.isfinite(lat)):
            return None
        for part in self.parts:
            x, y = part.forward(lon, lat)
            x = float(x)
            y = float(y)
            if math.isfinite(x) and math.isfinite(y) and part.contains(x, y):
                return (x, y)
        return None

    def __call__(self, longitude: float | None, latitude: float | None) -> tuple[float, float] | None:
        return self.apply(longitude, latitude)


class PathGenerator:
    """Project lon/lat shapely geometries into clipped screen-space geometries."""

    def __init__(self, projection: AlbersUsaProjection) -> None:
        self.projection = projection

    def __call__(self, geometry: Any) -> Any | None:
        if geometry is None or geometry.is_empty:
            return None
        transform = _require_shapely_transform()
        box = _require_shapely_box_factory()
        dimension = _geometry_dimension(geometry)
        pieces: list[Any] = []
        for part in self.projection.parts:
            projected = transform(part.forward, geometry)
            if not all(math.isfinite(b) for b in projected.bounds):
                _LOGGER.debug("Dropping non-finite %s projection of %s", part.name, geometry.geom_type)
                continue
            if not projected.is_valid:
                projected = _require_make_valid()(projected)
            clipped = projected.intersection(box(*part.extent))
            pieces.extend(_explode(clipped, dimension))
        if not pieces:
            return None
        return _require_shapely_unary_union()(pieces)


def build_projection(cfg: AppConfig) -> AlbersUsaProjection:
    return AlbersUsaProjection(
        AlbersUsaConfig(scale=cfg.projection.scale, translate=cfg.canvas.center)
    )


def _geometry_dimension(geometry: Any) -> int:
    geom_type = geometry.geom_type
    if geom_type in ("Polygon", "MultiPolygon"):
        return 2
    if geom_type in ("LineString", "MultiLineString", "LinearRing"):
        return 1
    if geom_type in ("Point", "MultiPoint"):
        return 0
    return max((_geometry_dimension(part) for part in geometry.geoms), default=0)


def _explode(geometry: Any, dimension: int) -> list[Any]:
    if geometry.is_empty:
        return []
    if hasattr(geometry, "geoms"):
        out: list[Any] = []
        for part in geometry.geoms:
            out.extend(_explode(part, dimension))
        return out
    if _geometry_dimension(geometry) != dimension:
        return []
    return [geometry]


@lru_cache(maxsize=None)
def _require_pyproj_proj(parallels: tuple[float, float], central_meridian: float) -> Any:
    try:
        from pyproj import Proj
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("pyproj is required for the Albers USA projection") from exc
    return Proj(
        f"+proj=aea +lat_1={parallels[0]} +lat_2={parallels[1]} +lat_0=0 "
        f"+lon_0={central_meridian} +R=1 +units=m +no_defs"
    )


def _require_shapely_transform() -> Any:
    try:
        from shapely.ops import transform
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for geometry projection") from exc
    return transform


def _require_shapely_box_factory() -> Any:
    try:
        from shapely.geometry import box
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for projection clip extents") from exc
    return box


def _require_shapely_unary_union() -> Any:
    try:
        from shapely.ops import unary_union
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for geometry union") from exc
    return unary_union


def _require_make_valid() -> Any:
    try:
        from shapely.validation import make_valid
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("shapely is required for geometry repair") from exc
    return make_valid

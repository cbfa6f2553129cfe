"""Immutable draw-call description of one rendered map."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator

from .models import ProjectedPlant


@dataclass(frozen=True, slots=True)
class CircleMark:
    cx: float
    cy: float
    r: float
    fill: str | None
    fill_opacity: float = 1.0
    stroke: str | None = None
    stroke_width: float = 0.0
    datum: ProjectedPlant | None = None


@dataclass(frozen=True, slots=True)
class TextMark:
    x: float
    y: float
    text: str
    font_size: float
    fill: str
    anchor: str = "middle"
    baseline: str = "alphabetic"
    dy_em: float = 0.0
    font_weight: str = "normal"


@dataclass(frozen=True, slots=True)
class ShapeMark:
    """Screen-space shapely geometry, filled and/or stroked."""

    geometry: Any
    fill: str | None
    stroke: str | None = None
    stroke_width: float = 0.0
    line_join: str = "miter"


Mark = CircleMark | TextMark | ShapeMark


@dataclass(frozen=True, slots=True)
class Layer:
    name: str
    marks: tuple[Mark, ...]


@dataclass(frozen=True, slots=True)
class Scene:
    """Layers in draw order; later layers occlude earlier ones."""

    width: float
    height: float
    layers: tuple[Layer, ...]

    def layer(self, name: str) -> Layer:
        for layer in self.layers:
            if layer.name == name:
                return layer
        raise KeyError(name)

    def iter_marks(self) -> Iterator[Mark]:
        for layer in self.layers:
            yield from layer.marks

    @property
    def mark_count(self) -> int:
        return sum(len(layer.marks) for layer in self.layers)

"""Bubble map scene building and the end-to-end render pipeline."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, Sequence

from .config import AppConfig
from .io_data import DataLoader, DataLoadError
from .mapping import VisualMapping, build_visual_mapping
from .scene import CircleMark, Layer, Scene, ShapeMark, TextMark
from .topology import interior_borders
from .transform import transform
from .tooltip import format_value
from .util import write_json


_LOGGER = logging.getLogger("plantmap.render")

_SIZE_LEGEND_GAP = 25.0
_COLOR_LEGEND_PITCH = 3.0
_COLOR_LEGEND_TEXT_GAP = 5.0


class Canvas(Protocol):
    def draw(self, scene: Scene, output_path: Path) -> Path: ...


@dataclass(slots=True)
class BubbleMapReport:
    output_path: Path | None = None
    scene: Scene | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    infos: list[str] = field(default_factory=list)
    summary: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)

    def add_info(self, msg: str) -> None:
        self.infos.append(msg)


class BubbleMapRenderer:
    """Turns a visual mapping and decoded boundaries into a layered scene."""

    def __init__(self, cfg: AppConfig) -> None:
        self.cfg = cfg

    def build_scene(self, mapping: VisualMapping, states: Any, borders: Any) -> Scene:
        return Scene(
            width=self.cfg.canvas.width,
            height=self.cfg.canvas.height,
            layers=(
                self._size_legend(mapping),
                self._color_legend(),
                self._legend_title(),
                self._state_layer(mapping, states),
                self._border_layer(mapping, borders),
                self._plant_layer(mapping),
            ),
        )

    def _size_legend(self, mapping: VisualMapping) -> Layer:
        width = self.cfg.canvas.width
        height = self.cfg.canvas.height
        style = self.cfg.style
        ox = 11.0 * width / 16.0
        oy = height / 32.0
        values = self.cfg.legend.size_values
        marks: list[CircleMark | TextMark] = []
        for idx, value in enumerate(values):
            r = mapping.radius_scale.apply(value)
            x = ox + (r + _SIZE_LEGEND_GAP) * idx
            marks.append(
                CircleMark(
                    cx=x,
                    cy=oy + r + height / 16.0,
                    r=r,
                    fill=None,
                    stroke=style.size_legend_stroke,
                    stroke_width=1.5,
                )
            )
            label = format_value(value)
            if idx == len(values) - 1:
                label = f"{label}{self.cfg.legend.unit}"
            marks.append(
                TextMark(
                    x=x,
                    y=oy + height / 16.0,
                    text=label,
                    font_size=14.0,
                    fill=style.legend_text_color,
                    anchor="middle",
                    dy_em=-0.5,
                )
            )
        return Layer("size-legend", tuple(marks))

    def _color_legend(self) -> Layer:
        ox = 59.0 * self.cfg.canvas.width / 64.0
        oy = self.cfg.canvas.height / 2.0
        radius = self.cfg.legend.color_radius
        marks: list[CircleMark | TextMark] = []
        for idx, category in enumerate(self.cfg.categories):
            y = oy + radius * _COLOR_LEGEND_PITCH * idx
            marks.append(
                TextMark(
                    x=ox + radius + _COLOR_LEGEND_TEXT_GAP,
                    y=y,
                    text=category.label,
                    font_size=13.0,
                    fill=self.cfg.style.legend_text_color,
                    anchor="start",
                    baseline="central",
                )
            )
            marks.append(CircleMark(cx=ox, cy=y, r=radius, fill=category.color))
        return Layer("color-legend", tuple(marks))

    def _legend_title(self) -> Layer:
        title = TextMark(
            x=24.0 * self.cfg.canvas.width / 32.0,
            y=2.0 * self.cfg.canvas.height / 64.0,
            text=self.cfg.legend.title,
            font_size=21.0,
            fill=self.cfg.style.legend_text_color,
            anchor="middle",
            baseline="hanging",
            font_weight="black",
        )
        return Layer("legend-title", (title,))

    def _state_layer(self, mapping: VisualMapping, states: Any) -> Layer:
        marks: list[ShapeMark] = []
        for geometry in states.geometry:
            projected = mapping.path(geometry)
            if projected is None:
                continue
            marks.append(ShapeMark(geometry=projected, fill=self.cfg.style.land_fill))
        return Layer("map", tuple(marks))

    def _border_layer(self, mapping: VisualMapping, borders: Any) -> Layer:
        projected = mapping.path(borders)
        if projected is None:
            return Layer("borders", ())
        mark = ShapeMark(
            geometry=projected,
            fill=None,
            stroke=self.cfg.style.border_color,
            stroke_width=self.cfg.style.border_width,
            line_join="round",
        )
        return Layer("borders", (mark,))

    def _plant_layer(self, mapping: VisualMapping) -> Layer:
        style = self.cfg.style
        marks: list[CircleMark] = []
        for item in mapping.plants:
            if item.point is None:
                continue
            marks.append(
                CircleMark(
                    cx=item.point[0],
                    cy=item.point[1],
                    r=mapping.radius_of(item.plant),
                    fill=mapping.color_of(item.plant),
                    fill_opacity=style.bubble_opacity,
                    stroke=style.bubble_stroke,
                    stroke_width=style.bubble_stroke_width,
                    datum=item,
                )
            )
        return Layer("plants", tuple(marks))


def run_bubble_map(
    cfg: AppConfig,
    *,
    loader: DataLoader | None = None,
    canvas: Canvas | None = None,
    output_path: Path | None = None,
) -> BubbleMapReport:
    """Load both datasets, build the scene and draw it once."""
    t0 = time.perf_counter()
    target = output_path or cfg.output.path
    report = BubbleMapReport()
    loader = loader or DataLoader(cfg.data, cfg.root_dir)

    try:
        data = transform(loader.load())
    except DataLoadError as exc:
        _LOGGER.error("[load] %s", exc)
        report.add_error(f"Data load failed: {exc}")
        return report
    report.add_info(f"Loaded {len(data.plants)} plant records")

    mapping = build_visual_mapping(cfg, data)
    states = data.topology.feature(cfg.data.boundary_object)
    borders = data.topology.mesh(cfg.data.boundary_object, interior_borders)
    scene = BubbleMapRenderer(cfg).build_scene(mapping, states, borders)
    report.scene = scene

    report.summary = {
        "plants_total": len(data.plants),
        "plants_drawn": len(mapping.plants),
        "skipped_unprojected": mapping.skipped_unprojected,
        "skipped_invalid_value": mapping.skipped_invalid_value,
        "skipped_unknown_category": mapping.skipped_unknown_category,
        "states": len(states),
    }
    if mapping.unknown_categories:
        report.add_warning(
            "Unknown plant categories: " + ", ".join(repr(key) for key in mapping.unknown_categories)
        )
    if mapping.skipped_unprojected:
        report.add_info(f"{mapping.skipped_unprojected} plants fall outside the projection")

    if canvas is None:
        from .canvas import MatplotlibCanvas

        canvas = MatplotlibCanvas(cfg.output, unit=cfg.legend.unit)
    report.output_path = canvas.draw(scene, target)
    elapsed = time.perf_counter() - t0
    _LOGGER.info("[render] wrote %s in %.2fs", report.output_path, elapsed)
    report.add_info(f"Bubble map written to {report.output_path}")

    if cfg.output.write_manifest:
        manifest_path = _manifest_path(report.output_path)
        write_json(manifest_path, _manifest_payload(cfg, mapping, report))
        report.add_info(f"Render manifest written to {manifest_path}")
    return report


def format_report_lines(report: BubbleMapReport) -> Sequence[str]:
    lines: list[str] = []
    lines.extend(f"[INFO] {msg}" for msg in report.infos)
    lines.extend(f"[WARN] {msg}" for msg in report.warnings)
    lines.extend(f"[ERROR] {msg}" for msg in report.errors)
    if report.summary:
        lines.append(
            "[SUMMARY] " + ", ".join(f"{key}={value}" for key, value in report.summary.items())
        )
    if report.ok:
        lines.append("[OK] Bubble map rendered with no errors.")
    return lines


def _manifest_path(output_path: Path) -> Path:
    return output_path.with_name(f"{output_path.stem}.manifest.json")


def _manifest_payload(cfg: AppConfig, mapping: VisualMapping, report: BubbleMapReport) -> dict[str, Any]:
    return {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "output": str(report.output_path),
        "format": cfg.output.format,
        "sources": {"plants": cfg.data.plants, "boundaries": cfg.data.boundaries},
        "radius_domain": list(mapping.radius_scale.domain),
        "radius_range": list(mapping.radius_scale.range),
        "unknown_categories": list(mapping.unknown_categories),
        "summary": dict(report.summary),
    }

"""Matplotlib drawing surface for bubble map scenes."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Sequence

from shapely.geometry.polygon import orient

from .config import OutputConfig
from .scene import CircleMark, Scene, ShapeMark, TextMark
from .tooltip import on_enter, on_leave


_LOGGER = logging.getLogger("plantmap.canvas")

_SVG_NS = "http://www.w3.org/2000/svg"
_XLINK_NS = "http://www.w3.org/1999/xlink"

_HORIZONTAL_ALIGN = {"start": "left", "middle": "center", "end": "right"}
_VERTICAL_ALIGN = {"alphabetic": "baseline", "central": "center", "hanging": "top"}


@dataclass(frozen=True, slots=True)
class _DrawnCircle:
    gid: str
    patch: Any
    mark: CircleMark


class MatplotlibCanvas:
    """Draws a scene in viewBox units: origin top-left, y pointing down."""

    def __init__(self, cfg: OutputConfig, *, unit: str = "MW") -> None:
        self.cfg = cfg
        self.unit = unit

    def draw(self, scene: Scene, output_path: Path) -> Path:
        mpl = _require_matplotlib()
        dpi = self.cfg.dpi
        fig = mpl.figure.Figure(figsize=(scene.width / dpi, scene.height / dpi), dpi=dpi)
        drawn = self._compose(fig, scene)
        fmt = self._format_for(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if fmt == "svg":
            fig.savefig(output_path, dpi=dpi, format="svg", metadata={"Date": None})
            _inject_svg_titles(output_path, self._tooltip_titles(drawn))
        else:
            fig.savefig(output_path, dpi=dpi, format=fmt)
        _LOGGER.debug("Drew %d marks to %s", scene.mark_count, output_path)
        return output_path

    def show(self, scene: Scene) -> None:
        """Open an interactive window with hover tooltips on plant circles."""
        plt = _require_pyplot()
        dpi = self.cfg.dpi
        fig = plt.figure(figsize=(scene.width / dpi, scene.height / dpi), dpi=dpi)
        drawn = self._compose(fig, scene)
        ax = fig.axes[0]
        annotation = ax.annotate(
            "",
            xy=(0.0, 0.0),
            xytext=(12.0, -12.0),
            textcoords="offset points",
            fontsize=self._points(12.0),
            bbox={"boxstyle": "round,pad=0.4", "facecolor": "white", "edgecolor": "#333"},
            zorder=100,
        )
        annotation.set_visible(False)
        host = _HoverHost(fig=fig, annotation=annotation, circles=drawn, unit=self.unit)
        fig.canvas.mpl_connect("motion_notify_event", host.on_motion)
        plt.show()

    def _compose(self, fig: Any, scene: Scene) -> list[_DrawnCircle]:
        ax = fig.add_axes((0.0, 0.0, 1.0, 1.0))
        ax.set_xlim(0.0, scene.width)
        ax.set_ylim(scene.height, 0.0)
        ax.set_aspect("equal", adjustable="box")
        ax.axis("off")

        drawn: list[_DrawnCircle] = []
        for zorder, layer in enumerate(scene.layers, start=1):
            for mark in layer.marks:
                if isinstance(mark, CircleMark):
                    patch = self._draw_circle(ax, mark, zorder)
                    if mark.datum is not None:
                        gid = f"plant-{len(drawn)}"
                        patch.set_gid(gid)
                        drawn.append(_DrawnCircle(gid=gid, patch=patch, mark=mark))
                elif isinstance(mark, TextMark):
                    self._draw_text(ax, mark, zorder)
                elif isinstance(mark, ShapeMark):
                    self._draw_shape(ax, mark, zorder)
        return drawn

    def _draw_circle(self, ax: Any, mark: CircleMark, zorder: int) -> Any:
        mpl = _require_matplotlib()
        facecolor = "none" if mark.fill is None else mpl.colors.to_rgba(mark.fill, mark.fill_opacity)
        edgecolor = "none" if mark.stroke is None or mark.stroke_width <= 0 else mark.stroke
        patch = mpl.patches.Circle(
            (mark.cx, mark.cy),
            mark.r,
            facecolor=facecolor,
            edgecolor=edgecolor,
            linewidth=self._points(mark.stroke_width),
            zorder=zorder,
        )
        ax.add_patch(patch)
        return patch

    def _draw_text(self, ax: Any, mark: TextMark, zorder: int) -> None:
        ax.text(
            mark.x,
            mark.y + mark.dy_em * mark.font_size,
            mark.text,
            fontsize=self._points(mark.font_size),
            fontweight=mark.font_weight,
            color=mark.fill,
            ha=_HORIZONTAL_ALIGN.get(mark.anchor, "center"),
            va=_VERTICAL_ALIGN.get(mark.baseline, "baseline"),
            zorder=zorder,
        )

    def _draw_shape(self, ax: Any, mark: ShapeMark, zorder: int) -> None:
        mpl = _require_matplotlib()
        polygons = list(_iter_polygons(mark.geometry))
        if polygons and mark.fill is not None:
            path = mpl.path.Path.make_compound_path(*(_polygon_path(mpl, polygon) for polygon in polygons))
            ax.add_patch(
                mpl.patches.PathPatch(
                    path,
                    facecolor=mark.fill,
                    edgecolor=mark.stroke or "none",
                    linewidth=self._points(mark.stroke_width),
                    joinstyle=mark.line_join,
                    zorder=zorder,
                )
            )
        if mark.stroke is None or mark.stroke_width <= 0:
            return
        for line in _iter_lines(mark.geometry):
            xs = [float(x) for x, _ in line.coords]
            ys = [float(y) for _, y in line.coords]
            ax.plot(
                xs,
                ys,
                color=mark.stroke,
                linewidth=self._points(mark.stroke_width),
                solid_joinstyle=mark.line_join,
                solid_capstyle="round",
                zorder=zorder,
            )

    def _tooltip_titles(self, drawn: Sequence[_DrawnCircle]) -> dict[str, str]:
        titles: dict[str, str] = {}
        for circle in drawn:
            datum = circle.mark.datum
            if datum is None:
                continue
            titles[circle.gid] = on_enter(datum.plant, circle.mark.fill or "", self.unit).to_text()
        return titles

    def _points(self, units: float) -> float:
        return units * 72.0 / self.cfg.dpi

    def _format_for(self, output_path: Path) -> str:
        suffix = output_path.suffix.lstrip(".").casefold()
        return suffix if suffix in ("png", "svg") else self.cfg.format


class _HoverHost:
    """Tracks the hovered plant circle and toggles a single annotation."""

    def __init__(self, *, fig: Any, annotation: Any, circles: Sequence[_DrawnCircle], unit: str) -> None:
        self.fig = fig
        self.annotation = annotation
        self.circles = tuple(circles)
        self.unit = unit
        self.current: _DrawnCircle | None = None

    def on_motion(self, event: Any) -> None:
        hit: _DrawnCircle | None = None
        if event.inaxes is not None:
            # last drawn is top-most
            for circle in reversed(self.circles):
                if circle.patch.contains(event)[0]:
                    hit = circle
                    break
        if hit is self.current:
            return
        self.current = hit
        if hit is None or hit.mark.datum is None:
            on_leave()
            self.annotation.set_visible(False)
        else:
            content = on_enter(hit.mark.datum.plant, hit.mark.fill or "", self.unit)
            self.annotation.xy = (hit.mark.cx, hit.mark.cy)
            self.annotation.set_text(content.to_text())
            self.annotation.get_bbox_patch().set_edgecolor(content.value_color or "#333")
            self.annotation.set_visible(True)
        self.fig.canvas.draw_idle()


def _iter_polygons(geometry: Any) -> Sequence[Any]:
    geom_type = getattr(geometry, "geom_type", "")
    if geom_type == "Polygon":
        return [geometry] if not geometry.is_empty else []
    if geom_type in ("MultiPolygon", "GeometryCollection"):
        out: list[Any] = []
        for part in geometry.geoms:
            out.extend(_iter_polygons(part))
        return out
    return []


def _iter_lines(geometry: Any) -> Sequence[Any]:
    geom_type = getattr(geometry, "geom_type", "")
    if geom_type in ("LineString", "LinearRing"):
        return [geometry] if len(geometry.coords) >= 2 else []
    if geom_type == "Polygon":
        return [geometry.exterior, *geometry.interiors]
    if geom_type in ("MultiLineString", "MultiPolygon", "GeometryCollection"):
        out: list[Any] = []
        for part in geometry.geoms:
            out.extend(_iter_lines(part))
        return out
    return []


def _polygon_path(mpl: Any, polygon: Any) -> Any:
    oriented = orient(polygon, sign=1.0)
    rings = [oriented.exterior, *oriented.interiors]
    return mpl.path.Path.make_compound_path(
        *(mpl.path.Path(list(ring.coords), closed=True) for ring in rings)
    )


def _inject_svg_titles(path: Path, titles: dict[str, str]) -> None:
    """Attach a `<title>` to each plant circle group so browsers show it on hover."""
    if not titles:
        return
    ET.register_namespace("", _SVG_NS)
    ET.register_namespace("xlink", _XLINK_NS)
    tree = ET.parse(path)
    attached = 0
    for element in tree.getroot().iter():
        text = titles.get(element.get("id", ""))
        if text is None:
            continue
        title = ET.Element(f"{{{_SVG_NS}}}title")
        title.text = text
        element.insert(0, title)
        attached += 1
    tree.write(path, encoding="utf-8", xml_declaration=True)
    _LOGGER.debug("Attached %d SVG tooltips to %s", attached, path)


@lru_cache(maxsize=1)
def _require_matplotlib() -> Any:
    try:
        import matplotlib
        import matplotlib.colors
        import matplotlib.figure
        import matplotlib.patches
        import matplotlib.path
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for map rendering") from exc
    return matplotlib


def _require_pyplot() -> Any:
    try:
        import matplotlib.pyplot as plt
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("matplotlib is required for the interactive map window") from exc
    return plt

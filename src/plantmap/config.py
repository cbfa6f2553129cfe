"""Typed configuration loader for `config.yaml`."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, cast

import yaml


_UNKNOWN_POLICIES = ("fallback", "skip")
_OUTPUT_FORMATS = ("png", "svg")
US_ATLAS_STATES = "https://cdn.jsdelivr.net/npm/us-atlas@3/states-10m.json"


def _mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"Expected mapping for '{field_name}'")
    return cast(Mapping[str, Any], value)


def _str(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Expected non-empty string for '{field_name}'")
    return value.strip()


def _int(value: Any, field_name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Expected integer for '{field_name}'")
    return value


def _float(value: Any, field_name: str) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    raise ValueError(f"Expected float for '{field_name}'")


def _bool(value: Any, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"Expected bool for '{field_name}'")
    return value


def _float_pair(value: Any, field_name: str) -> tuple[float, float]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"Expected two-item list for '{field_name}'")
    return (_float(value[0], f"{field_name}[0]"), _float(value[1], f"{field_name}[1]"))


def _float_list(value: Any, field_name: str) -> tuple[float, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Expected list for '{field_name}'")
    return tuple(_float(item, f"{field_name}[{idx}]") for idx, item in enumerate(value))


@dataclass(frozen=True, slots=True)
class DataConfig:
    plants: str = "data/energy.csv"
    boundaries: str = US_ATLAS_STATES
    boundary_object: str = "states"
    request_timeout_s: float = 30.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> DataConfig:
        timeout = _float(raw.get("request_timeout_s", 30.0), "data.request_timeout_s")
        if timeout <= 0:
            raise ValueError("data.request_timeout_s must be > 0")
        return cls(
            plants=_str(raw.get("plants", "data/energy.csv"), "data.plants"),
            boundaries=_str(raw.get("boundaries", US_ATLAS_STATES), "data.boundaries"),
            boundary_object=_str(raw.get("boundary_object", "states"), "data.boundary_object"),
            request_timeout_s=timeout,
        )


@dataclass(frozen=True, slots=True)
class MarginConfig:
    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> MarginConfig:
        return cls(
            top=_float(raw.get("top", 0.0), "canvas.margin.top"),
            right=_float(raw.get("right", 0.0), "canvas.margin.right"),
            bottom=_float(raw.get("bottom", 0.0), "canvas.margin.bottom"),
            left=_float(raw.get("left", 0.0), "canvas.margin.left"),
        )


@dataclass(frozen=True, slots=True)
class CanvasConfig:
    width: float = 1300.0
    height: float = 800.0
    margin: MarginConfig = MarginConfig()

    @property
    def center(self) -> tuple[float, float]:
        """Projection origin: canvas center offset by the top-left margin."""
        return (self.margin.left + self.width / 2.0, self.margin.top + self.height / 2.0)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> CanvasConfig:
        width = _float(raw.get("width", 1300.0), "canvas.width")
        height = _float(raw.get("height", 800.0), "canvas.height")
        if width <= 0 or height <= 0:
            raise ValueError("canvas.width and canvas.height must be > 0")
        return cls(
            width=width,
            height=height,
            margin=MarginConfig.from_mapping(_mapping(raw.get("margin"), "canvas.margin")),
        )


@dataclass(frozen=True, slots=True)
class CategoryConfig:
    key: str
    label: str
    color: str

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], field_name: str) -> CategoryConfig:
        key = _str(raw.get("key"), f"{field_name}.key")
        return cls(
            key=key,
            label=_str(raw.get("label", key), f"{field_name}.label"),
            color=_str(raw.get("color"), f"{field_name}.color"),
        )


DEFAULT_CATEGORIES: tuple[CategoryConfig, ...] = (
    CategoryConfig("Natural_gas", "Natural Gas", "#f78b29"),
    CategoryConfig("Coal", "Coal", "#99979a"),
    CategoryConfig("Nuclear", "Nuclear", "#cf4a9b"),
    CategoryConfig("Hydro", "Hydroelectric", "#0081c5"),
    CategoryConfig("Oil", "Oil", "#ee1c25"),
    CategoryConfig("Wind", "Wind", "#0fb14c"),
    CategoryConfig("Solar", "Solar", "#d7c944"),
    CategoryConfig("Other", "Other", "#ffefd6"),
)


def _categories(value: Any) -> tuple[CategoryConfig, ...]:
    if value is None:
        return DEFAULT_CATEGORIES
    if not isinstance(value, list) or not value:
        raise ValueError("Expected non-empty list for 'categories'")
    out: list[CategoryConfig] = []
    seen: set[str] = set()
    for idx, item in enumerate(value):
        field_name = f"categories[{idx}]"
        category = CategoryConfig.from_mapping(_mapping(item, field_name), field_name)
        if category.key in seen:
            raise ValueError(f"Duplicate category key '{category.key}' in 'categories'")
        seen.add(category.key)
        out.append(category)
    return tuple(out)


@dataclass(frozen=True, slots=True)
class UnknownCategoryConfig:
    policy: str = "fallback"
    color: str = "#aaaaaa"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> UnknownCategoryConfig:
        policy = _str(raw.get("policy", "fallback"), "unknown_category.policy").casefold()
        if policy not in _UNKNOWN_POLICIES:
            raise ValueError(
                "unknown_category.policy must be one of: " + ", ".join(_UNKNOWN_POLICIES)
            )
        return cls(
            policy=policy,
            color=_str(raw.get("color", "#aaaaaa"), "unknown_category.color"),
        )


@dataclass(frozen=True, slots=True)
class RadiusConfig:
    percentile: float = 0.985
    range: tuple[float, float] = (1.5, 10.0)
    clamp: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> RadiusConfig:
        percentile = _float(raw.get("percentile", 0.985), "radius.percentile")
        if not 0.0 <= percentile <= 1.0:
            raise ValueError("radius.percentile must be between 0 and 1")
        return cls(
            percentile=percentile,
            range=_float_pair(raw.get("range", [1.5, 10.0]), "radius.range"),
            clamp=_bool(raw.get("clamp", False), "radius.clamp"),
        )


@dataclass(frozen=True, slots=True)
class ProjectionConfig:
    scale: float = 1600.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ProjectionConfig:
        scale = _float(raw.get("scale", 1600.0), "projection.scale")
        if scale <= 0:
            raise ValueError("projection.scale must be > 0")
        return cls(scale=scale)


@dataclass(frozen=True, slots=True)
class LegendConfig:
    size_values: tuple[float, ...] = (50.0, 500.0, 2000.0, 5000.0)
    unit: str = "MW"
    title: str = "Plant capacity by power source"
    color_radius: float = 10.0

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> LegendConfig:
        size_values = _float_list(raw.get("size_values", [50, 500, 2000, 5000]), "legend.size_values")
        if any(value < 0 for value in size_values):
            raise ValueError("legend.size_values must be >= 0")
        return cls(
            size_values=size_values,
            unit=_str(raw.get("unit", "MW"), "legend.unit"),
            title=_str(raw.get("title", "Plant capacity by power source"), "legend.title"),
            color_radius=_float(raw.get("color_radius", 10.0), "legend.color_radius"),
        )


@dataclass(frozen=True, slots=True)
class StyleConfig:
    land_fill: str = "#ddd"
    border_color: str = "white"
    border_width: float = 1.5
    bubble_opacity: float = 0.55
    bubble_stroke: str = "#fff"
    bubble_stroke_width: float = 0.0
    legend_text_color: str = "#333"
    size_legend_stroke: str = "#999"

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> StyleConfig:
        opacity = _float(raw.get("bubble_opacity", 0.55), "style.bubble_opacity")
        if not 0.0 <= opacity <= 1.0:
            raise ValueError("style.bubble_opacity must be between 0 and 1")
        return cls(
            land_fill=_str(raw.get("land_fill", "#ddd"), "style.land_fill"),
            border_color=_str(raw.get("border_color", "white"), "style.border_color"),
            border_width=_float(raw.get("border_width", 1.5), "style.border_width"),
            bubble_opacity=opacity,
            bubble_stroke=_str(raw.get("bubble_stroke", "#fff"), "style.bubble_stroke"),
            bubble_stroke_width=_float(
                raw.get("bubble_stroke_width", 0.0), "style.bubble_stroke_width"
            ),
            legend_text_color=_str(raw.get("legend_text_color", "#333"), "style.legend_text_color"),
            size_legend_stroke=_str(
                raw.get("size_legend_stroke", "#999"), "style.size_legend_stroke"
            ),
        )


@dataclass(frozen=True, slots=True)
class OutputConfig:
    path: Path = Path("build/energy-map.png")
    format: str = "png"
    dpi: int = 100
    write_manifest: bool = True
    log_file: Path | None = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> OutputConfig:
        path = Path(_str(raw.get("path", "build/energy-map.png"), "output.path"))
        if not path.is_absolute():
            path = root_dir / path
        fmt_raw = raw.get("format")
        fmt = (
            _str(fmt_raw, "output.format").casefold()
            if fmt_raw is not None
            else path.suffix.lstrip(".").casefold() or "png"
        )
        if fmt not in _OUTPUT_FORMATS:
            raise ValueError("output.format must be one of: " + ", ".join(_OUTPUT_FORMATS))
        dpi = _int(raw.get("dpi", 100), "output.dpi")
        if dpi <= 0:
            raise ValueError("output.dpi must be > 0")
        log_raw = raw.get("log_file")
        log_file: Path | None = None
        if log_raw is not None:
            log_file = Path(_str(log_raw, "output.log_file"))
            if not log_file.is_absolute():
                log_file = root_dir / log_file
        return cls(
            path=path,
            format=fmt,
            dpi=dpi,
            write_manifest=_bool(raw.get("write_manifest", True), "output.write_manifest"),
            log_file=log_file,
        )


@dataclass(frozen=True, slots=True)
class AppConfig:
    root_dir: Path
    data: DataConfig
    canvas: CanvasConfig
    categories: tuple[CategoryConfig, ...]
    unknown_category: UnknownCategoryConfig
    radius: RadiusConfig
    projection: ProjectionConfig
    legend: LegendConfig
    style: StyleConfig
    output: OutputConfig

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any], root_dir: Path) -> AppConfig:
        root_dir = root_dir.resolve()
        return cls(
            root_dir=root_dir,
            data=DataConfig.from_mapping(_mapping(raw.get("data"), "data")),
            canvas=CanvasConfig.from_mapping(_mapping(raw.get("canvas"), "canvas")),
            categories=_categories(raw.get("categories")),
            unknown_category=UnknownCategoryConfig.from_mapping(
                _mapping(raw.get("unknown_category"), "unknown_category")
            ),
            radius=RadiusConfig.from_mapping(_mapping(raw.get("radius"), "radius")),
            projection=ProjectionConfig.from_mapping(_mapping(raw.get("projection"), "projection")),
            legend=LegendConfig.from_mapping(_mapping(raw.get("legend"), "legend")),
            style=StyleConfig.from_mapping(_mapping(raw.get("style"), "style")),
            output=OutputConfig.from_mapping(_mapping(raw.get("output"), "output"), root_dir),
        )


def default_config(root_dir: str | Path = ".") -> AppConfig:
    """Configuration reproducing the stock energy map, rooted at `root_dir`."""
    return AppConfig.from_mapping({}, Path(root_dir))


def load_config(path: str | Path) -> AppConfig:
    """Load and validate the YAML config file into typed settings."""
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as fh:
        try:
            raw = yaml.safe_load(fh)
        except yaml.YAMLError as exc:
            raise ValueError(f"Invalid YAML in {cfg_path}: {exc}") from exc
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError("Top-level config must be a YAML mapping")
    return AppConfig.from_mapping(cast(Mapping[str, Any], raw), cfg_path.parent)

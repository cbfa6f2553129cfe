"""Hover tooltip content for plant circles."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape

from .models import PlantRecord


@dataclass(frozen=True, slots=True)
class TooltipContent:
    title: str
    value: str
    value_color: str
    unit: str
    city: str

    def to_text(self) -> str:
        return f"{self.title}\n{self.value} {self.unit} {self.city}".rstrip()

    def to_html(self) -> str:
        return (
            f'<span class="tooltip-title">{escape(self.title)}</span><br>'
            f'<span class="tooltip-value" style="color:{escape(self.value_color)}">'
            f"{escape(self.value)}</span> {escape(self.unit)} "
            f'<span class="tooltip-city">{escape(self.city)}</span>'
        )


@dataclass(frozen=True, slots=True)
class Hidden:
    """Tooltip state when no circle is hovered."""


HIDDEN = Hidden()


def on_enter(plant: PlantRecord, color: str, unit: str = "MW") -> TooltipContent:
    return TooltipContent(
        title=plant.name,
        value=format_value(plant.value),
        value_color=color,
        unit=unit,
        city=plant.city,
    )


def on_leave() -> Hidden:
    return HIDDEN


def format_value(value: float | None) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))

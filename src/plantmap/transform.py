"""Reshaping hook between loading and visual mapping."""

from __future__ import annotations

from .models import MapData


def transform(data: MapData) -> MapData:
    """Return the loaded data untouched."""
    return data

"""Shared fixtures: a two-state topology, sample plant rows and configs."""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any

import pytest

from plantmap.config import AppConfig
from plantmap.models import MapData, PlantRecord
from plantmap.topology import Topology


# Two adjacent 2x2 degree squares in Kansas sharing the meridian -98.
SQUARES_TOPOLOGY: dict[str, Any] = {
    "type": "Topology",
    "objects": {
        "states": {
            "type": "GeometryCollection",
            "geometries": [
                {"type": "Polygon", "id": "A", "properties": {"name": "West"}, "arcs": [[0, 1]]},
                {"type": "Polygon", "id": "B", "properties": {"name": "East"}, "arcs": [[-1, 2]]},
            ],
        }
    },
    "arcs": [
        [[-98.0, 38.0], [-98.0, 40.0]],
        [[-98.0, 40.0], [-100.0, 40.0], [-100.0, 38.0], [-98.0, 38.0]],
        [[-98.0, 38.0], [-96.0, 38.0], [-96.0, 40.0], [-98.0, 40.0]],
    ],
}

PLANTS_CSV = """Name,City,Group,Value,Longitude,Latitude
Scherer,Juliette,Coal,3520,-83.81,33.06
Palo Verde,Wintersburg,Nuclear,3937,-112.86,33.39
Topaz Solar Farm,California Valley,Solar,550,-120.07,35.38
Unlocated Peaker,Nowhere,Natural_gas,40,,
"""


@pytest.fixture
def squares_document() -> dict[str, Any]:
    return copy.deepcopy(SQUARES_TOPOLOGY)


@pytest.fixture
def squares_topology(squares_document: dict[str, Any]) -> Topology:
    return Topology(squares_document)


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig.from_mapping(
        {"output": {"path": str(tmp_path / "build" / "map.png")}},
        tmp_path,
    )


@pytest.fixture
def make_map_data(squares_topology: Topology):
    def _make(*plants: PlantRecord) -> MapData:
        return MapData(plants=tuple(plants), topology=squares_topology)

    return _make


@pytest.fixture
def input_dir(tmp_path: Path, squares_document: dict[str, Any]) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "energy.csv").write_text(PLANTS_CSV, encoding="utf-8")
    (data_dir / "us.json").write_text(json.dumps(squares_document), encoding="utf-8")
    return tmp_path


def plant(
    name: str = "Plant",
    group: str = "Coal",
    value: float | None = 500.0,
    longitude: float | None = -90.0,
    latitude: float | None = 40.0,
    city: str = "Somewhere",
) -> PlantRecord:
    return PlantRecord(
        name=name,
        city=city,
        group=group,
        value=value,
        longitude=longitude,
        latitude=latitude,
    )

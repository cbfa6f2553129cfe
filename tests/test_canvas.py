import xml.etree.ElementTree as ET
from pathlib import Path

import matplotlib
import pytest

from conftest import plant
from plantmap.canvas import MatplotlibCanvas
from plantmap.config import AppConfig, OutputConfig
from plantmap.mapping import build_visual_mapping
from plantmap.render import BubbleMapRenderer
from plantmap.topology import interior_borders

matplotlib.use("Agg")

_SVG_TITLE = "{http://www.w3.org/2000/svg}title"


@pytest.fixture
def scene(app_config: AppConfig, make_map_data):
    data = make_map_data(
        plant(name="Big & Co", value=3000.0, city="Wichita"),
        plant(name="Small", group="Wind", value=20.0, longitude=-97.0, latitude=39.0, city="Salina"),
    )
    mapping = build_visual_mapping(app_config, data)
    return BubbleMapRenderer(app_config).build_scene(
        mapping,
        data.topology.feature("states"),
        data.topology.mesh("states", interior_borders),
    )


def test_png_output(scene, tmp_path: Path):
    target = tmp_path / "out" / "map.png"
    written = MatplotlibCanvas(OutputConfig(path=target)).draw(scene, target)
    assert written == target
    assert target.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"


def test_svg_output_carries_hover_titles(scene, tmp_path: Path):
    target = tmp_path / "map.svg"
    MatplotlibCanvas(OutputConfig(path=target, format="svg")).draw(scene, target)
    root = ET.parse(target).getroot()
    titles = {
        element.get("id"): element.find(_SVG_TITLE).text
        for element in root.iter()
        if element.find(_SVG_TITLE) is not None and (element.get("id") or "").startswith("plant-")
    }
    assert titles == {
        "plant-0": "Big & Co\n3000 MW Wichita",
        "plant-1": "Small\n20 MW Salina",
    }


def test_format_follows_output_suffix(scene, tmp_path: Path):
    target = tmp_path / "map.svg"
    MatplotlibCanvas(OutputConfig(path=tmp_path / "cfg.png", format="png")).draw(scene, target)
    assert target.read_text(encoding="utf-8").lstrip().startswith("<?xml")

import logging

import pytest

from conftest import plant
from plantmap.config import AppConfig
from plantmap.mapping import build_visual_mapping, sort_for_drawing
from plantmap.models import ProjectedPlant


def test_single_plant_gets_category_color_and_top_radius(app_config: AppConfig, make_map_data):
    mapping = build_visual_mapping(app_config, make_map_data(plant(group="Coal", value=500.0)))
    assert len(mapping.plants) == 1
    only = mapping.plants[0].plant
    assert mapping.color_of(only) == "#99979a"
    assert mapping.radius_of(only) == pytest.approx(10.0)
    assert mapping.radius_scale.domain == pytest.approx((0.0, 500.0))


def test_unprojectable_plants_are_counted_not_drawn(app_config: AppConfig, make_map_data):
    data = make_map_data(
        plant(name="Kansas"),
        plant(name="Paris", longitude=2.35, latitude=48.85),
        plant(name="Nowhere", longitude=None, latitude=None),
    )
    mapping = build_visual_mapping(app_config, data)
    assert [item.plant.name for item in mapping.plants] == ["Kansas"]
    assert mapping.skipped_unprojected == 2


def test_plants_without_value_are_not_drawn(app_config: AppConfig, make_map_data):
    mapping = build_visual_mapping(app_config, make_map_data(plant(name="a"), plant(name="b", value=None)))
    assert [item.plant.name for item in mapping.plants] == ["a"]
    assert mapping.skipped_invalid_value == 1


def test_radius_percentile_covers_every_loaded_value(app_config: AppConfig, make_map_data):
    data = make_map_data(
        plant(name="on-map", value=100.0),
        plant(name="off-map", value=900.0, longitude=2.35, latitude=48.85),
    )
    mapping = build_visual_mapping(app_config, data)
    assert mapping.radius_scale.domain[1] == pytest.approx(100.0 + 800.0 * 0.985)


def test_plants_are_ordered_largest_first(app_config: AppConfig, make_map_data):
    data = make_map_data(
        plant(name="small", value=10.0),
        plant(name="big", value=3000.0),
        plant(name="tie-1", value=500.0),
        plant(name="tie-2", value=500.0),
    )
    mapping = build_visual_mapping(app_config, data)
    assert [item.plant.name for item in mapping.plants] == ["big", "tie-1", "tie-2", "small"]


def test_sort_for_drawing_is_stable_for_equal_values():
    items = [ProjectedPlant(plant(name=str(idx), value=1.0), (0.0, 0.0)) for idx in range(5)]
    assert [item.plant.name for item in sort_for_drawing(items)] == ["0", "1", "2", "3", "4"]


def test_unknown_category_falls_back_and_warns_once(app_config: AppConfig, make_map_data, caplog):
    caplog.set_level(logging.WARNING, logger="plantmap.mapping")
    data = make_map_data(
        plant(name="g1", group="Geothermal"),
        plant(name="g2", group="Geothermal"),
        plant(name="c", group="Coal"),
    )
    mapping = build_visual_mapping(app_config, data)
    assert len(mapping.plants) == 3
    colors = {item.plant.name: mapping.color_of(item.plant) for item in mapping.plants}
    assert colors == {"g1": "#aaaaaa", "g2": "#aaaaaa", "c": "#99979a"}
    assert mapping.unknown_categories == ("Geothermal",)
    warnings = [r for r in caplog.records if "Geothermal" in r.getMessage()]
    assert len(warnings) == 1


def test_unknown_category_skip_policy_drops_plants(tmp_path, make_map_data):
    cfg = AppConfig.from_mapping({"unknown_category": {"policy": "skip"}}, tmp_path)
    data = make_map_data(plant(name="g", group="Geothermal"), plant(name="c", group="Coal"))
    mapping = build_visual_mapping(cfg, data)
    assert [item.plant.name for item in mapping.plants] == ["c"]
    assert mapping.skipped_unknown_category == 1
    assert mapping.unknown_categories == ("Geothermal",)

import math

import pytest
from shapely.geometry import LineString, Polygon

from plantmap.config import AppConfig
from plantmap.projection import AlbersUsaConfig, AlbersUsaProjection, PathGenerator, build_projection


@pytest.fixture
def projection() -> AlbersUsaProjection:
    return AlbersUsaProjection(AlbersUsaConfig(scale=1600.0, translate=(650.0, 400.0)))


def test_lower48_center_lands_on_translate(projection: AlbersUsaProjection):
    point = projection(-96.6, 38.7)
    assert point == pytest.approx((650.0, 400.0), abs=1e-6)


def test_north_is_up_and_east_is_right(projection: AlbersUsaProjection):
    center = projection(-96.6, 38.7)
    north = projection(-96.6, 42.0)
    east = projection(-90.0, 38.7)
    assert north[1] < center[1]
    assert east[0] > center[0]


def test_alaska_routes_to_inset(projection: AlbersUsaProjection):
    lower48, alaska, _ = projection.parts
    point = projection(-150.0, 61.0)
    assert point is not None
    assert alaska.contains(*point)
    assert not lower48.contains(*lower48.forward(-150.0, 61.0))


def test_hawaii_routes_to_inset(projection: AlbersUsaProjection):
    _, _, hawaii = projection.parts
    point = projection(-157.86, 21.31)
    assert point is not None
    assert hawaii.contains(*point)


@pytest.mark.parametrize(
    "lon, lat",
    [(0.0, 0.0), (2.35, 48.85), (None, 40.0), (-90.0, None), (math.nan, 40.0), (-90.0, math.inf)],
)
def test_points_outside_every_part_project_to_none(projection: AlbersUsaProjection, lon, lat):
    assert projection(lon, lat) is None


def test_build_projection_uses_canvas_center(tmp_path):
    cfg = AppConfig.from_mapping(
        {"canvas": {"width": 1000, "height": 600, "margin": {"left": 10, "top": 20}}},
        tmp_path,
    )
    projection = build_projection(cfg)
    assert projection.cfg.translate == (510.0, 320.0)
    assert projection(-96.6, 38.7) == pytest.approx((510.0, 320.0), abs=1e-6)


def test_path_generator_projects_polygon_into_lower48(projection: AlbersUsaProjection):
    path = PathGenerator(projection)
    square = Polygon([(-100, 38), (-96, 38), (-96, 40), (-100, 40)])
    projected = path(square)
    assert projected is not None
    assert projected.geom_type in ("Polygon", "MultiPolygon")
    assert projected.area > 0
    x0, y0, x1, y1 = projection.parts[0].extent
    minx, miny, maxx, maxy = projected.bounds
    assert x0 <= minx and maxx <= x1
    assert y0 <= miny and maxy <= y1


def test_path_generator_keeps_lines_as_lines(projection: AlbersUsaProjection):
    projected = PathGenerator(projection)(LineString([(-98, 38), (-98, 40)]))
    assert projected is not None
    assert projected.geom_type in ("LineString", "MultiLineString")
    assert projected.length > 0


def test_path_generator_drops_geometry_outside_the_map(projection: AlbersUsaProjection):
    far_away = Polygon([(10, 45), (12, 45), (12, 47), (10, 47)])
    assert PathGenerator(projection)(far_away) is None
    assert PathGenerator(projection)(Polygon()) is None

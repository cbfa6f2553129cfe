"""TopoJSON topology decoding into shapely geometries and GeoDataFrames."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Callable, Iterator, Mapping, Sequence

from shapely.geometry import (
    GeometryCollection,
    LineString,
    MultiLineString,
    MultiPoint,
    MultiPolygon,
    Point,
    Polygon,
)
from shapely.errors import ShapelyError
from shapely.ops import linemerge


Position = tuple[float, float]
MeshPredicate = Callable[[Mapping[str, Any], Mapping[str, Any]], bool]

_DECODE_ERRORS = (AttributeError, KeyError, IndexError, TypeError, ValueError, ShapelyError)


class TopologyError(ValueError):
    """Raised when a document is not a decodable TopoJSON topology."""


def interior_borders(a: Mapping[str, Any], b: Mapping[str, Any]) -> bool:
    """Keep an arc only when two distinct geometries share it."""
    return a is not b


class Topology:
    """Decoder for one TopoJSON document.

    Arcs are decoded once (delta + quantization transform applied) and cached;
    objects are decoded on demand.
    """

    def __init__(self, document: Mapping[str, Any]) -> None:
        if not isinstance(document, Mapping) or document.get("type") != "Topology":
            raise TopologyError("Expected a TopoJSON document with type 'Topology'")
        objects = document.get("objects")
        if not isinstance(objects, Mapping):
            raise TopologyError("TopoJSON document has no 'objects' mapping")
        arcs = document.get("arcs", [])
        if not isinstance(arcs, list):
            raise TopologyError("TopoJSON 'arcs' must be a list")
        self.document = document
        self.objects: Mapping[str, Any] = objects
        self._transform = _parse_transform(document.get("transform"))
        try:
            self._arcs = tuple(self._decode_arc(arc) for arc in arcs)
        except _DECODE_ERRORS as exc:
            raise TopologyError(f"Malformed TopoJSON arcs: {exc}") from exc
        self._features: dict[str, Any] = {}
        self._meshes: dict[tuple[str, MeshPredicate | None], MultiLineString] = {}

    @property
    def object_names(self) -> tuple[str, ...]:
        return tuple(self.objects.keys())

    def require_object(self, name: str) -> Mapping[str, Any]:
        obj = self.objects.get(name)
        if not isinstance(obj, Mapping):
            available = ", ".join(self.object_names) or "none"
            raise TopologyError(f"TopoJSON object '{name}' not found (available: {available})")
        return obj

    def arc(self, index: int) -> tuple[Position, ...]:
        """Return the decoded arc; negative indices (`~i`) are reversed."""
        if index < 0:
            return tuple(reversed(self._arcs[~index]))
        return self._arcs[index]

    def feature(self, name: str) -> Any:
        """Decode a named object into a GeoDataFrame in EPSG:4326.

        Results are cached per object name.
        """
        if name not in self._features:
            obj = self.require_object(name)
            try:
                self._features[name] = self._decode_feature(obj)
            except TopologyError:
                raise
            except _DECODE_ERRORS as exc:
                raise TopologyError(f"Malformed geometry in TopoJSON object '{name}': {exc}") from exc
        return self._features[name]

    def mesh(self, name: str, predicate: MeshPredicate | None = None) -> MultiLineString:
        """Stitch the arcs of a named object into lines.

        With a predicate, an arc is kept only when `predicate(first, last)` holds
        for the first and last geometry referencing it.
        """
        key = (name, predicate)
        if key not in self._meshes:
            obj = self.require_object(name)
            try:
                self._meshes[key] = self._decode_mesh(obj, predicate)
            except TopologyError:
                raise
            except _DECODE_ERRORS as exc:
                raise TopologyError(f"Malformed arcs in TopoJSON object '{name}': {exc}") from exc
        return self._meshes[key]

    def geometry(self, obj: Mapping[str, Any]) -> Any:
        geom_type = obj.get("type")
        if geom_type is None:
            return None
        if geom_type == "GeometryCollection":
            return GeometryCollection(
                [g for g in (self.geometry(item) for item in obj.get("geometries", [])) if g is not None]
            )
        if geom_type == "Point":
            return Point(self._point(obj["coordinates"]))
        if geom_type == "MultiPoint":
            return MultiPoint([self._point(p) for p in obj["coordinates"]])
        if geom_type == "LineString":
            return LineString(self._line(obj["arcs"]))
        if geom_type == "MultiLineString":
            return MultiLineString([self._line(arcs) for arcs in obj["arcs"]])
        if geom_type == "Polygon":
            return self._polygon(obj["arcs"])
        if geom_type == "MultiPolygon":
            polygons = [self._polygon(rings) for rings in obj["arcs"]]
            return MultiPolygon([p for p in polygons if not p.is_empty])
        raise TopologyError(f"Unsupported TopoJSON geometry type '{geom_type}'")

    def _decode_feature(self, obj: Mapping[str, Any]) -> Any:
        gpd = _require_geopandas()
        members = obj.get("geometries") if obj.get("type") == "GeometryCollection" else [obj]
        rows: list[dict[str, Any]] = []
        for member in members or []:
            properties = member.get("properties") or {}
            row: dict[str, Any] = {"id": member.get("id")}
            row.update({str(key): value for key, value in properties.items() if key != "geometry"})
            row["geometry"] = self.geometry(member)
            rows.append(row)
        if not rows:
            return gpd.GeoDataFrame({"id": []}, geometry=gpd.GeoSeries([], crs="EPSG:4326"))
        return gpd.GeoDataFrame(rows, geometry="geometry", crs="EPSG:4326")

    def _decode_mesh(self, obj: Mapping[str, Any], predicate: MeshPredicate | None) -> MultiLineString:
        geoms_by_arc: dict[int, list[Mapping[str, Any]]] = {}
        for geometry, arc_index in _iter_geometry_arcs(obj):
            key = _arc_key(arc_index)
            if not 0 <= key < len(self._arcs):
                raise IndexError(f"arc {arc_index} out of range ({len(self._arcs)} arcs)")
            owners = geoms_by_arc.setdefault(key, [])
            if not owners or owners[-1] is not geometry:
                owners.append(geometry)

        lines: list[LineString] = []
        for arc_key in sorted(geoms_by_arc):
            owners = geoms_by_arc[arc_key]
            if predicate is not None and not predicate(owners[0], owners[-1]):
                continue
            coords = self._arcs[arc_key]
            if len(coords) >= 2:
                lines.append(LineString(coords))
        if not lines:
            return MultiLineString()
        merged = linemerge(lines)
        if isinstance(merged, LineString):
            return MultiLineString([merged])
        return merged

    def _decode_arc(self, arc: Sequence[Sequence[float]]) -> tuple[Position, ...]:
        if self._transform is None:
            return tuple((float(p[0]), float(p[1])) for p in arc)
        (sx, sy), (tx, ty) = self._transform
        x = y = 0.0
        out: list[Position] = []
        for p in arc:
            x += p[0]
            y += p[1]
            out.append((x * sx + tx, y * sy + ty))
        return tuple(out)

    def _point(self, position: Sequence[float]) -> Position:
        if self._transform is None:
            return (float(position[0]), float(position[1]))
        (sx, sy), (tx, ty) = self._transform
        return (position[0] * sx + tx, position[1] * sy + ty)

    def _line(self, arc_indexes: Sequence[int]) -> list[Position]:
        points: list[Position] = []
        for arc_index in arc_indexes:
            coords = self.arc(arc_index)
            # consecutive arcs share their joining point
            points.extend(coords[1:] if points else coords)
        if len(points) < 2 and points:
            points.append(points[0])
        return points

    def _ring(self, arc_indexes: Sequence[int]) -> list[Position]:
        points = self._line(arc_indexes)
        while points and len(points) < 4:
            points.append(points[0])
        return points

    def _polygon(self, rings: Sequence[Sequence[int]]) -> Polygon:
        decoded = [self._ring(ring) for ring in rings]
        decoded = [ring for ring in decoded if ring]
        if not decoded:
            return Polygon()
        return Polygon(decoded[0], decoded[1:])


def _parse_transform(raw: Any) -> tuple[Position, Position] | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise TopologyError("TopoJSON 'transform' must be a mapping")
    try:
        scale = raw["scale"]
        translate = raw["translate"]
        return (
            (float(scale[0]), float(scale[1])),
            (float(translate[0]), float(translate[1])),
        )
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise TopologyError(f"Invalid TopoJSON transform: {exc}") from exc


def _arc_key(index: int) -> int:
    return ~index if index < 0 else index


def _iter_geometry_arcs(obj: Mapping[str, Any]) -> Iterator[tuple[Mapping[str, Any], int]]:
    geom_type = obj.get("type")
    if geom_type == "GeometryCollection":
        for member in obj.get("geometries", []):
            yield from _iter_geometry_arcs(member)
    elif geom_type == "LineString":
        for index in obj["arcs"]:
            yield obj, index
    elif geom_type in ("MultiLineString", "Polygon"):
        for line in obj["arcs"]:
            for index in line:
                yield obj, index
    elif geom_type == "MultiPolygon":
        for polygon in obj["arcs"]:
            for ring in polygon:
                for index in ring:
                    yield obj, index


@lru_cache(maxsize=1)
def _require_geopandas() -> Any:
    try:
        import geopandas as gpd
    except ImportError as exc:  # pragma: no cover
        raise RuntimeError("geopandas is required for boundary feature decoding") from exc
    return gpd

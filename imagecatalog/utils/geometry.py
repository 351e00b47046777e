"""Geometry utilities backed by shapely."""
import math

from shapely import wkt
from shapely.geometry import GeometryCollection, Point, Polygon, box, mapping, shape
from shapely.ops import unary_union

WORLD_BBOX = (-180.0, -90.0, 180.0, 90.0)


def from_geojson(obj):
    """
    Convert a GeoJSON object into a shapely geometry.

    Args:
        obj: GeoJSON geometry, Feature or FeatureCollection dict

    Returns:
        Shapely geometry, or None for a feature with a null geometry
    """
    if obj is None:
        return None
    kind = obj.get("type")
    if kind == "Feature":
        return from_geojson(obj.get("geometry"))
    if kind == "FeatureCollection":
        geoms = [from_geojson(f) for f in obj.get("features") or []]
        return GeometryCollection([g for g in geoms if g is not None])
    return shape(obj)


def to_geojson(geom):
    """Convert a shapely geometry into a GeoJSON geometry dict."""
    if geom is None:
        return None
    return _listify(mapping(geom))


def _listify(value):
    # mapping() returns nested tuples; JSON round trips produce lists
    if isinstance(value, dict):
        return {k: _listify(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_listify(v) for v in value]
    return value


def intersects(a, b):
    return a.intersects(b)


def contains(a, b):
    return a.contains(b)


def union(a, b):
    return a.union(b)


def union_all(geoms):
    """Union a list of geometries in one pass."""
    return unary_union(list(geoms))


def heal(geoms):
    """Repair self-intersections by buffering a collection of geometries by zero."""
    return GeometryCollection(list(geoms)).buffer(0.0)


def buffer(geom, distance):
    return geom.buffer(distance)


def polygon_from_ring(coords):
    """
    Build a polygon from an exterior ring.

    Args:
        coords: Sequence of (lon, lat) pairs; the ring is closed if needed

    Returns:
        Shapely Polygon
    """
    ring = [tuple(c[:2]) for c in coords]
    if ring and ring[0] != ring[-1]:
        ring.append(ring[0])
    return Polygon(ring)


def centroid(bbox):
    """Center point of a [minx, miny, maxx, maxy] bounding box."""
    minx, miny, maxx, maxy = bbox[:4]
    return Point((minx + maxx) / 2.0, (miny + maxy) / 2.0)


def bbox_polygon(bbox):
    minx, miny, maxx, maxy = bbox[:4]
    return box(minx, miny, maxx, maxy)


def whole_world():
    return box(*WORLD_BBOX)


def from_wkt(text):
    return wkt.loads(text)


def to_wkt(geom):
    return geom.wkt


def compute_bbox(geometry):
    """Axis-aligned envelope of a GeoJSON geometry as [minx, miny, maxx, maxy]."""
    geom = from_geojson(geometry)
    if geom is None or geom.is_empty:
        return None
    return list(geom.bounds)


def force_bbox(feature):
    """
    Return the feature's bbox, computing and storing it when absent.

    Features without a geometry and without a bbox yield None.
    """
    bbox = feature.get("bbox")
    if bbox:
        return bbox
    bbox = compute_bbox(feature.get("geometry"))
    if bbox is not None:
        feature["bbox"] = bbox
    return bbox


def parse_bbox(text):
    """
    Parse a "minLon,minLat,maxLon,maxLat" string.

    Raises:
        ValueError: If the string does not hold four finite numbers
    """
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 4:
        raise ValueError(f"Bounding box must have 4 values, got {len(parts)}: {text}")
    values = [float(p) for p in parts]
    if not all(math.isfinite(v) for v in values):
        raise ValueError(f"Bounding box values must be finite: {text}")
    if values[1] > values[3]:
        raise ValueError(f"Bounding box minimum latitude exceeds maximum: {text}")
    return values


def crosses_antimeridian(bbox):
    """A bbox whose west edge lies east of its east edge straddles 180°."""
    return bbox[0] > bbox[2]


def bbox_overlaps(a, b):
    """Closed-interval overlap test for two [minx, miny, maxx, maxy] boxes."""
    return a[0] <= b[2] and b[0] <= a[2] and a[1] <= b[3] and b[1] <= a[3]


def tile_polygon(lon_index, lat_index):
    """The 1 degree cell at the given grid indices."""
    west = lon_index - 180.0
    south = lat_index - 90.0
    return box(west, south, west + 1.0, south + 1.0)

"""1 degree global tile grid over a polygon layer."""
import logging
import math

from shapely.errors import ShapelyError
from shapely.strtree import STRtree

from imagecatalog.utils import geometry

logger = logging.getLogger(__name__)

LON_CELLS = 360
LAT_CELLS = 180


def tile_indices(bbox):
    """
    Grid cell holding the southwest corner of a bbox.

    Returns:
        (lon_index 0..359, lat_index 0..179)
    """
    lon_index = int(math.floor(bbox[0])) + 180
    lat_index = int(math.floor(bbox[1])) + 90
    lon_index = min(max(lon_index, 0), LON_CELLS - 1)
    lat_index = min(max(lat_index, 0), LAT_CELLS - 1)
    return lon_index, lat_index


def tile_key(lon_index, lat_index):
    return "%03d%03d" % (lon_index, lat_index)


def parse_tile_key(key):
    return int(key[:3]), int(key[3:])


def combine(geoms, key=""):
    """
    Union the geometries of one tile.

    Falls back to buffering a GeometryCollection by zero when the union
    fails, and returns None when that fails as well.
    """
    if len(geoms) == 1:
        return geoms[0]
    try:
        return geometry.union_all(geoms)
    except (ShapelyError, ValueError) as e:
        logger.warning("Union failed for tile %s (%s); healing with buffer(0)", key, e)
    try:
        return geometry.heal(geoms)
    except (ShapelyError, ValueError) as e:
        logger.warning("Skipping tile %s: %s", key, e)
        return None


class TileMap:
    """
    Tile key to unioned geometry, with a spatial index over the tiles.

    A published TileMap is never mutated; rebuilds create a new instance.
    """

    def __init__(self, tiles=None):
        self.tiles = dict(tiles or {})
        self._keys = list(self.tiles)
        self._tree = STRtree([self.tiles[k] for k in self._keys])

    @classmethod
    def from_features(cls, features):
        """
        Bucket GeoJSON features by the cell of their southwest corner and
        union each bucket.
        """
        buckets = {}
        for feature in features:
            try:
                geom = geometry.from_geojson(feature)
            except (ShapelyError, ValueError, TypeError, AttributeError) as e:
                logger.warning("Skipping unreadable feature %s: %s", feature.get("id"), e)
                continue
            if geom is None or geom.is_empty:
                continue
            key = tile_key(*tile_indices(geom.bounds))
            buckets.setdefault(key, []).append(geom)

        tiles = {}
        for key, geoms in buckets.items():
            combined = combine(geoms, key)
            if combined is not None and not combined.is_empty:
                tiles[key] = combined
        logger.debug("Tiled %d features into %d tiles", len(features), len(tiles))
        return cls(tiles)

    @classmethod
    def whole_world(cls):
        return cls({tile_key(0, 0): geometry.whole_world()})

    def __len__(self):
        return len(self.tiles)

    def __contains__(self, key):
        return key in self.tiles

    def keys(self):
        return list(self._keys)

    def matching_tiles(self, geom):
        """Keys of the tiles whose geometry intersects geom."""
        hits = self._tree.query(geom, predicate="intersects")
        return [self._keys[i] for i in sorted(hits)]

    def intersects(self, geom):
        if not self.tiles or geom is None:
            return False
        return len(self._tree.query(geom, predicate="intersects")) > 0

    def disjoint(self, geom):
        return not self.intersects(geom)

"""Sub-indices: the global index restricted to a WFS polygon layer."""
import json
import logging
import math

from shapely.errors import ShapelyError

from imagecatalog import workers
from imagecatalog.api.wfs import WFSClient
from imagecatalog.catalog.tiles import TileMap
from imagecatalog.errors import CatalogError, NotFound
from imagecatalog.models.scene import Member, calculate_score
from imagecatalog.models.subindex import Subindex
from imagecatalog.storage.features import FeatureStore
from imagecatalog.utils import geometry

logger = logging.getLogger(__name__)

# Published tile maps by sub-index key. Rebuilds replace entries, never mutate them.
TILE_MAPS = {}


class SubindexBuilder:
    """Builds, lists and drops sub-indices."""

    def __init__(self, feature_store=None, wfs_client=None, tile_maps=None):
        self.features = feature_store or FeatureStore()
        self.store = self.features.store
        self.wfs = wfs_client or WFSClient()
        self.tile_maps = TILE_MAPS if tile_maps is None else tile_maps

    @staticmethod
    def metadata_key(key):
        return f"{key}:metadata"

    def register(self, subindex):
        key = subindex.resolve_key(self.features.prefix)
        self.store.set(self.metadata_key(key), json.dumps(subindex.to_dict()))
        self.store.sadd(self.features.caches_key, key)
        return key

    def create(self, subindex, now=None):
        """
        Fetch the WFS layer, tile it and populate the sub-index.

        A failed fetch leaves any previously published tile map in place.

        Returns:
            Number of scenes in the sub-index
        """
        key = subindex.resolve_key(self.features.prefix)
        try:
            features = self.wfs.get_features(subindex.wfsurl, subindex.feature_type)
        except CatalogError as e:
            logger.warning("Aborting build of sub-index %s: %s", key, e)
            raise

        tile_map = TileMap.from_features(features)
        self.register(subindex)
        self.tile_maps[key] = tile_map
        logger.info("Sub-index %s has %d tiles", key, len(tile_map))
        return self.cache(subindex, tile_map, now=now)

    def cache(self, subindex, tile_map, now=None):
        """
        Cross every scene of the global index with a tile map.

        Scenes that intersect a tile and have a finite, positive score are
        added to the sub-index at that score; members from an earlier build
        that no longer qualify are removed.
        """
        key = subindex.resolve_key(self.features.prefix)
        previous = set(self.store.zrevrange(key, 0, -1))
        unscored = self.features.unscored_members()
        kept = set()

        for member in self.features.members():
            if member in unscored:
                continue
            try:
                decoded = Member.decode(member)
            except ValueError as e:
                logger.warning("Skipping malformed index member %r: %s", member, e)
                continue
            if decoded.bbox and tile_map.disjoint(geometry.bbox_polygon(decoded.bbox)):
                continue
            score = self._qualifying_score(decoded.key, tile_map, now)
            if score is None:
                continue
            self.store.zadd(key, score, member)
            kept.add(member)

        stale = previous - kept
        if stale:
            self.store.zrem(key, *stale)
        logger.info("Sub-index %s holds %d scenes", key, len(kept))
        return len(kept)

    def _qualifying_score(self, scene_key, tile_map, now):
        try:
            feature = self.features.get_by_key(scene_key)
        except ValueError as e:
            logger.warning("Skipping unparseable scene %s: %s", scene_key, e)
            return None
        if feature is None:
            return None
        try:
            geom = geometry.from_geojson(feature.get("geometry"))
        except (ShapelyError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Skipping %s; bad geometry: %s", scene_key, e)
            return None
        if geom is None or not tile_map.intersects(geom):
            return None
        score = calculate_score(feature, now)
        if not math.isfinite(score) or score <= 0:
            return None
        return score

    def index_scene(self, feature, score):
        """Add a newly harvested scene to every loaded sub-index it touches."""
        if not math.isfinite(score) or score <= 0:
            return []
        geom = geometry.from_geojson(feature.get("geometry"))
        if geom is None:
            return []
        member = self.features.member_for(feature)
        added = []
        for key, tile_map in list(self.tile_maps.items()):
            if tile_map.intersects(geom) and self.store.sismember(self.features.caches_key, key):
                self.store.zadd(key, score, member)
                added.append(key)
        return added

    def list_subindexes(self):
        """Registered sub-indices keyed by sorted-set key."""
        result = {}
        for key in sorted(self.features.subindex_keys()):
            blob = self.store.get(self.metadata_key(key))
            if blob is None:
                logger.warning("Sub-index %s has no metadata", key)
                continue
            result[key] = Subindex.from_dict(json.loads(blob))
        return result

    def get_subindex(self, key):
        blob = self.store.get(self.metadata_key(key))
        if blob is None:
            raise NotFound(f"No sub-index registered under {key}.")
        return Subindex.from_dict(json.loads(blob))

    def drop(self, key):
        """Delete a sub-index, its metadata and its tile map."""
        self.store.delete(key, self.metadata_key(key))
        self.store.srem(self.features.caches_key, key)
        self.tile_maps.pop(key, None)
        logger.info("Dropped sub-index %s", key)

    def rebuild_all(self, now=None):
        """
        Rebuild every registered sub-index in parallel.

        Yields:
            Tuples of (Subindex, scene count or None, error or None)
        """
        subindexes = list(self.list_subindexes().values())
        yield from workers.run_all(lambda s: self.create(s, now=now), subindexes)

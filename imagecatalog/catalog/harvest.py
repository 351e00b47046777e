"""Harvest: filter, score and store vendor scenes, then announce them."""
import json
import logging
import math

from shapely.errors import ShapelyError

from imagecatalog import workers
from imagecatalog.api.dg import DigitalGlobeClient, dg_feature, search_cells
from imagecatalog.api.events import EventClient
from imagecatalog.api.planet import PlanetAPIClient, landsat_feature
from imagecatalog.api.wfs import WFSClient
from imagecatalog.catalog.subindex import SubindexBuilder
from imagecatalog.catalog.tiles import TileMap
from imagecatalog.config import config
from imagecatalog.errors import AlreadyExists, NotFound
from imagecatalog.models.harvest import HarvestOptions
from imagecatalog.models.scene import calculate_score, float_property, string_property
from imagecatalog.storage.features import FeatureStore
from imagecatalog.storage.redis_store import get_store
from imagecatalog.utils import geometry

logger = logging.getLogger(__name__)


def layer_tile_map(layer, wfs_client=None):
    """Tile a whitelist or blacklist layer; empty layers give an empty map."""
    if layer.geojson:
        if layer.geojson.get("type") == "FeatureCollection":
            features = layer.geojson.get("features") or []
        else:
            features = [layer.geojson]
    elif layer.wfsurl:
        features = (wfs_client or WFSClient()).get_features(layer.wfsurl, layer.feature_type)
    else:
        features = []
    return TileMap.from_features(features)


class PreparedFilter:
    """
    Whitelist and blacklist tile maps for one harvest.

    An empty whitelist admits the whole world.
    """

    def __init__(self, whitelist, blacklist):
        self.whitelist = whitelist if len(whitelist) else TileMap.whole_world()
        self.blacklist = blacklist

    @classmethod
    def from_options(cls, options, wfs_client=None):
        return cls(
            layer_tile_map(options.filter.whitelist, wfs_client),
            layer_tile_map(options.filter.blacklist, wfs_client),
        )

    def passes(self, feature):
        try:
            geom = geometry.from_geojson(feature.get("geometry"))
        except (ShapelyError, ValueError, TypeError, AttributeError) as e:
            logger.warning("Harvest geometry for %s cannot be parsed: %s", feature.get("id"), e)
            return False
        if geom is None:
            logger.warning("Dropping %s from harvest; it has no geometry", feature.get("id"))
            return False
        if self.blacklist.intersects(geom):
            return False
        return self.whitelist.intersects(geom)


def event_data(feature):
    """Payload announcing a newly harvested scene."""
    data = {
        "imageID": feature.get("id"),
        "acquiredDate": string_property(feature, "acquiredDate") or "",
        "sensorName": string_property(feature, "sensorName") or "",
        "link": string_property(feature, "path") or "",
        "resolution": float_property(feature, "resolution"),
        "cloudCover": float_property(feature, "cloudCover"),
    }
    bbox = geometry.force_bbox(feature)
    if bbox and len(bbox) > 3:
        data.update(minx=bbox[0], miny=bbox[1], maxx=bbox[2], maxy=bbox[3])
    else:
        logger.warning("No valid bounding box for %s", feature.get("id"))
    return data


class Harvester:
    """Stores canonical scenes produced by the vendor clients."""

    def __init__(self, feature_store=None, subindex_builder=None, wfs_client=None, executor=None):
        self.features = feature_store or FeatureStore()
        self.wfs = wfs_client or WFSClient()
        self.subindexes = subindex_builder or SubindexBuilder(self.features, self.wfs)
        self.executor = executor

    def prepare(self, options):
        return PreparedFilter.from_options(options, self.wfs)

    def store(self, features, options, prepared=None, event_client=None, now=None):
        """
        Filter, score and store canonical scenes.

        Stops at the first scene that already exists unless reharvesting,
        since vendors page newest first.

        Returns:
            tuple: (number stored, True if an existing scene stopped the run)
        """
        prepared = prepared or self.prepare(options)
        stored = 0
        for feature in features:
            if feature is None or not prepared.passes(feature):
                continue
            score = calculate_score(feature, now)
            try:
                self.features.put(feature, score, overwrite=options.reharvest)
            except AlreadyExists as e:
                logger.info("%s Stopping harvest.", e.message)
                return stored, True
            stored += 1
            if math.isfinite(score):
                self.subindexes.index_scene(feature, score)
            if options.event and event_client is not None:
                workers.submit(
                    event_client.add_event, options.event_type_id, event_data(feature),
                    executor=self.executor, name=f"event {feature['id']}",
                )
        return stored, False

    def event_client(self, options):
        """Event client for a harvest, with the event type resolved; None without events."""
        if not options.event:
            return None
        client = EventClient(options.pz_gateway or None, options.pz_auth or None)
        if not options.event_type_id:
            options.event_type_id = client.event_type_id()
        return client

    def harvest_planet(self, options, planet_client=None, since=None):
        """
        Harvest Landsat 8 scenes from Planet.

        Returns:
            Number of scenes stored
        """
        planet = planet_client or PlanetAPIClient(options.pl_api_key or None)
        prepared = self.prepare(options)
        events = self.event_client(options)
        total = 0
        for page in planet.search_landsat(
            since=since, page_size=options.request_page_size or None, cap=options.cap
        ):
            stored, stopped = self.store(
                [landsat_feature(raw) for raw in page], options, prepared, events
            )
            total += stored
            if stopped:
                break
        logger.info("Harvested %d Planet scenes; index holds %d", total, self.features.size())
        return total

    def harvest_dg(self, options, authorization, bbox, dg_client=None, cell_size=0.5):
        """
        Harvest DigitalGlobe scenes cell by cell over a bbox.

        Returns:
            Number of scenes stored
        """
        client = dg_client or DigitalGlobeClient(authorization)
        prepared = self.prepare(options)
        events = self.event_client(options)
        total = 0
        for lon, lat in search_cells(bbox, cell_size):
            cell = geometry.bbox_polygon([lon, lat, lon + cell_size, lat + cell_size])
            if prepared.whitelist.disjoint(cell):
                continue
            response = client.search(lon, lat, cell_size)
            features = [dg_feature(entry) for entry in response.get("page") or []]
            stored, stopped = self.store(features, options, prepared, events)
            total += stored
            if stopped:
                break
        logger.info("Harvested %d DigitalGlobe scenes", total)
        return total


class RecurringHarvests:
    """Harvest options saved for scheduled re-runs."""

    def __init__(self, store=None, root=None):
        self.store = store or get_store()
        self.root = root or config.recurrence_key

    def _blob_key(self, key):
        return f"{self.root}:{key}"

    def save(self, key, options):
        logger.info("Registering recurring harvest %s", key)
        self.store.sadd(self.root, key)
        self.store.set(self._blob_key(key), json.dumps(options.to_dict()))

    def get(self, key):
        blob = self.store.get(self._blob_key(key))
        if blob is None or not self.store.sismember(self.root, key):
            raise NotFound(f"Key {key} is not a recurring harvest.")
        return HarvestOptions.from_dict(json.loads(blob))

    def delete(self, key):
        if not self.store.sismember(self.root, key):
            raise NotFound(f"Key {key} is not a recurring harvest.")
        self.store.srem(self.root, key)
        self.store.delete(self._blob_key(key))

    def keys(self):
        return sorted(self.store.smembers(self.root))

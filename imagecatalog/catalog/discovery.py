"""Discovery queries over the scored indices, with a shared result cache."""
import json
import logging
import math
import time

from shapely.errors import ShapelyError

from imagecatalog import workers
from imagecatalog.catalog import filters
from imagecatalog.config import config
from imagecatalog.errors import InternalError, InvalidArgument
from imagecatalog.models.scene import Member
from imagecatalog.models.search import ImageDescriptors, SearchOptions
from imagecatalog.storage.features import FeatureStore
from imagecatalog.utils.geometry import crosses_antimeridian

logger = logging.getLogger(__name__)

BUILDING = "building"
READY = "ready"
SCAN_PAGE = 1000


def canonical_json(feature):
    """
    Deterministic compact JSON for a query feature.

    Key order is type, geometry, then id, bbox and properties when they are
    present; properties are sorted by name and band lists are sorted.
    """
    ordered = {"type": feature.get("type") or "Feature", "geometry": feature.get("geometry")}
    if feature.get("id") not in (None, ""):
        ordered["id"] = feature["id"]
    if feature.get("bbox"):
        ordered["bbox"] = feature["bbox"]
    properties = feature.get("properties")
    if properties:
        canonical = {}
        for name in sorted(properties):
            value = properties[name]
            if name == "bands" and isinstance(value, list):
                value = sorted(value)
            canonical[name] = value
        ordered["properties"] = canonical
    return json.dumps(ordered, separators=(",", ":"))


def feature_collection(features):
    return {"type": "FeatureCollection", "features": features}


class DiscoveryEngine:
    """
    Paginated, filtered reads of the global index or a sub-index.

    Cached queries go through a state machine stored in one Redis hash per
    query fingerprint: absent, then "building" (claimed with HSETNX by
    exactly one caller, which schedules the scan), then "ready" with the
    full rendered collection in the "body" field until the TTL lapses.
    """

    def __init__(
        self,
        feature_store=None,
        executor=None,
        ttl=None,
        build_timeout=None,
        poll_interval=None,
        poll_attempts=None,
    ):
        self.features = feature_store or FeatureStore()
        self.store = self.features.store
        self.prefix = self.features.prefix
        self.executor = executor or workers.get_discovery_executor()
        self.ttl = ttl or config.discovery_ttl
        self.build_timeout = build_timeout or config.build_timeout
        self.poll_interval = max(poll_interval or config.poll_interval, 0.1)
        # Waiters outlast the build claim, so a queued build is never abandoned
        self.poll_attempts = poll_attempts or max(
            config.poll_attempts, math.ceil(self.build_timeout / self.poll_interval)
        )

    @property
    def discovery_key(self):
        return f"{self.prefix}-discovery"

    def cache_key(self, query):
        return self.prefix + canonical_json(query)

    def get_scenes(self, query, options=None):
        """
        Run a discovery query.

        Args:
            query: Query feature (type, geometry, bbox, properties)
            options: SearchOptions

        Returns:
            tuple: (ImageDescriptors, rendered JSON string)

        Raises:
            InvalidArgument: If the query is missing, its bbox crosses the
                antimeridian, or it names an unregistered sub-index
            InternalError: If a cached build does not finish in time
        """
        if query is None:
            raise InvalidArgument("A discovery request requires a query feature.")
        options = options or SearchOptions()
        bbox = query.get("bbox")
        if bbox and crosses_antimeridian(bbox):
            raise InvalidArgument("Bounding Box must not cross the antimeridian.")
        query = self._effective_query(query, options)
        index_key = self._index_key(query)

        if options.no_cache:
            result = self._scan_window(index_key, query, options)
        else:
            collection = self._cached_collection(index_key, query, options)
            result = self._slice(collection, options)

        return result, json.dumps(result.to_dict())

    def _effective_query(self, query, options):
        if not options.sub_index and not options.rigorous:
            return query
        query = dict(query)
        properties = dict(query.get("properties") or {})
        if options.sub_index:
            properties["subIndex"] = options.sub_index
        if options.rigorous:
            properties["rigorous"] = True
        query["properties"] = properties
        return query

    def _index_key(self, query):
        sub_index = (query.get("properties") or {}).get("subIndex")
        if not sub_index:
            return self.features.index_key
        if not self.store.sismember(self.features.caches_key, sub_index):
            raise InvalidArgument(f"Unknown sub-index {sub_index}.")
        return sub_index

    def _members(self, index_key):
        """Walk a sorted set from the highest score down, in pages."""
        rank = 0
        while True:
            page = self.store.zrevrange(index_key, rank, rank + SCAN_PAGE - 1)
            yield from page
            if len(page) < SCAN_PAGE:
                return
            rank += SCAN_PAGE

    def _scan_window(self, index_key, query, options):
        """
        Scan without the cache.

        The page holds the matches whose rank in the sorted set falls between
        minimum_index and last_index; total_count counts every match.
        """
        start, end = options.minimum_index, options.last_index
        features, total = [], 0
        for rank, feature in self._scan(index_key, query, options.rigorous):
            total += 1
            if rank >= start and (end < 0 or rank <= end):
                features.append(feature)
        return ImageDescriptors(
            count=len(features),
            total_count=total,
            start_index=start,
            images=feature_collection(features),
        )

    def _scan(self, index_key, query, rigorous):
        """Yield (rank, feature) for every scene in the index that matches query."""
        unscored = self.features.unscored_members()
        for rank, member in enumerate(self._members(index_key)):
            if member in unscored:
                continue
            try:
                decoded = Member.decode(member)
            except ValueError as e:
                logger.warning("Skipping malformed index member %r: %s", member, e)
                continue
            if not filters.passes_member(decoded, query):
                continue
            try:
                feature = self.features.get_by_key(decoded.key)
            except ValueError as e:
                logger.warning("Skipping unparseable scene %s: %s", decoded.key, e)
                continue
            if feature is None:
                logger.debug("Skipping %s; its blob is gone", decoded.key)
                continue
            try:
                matched = filters.passes(feature, query, rigorous, self.features, member)
            except (ShapelyError, ValueError, TypeError) as e:
                logger.warning("Skipping %s; filter failed: %s", decoded.key, e)
                continue
            if matched:
                yield rank, feature

    def _cached_collection(self, index_key, query, options):
        key = self.cache_key(query)
        if self.store.hsetnx(key, "state", BUILDING):
            self.store.expire(key, self.build_timeout)
            self.store.sadd(self.discovery_key, key)
            logger.info("Building discovery cache for %s", key)
            workers.submit(
                self._build, key, index_key, query, options.rigorous,
                executor=self.executor, name="discovery-build",
            )
        return self._wait_ready(key)

    def _build(self, key, index_key, query, rigorous):
        try:
            features = [feature for _, feature in self._scan(index_key, query, rigorous)]
            body = json.dumps(feature_collection(features))
            self.store.hset(key, {"state": READY, "body": body})
            self.store.expire(key, self.ttl)
            logger.info("Cached %d scenes for %s", len(features), key)
        except Exception:
            # Release the claim so the next caller can rebuild
            self.store.delete(key)
            raise

    def _wait_ready(self, key):
        for _ in range(self.poll_attempts):
            state = self.store.hget(key, "state")
            if state == READY:
                body = self.store.hget(key, "body")
                if body is not None:
                    return json.loads(body)
            elif state is None:
                raise InternalError(f"Discovery cache build failed for {key}.")
            time.sleep(self.poll_interval)
        raise InternalError(f"Timed out waiting for discovery results for {key}.")

    def _slice(self, collection, options):
        features = collection.get("features") or []
        start = options.minimum_index
        end = options.last_index
        page = features[start:] if end < 0 else features[start:end + 1]
        return ImageDescriptors(
            count=len(page),
            total_count=len(features),
            start_index=start,
            images=feature_collection(page),
        )

    def evict(self, query):
        key = self.cache_key(query)
        self.store.srem(self.discovery_key, key)
        return self.store.delete(key)

    def evict_all(self):
        """Delete every cached discovery result."""
        keys = list(self.store.smembers(self.discovery_key))
        removed = self.store.delete(*keys) if keys else 0
        self.store.delete(self.discovery_key)
        logger.info("Evicted %d discovery cache entries", removed)
        return removed

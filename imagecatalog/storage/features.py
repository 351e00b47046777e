"""Scene blobs and the global scored index."""
import json
import logging
import math

from imagecatalog.config import config
from imagecatalog.errors import AlreadyExists, InvalidArgument, NotFound
from imagecatalog.models.scene import Member, scene_key
from imagecatalog.storage.redis_store import get_store
from imagecatalog.utils.geometry import force_bbox

logger = logging.getLogger(__name__)


class FeatureStore:
    """
    Persist scenes as JSON blobs and keep the global sorted index.

    Keys:
        <prefix>             sorted set of encoded members, scored per scene
        <prefix>:<id>        scene blob
        <prefix>-unscored    members whose score was NaN
        <prefix>-caches      registered sub-index keys
    """

    def __init__(self, store=None, prefix=None):
        self.store = store or get_store()
        self.prefix = prefix or config.prefix

    @property
    def index_key(self):
        return self.prefix

    @property
    def unscored_key(self):
        return f"{self.prefix}-unscored"

    @property
    def caches_key(self):
        return f"{self.prefix}-caches"

    def key_for(self, scene_id):
        return scene_key(self.prefix, scene_id)

    def id_for_key(self, key):
        head = f"{self.prefix}:"
        return key[len(head):] if key.startswith(head) else key

    def member_for(self, feature):
        return Member.for_feature(self.prefix, feature).encode()

    def decode_member(self, member):
        return Member.decode(member)

    def put(self, feature, score, overwrite=False):
        """
        Store a scene and index it.

        Args:
            feature: GeoJSON feature dict with an id
            score: Index score; NaN keeps the scene out of scored scans
            overwrite: Replace an existing scene with the same id

        Returns:
            The scene id

        Raises:
            AlreadyExists: If the scene exists and overwrite is False
        """
        scene_id = feature.get("id")
        if scene_id is None or scene_id == "":
            raise InvalidArgument("Feature must have an id to be stored.")
        scene_id = str(scene_id)
        feature["id"] = scene_id
        force_bbox(feature)

        key = self.key_for(scene_id)
        previous = self.get_by_key(key) if overwrite else None
        blob = json.dumps(feature)
        if overwrite:
            self.store.set(key, blob)
        elif not self.store.set(key, blob, nx=True):
            raise AlreadyExists(f"Record {scene_id} already exists.")

        member = self.member_for(feature)
        if score is None or math.isnan(score):
            self.store.zadd(self.index_key, 0, member)
            self.store.sadd(self.unscored_key, member)
        else:
            self.store.zadd(self.index_key, score, member)
            self.store.srem(self.unscored_key, member)

        if previous is not None:
            stale = self.member_for(previous)
            if stale != member:
                self._remove_members([stale])
        return scene_id

    def get(self, scene_id):
        """
        Fetch a scene by id.

        Raises:
            NotFound: If no blob exists for the id
        """
        feature = self.get_by_key(self.key_for(scene_id))
        if feature is None:
            raise NotFound(f"No image found with id {scene_id}.")
        return feature

    def get_by_key(self, key):
        """Fetch and parse a blob; None when it is missing."""
        blob = self.store.get(key)
        if blob is None:
            return None
        return json.loads(blob)

    def update_properties(self, scene_id, patch):
        """
        Overlay properties onto a stored scene.

        Geometry and bbox do not change. The scene keeps its index score; its
        member is re-encoded when the patch touches cloudCover.
        """
        feature = self.get(scene_id)
        old_member = self.member_for(feature)
        properties = feature.get("properties") or {}
        properties.update(patch)
        feature["properties"] = properties
        self.store.set(self.key_for(scene_id), json.dumps(feature))

        new_member = self.member_for(feature)
        if new_member != old_member:
            score = self.store.zscore(self.index_key, old_member)
            if score is not None:
                self.store.zadd(self.index_key, score, new_member)
                if self.store.sismember(self.unscored_key, old_member):
                    self.store.sadd(self.unscored_key, new_member)
            self._remove_members([old_member])
        return feature

    def delete(self, feature):
        """
        Remove a scene from every index, then delete its blob.

        Args:
            feature: Feature dict or scene id
        """
        if isinstance(feature, str):
            feature = {"id": feature}
        key = self.key_for(feature["id"])
        members = set()
        if feature.get("geometry") or feature.get("bbox") or feature.get("properties"):
            members.add(self.member_for(feature))
        stored = self.get_by_key(key)
        if stored is not None:
            members.add(self.member_for(stored))
        if members:
            self._remove_members(list(members))
        self.store.delete(key)
        logger.info("Deleted %s", key)

    def _remove_members(self, members):
        self.store.zrem(self.index_key, *members)
        self.store.srem(self.unscored_key, *members)
        for subindex_key in self.subindex_keys():
            self.store.zrem(subindex_key, *members)

    def size(self):
        return self.store.zcard(self.index_key)

    def drop(self):
        """Empty the global index; scene blobs stay in place."""
        self.store.delete(self.index_key, self.unscored_key)
        logger.info("Dropped index %s", self.index_key)

    def subindex_keys(self):
        return self.store.smembers(self.caches_key)

    def members(self, key=None, start=0, end=-1):
        """Members of a sorted set from rank start to end, highest score first."""
        return self.store.zrevrange(key or self.index_key, start, end)

    def unscored_members(self):
        return self.store.smembers(self.unscored_key)

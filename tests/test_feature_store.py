import math

import pytest

from imagecatalog.errors import AlreadyExists, InvalidArgument, NotFound
from imagecatalog.models.scene import Member
from imagecatalog.storage.features import FeatureStore
from imagecatalog.storage.redis_store import RedisStore

from conftest import PREFIX, scene


def test_put_get_and_already_exists(features):
    feature = {"type": "Feature", "id": "12345", "geometry": None, "properties": {"name": "Whatever"}}

    assert features.put(dict(feature), 0.0) == "12345"
    assert features.get("12345")["properties"] == {"name": "Whatever"}
    assert features.size() == 1

    with pytest.raises(AlreadyExists):
        features.put(dict(feature), 0.0)

    features.put(dict(feature), 0.0, overwrite=True)
    assert features.size() == 1


def test_get_missing_scene(features):
    with pytest.raises(NotFound):
        features.get("nope")


def test_put_requires_id(features):
    with pytest.raises(InvalidArgument):
        features.put({"type": "Feature", "geometry": None, "properties": {}}, 0.5)


def test_put_fills_bbox_and_member(features, store):
    features.put(scene("a", (10, 20, 11, 21), cloudCover=12.5), 0.7)

    stored = features.get("a")
    assert stored["bbox"] == [10.0, 20.0, 11.0, 21.0]
    (member,) = store.zrevrange(PREFIX, 0, -1)
    assert member == f"{PREFIX}:a&10.0,20.0,11.0,21.0,12.500000"
    assert store.zscore(PREFIX, member) == pytest.approx(0.7)


def test_nan_score_goes_to_unscored_set(features, store):
    features.put(scene("a"), math.nan)

    assert features.size() == 1
    (member,) = features.unscored_members()
    assert store.zscore(PREFIX, member) == 0

    # A later finite score clears the record
    features.put(scene("a"), 0.4, overwrite=True)
    assert features.unscored_members() == set()


def test_overwrite_replaces_stale_member(features, store):
    features.put(scene("a", cloudCover=10), 0.5)
    features.put(scene("a", cloudCover=30), 0.3, overwrite=True)

    members = store.zrevrange(PREFIX, 0, -1)
    assert len(members) == 1
    assert Member.decode(members[0]).cloud_cover == 30


def test_update_properties_keeps_score_and_geometry(features, store):
    features.put(scene("a", cloudCover=10), 0.5)

    updated = features.update_properties("a", {"cloudCover": 20, "foo": "bar"})

    assert updated["properties"]["foo"] == "bar"
    assert updated["geometry"] == scene("a")["geometry"]
    (member,) = store.zrevrange(PREFIX, 0, -1)
    assert Member.decode(member).cloud_cover == 20
    assert store.zscore(PREFIX, member) == pytest.approx(0.5)


def test_delete_removes_every_membership(features, store):
    feature = scene("a")
    features.put(feature, 0.5)
    member = features.member_for(feature)
    store.sadd(features.caches_key, f"{PREFIX}:wfs:layer")
    store.zadd(f"{PREFIX}:wfs:layer", 0.5, member)

    features.delete(feature)

    assert features.size() == 0
    assert store.zcard(f"{PREFIX}:wfs:layer") == 0
    with pytest.raises(NotFound):
        features.get("a")
    # Deleting again is harmless
    features.delete("a")


class RecordingStore(RedisStore):
    """Records the order of blob and index writes."""

    def __init__(self, client):
        super().__init__(client=client)
        self.calls = []

    def set(self, key, value, ttl=None, nx=False):
        self.calls.append(("set", key))
        return super().set(key, value, ttl=ttl, nx=nx)

    def delete(self, *keys):
        self.calls.extend(("delete", key) for key in keys)
        return super().delete(*keys)

    def zadd(self, key, score, member):
        self.calls.append(("zadd", key))
        return super().zadd(key, score, member)

    def zrem(self, key, *members):
        self.calls.append(("zrem", key))
        return super().zrem(key, *members)


@pytest.fixture
def recording(store):
    return RecordingStore(store.client)


def test_put_writes_the_blob_before_indexing(recording):
    features = FeatureStore(recording, PREFIX)

    features.put(scene("a"), 0.5)
    features.put(scene("a", cloudCover=40), 0.6, overwrite=True)

    blob = features.key_for("a")
    writes = [call for call in recording.calls if call[0] in ("set", "zadd")]
    assert writes == [("set", blob), ("zadd", PREFIX), ("set", blob), ("zadd", PREFIX)]


def test_delete_unindexes_before_removing_the_blob(recording):
    features = FeatureStore(recording, PREFIX)
    layer = f"{PREFIX}:wfs:layer"
    features.put(scene("a"), 0.5)
    recording.sadd(features.caches_key, layer)
    recording.zadd(layer, 0.5, features.member_for(scene("a")))
    recording.calls.clear()

    features.delete("a")

    blob = features.key_for("a")
    assert recording.calls[-1] == ("delete", blob)
    assert set(recording.calls[:-1]) == {("zrem", PREFIX), ("zrem", layer)}


def test_drop_keeps_blobs(features):
    features.put(scene("a"), 0.5)
    features.put(scene("b"), math.nan)

    features.drop()

    assert features.size() == 0
    assert features.unscored_members() == set()
    assert features.get("a")["id"] == "a"

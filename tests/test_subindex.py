from datetime import datetime, timezone

import pytest

from imagecatalog.catalog.subindex import SubindexBuilder
from imagecatalog.catalog.tiles import TileMap
from imagecatalog.errors import NotFound, UpstreamError
from imagecatalog.models.scene import calculate_score
from imagecatalog.models.subindex import Subindex

from conftest import PREFIX, FakeWFS, scene, square

NOW = datetime(2020, 1, 2, tzinfo=timezone.utc)
STRIPE = [{"type": "Feature", "geometry": square(-180, -50, 180, -40), "properties": {}}]
ACQUIRED = "2020-01-01T00:00:00Z"


def put_scored(features, feature):
    features.put(feature, calculate_score(feature, NOW))


@pytest.fixture
def catalog(features):
    put_scored(features, scene("inside", (10, -46, 11, -45), cloudCover=10, acquiredDate=ACQUIRED))
    put_scored(features, scene("equator", (10, 0, 11, 1), cloudCover=10, acquiredDate=ACQUIRED))
    put_scored(features, scene("pacific", (-160, 10, -159, 11), cloudCover=10, acquiredDate=ACQUIRED))
    put_scored(features, scene("cloudy", (20, -46, 21, -45), cloudCover=100, acquiredDate=ACQUIRED))
    put_scored(features, scene("undated", (30, -46, 31, -45), cloudCover=10))
    return features


@pytest.fixture
def builder(features):
    return SubindexBuilder(features, wfs_client=FakeWFS(STRIPE), tile_maps={})


def members_of(features, key):
    return [features.decode_member(m).key for m in features.members(key)]


def test_create_keeps_scenes_touching_the_layer(catalog, builder):
    subindex = Subindex(wfsurl="http://wfs.test/ows", feature_type="coast:stripe", name="Stripe")

    count = builder.create(subindex, now=NOW)

    key = f"{PREFIX}:http://wfs.test/ows:coast:stripe"
    assert subindex.key == key
    assert count == 1
    assert members_of(catalog, key) == [f"{PREFIX}:inside"]
    assert key in catalog.subindex_keys()
    assert builder.wfs.calls == [("http://wfs.test/ows", "coast:stripe")]


def test_sub_index_members_keep_their_scores(catalog, builder, store):
    subindex = Subindex(wfsurl="http://wfs.test/ows", feature_type="coast:stripe")
    builder.create(subindex, now=NOW)

    (member,) = store.zrevrange(subindex.key, 0, -1)
    assert store.zscore(subindex.key, member) == pytest.approx(store.zscore(PREFIX, member))


def test_rebuild_drops_scenes_that_no_longer_qualify(catalog, builder):
    subindex = Subindex(wfsurl="http://wfs.test/ows", feature_type="coast:stripe")
    builder.create(subindex, now=NOW)

    builder.wfs.features = [{"type": "Feature", "geometry": square(-180, -1, 180, 2), "properties": {}}]
    builder.create(subindex, now=NOW)

    assert members_of(catalog, subindex.key) == [f"{PREFIX}:equator"]


def test_failed_fetch_keeps_previous_tile_map(catalog, builder):
    subindex = Subindex(wfsurl="http://wfs.test/ows", feature_type="coast:stripe")
    builder.create(subindex, now=NOW)
    published = builder.tile_maps[subindex.key]

    builder.wfs.error = UpstreamError("http://wfs.test/ows returned 503", http_status=503)
    with pytest.raises(UpstreamError):
        builder.create(subindex, now=NOW)

    assert builder.tile_maps[subindex.key] is published
    assert members_of(catalog, subindex.key) == [f"{PREFIX}:inside"]


def test_index_scene_adds_new_scene_to_loaded_sub_index(catalog, builder):
    subindex = Subindex(wfsurl="http://wfs.test/ows", feature_type="coast:stripe")
    builder.create(subindex, now=NOW)
    fresh = scene("fresh", (50, -44, 51, -43), cloudCover=0, acquiredDate=ACQUIRED)
    catalog.put(fresh, 0.95)

    assert builder.index_scene(fresh, 0.95) == [subindex.key]
    assert builder.index_scene(scene("far", (50, 40, 51, 41)), 0.95) == []
    assert members_of(catalog, subindex.key)[0] == f"{PREFIX}:fresh"


def test_list_get_and_drop(catalog, builder, store):
    subindex = Subindex(wfsurl="http://wfs.test/ows", feature_type="coast:stripe", name="Stripe")
    builder.create(subindex, now=NOW)

    listed = builder.list_subindexes()
    assert list(listed) == [subindex.key]
    assert listed[subindex.key].name == "Stripe"
    assert builder.get_subindex(subindex.key).feature_type == "coast:stripe"

    builder.drop(subindex.key)

    assert builder.list_subindexes() == {}
    assert store.zcard(subindex.key) == 0
    assert subindex.key not in builder.tile_maps
    with pytest.raises(NotFound):
        builder.get_subindex(subindex.key)


def test_cache_with_explicit_tile_map(catalog, builder):
    subindex = Subindex(wfsurl="local", feature_type="whole")
    builder.register(subindex)

    count = builder.cache(subindex, TileMap.whole_world(), now=NOW)

    # Every dated scene with a positive score qualifies
    assert count == 3


def test_rebuild_all_reports_each_sub_index(catalog, builder):
    builder.register(Subindex(wfsurl="http://wfs.test/ows", feature_type="a"))
    builder.register(Subindex(wfsurl="http://wfs.test/ows", feature_type="b"))

    results = {s.feature_type: (count, error) for s, count, error in builder.rebuild_all(now=NOW)}

    assert results == {"a": (1, None), "b": (1, None)}

import json
from datetime import datetime, timezone

from imagecatalog.api.dg import DigitalGlobeClient, cell_ring, dg_feature, search_body, search_cells

from conftest import FakeResponse, FakeSession

NOW = datetime(2020, 1, 10, tzinfo=timezone.utc)
WKT = "POLYGON((10 20, 11 20, 11 21, 10 21, 10 20))"


def entry(**overrides):
    data = {
        "featureId": "abc123",
        "acquisitionDate": NOW.timestamp() - 3600,
        "geometryWkt": WKT,
        "featureMetadata": {"imagerySource": "WV02", "cloudCover": 5},
    }
    data.update(overrides)
    return data


def test_cell_ring_starts_northwest():
    assert cell_ring(10, 20, 0.5) == "10 20.5,10.5 20.5,10.5 20,10 20,10 20.5"


def test_search_body_embeds_wkt_in_fixed_envelope():
    body = search_body(cell_ring(0, 0, 0.5))

    parsed = json.loads(body)
    assert parsed["aoiWkt"] == "POLYGON((0 0.5,0.5 0.5,0.5 0,0 0,0 0.5))"
    assert parsed["sortProperty"] == "acquisitionDate"
    assert parsed["pageSize"] == 1
    assert body.startswith('{"aoiWkt":"POLYGON((0 0.5,')


def test_search_cells_cover_bbox():
    assert list(search_cells([0, 0, 1, 0.5], 0.5)) == [(0, 0), (0.5, 0)]


def test_client_posts_body_with_passthrough_auth():
    session = FakeSession(FakeResponse(data={"count": 0, "page": []}))
    client = DigitalGlobeClient("Bearer token", session=session)

    assert client.search(0, 0) == {"count": 0, "page": []}
    method, _, kwargs = session.requests[0]
    assert method == "POST"
    assert kwargs["data"] == search_body(cell_ring(0, 0))
    assert session.headers["Authorization"] == "Bearer token"


def test_dg_feature_maps_entry():
    feature = dg_feature(entry(), now=NOW)

    assert feature["id"] == "dg:WV02:abc123"
    assert feature["bbox"] == [10.0, 20.0, 11.0, 21.0]
    assert feature["properties"]["cloudCover"] == 5
    assert feature["properties"]["acquiredDate"] == "2020-01-09T23:00:00Z"
    assert feature["geometry"]["type"] == "Polygon"


def test_old_and_broken_entries_are_dropped():
    assert dg_feature(entry(acquisitionDate=NOW.timestamp() - 8 * 86400), now=NOW) is None
    assert dg_feature(entry(geometryWkt="POLYGON((broken"), now=NOW) is None

import pytest
import requests

from imagecatalog.api.planet import PlanetAPIClient, landsat_feature, landsat_s3_path
from imagecatalog.errors import InvalidArgument

from conftest import FakeResponse, FakeSession, square


def test_client_requires_a_key(monkeypatch):
    monkeypatch.setattr("imagecatalog.api.planet.config.pl_api_key", None)
    with pytest.raises(InvalidArgument):
        PlanetAPIClient(session=FakeSession())


def test_requests_sign_with_the_key_as_username():
    client = PlanetAPIClient("a1fa3d8d")
    prepared = client.session.prepare_request(requests.Request("GET", "https://api.test/data/v1/"))
    assert prepared.headers["Authorization"] == "Basic YTFmYTNkOGQ6"


def test_search_follows_next_links_until_cap(monkeypatch):
    monkeypatch.setattr("imagecatalog.api.planet.time.sleep", lambda seconds: None)
    session = FakeSession(
        FakeResponse(data={"features": [{"id": "one"}], "_links": {"_next": "https://api.test/page2"}}),
        FakeResponse(data={"features": [{"id": "two"}], "_links": {"_next": "https://api.test/page3"}}),
        FakeResponse(data={"features": [{"id": "three"}], "_links": {}}),
    )
    client = PlanetAPIClient("key", session=session)

    pages = list(client.search_landsat(since="2020-01-01T00:00:00Z", page_size=10, cap=2))

    assert pages == [[{"id": "one"}], [{"id": "two"}]]
    method, url, kwargs = session.requests[0]
    assert method == "POST"
    assert url.endswith("/data/v1/quick-search")
    assert kwargs["params"]["_page_size"] == 10
    assert kwargs["json"]["item_types"] == ["Landsat8L1G"]
    date_filter = kwargs["json"]["filter"]["config"][1]
    assert date_filter["config"] == {"gte": "2020-01-01T00:00:00Z"}
    assert session.requests[1][:2] == ("GET", "https://api.test/page2")
    assert session.auth == ("key", "")


def test_search_without_cap_reads_every_page(monkeypatch):
    monkeypatch.setattr("imagecatalog.api.planet.time.sleep", lambda seconds: None)
    session = FakeSession(
        FakeResponse(data={"features": [{"id": "one"}], "_links": {"_next": "https://api.test/page2"}}),
        FakeResponse(data={"features": [{"id": "two"}], "_links": {}}),
    )

    pages = list(PlanetAPIClient("key", session=session).search_landsat())

    assert len(pages) == 2


def test_landsat_paths():
    assert landsat_s3_path("LC81234562016285LGN00") == (
        "https://landsat-pds.s3.amazonaws.com/L8/123/456/LC81234562016285LGN00/"
    )
    assert landsat_s3_path("LC08_L1TP_139045_20170304_20170316_01_T1") == (
        "https://landsat-pds.s3.amazonaws.com/c1/L8/139/045/LC08_L1TP_139045_20170304_20170316_01_T1/"
    )


def test_landsat_feature():
    raw = {
        "id": "LC81234562016285LGN00",
        "geometry": square(10, 20, 11, 21),
        "properties": {"acquired": "2016-10-11T12:59:05Z", "cloud_cover": 0.12, "gsd": 30},
    }

    feature = landsat_feature(raw)

    assert feature["id"] == "pl:landsat:LC81234562016285LGN00"
    properties = feature["properties"]
    assert properties["acquiredDate"] == "2016-10-11T12:59:05Z"
    assert properties["cloudCover"] == pytest.approx(12.0)
    assert properties["resolution"] == 30
    assert properties["sensorName"] == "Landsat8"
    assert properties["bands"]["red"].endswith("LC81234562016285LGN00_B4.TIF")
    assert properties["path"].endswith("/index.html")

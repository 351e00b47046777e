import pytest

from imagecatalog.api.wfs import WFSClient
from imagecatalog.errors import UpstreamError

from conftest import FakeResponse, FakeSession, square

LAYER = {"type": "FeatureCollection", "features": [{"type": "Feature", "geometry": square(0, 0, 1, 1)}]}


def test_get_features_sends_get_feature_request():
    session = FakeSession(FakeResponse(data=LAYER))

    features = WFSClient(session=session).get_features("http://wfs.test/ows", "coast:stripe")

    assert features == LAYER["features"]
    method, url, kwargs = session.requests[0]
    assert (method, url) == ("GET", "http://wfs.test/ows")
    assert kwargs["params"] == {
        "service": "WFS",
        "version": "2.0.0",
        "request": "GetFeature",
        "typeName": "coast:stripe",
        "outputFormat": "application/json",
        "maxFeatures": 9999,
    }


def test_non_2xx_keeps_upstream_status():
    session = FakeSession(FakeResponse(status_code=503, text="unavailable"))

    with pytest.raises(UpstreamError) as raised:
        WFSClient(session=session).get_features("http://wfs.test/ows", "coast:stripe")
    assert raised.value.http_status == 503


@pytest.mark.parametrize("data", [None, {"type": "Feature"}])
def test_non_geojson_body_is_an_upstream_failure(data):
    session = FakeSession(FakeResponse(data=data, text="<html/>"))

    with pytest.raises(UpstreamError) as raised:
        WFSClient(session=session).get_features("http://wfs.test/ows", "coast:stripe")
    assert raised.value.http_status == 502

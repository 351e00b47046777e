from concurrent.futures import ThreadPoolExecutor

import fakeredis
import pytest

from imagecatalog.catalog.discovery import DiscoveryEngine
from imagecatalog.storage.features import FeatureStore
from imagecatalog.storage.redis_store import RedisStore

PREFIX = "catalog-test"


def square(minx, miny, maxx, maxy):
    return {
        "type": "Polygon",
        "coordinates": [[[minx, miny], [maxx, miny], [maxx, maxy], [minx, maxy], [minx, miny]]],
    }


def scene(scene_id, bbox=(0.0, 0.0, 1.0, 1.0), **properties):
    """A scene feature over a rectangular footprint."""
    return {
        "type": "Feature",
        "id": scene_id,
        "geometry": square(*bbox),
        "properties": properties,
    }


class FakeWFS:
    """Returns a fixed layer, or raises, instead of calling a WFS."""

    def __init__(self, features=None, error=None):
        self.features = features or []
        self.error = error
        self.calls = []

    def get_features(self, wfsurl, feature_type):
        self.calls.append((wfsurl, feature_type))
        if self.error is not None:
            raise self.error
        return self.features


@pytest.fixture
def store():
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    return RedisStore(client=client)


@pytest.fixture
def features(store):
    return FeatureStore(store, PREFIX)


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=True)


@pytest.fixture
def discovery(features, executor):
    return DiscoveryEngine(features, executor=executor, poll_interval=0.1, poll_attempts=50)


class FakeResponse:
    def __init__(self, status_code=200, data=None, url="http://upstream.test", text=None):
        self.status_code = status_code
        self._data = data
        self.url = url
        self.text = text if text is not None else ("" if data is None else str(data))

    def json(self):
        if self._data is None:
            raise ValueError("No JSON object could be decoded")
        return self._data


class FakeSession:
    """Stands in for requests.Session; replies from a queue and records requests."""

    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return self.responses.pop(0)

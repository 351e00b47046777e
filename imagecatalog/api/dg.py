"""DigitalGlobe feature search client."""
import logging
from datetime import timedelta

from shapely.errors import ShapelyError

from imagecatalog.api.http import HTTPClient
from imagecatalog.config import config
from imagecatalog.utils import geometry
from imagecatalog.utils.dates import format_rfc3339, utcnow

logger = logging.getLogger(__name__)

SEARCH_ENVELOPE = (
    '{"aoiWkt":"POLYGON((%s))","layerControlFilters":{},"includeArchiveResults":true,'
    '"sortProperty":"acquisitionDate","sortAscending":false,"pageSize":1,"pageNumber":0,'
    '"excludeDems":true,"firstPage":1,"lastPage":null,"currentPage":1,"totalPages":null,'
    '"totalRecords":null,"sortKey":"acquisitionDate","order":1}'
)


def _num(value):
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def cell_ring(lon, lat, size=0.5):
    """WKT ring text for a square search cell, northwest corner first."""
    north = lat + size
    east = lon + size
    points = [(lon, north), (east, north), (east, lat), (lon, lat), (lon, north)]
    return ",".join(f"{_num(x)} {_num(y)}" for x, y in points)


def search_body(ring):
    return SEARCH_ENVELOPE % ring


def search_cells(bbox, size=0.5):
    """Southwest corners of the search cells covering a bbox."""
    lat = bbox[1]
    while lat < bbox[3]:
        lon = bbox[0]
        while lon < bbox[2]:
            yield lon, lat
            lon += size
        lat += size


class DigitalGlobeClient(HTTPClient):
    """Posts feature searches with a passthrough Authorization header."""

    service = "DigitalGlobe"

    def __init__(self, authorization, session=None, timeout=None):
        super().__init__(session=session, timeout=timeout)
        self.url = config.dg_search_url
        self.session.headers["Authorization"] = authorization
        self.session.headers["Content-Type"] = "application/json"

    def search(self, lon, lat, size=0.5):
        """
        Search one cell.

        Returns:
            Response dict with "count" and a "page" list of entries
        """
        body = search_body(cell_ring(lon, lat, size))
        logger.debug("Searching DigitalGlobe cell %s,%s", lon, lat)
        response = self._request("POST", self.url, data=body)
        return self._json(response)


def dg_feature(entry, max_age=timedelta(days=7), now=None):
    """
    Map a DigitalGlobe search entry onto the catalog's scene shape.

    Returns:
        GeoJSON feature with id dg:<imagery source>:<feature id>, or None
        for entries older than max_age or with unreadable geometry
    """
    acquired = entry.get("acquisitionDate")
    if acquired is None:
        return None
    now = now or utcnow()
    if max_age is not None and now.timestamp() - acquired > max_age.total_seconds():
        logger.debug("%s is too old", entry.get("featureId"))
        return None

    try:
        geom = geometry.from_wkt(entry["geometryWkt"])
    except (ShapelyError, KeyError, TypeError) as e:
        logger.warning("Skipping DigitalGlobe entry %s: %s", entry.get("featureId"), e)
        return None

    metadata = entry.get("featureMetadata") or {}
    source = metadata.get("imagerySource", "")
    return {
        "type": "Feature",
        "id": f"dg:{source}:{entry['featureId']}",
        "geometry": geometry.to_geojson(geom),
        "bbox": list(geom.bounds),
        "properties": {
            "cloudCover": metadata.get("cloudCover"),
            "acquiredDate": format_rfc3339(acquired),
            "sensorName": source,
        },
    }

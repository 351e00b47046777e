"""Planet API client for Landsat 8 scene metadata."""
import logging
import time

from imagecatalog.api.http import HTTPClient
from imagecatalog.config import config
from imagecatalog.errors import InvalidArgument

logger = logging.getLogger(__name__)

LANDSAT_ITEM_TYPE = "Landsat8L1G"
LANDSAT_PDS_URL = "https://landsat-pds.s3.amazonaws.com/"

LANDSAT_BANDS = {
    "coastal": "B1",
    "blue": "B2",
    "green": "B3",
    "red": "B4",
    "nir": "B5",
    "swir1": "B6",
    "swir2": "B7",
    "panchromatic": "B8",
    "cirrus": "B9",
    "tirs1": "B10",
    "tirs2": "B11",
}


class PlanetAPIClient(HTTPClient):
    """Client for the Planet Data API."""

    service = "Planet"

    def __init__(self, api_key=None, session=None, timeout=None):
        super().__init__(session=session, timeout=timeout)
        self.api_key = api_key or config.pl_api_key
        if not self.api_key:
            raise InvalidArgument("Planet API key not configured")

        self.base_url = config.planet_base_url.rstrip("/")
        self.session.auth = (self.api_key, "")

    def search_landsat(self, since=None, page_size=None, cap=0):
        """
        Search Landsat 8 scenes, one page at a time.

        Args:
            since: Only scenes acquired at or after this RFC3339 instant
            page_size: Features per page (default from config)
            cap: Stop after this many pages; 0 follows every _next link

        Yields:
            Lists of raw Planet features
        """
        filters = [{"type": "PermissionFilter", "config": ["assets:download"]}]
        if since:
            filters.append(
                {"type": "DateRangeFilter", "field_name": "acquired", "config": {"gte": since}}
            )
        search_payload = {
            "item_types": [LANDSAT_ITEM_TYPE],
            "filter": {"type": "AndFilter", "config": filters},
        }
        search_url = f"{self.base_url}/data/v1/quick-search"
        params = {"_page_size": page_size or config.page_size, "_sort": "acquired desc"}
        yield from self._pages(search_url, search_payload, params, cap)

    def _pages(self, search_url, search_payload, params, cap):
        """
        Follow _links._next until the last page.

        Planet answers the first request as POST and later pages as GET.
        """
        response = self._request("POST", search_url, json=search_payload, params=params)
        pages = 0
        while True:
            data = self._json(response)
            pages += 1
            yield data.get("features", [])

            next_url = data.get("_links", {}).get("_next")
            if not next_url or (cap and pages >= cap):
                break
            time.sleep(config.pagination_delay)
            response = self._request("GET", next_url)

        logger.info("Read %d pages from %s", pages, search_url)


def landsat_s3_path(scene_id):
    """Folder of a Landsat 8 scene on the landsat-pds bucket."""
    if "_" in scene_id:
        # Collection 1 ids: LC08_L1TP_PPPRRR_...
        path_row = scene_id.split("_")[2]
        return f"{LANDSAT_PDS_URL}c1/L8/{path_row[:3]}/{path_row[3:6]}/{scene_id}/"
    result = LANDSAT_PDS_URL
    if scene_id.startswith("LC8"):
        result += "L8/"
    return f"{result}{scene_id[3:6]}/{scene_id[6:9]}/{scene_id}/"


def _cloud_cover_percent(properties):
    cloud_cover = properties.get("cloud_cover")
    if isinstance(cloud_cover, dict):
        return cloud_cover.get("estimated")
    if cloud_cover is None:
        return None
    # Data API v1 reports a 0-1 fraction
    return float(cloud_cover) * 100.0


def _resolution(properties):
    statistics = properties.get("image_statistics")
    if isinstance(statistics, dict) and "gsd" in statistics:
        return statistics["gsd"]
    return properties.get("gsd")


def landsat_feature(raw):
    """
    Map a Planet Landsat 8 feature onto the catalog's scene shape.

    Returns:
        GeoJSON feature with id pl:landsat:<planet id>
    """
    scene_id = raw["id"]
    properties = raw.get("properties") or {}
    url = landsat_s3_path(scene_id)

    scene_properties = {
        "path": url + "index.html",
        "thumb_large": f"{url}{scene_id}_thumb_large.jpg",
        "thumb_small": f"{url}{scene_id}_thumb_small.jpg",
        "acquiredDate": properties.get("acquired"),
        "fileFormat": "geotiff",
        "sensorName": "Landsat8",
        "bands": {name: f"{url}{scene_id}_{band}.TIF" for name, band in LANDSAT_BANDS.items()},
    }
    cloud_cover = _cloud_cover_percent(properties)
    if cloud_cover is not None:
        scene_properties["cloudCover"] = cloud_cover
    resolution = _resolution(properties)
    if resolution is not None:
        scene_properties["resolution"] = resolution

    feature = {
        "type": "Feature",
        "id": f"pl:landsat:{scene_id}",
        "geometry": raw.get("geometry"),
        "properties": scene_properties,
    }
    if raw.get("bbox"):
        feature["bbox"] = raw["bbox"]
    return feature

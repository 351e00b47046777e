"""OGC WFS GetFeature client."""
import logging

from imagecatalog.api.http import HTTPClient
from imagecatalog.config import config
from imagecatalog.errors import UpstreamError

logger = logging.getLogger(__name__)


class WFSClient(HTTPClient):
    """Fetches polygon layers as GeoJSON feature collections."""

    service = "WFS"

    def __init__(self, session=None, timeout=None, max_features=None):
        super().__init__(session=session, timeout=timeout or config.wfs_timeout)
        self.max_features = max_features or config.wfs_max_features

    def get_features(self, wfsurl, feature_type):
        """
        Issue GetFeature for one feature type.

        Args:
            wfsurl: Service endpoint
            feature_type: typeName of the layer

        Returns:
            List of GeoJSON features

        Raises:
            UpstreamError: On a non-2xx response, or a body that is not a
                GeoJSON FeatureCollection
        """
        params = {
            "service": "WFS",
            "version": "2.0.0",
            "request": "GetFeature",
            "typeName": feature_type,
            "outputFormat": "application/json",
            "maxFeatures": self.max_features,
        }
        logger.info("Fetching %s from %s", feature_type, wfsurl)
        response = self._request("GET", wfsurl, params=params)
        collection = self._json(response)
        if not isinstance(collection, dict) or collection.get("type") != "FeatureCollection":
            raise UpstreamError(f"{wfsurl} did not return a FeatureCollection for {feature_type}.")
        features = collection.get("features") or []
        logger.info("Received %d features of %s", len(features), feature_type)
        return features

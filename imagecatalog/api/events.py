"""Client for the Piazza event bus."""
import logging

from imagecatalog.api.http import HTTPClient
from imagecatalog.config import config
from imagecatalog.errors import InvalidArgument, Unauthenticated, UpstreamError

logger = logging.getLogger(__name__)

# Field types of the new-image event payload
HARVEST_EVENT_MAPPING = {
    "imageID": "string",
    "acquiredDate": "string",
    "cloudCover": "long",
    "resolution": "long",
    "sensorName": "string",
    "minx": "long",
    "miny": "long",
    "maxx": "long",
    "maxy": "long",
    "link": "string",
}


class EventClient(HTTPClient):
    """
    Registers the harvest event type and posts events.

    The caller's Authorization header value is passed through unchanged.
    """

    service = "event bus"

    def __init__(self, gateway=None, authorization=None, session=None, timeout=None):
        super().__init__(session=session, timeout=timeout)
        self.gateway = (gateway or config.pz_gateway or "").rstrip("/")
        if not self.gateway:
            raise InvalidArgument("An event bus gateway (pzGateway or DOMAIN) is required.")
        self.authorization = authorization or config.pz_auth or ""
        if self.authorization:
            self.session.headers["Authorization"] = self.authorization
        self._event_type_id = None

    def check_auth(self):
        """
        Confirm the gateway accepts our credentials.

        Raises:
            Unauthenticated: On 401 or 403 from the gateway
        """
        try:
            self._request("GET", f"{self.gateway}/eventType", params={"perPage": 1})
        except UpstreamError as e:
            if e.http_status in (401, 403):
                raise Unauthenticated(f"The event bus rejected the credentials: {e.message}") from e
            raise

    def event_type_id(self, root=None, mapping=None):
        """
        Find or create the versioned harvest event type.

        Looks for <root>:<version> with a matching mapping, starting at
        version 0, and registers the first unused version when none matches.
        """
        if self._event_type_id:
            return self._event_type_id
        root = root or config.event_type
        mapping = mapping or HARVEST_EVENT_MAPPING

        response = self._request("GET", f"{self.gateway}/eventType", params={"perPage": 10000})
        event_types = self._json(response).get("data") or []
        by_name = {}
        for event_type in event_types:
            by_name.setdefault(event_type.get("name"), []).append(event_type)

        version = 0
        while True:
            name = f"{root}:{version}"
            candidates = by_name.get(name)
            if not candidates:
                self._event_type_id = self._add_event_type(name, mapping)
                break
            match = next((c for c in candidates if c.get("mapping") == mapping), None)
            if match is not None:
                self._event_type_id = match.get("eventTypeId")
                break
            version += 1

        logger.info("Harvest event type is %s", self._event_type_id)
        return self._event_type_id

    def _add_event_type(self, name, mapping):
        logger.info("Registering event type %s", name)
        response = self._request(
            "POST", f"{self.gateway}/eventType", json={"name": name, "mapping": mapping}
        )
        body = self._json(response)
        return (body.get("data") or body).get("eventTypeId")

    def add_event(self, event_type_id, data):
        """Post one event; returns the gateway's response body."""
        payload = {"eventTypeId": event_type_id, "data": data}
        response = self._request("POST", f"{self.gateway}/event", json=payload)
        return self._json(response)

"""HTTP interface to the catalog."""
import logging
import uuid
from types import SimpleNamespace

import redis
from flask import Flask, Response, jsonify, request

from imagecatalog import workers
from imagecatalog.api.events import EventClient
from imagecatalog.auth import DenyAllProvider
from imagecatalog.catalog.discovery import DiscoveryEngine
from imagecatalog.catalog.harvest import Harvester, RecurringHarvests
from imagecatalog.catalog.subindex import SubindexBuilder
from imagecatalog.config import config
from imagecatalog.errors import CatalogError, InvalidArgument, NotFound
from imagecatalog.models.harvest import HarvestOptions
from imagecatalog.models.search import SearchOptions
from imagecatalog.models.subindex import Subindex
from imagecatalog.storage.features import FeatureStore
from imagecatalog.utils.dates import parse_rfc3339
from imagecatalog.utils.geometry import bbox_polygon, crosses_antimeridian, parse_bbox, to_geojson

logger = logging.getLogger(__name__)

CORS_PATHS = ("/discover", "/subindex")
CORS_HEADERS = "Accept, Content-Type, Content-Length, Accept-Encoding, X-CSRF-Token, Authorization"
MISSING_CONSTRAINT = (
    "A discovery request must contain at least one of the following:\n"
    "* bounding box\n* acquiredDate\n* maxAcquiredDate"
)


def parse_bool(value, default=False):
    if value is None or value == "":
        return default
    return str(value).strip().lower() in ("1", "t", "true", "yes", "on")


def _parse_number(values, name, kind):
    raw = values.get(name)
    if raw is None or raw == "":
        return None
    try:
        return kind(raw)
    except ValueError as e:
        raise InvalidArgument(f"Format of {name} is invalid: {e}") from e


def _parse_date(values, name):
    raw = values.get(name)
    if not raw:
        return None
    try:
        parse_rfc3339(raw)
    except (ValueError, OverflowError) as e:
        raise InvalidArgument(f"Format of {name} is invalid: {e}") from e
    return raw


def parse_discover_request(values):
    """
    Turn /discover parameters into a query feature and search options.

    Args:
        values: Mapping of request parameters

    Returns:
        tuple: (query feature dict, SearchOptions)

    Raises:
        InvalidArgument: On malformed parameters or a caching request
            without bbox, acquiredDate or maxAcquiredDate
    """
    no_cache = parse_bool(values.get("nocache"))
    count = _parse_number(values, "count", int)
    if count is None:
        count = config.default_count
    start_index = _parse_number(values, "startIndex", int) or 0
    rigorous = parse_bool(values.get("rigorous"))

    properties = {}
    for name in ("fileFormat", "sensorName", "subIndex"):
        if values.get(name):
            properties[name] = values.get(name)
    for name in ("acquiredDate", "maxAcquiredDate"):
        value = _parse_date(values, name)
        if value is not None:
            properties[name] = value
    for name, kind in (
        ("bitDepth", int),
        ("fileSize", int),
        ("cloudCover", float),
        ("beachfrontScore", float),
        ("resolution", float),
    ):
        value = _parse_number(values, name, kind)
        if value is not None:
            properties[name] = value
    if values.get("bands"):
        properties["bands"] = [b.strip() for b in values.get("bands").split(",") if b.strip()]

    bbox_text = values.get("bbox") or ""
    has_dates = "acquiredDate" in properties or "maxAcquiredDate" in properties
    if not no_cache and not bbox_text and not has_dates:
        raise InvalidArgument(MISSING_CONSTRAINT)

    query = {"type": "Feature", "geometry": None}
    if bbox_text:
        try:
            bbox = parse_bbox(bbox_text)
        except ValueError as e:
            raise InvalidArgument(str(e)) from e
        if crosses_antimeridian(bbox):
            raise InvalidArgument("Bounding Box must not cross the antimeridian.")
        query["bbox"] = bbox
        if rigorous:
            query["geometry"] = to_geojson(bbox_polygon(bbox))
    if properties:
        query["properties"] = properties

    options = SearchOptions(
        minimum_index=start_index,
        count=count,
        no_cache=no_cache,
        rigorous=rigorous,
        sub_index=properties.get("subIndex", ""),
    )
    return query, options


def _request_data():
    """JSON body when there is one, otherwise form and query values."""
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        return body
    return request.values


def _harvest_options_from_request():
    values = request.values
    body = request.get_json(silent=True)
    options = HarvestOptions.from_dict(body) if isinstance(body, dict) else HarvestOptions()
    options.pz_gateway = values.get("pzGateway") or options.pz_gateway or config.pz_gateway or ""
    options.reharvest = parse_bool(values.get("reharvest"), options.reharvest)
    options.pl_api_key = values.get("PL_API_KEY") or options.pl_api_key
    options.pz_auth = request.headers.get("Authorization") or options.pz_auth
    options.recurring = parse_bool(values.get("recurring"), options.recurring)
    cap = values.get("cap")
    if cap:
        options.cap = int(cap) if cap.isdigit() else int(parse_bool(cap))
    page_size = _parse_number(values, "requestPageSize", int)
    if page_size:
        options.request_page_size = page_size
    return options


def create_app(
    feature_store=None,
    discovery=None,
    subindex_builder=None,
    harvester=None,
    recurring=None,
    auth_provider=None,
    event_client_factory=None,
    executor=None,
    discovery_executor=None,
):
    """
    Build the Flask application.

    Every collaborator can be injected; the defaults share the process-wide
    store and thread pools. Harvests and sub-index builds run on executor,
    discovery cache builds on discovery_executor.
    """
    app = Flask(__name__)

    features = feature_store or FeatureStore()
    services = SimpleNamespace(
        features=features,
        discovery=discovery or DiscoveryEngine(features, executor=discovery_executor),
        subindexes=subindex_builder or SubindexBuilder(features),
        recurring=recurring or RecurringHarvests(features.store),
        auth=auth_provider or DenyAllProvider(),
        event_client=event_client_factory or (lambda gateway, auth: EventClient(gateway, auth)),
        executor=executor,
    )
    services.harvester = harvester or Harvester(
        features, subindex_builder=services.subindexes, executor=executor
    )
    app.extensions["imagecatalog"] = services

    @app.errorhandler(CatalogError)
    def handle_catalog_error(e):
        if e.http_status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, e.message)
        return Response(e.message, status=e.http_status, mimetype="text/plain")

    @app.errorhandler(redis.RedisError)
    def handle_store_error(e):
        logger.exception("Store failure on %s %s", request.method, request.path)
        return Response(f"Catalog store failure: {e}", status=500, mimetype="text/plain")

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and request.path in CORS_PATHS:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = CORS_HEADERS
        return response

    @app.route("/")
    def liveness():
        return Response("Hi", mimetype="text/plain")

    @app.route("/dropIndex", methods=["POST"])
    def drop_index():
        services.auth.require(request.headers.get("Authorization"), "dropIndex")
        services.features.drop()
        services.discovery.evict_all()
        return Response("Dropped index.", mimetype="text/plain")

    @app.route("/image/<path:scene_id>")
    def get_image(scene_id):
        return jsonify(services.features.get(scene_id))

    @app.route("/discover", methods=["GET"])
    def discover():
        query, options = parse_discover_request(request.values)
        _, rendered = services.discovery.get_scenes(query, options)
        return Response(rendered, mimetype="application/json")

    @app.route("/unharvest", methods=["POST"])
    def unharvest():
        services.auth.require(request.headers.get("Authorization"), "unharvest")
        scene_id = _request_data().get("id")
        if not scene_id:
            raise InvalidArgument("An id is required.")
        feature = services.features.get(scene_id)
        services.features.delete(feature)
        services.discovery.evict_all()
        return Response(f"Removed {scene_id}.", mimetype="text/plain")

    @app.route("/provision/<path:scene_id>/<band>")
    def provision(scene_id, band):
        feature = services.features.get(scene_id)
        bands = (feature.get("properties") or {}).get("bands")
        if not isinstance(bands, dict) or not bands.get(band):
            raise NotFound(f"Image {scene_id} has no band {band}.")
        return Response(bands[band], mimetype="text/plain")

    @app.route("/subindex", methods=["POST"])
    def create_subindex():
        data = _request_data()
        wfsurl = data.get("wfsurl")
        feature_type = data.get("featureType")
        name = data.get("name")
        if not (wfsurl and feature_type and name):
            raise InvalidArgument("A sub-index requires wfsurl, featureType and name.")
        subindex = Subindex(wfsurl=wfsurl, feature_type=feature_type, name=name)
        subindex.resolve_key(services.features.prefix)
        workers.submit(
            services.subindexes.create, subindex,
            executor=services.executor, name=f"subindex {subindex.key}",
        )
        return jsonify(subindex.to_dict()), 202

    @app.route("/subindex", methods=["GET"])
    def list_subindexes():
        subindexes = services.subindexes.list_subindexes()
        return jsonify({key: s.to_dict() for key, s in subindexes.items()})

    @app.route("/planet", methods=["POST"])
    @app.route("/planet/<key>", methods=["POST"])
    def harvest_planet(key=None):
        if key is None:
            options = _harvest_options_from_request()
        else:
            options = services.recurring.get(key)
            options.pz_auth = request.headers.get("Authorization") or options.pz_auth
        options.event = parse_bool(request.values.get("event"), options.event)
        if options.event and not options.pz_gateway:
            raise InvalidArgument("This request requires a 'pzGateway'.")
        if not (options.pl_api_key or config.pl_api_key):
            raise InvalidArgument("This request requires a 'PL_API_KEY'.")

        messages = []
        if key is None and options.recurring:
            key = uuid.uuid4().hex
            services.recurring.save(key, options)
            messages.append(f"Registered recurring harvest {key}.")

        workers.submit(
            services.harvester.harvest_planet, options,
            executor=services.executor, name="planet harvest",
        )
        messages.append("Harvesting started. Check back later.")
        return Response("\n".join(messages), status=202, mimetype="text/plain")

    @app.route("/planet/<key>", methods=["DELETE"])
    def delete_recurring(key):
        services.auth.require(request.headers.get("Authorization"), "harvest")
        services.recurring.delete(key)
        return Response(f"Removed recurring harvest {key}.", mimetype="text/plain")

    @app.route("/eventTypeID")
    def event_type_id():
        authorization = request.headers.get("Authorization")
        services.auth.require(authorization, "eventTypeID")
        gateway = request.values.get("pzGateway") or config.pz_gateway
        if not gateway:
            raise InvalidArgument("This request requires a 'pzGateway'.")
        client = services.event_client(gateway, authorization)
        return Response(client.event_type_id(), mimetype="text/plain")

    return app

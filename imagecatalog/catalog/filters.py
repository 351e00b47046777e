"""
Scene filters for discovery.

A candidate scene passes a query feature when every predicate below holds.
Predicates run in a fixed order and stop at the first failure; a property
missing from either side satisfies its predicate. Zero values for
cloudCover, bitDepth and beachfrontScore disable their predicates.
"""
import logging
import math

from imagecatalog.models.scene import band_names, float_property, string_property
from imagecatalog.utils import geometry
from imagecatalog.utils.dates import try_parse_rfc3339

logger = logging.getLogger(__name__)


def _cloud_cover_ok(scene_cc, query):
    query_cc = float_property(query, "cloudCover")
    if query_cc is None or not query_cc > 0:
        return True
    if scene_cc is None or not math.isfinite(scene_cc):
        return True
    return scene_cc <= query_cc


def _bbox_ok(scene_bbox, query):
    query_bbox = query.get("bbox")
    if not query_bbox or not scene_bbox:
        return True
    return geometry.bbox_overlaps(query_bbox, scene_bbox)


def passes_member(member, query):
    """
    Cloud cover and bbox predicates evaluated from a decoded index member.

    Lets a scan reject most scenes before fetching their blobs.
    """
    if query is None:
        return True
    cloud_cover = member.cloud_cover if math.isfinite(member.cloud_cover) else None
    return _cloud_cover_ok(cloud_cover, query) and _bbox_ok(member.bbox, query)


def _bit_depth_ok(scene, query):
    query_depth = float_property(query, "bitDepth")
    scene_depth = float_property(scene, "bitDepth")
    if not query_depth or not scene_depth:
        return True
    return scene_depth >= query_depth


def _beachfront_score_ok(scene, query):
    query_score = float_property(query, "beachfrontScore")
    scene_score = float_property(scene, "beachfrontScore")
    if query_score is None or scene_score is None:
        return True
    if not (math.isfinite(query_score) and math.isfinite(scene_score)):
        return True
    if query_score == 0 or scene_score == 0:
        return True
    return scene_score >= query_score


def _acquired_ok(scene, query):
    lower = try_parse_rfc3339(string_property(query, "acquiredDate"))
    upper = try_parse_rfc3339(string_property(query, "maxAcquiredDate"))
    if lower is None and upper is None:
        return True
    acquired = try_parse_rfc3339(string_property(scene, "acquiredDate"))
    if acquired is None:
        return True
    if lower is not None and acquired < lower:
        return False
    if upper is not None and acquired > upper:
        return False
    return True


def _bands_ok(scene, query):
    wanted = band_names(query)
    if not wanted:
        return True
    available = band_names(scene)
    if available is None:
        return True
    return wanted <= available


def _subindex_ok(scene, query, feature_store, member):
    name = (query.get("properties") or {}).get("subIndex")
    if not name or feature_store is None:
        return True
    member = member or feature_store.member_for(scene)
    return feature_store.store.zscore(name, member) is not None


def _geometry_ok(scene, query):
    query_geom = geometry.from_geojson(query.get("geometry"))
    scene_geom = geometry.from_geojson(scene.get("geometry"))
    if query_geom is None or scene_geom is None:
        return True
    return geometry.intersects(query_geom, scene_geom)


def passes(scene, query, rigorous=False, feature_store=None, member=None):
    """
    Test a scene against a query feature.

    Args:
        scene: Candidate scene feature
        query: Query feature; None passes everything
        rigorous: Require true polygon intersection, not just bbox overlap
        feature_store: FeatureStore used for sub-index membership
        member: Encoded index member of the scene, when the caller has it

    Returns:
        True if the scene satisfies every predicate
    """
    if query is None:
        return True
    return (
        _cloud_cover_ok(float_property(scene, "cloudCover"), query)
        and _bit_depth_ok(scene, query)
        and _beachfront_score_ok(scene, query)
        and _acquired_ok(scene, query)
        and _bands_ok(scene, query)
        and _bbox_ok(geometry.force_bbox(dict(scene)), query)
        and _subindex_ok(scene, query, feature_store, member)
        and (not rigorous or _geometry_ok(scene, query))
    )

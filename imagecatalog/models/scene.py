"""Scene features, their index member encoding and their score."""
import math
from dataclasses import dataclass
from typing import List, Optional

from imagecatalog.utils.dates import age_in_decades
from imagecatalog.utils.geometry import force_bbox


def scene_key(prefix, scene_id):
    """Blob key for a scene: <prefix>:<id>."""
    return f"{prefix}:{scene_id}"


def float_property(feature, name):
    """
    Read a numeric property.

    Returns:
        float, or None when the property is absent or not a number
    """
    value = (feature.get("properties") or {}).get(name)
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def string_property(feature, name):
    value = (feature.get("properties") or {}).get(name)
    return value if isinstance(value, str) else None


def band_names(feature):
    """
    Band names carried by a feature.

    Accepts a band-name to URL mapping, a list of names, or a comma-separated
    string. Returns None when the feature has no bands property.
    """
    bands = (feature.get("properties") or {}).get("bands")
    if bands is None:
        return None
    if isinstance(bands, dict):
        return set(bands)
    if isinstance(bands, str):
        return {b.strip() for b in bands.split(",") if b.strip()}
    return {str(b) for b in bands}


def calculate_score(feature, now=None):
    """
    Desirability of a scene: 1 - sqrt(cloudCover / 100) - age in decades.

    Returns NaN when cloud cover or acquisition date is missing, which keeps
    the scene out of scored scans.
    """
    cloud_cover = float_property(feature, "cloudCover")
    if cloud_cover is None or not math.isfinite(cloud_cover) or cloud_cover < 0:
        return math.nan
    acquired = string_property(feature, "acquiredDate")
    if acquired is None:
        return math.nan
    age = age_in_decades(acquired, now)
    if math.isnan(age):
        return math.nan
    return 1.0 - math.sqrt(cloud_cover / 100.0) - age


def _format_number(value):
    return repr(float(value))


@dataclass
class Member:
    """Decoded sorted-set member."""

    key: str
    bbox: Optional[List[float]]
    cloud_cover: float

    def encode(self):
        bbox = ",".join(_format_number(v) for v in self.bbox) if self.bbox else ""
        return f"{self.key}&{bbox},{self.cloud_cover:.6f}"

    @classmethod
    def for_feature(cls, prefix, feature):
        cloud_cover = float_property(feature, "cloudCover")
        bbox = force_bbox(feature)
        return cls(
            key=scene_key(prefix, feature["id"]),
            bbox=[float(v) for v in bbox[:4]] if bbox else None,
            cloud_cover=math.nan if cloud_cover is None else cloud_cover,
        )

    @classmethod
    def decode(cls, member):
        """
        Split a member string on its last '&' and then on ','.

        Raises:
            ValueError: If the member is not in the index encoding
        """
        key, sep, tail = member.rpartition("&")
        if not sep:
            raise ValueError(f"Index member has no '&': {member}")
        parts = tail.split(",")
        cloud_cover = float(parts[-1])
        numbers = [p for p in parts[:-1] if p != ""]
        if numbers and len(numbers) != 4:
            raise ValueError(f"Index member bbox must have 4 values: {member}")
        bbox = [float(p) for p in numbers] if numbers else None
        return cls(key=key, bbox=bbox, cloud_cover=cloud_cover)

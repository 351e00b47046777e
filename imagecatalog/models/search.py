"""Discovery request options and response envelope."""
from dataclasses import dataclass, field

from imagecatalog.config import config


@dataclass
class SearchOptions:
    """
    Options for one discovery call.

    A maximum_index of -1 leaves the range open; a positive count then
    closes it at minimum_index + count - 1.
    """

    minimum_index: int = 0
    maximum_index: int = -1
    count: int = 0
    no_cache: bool = False
    rigorous: bool = False
    sub_index: str = ""

    def __post_init__(self):
        if self.minimum_index < 0:
            self.minimum_index = 0
        if not self.no_cache and self.count > config.max_count:
            self.count = config.max_count

    @property
    def last_index(self):
        """Inclusive last rank requested, or -1 for open-ended."""
        if self.maximum_index >= 0:
            return self.maximum_index
        if self.count > 0:
            return self.minimum_index + self.count - 1
        return -1


@dataclass
class ImageDescriptors:
    """
    One page of discovery results.

    total_count is the number of scenes matching the query before the page
    is cut, whether or not the result came from the cache.
    """

    count: int = 0
    total_count: int = 0
    start_index: int = 0
    images: dict = field(default_factory=lambda: {"type": "FeatureCollection", "features": []})

    def to_dict(self):
        return {
            "count": self.count,
            "totalCount": self.total_count,
            "startIndex": self.start_index,
            "images": self.images,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            count=data.get("count", 0),
            total_count=data.get("totalCount", 0),
            start_index=data.get("startIndex", 0),
            images=data.get("images") or {"type": "FeatureCollection", "features": []},
        )

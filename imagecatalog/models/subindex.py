"""Sub-index metadata."""
from dataclasses import dataclass


@dataclass
class Subindex:
    """A named sub-index built from a WFS polygon layer."""

    wfsurl: str
    feature_type: str
    name: str = ""
    key: str = ""

    def resolve_key(self, prefix):
        """Set and return the sorted-set key <prefix>:<wfsURL>:<featureType>."""
        if not self.key:
            self.key = f"{prefix}:{self.wfsurl}:{self.feature_type}"
        return self.key

    def to_dict(self):
        return {
            "wfsurl": self.wfsurl,
            "featureType": self.feature_type,
            "key": self.key,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            wfsurl=data.get("wfsurl", ""),
            feature_type=data.get("featureType", ""),
            name=data.get("name", ""),
            key=data.get("key", ""),
        )

"""Harvest options and their filter layers."""
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class FeatureLayer:
    """Polygons given either by a WFS layer or inline GeoJSON."""

    wfsurl: str = ""
    feature_type: str = ""
    geojson: Optional[dict] = None

    @property
    def is_empty(self):
        return not self.wfsurl and not self.geojson

    def to_dict(self):
        return {"wfsurl": self.wfsurl, "featureType": self.feature_type, "geojson": self.geojson}

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            wfsurl=data.get("wfsurl", ""),
            feature_type=data.get("featureType", ""),
            geojson=data.get("geojson"),
        )


@dataclass
class HarvestFilter:
    """Scenes must touch the whitelist and stay clear of the blacklist."""

    whitelist: FeatureLayer = field(default_factory=FeatureLayer)
    blacklist: FeatureLayer = field(default_factory=FeatureLayer)

    def to_dict(self):
        return {"whitelist": self.whitelist.to_dict(), "blacklist": self.blacklist.to_dict()}

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            whitelist=FeatureLayer.from_dict(data.get("whitelist")),
            blacklist=FeatureLayer.from_dict(data.get("blacklist")),
        )


@dataclass
class HarvestOptions:
    """Options for one harvest run; also the stored form of a recurring harvest."""

    event: bool = False
    reharvest: bool = False
    pl_api_key: str = ""
    pz_gateway: str = ""
    pz_auth: str = ""
    filter: HarvestFilter = field(default_factory=HarvestFilter)
    cap: int = 0  # maximum pages to fetch, 0 for all
    recurring: bool = False
    request_page_size: int = 0
    event_type_id: str = ""

    def to_dict(self):
        return {
            "event": self.event,
            "reharvest": self.reharvest,
            "PL_API_KEY": self.pl_api_key,
            "pzGateway": self.pz_gateway,
            "pzAuth": self.pz_auth,
            "filter": self.filter.to_dict(),
            "cap": self.cap,
            "recurring": self.recurring,
            "requestPageSize": self.request_page_size,
            "eventTypeID": self.event_type_id,
        }

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            event=bool(data.get("event", False)),
            reharvest=bool(data.get("reharvest", False)),
            pl_api_key=data.get("PL_API_KEY", ""),
            pz_gateway=data.get("pzGateway", ""),
            pz_auth=data.get("pzAuth", ""),
            filter=HarvestFilter.from_dict(data.get("filter")),
            cap=int(data.get("cap") or 0),
            recurring=bool(data.get("recurring", False)),
            request_page_size=int(data.get("requestPageSize") or 0),
            event_type_id=data.get("eventTypeID", ""),
        )

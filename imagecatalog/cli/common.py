"""Shared utilities for CLI commands."""
import json
from pathlib import Path

from rich.console import Console

from imagecatalog.catalog.discovery import DiscoveryEngine
from imagecatalog.catalog.harvest import Harvester, RecurringHarvests
from imagecatalog.catalog.subindex import SubindexBuilder
from imagecatalog.storage.features import FeatureStore
from imagecatalog.storage.redis_store import get_store

# Global console for consistent output
console = Console()


def get_feature_store(prefix=None):
    """Get the feature store on the process-wide Redis handle."""
    return FeatureStore(get_store(), prefix)


def get_discovery(prefix=None):
    return DiscoveryEngine(get_feature_store(prefix))


def get_subindex_builder(prefix=None):
    return SubindexBuilder(get_feature_store(prefix))


def get_harvester(prefix=None):
    return Harvester(get_feature_store(prefix))


def get_recurring():
    return RecurringHarvests(get_store())


def load_geojson(path):
    """Read a GeoJSON file into a dict."""
    with open(Path(path)) as f:
        return json.load(f)


def print_scene(feature):
    """Print scene details in consistent format."""
    properties = feature.get("properties") or {}
    console.print(f"[bold]ID:[/bold] {feature.get('id')}")
    if feature.get("bbox"):
        console.print(f"[bold]BBox:[/bold] {', '.join(f'{v:.4f}' for v in feature['bbox'])}")
    for name in ("acquiredDate", "cloudCover", "sensorName", "resolution", "path"):
        if properties.get(name) is not None:
            console.print(f"[bold]{name}:[/bold] {properties[name]}")
    bands = properties.get("bands")
    if bands:
        console.print(f"[bold]bands:[/bold] {', '.join(sorted(bands))}")

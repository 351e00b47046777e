"""Image catalog - satellite scene metadata catalog and discovery service."""

__version__ = "1.0.0"

"""Clients for vendor, WFS and event bus services."""
